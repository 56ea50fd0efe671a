"""
Chat services - classification, context, conversation resolution
"""

from collective_chat.services.classifier import UserClassifier
from collective_chat.services.context_builder import ContextBuilder, UserContext
from collective_chat.services.conversation_resolver import ConversationResolver, derive_title

__all__ = [
    "UserClassifier",
    "ContextBuilder",
    "UserContext",
    "ConversationResolver",
    "derive_title",
]
