"""
ORM models and enums
"""

from collective_chat.models.domain import (
    Base,
    Business,
    Category,
    Conversation,
    ConversationMode,
    Favorite,
    Message,
    MessageRole,
    Neighborhood,
    Profile,
)

__all__ = [
    "Base",
    "Business",
    "Category",
    "Conversation",
    "ConversationMode",
    "Favorite",
    "Message",
    "MessageRole",
    "Neighborhood",
    "Profile",
]
