"""
Client side of the chat: an authenticated session and the stream consumer
"""

from collective_chat.client.consumer import ChatMessage, ChatStreamConsumer, ConsumerState
from collective_chat.client.session import ChatSession, error_from_response

__all__ = [
    "ChatMessage",
    "ChatSession",
    "ChatStreamConsumer",
    "ConsumerState",
    "error_from_response",
]
