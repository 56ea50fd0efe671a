"""
Storage layer - conversations, messages and directory reads
"""

from collective_chat.memory.message_store import MessageStore
from collective_chat.memory.directory_store import (
    DirectoryStore,
    BusinessSummary,
    CategorySummary,
    ProfileSummary,
)

__all__ = [
    "MessageStore",
    "DirectoryStore",
    "BusinessSummary",
    "CategorySummary",
    "ProfileSummary",
]
