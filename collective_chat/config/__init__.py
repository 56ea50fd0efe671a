"""
Configuration layer - Settings and constants
"""

from collective_chat.config.settings import settings, PROJECT_ROOT
from collective_chat.config.constants import (
    HISTORY_WINDOW,
    TITLE_MAX_CHARS,
    FAVORITES_LIMIT,
    CATEGORIES_LIMIT,
    CONVERSATION_LIST_LIMIT,
    PLATFORM_INFO,
    PLATFORM_INFO_VERSION,
)

__all__ = [
    "settings",
    "PROJECT_ROOT",
    "HISTORY_WINDOW",
    "TITLE_MAX_CHARS",
    "FAVORITES_LIMIT",
    "CATEGORIES_LIMIT",
    "CONVERSATION_LIST_LIMIT",
    "PLATFORM_INFO",
    "PLATFORM_INFO_VERSION",
]
