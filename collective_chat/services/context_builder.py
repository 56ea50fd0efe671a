"""
Context builder - bounded, mode-specific facts used to personalize the prompt.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from collective_chat.config.constants import (
    CATEGORIES_LIMIT,
    FAVORITES_LIMIT,
    PLATFORM_INFO,
    PLATFORM_INFO_VERSION,
)
from collective_chat.memory.directory_store import (
    BusinessSummary,
    CategorySummary,
    DirectoryStore,
)
from collective_chat.models.domain import ConversationMode


@dataclass
class UserContext:
    """Facts about the user and platform rendered into the system prompt"""
    mode: ConversationMode
    full_name: Optional[str] = None
    neighborhood_name: Optional[str] = None
    favorites: List[BusinessSummary] = field(default_factory=list)
    categories: List[CategorySummary] = field(default_factory=list)
    platform: Optional[Dict[str, Any]] = None
    platform_version: Optional[str] = None


class ContextBuilder:
    """Assemble a UserContext from the directory"""

    def __init__(self, directory: DirectoryStore):
        self.directory = directory

    def build(self, user_id: str, mode: ConversationMode) -> UserContext:
        """
        Build context for ``user_id`` in ``mode``.

        Service assistant: profile, neighborhood, up to 5 recent favorites and
        up to 20 categories. Sales assistant: profile plus the fixed platform
        description. Lookup failures degrade to fallbacks instead of failing
        the turn.
        """
        mode = ConversationMode(mode)
        context = UserContext(mode=mode)

        try:
            profile = self.directory.get_profile(user_id)
        except Exception as e:
            logger.warning(f"Profile lookup failed for user={user_id}: {e}")
            profile = None

        if profile is not None:
            context.full_name = profile.full_name
            context.neighborhood_name = profile.neighborhood_name

        if mode == ConversationMode.SERVICE_ASSISTANT:
            try:
                favorites = self.directory.recent_favorites(user_id, limit=FAVORITES_LIMIT)
            except Exception as e:
                logger.warning(f"Favorites lookup failed for user={user_id}: {e}")
                favorites = []
            try:
                categories = self.directory.list_categories(limit=CATEGORIES_LIMIT)
            except Exception as e:
                logger.warning(f"Category lookup failed: {e}")
                categories = []

            # Caps hold even if a store ignores the limit argument
            context.favorites = list(favorites)[:FAVORITES_LIMIT]
            context.categories = list(categories)[:CATEGORIES_LIMIT]
        else:
            context.platform = PLATFORM_INFO
            context.platform_version = PLATFORM_INFO_VERSION

        logger.debug(
            f"Built {mode.value} context for user={user_id}: "
            f"favorites={len(context.favorites)}, categories={len(context.categories)}"
        )
        return context
