"""
Application constants

Fixed limits and static content used by the chat pipeline. These are
behavioral invariants, not tuning knobs, so they are not read from settings.
"""

from typing import Any, Dict

# ============================================================================
# Conversation limits
# ============================================================================

# Sliding window of messages sent upstream (fixed count, not a token budget)
HISTORY_WINDOW = 10

# Conversation titles are a hard cut of the first user message
TITLE_MAX_CHARS = 50

# Context caps
FAVORITES_LIMIT = 5
CATEGORIES_LIMIT = 20

# Conversation list size returned to the widget
CONVERSATION_LIST_LIMIT = 20


# ============================================================================
# Server-sent events
# ============================================================================

FRAME_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ============================================================================
# Sales assistant platform description
# ============================================================================

PLATFORM_INFO_VERSION = "2025-01"

PLATFORM_INFO: Dict[str, Any] = {
    "name": "The Neighborhood Collective",
    "model": "Exclusive neighborhood-limited marketplace",
    "benefits": [
        "Limited businesses per category per neighborhood",
        "High-intent, verified homeowner leads",
        "Collective bargaining power",
        "No competition with other platforms",
    ],
    "pricing": {
        "basic": "$99/month - Profile listing with contact info",
        "featured": "$199/month - Featured placement in your category",
        "exclusive": "$299/month - Exclusive Neighborhood Favorite (limited slots)",
    },
}
