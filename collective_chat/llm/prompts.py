"""
Prompt composition for the neighborhood assistants.

Rendering is deterministic: the same mode and context always produce the
same system prompt, and nothing here touches the network.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from collective_chat.config.constants import HISTORY_WINDOW
from collective_chat.memory.message_store import MessageStore
from collective_chat.models.domain import Conversation, ConversationMode, Message, MessageRole
from collective_chat.services.context_builder import UserContext

DEFAULT_NEIGHBORHOOD = "your neighborhood"
DEFAULT_NAME = "there"
DEFAULT_CATEGORIES = "various home services"
DEFAULT_FAVORITES = "none yet"


SERVICE_ASSISTANT_TEMPLATE = """You are a helpful neighborhood service assistant for the {neighborhood} Collective. Your role is to help homeowners find trusted local professionals and businesses for their home service needs.

CONTEXT:
- User's neighborhood: {neighborhood}
- User's name: {name}
- Available categories: {categories}
- User's favorite businesses: {favorites}

YOUR CAPABILITIES:
1. Help users describe their service needs in detail
2. Search and recommend businesses from the local directory
3. Explain business details and services
4. Guide users to save favorites and view business profiles
5. Answer questions about the platform and how it works

GUIDELINES:
- Be conversational, warm, and helpful
- Ask clarifying questions to understand needs fully
- Prioritize businesses from {neighborhood}
- When recommending, provide 2-3 options with brief rationale
- Keep responses concise but informative
- Encourage users to save favorites and leave recommendations

IMPORTANT:
- Do not make up business information
- Do not promise specific pricing or availability
- Do not provide personal contact information
- Do not recommend businesses outside the user's neighborhood

Example conversation starters:
- "What kind of service are you looking for today?"
- "Tell me about the project you have in mind."
- "I can help you find a trusted professional in {neighborhood}. What do you need help with?\""""


SALES_ASSISTANT_TEMPLATE = """You are a professional sales and onboarding assistant for {platform_name}. Your role is to help local businesses understand the value proposition and join as "Exclusive Neighborhood Favorites."

You are speaking with {name}.

PLATFORM MODEL:
- {platform_model}
- Limited businesses per category per neighborhood (creates scarcity and value)
- Verified homeowner base with high intent
- No competition with Facebook, Nextdoor, or Google (different model)

VALUE PROPOSITION:
{benefits}

PRICING TIERS:
{pricing}

YOUR ROLE:
1. Explain how the platform works and why it's different
2. Understand the business's current lead generation challenges
3. Demonstrate ROI potential (quality over quantity)
4. Guide through profile setup process
5. Create urgency around limited "Exclusive" slots
6. Handle objections professionally

GUIDELINES:
- Be professional, consultative, and empathetic
- Ask about their current marketing challenges
- Emphasize quality leads vs volume
- Use social proof (limited slots create trust)
- Don't pressure - educate and build value
- Be transparent about the model

IMPORTANT - MVP LIMITATION:
- We are NOT processing payments yet
- Direct interested businesses to "contact us" for final signup
- Explain the benefits and pricing, but don't attempt to charge cards
- Focus on qualifying leads and generating interest

Example conversation starters:
- "How are you currently getting leads for your business?"
- "What's your biggest challenge with platforms like Nextdoor or Google?"
- "Let me explain how we're different from traditional directory sites...\""""


@dataclass(frozen=True)
class ComposedPrompt:
    system_prompt: str
    history: List[Dict[str, str]]


def render_system_prompt(mode: ConversationMode, context: UserContext) -> str:
    """Render the mode-specific system prompt for ``context``."""
    neighborhood = context.neighborhood_name or DEFAULT_NEIGHBORHOOD
    name = context.full_name or DEFAULT_NAME

    if ConversationMode(mode) == ConversationMode.SERVICE_ASSISTANT:
        categories = ", ".join(c.label for c in context.categories) or DEFAULT_CATEGORIES
        favorites = ", ".join(b.name for b in context.favorites) or DEFAULT_FAVORITES
        return SERVICE_ASSISTANT_TEMPLATE.format(
            neighborhood=neighborhood,
            name=name,
            categories=categories,
            favorites=favorites,
        )

    platform = context.platform or {}
    benefits = "\n".join(
        f"{i}. {benefit}" for i, benefit in enumerate(platform.get("benefits", []), 1)
    )
    pricing = "\n".join(
        f"- {tier.capitalize()}: {description}"
        for tier, description in platform.get("pricing", {}).items()
    )
    return SALES_ASSISTANT_TEMPLATE.format(
        platform_name=platform.get("name", "The Neighborhood Collective"),
        platform_model=platform.get("model", ""),
        name=name,
        benefits=benefits,
        pricing=pricing,
    )


def build_history(messages: Sequence[Message], window: int = HISTORY_WINDOW) -> List[Dict[str, str]]:
    """
    Convert stored messages to provider turns.

    Keeps the last ``window`` messages (input is oldest-first) and drops any
    leading assistant turns so the history the provider sees starts with the
    user.
    """
    recent = list(messages)[-window:] if window > 0 else []
    history = [
        {
            "role": MessageRole.ASSISTANT.value if m.role == MessageRole.ASSISTANT.value else MessageRole.USER.value,
            "content": m.content,
        }
        for m in recent
    ]
    while history and history[0]["role"] == MessageRole.ASSISTANT.value:
        history.pop(0)
    return history


class PromptComposer:
    """Load the history window for a conversation and render the prompt"""

    def __init__(self, store: MessageStore):
        self.store = store

    def compose(self, conversation: Conversation, context: UserContext) -> ComposedPrompt:
        messages = self.store.recent_messages(conversation.id, limit=HISTORY_WINDOW)
        return ComposedPrompt(
            system_prompt=render_system_prompt(conversation.mode, context),
            history=build_history(messages),
        )
