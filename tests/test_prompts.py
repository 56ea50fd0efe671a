"""
Tests for prompt rendering and history windowing
"""

from collective_chat.config.constants import PLATFORM_INFO, PLATFORM_INFO_VERSION
from collective_chat.llm.prompts import PromptComposer, build_history, render_system_prompt
from collective_chat.memory.directory_store import BusinessSummary, CategorySummary
from collective_chat.models.domain import ConversationMode, Message, MessageRole
from collective_chat.services.context_builder import UserContext


def make_messages(*roles):
    return [Message(role=role, content=f"{role} {i}") for i, role in enumerate(roles)]


def test_service_prompt_renders_context():
    context = UserContext(
        mode=ConversationMode.SERVICE_ASSISTANT,
        full_name="Dana Rivera",
        neighborhood_name="Maple Grove",
        favorites=[BusinessSummary(id="b1", name="Rivera Plumbing"), BusinessSummary(id="b2", name="Green Thumb")],
        categories=[CategorySummary(id="c1", name="Plumbing", emoji="🔧"), CategorySummary(id="c2", name="Roofing")],
    )

    prompt = render_system_prompt(ConversationMode.SERVICE_ASSISTANT, context)

    assert prompt.startswith("You are a helpful neighborhood service assistant for the Maple Grove Collective.")
    assert "- User's name: Dana Rivera" in prompt
    assert "- Available categories: 🔧 Plumbing, Roofing" in prompt
    assert "- User's favorite businesses: Rivera Plumbing, Green Thumb" in prompt
    assert "Prioritize businesses from Maple Grove" in prompt


def test_service_prompt_fallbacks():
    """Test the placeholders used when the profile or lookups are empty"""
    prompt = render_system_prompt(
        ConversationMode.SERVICE_ASSISTANT, UserContext(mode=ConversationMode.SERVICE_ASSISTANT)
    )

    assert "for the your neighborhood Collective" in prompt
    assert "- User's name: there" in prompt
    assert "- Available categories: various home services" in prompt
    assert "- User's favorite businesses: none yet" in prompt


def test_sales_prompt_renders_platform_info():
    context = UserContext(
        mode=ConversationMode.SALES_ASSISTANT,
        full_name="Sam Ortiz",
        platform=PLATFORM_INFO,
        platform_version=PLATFORM_INFO_VERSION,
    )

    prompt = render_system_prompt(ConversationMode.SALES_ASSISTANT, context)

    assert prompt.startswith("You are a professional sales and onboarding assistant for The Neighborhood Collective.")
    assert "You are speaking with Sam Ortiz." in prompt
    assert "1. Limited businesses per category per neighborhood" in prompt
    assert "4. No competition with other platforms" in prompt
    assert "- Exclusive: $299/month - Exclusive Neighborhood Favorite (limited slots)" in prompt
    assert "We are NOT processing payments yet" in prompt


def test_rendering_is_deterministic():
    context = UserContext(mode=ConversationMode.SALES_ASSISTANT, platform=PLATFORM_INFO)
    assert render_system_prompt(ConversationMode.SALES_ASSISTANT, context) == render_system_prompt(
        ConversationMode.SALES_ASSISTANT, context
    )


def test_build_history_keeps_last_ten():
    roles = ["user", "assistant"] * 6
    history = build_history(make_messages(*roles))

    assert len(history) == 10
    assert history[0] == {"role": "user", "content": "user 2"}
    assert history[-1] == {"role": "assistant", "content": "assistant 11"}


def test_build_history_drops_leading_assistant_turns():
    """Test that the window never starts on an assistant turn"""
    roles = ["user"] + ["assistant", "user"] * 5
    history = build_history(make_messages(*roles))

    # Window of 10 starts at index 1 (assistant), which is dropped
    assert len(history) == 9
    assert history[0]["role"] == "user"
    assert history[-1] == {"role": "user", "content": "user 10"}


def test_build_history_single_message():
    assert build_history(make_messages("user")) == [{"role": "user", "content": "user 0"}]


def test_composer_includes_just_stored_user_message(message_store):
    conversation = message_store.create_conversation("u", ConversationMode.SERVICE_ASSISTANT, "first")
    message_store.insert_message(conversation.id, MessageRole.USER, "first")
    message_store.insert_message(conversation.id, MessageRole.ASSISTANT, "reply")
    message_store.insert_message(conversation.id, MessageRole.USER, "second")

    composed = PromptComposer(message_store).compose(
        conversation, UserContext(mode=ConversationMode.SERVICE_ASSISTANT)
    )

    assert composed.history == [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "reply"},
        {"role": "user", "content": "second"},
    ]
    assert "neighborhood service assistant" in composed.system_prompt
