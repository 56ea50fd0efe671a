"""
Conversation history endpoints

Listing, reading and deleting the caller's own conversations. Every lookup is
scoped to the authenticated user.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from collective_chat.api.dependencies import get_current_user, get_message_store
from collective_chat.api.models import (
    ConversationListResponse,
    ConversationOut,
    MessageListResponse,
    MessageOut,
)
from collective_chat.auth.gate import AuthenticatedUser
from collective_chat.memory.message_store import MessageStore
from collective_chat.models.domain import Conversation, ConversationMode, Message
from collective_chat.utils.errors import ForbiddenError, NotFoundError


router = APIRouter(prefix="/api/chat/conversations", tags=["conversations"])


def to_conversation_out(conversation: Conversation) -> ConversationOut:
    return ConversationOut(
        id=conversation.id,
        title=conversation.title,
        conversation_type=conversation.conversation_type,
        created_at=conversation.created_at,
        last_message_at=conversation.last_message_at,
    )


def to_message_out(message: Message) -> MessageOut:
    return MessageOut(
        id=message.id,
        conversation_id=message.conversation_id,
        role=message.role,
        content=message.content,
        created_at=message.created_at,
        tokens_used=message.tokens_used,
    )


def get_owned_conversation(store: MessageStore, conversation_id: str, user_id: str) -> Conversation:
    conversation = store.get_conversation(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    if conversation.user_id != user_id:
        raise ForbiddenError("Conversation belongs to another user")
    return conversation


@router.get("", response_model=ConversationListResponse)
def list_conversations(
    conversation_type: Optional[Literal["service_assistant", "sales_assistant"]] = Query(
        default=None, alias="conversationType"
    ),
    user: AuthenticatedUser = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    """Caller's 20 most recently active conversations."""
    mode = ConversationMode(conversation_type) if conversation_type else None
    conversations = store.list_conversations(user.id, mode=mode)
    return ConversationListResponse(
        conversations=[to_conversation_out(c) for c in conversations]
    )


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
def get_conversation_messages(
    conversation_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    conversation = get_owned_conversation(store, conversation_id, user.id)
    messages = store.list_messages(conversation.id)
    return MessageListResponse(
        conversation=to_conversation_out(conversation),
        messages=[to_message_out(m) for m in messages],
    )


@router.delete("/{conversation_id}")
def delete_conversation(
    conversation_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    conversation = get_owned_conversation(store, conversation_id, user.id)
    store.delete_conversation(conversation.id)
    return {"success": True, "message": "Conversation deleted"}
