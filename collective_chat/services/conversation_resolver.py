"""
Conversation resolver - load or create the conversation for a turn and
record the user's message.
"""

from typing import Optional

from loguru import logger

from collective_chat.config.constants import TITLE_MAX_CHARS
from collective_chat.memory.message_store import MessageStore
from collective_chat.models.domain import Conversation, ConversationMode, MessageRole
from collective_chat.utils.errors import ForbiddenError, NotFoundError


def derive_title(message: str) -> str:
    """First 50 characters of the message, cut exactly (no ellipsis)."""
    return message[:TITLE_MAX_CHARS]


class ConversationResolver:
    """Resolve a conversation and durably store the incoming user turn"""

    def __init__(self, store: MessageStore):
        self.store = store

    def resolve(
        self,
        user_id: str,
        message: str,
        mode: ConversationMode,
        conversation_id: Optional[str] = None,
    ) -> Conversation:
        """
        Resolve the conversation for this turn and insert the user message.

        The user message is written before this method returns, and therefore
        before any upstream call, so the utterance survives downstream
        failures.

        Args:
            user_id: Authenticated caller
            message: Non-empty user text
            mode: Classifier result, used only when creating a conversation
            conversation_id: Existing conversation to continue, if any

        Returns:
            The resolved or newly created Conversation

        Raises:
            NotFoundError: conversation_id does not exist
            ForbiddenError: conversation_id belongs to another user
        """
        if conversation_id:
            conversation = self.store.get_conversation(conversation_id)
            if conversation is None:
                raise NotFoundError("Conversation not found")
            if conversation.user_id != user_id:
                logger.warning(f"User {user_id} attempted to access conversation {conversation_id}")
                raise ForbiddenError("Conversation belongs to another user")
            logger.info(f"Using existing conversation: {conversation.id}")
        else:
            conversation = self.store.create_conversation(
                user_id=user_id,
                mode=mode,
                title=derive_title(message),
            )

        self.store.insert_message(conversation.id, MessageRole.USER, message)
        return conversation
