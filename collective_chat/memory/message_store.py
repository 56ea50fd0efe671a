"""
Conversation and message storage.

Row-level operations over the ``conversations`` and ``messages`` tables:
reads, inserts and single-row updates keyed by id. Every write is either an
append-only insert under a fresh id or an update scoped to one conversation,
so concurrent requests never contend on the same row set.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Generator, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from collective_chat.config.constants import CONVERSATION_LIST_LIMIT
from collective_chat.infra.database import Database
from collective_chat.models.domain import (
    Conversation,
    ConversationMode,
    Message,
    MessageRole,
    new_id,
    utcnow,
)
from collective_chat.utils.errors import PersistenceError


class MessageStore:
    """Durable storage for conversations and their messages"""

    def __init__(self, database: Database):
        self.database = database

    @contextmanager
    def _scope(self, operation: str) -> Generator[Session, None, None]:
        try:
            with self.database.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            raise PersistenceError(f"{operation} failed: {e}") from e

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._scope("get_conversation") as session:
            return session.get(Conversation, conversation_id)

    def create_conversation(
        self,
        user_id: str,
        mode: ConversationMode,
        title: str,
    ) -> Conversation:
        """
        Insert a new conversation owned by ``user_id``.

        Args:
            user_id: Owning identity (immutable)
            mode: Conversation mode, fixed for the conversation's lifetime
            title: Display title, derived from the first user message

        Returns:
            The created Conversation row
        """
        now = utcnow()
        conversation = Conversation(
            id=new_id(),
            user_id=user_id,
            conversation_type=ConversationMode(mode).value,
            title=title,
            created_at=now,
            last_message_at=now,
        )
        with self._scope("create_conversation") as session:
            session.add(conversation)
        logger.info(f"Created conversation {conversation.id} ({conversation.conversation_type}) for user={user_id}")
        return conversation

    def touch_conversation(self, conversation_id: str, at: Optional[datetime] = None) -> None:
        """Set ``last_message_at`` on a single conversation."""
        with self._scope("touch_conversation") as session:
            conversation = session.get(Conversation, conversation_id)
            if conversation is None:
                raise PersistenceError(f"Conversation {conversation_id} disappeared before update")
            conversation.last_message_at = at or utcnow()

    def list_conversations(
        self,
        user_id: str,
        mode: Optional[ConversationMode] = None,
        limit: int = CONVERSATION_LIST_LIMIT,
    ) -> List[Conversation]:
        """User's conversations, most recently active first."""
        stmt = select(Conversation).where(Conversation.user_id == user_id)
        if mode is not None:
            stmt = stmt.where(Conversation.conversation_type == ConversationMode(mode).value)
        stmt = stmt.order_by(Conversation.last_message_at.desc()).limit(limit)
        with self._scope("list_conversations") as session:
            return list(session.scalars(stmt))

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages. Returns False if it did not exist."""
        with self._scope("delete_conversation") as session:
            conversation = session.get(Conversation, conversation_id)
            if conversation is None:
                return False
            session.delete(conversation)
        logger.info(f"Deleted conversation {conversation_id}")
        return True

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def insert_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        tokens_used: Optional[int] = None,
    ) -> Message:
        message = Message(
            id=new_id(),
            conversation_id=conversation_id,
            role=MessageRole(role).value,
            content=content,
            created_at=utcnow(),
            tokens_used=tokens_used,
        )
        with self._scope("insert_message") as session:
            session.add(message)
        logger.debug(f"Stored {message.role} message {message.id} in conversation {conversation_id}")
        return message

    def recent_messages(self, conversation_id: str, limit: int) -> List[Message]:
        """
        The last ``limit`` messages of a conversation, oldest first.
        """
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.seq.desc())
            .limit(limit)
        )
        with self._scope("recent_messages") as session:
            rows = list(session.scalars(stmt))
        rows.reverse()
        return rows

    def list_messages(self, conversation_id: str) -> List[Message]:
        """All messages of a conversation, oldest first."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.seq.asc())
        )
        with self._scope("list_messages") as session:
            return list(session.scalars(stmt))
