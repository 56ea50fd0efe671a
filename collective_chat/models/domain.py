"""
Domain models for the Neighborhood Collective chat assistant.
SQLAlchemy ORM models for the directory tables the assistant reads and the
conversation tables it owns.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ConversationMode(str, enum.Enum):
    """
    Fixed classification of a conversation, set at creation.

    SERVICE_ASSISTANT serves homeowners looking for local professionals;
    SALES_ASSISTANT serves business operators evaluating the platform.
    """
    SERVICE_ASSISTANT = "service_assistant"
    SALES_ASSISTANT = "sales_assistant"


class MessageRole(str, enum.Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"


# ============================================================================
# Directory tables (read-only for the chat subsystem)
# ============================================================================

class Neighborhood(Base):
    """Neighborhood a member belongs to."""
    __tablename__ = "neighborhoods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Neighborhood {self.name}>"


class Profile(Base):
    """Member profile, keyed by the identity provider's user id."""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(100))
    neighborhood_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("neighborhoods.id")
    )

    neighborhood: Mapped[Optional[Neighborhood]] = relationship()

    def __repr__(self) -> str:
        return f"<Profile {self.full_name}>"


class Category(Base):
    """Service category (plumbing, landscaping, ...)."""
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji: Mapped[Optional[str]] = mapped_column(String(16))

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Business(Base):
    """Business listed in the directory; user_id is the owning operator."""
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("categories.id"))
    neighborhood_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("neighborhoods.id")
    )

    def __repr__(self) -> str:
        return f"<Business {self.name}>"


class Favorite(Base):
    """A member's saved business."""
    __tablename__ = "favorites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    business: Mapped[Business] = relationship()


# ============================================================================
# Conversation tables (owned by the chat subsystem)
# ============================================================================

class Conversation(Base):
    """A user-owned thread of alternating user/assistant turns."""
    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    conversation_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_message_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    messages: Mapped[List["Message"]] = relationship(
        back_populates="conversation", cascade="all, delete-orphan"
    )

    @property
    def mode(self) -> ConversationMode:
        return ConversationMode(self.conversation_type)

    def __repr__(self) -> str:
        return f"<Conversation {self.id} ({self.conversation_type})>"


class Message(Base):
    """
    A single turn. Append-only: the chat subsystem never edits or deletes
    individual messages.

    ``seq`` is an insertion counter used only to order messages that share a
    ``created_at`` timestamp.
    """
    __tablename__ = "messages"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    tokens_used: Mapped[Optional[int]] = mapped_column(Integer)

    conversation: Mapped[Conversation] = relationship(back_populates="messages")

    def __repr__(self) -> str:
        return f"<Message {self.id} {self.role}>"
