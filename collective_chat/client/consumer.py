"""
Client-side stream consumer

State machine behind the chat widget:

    IDLE -> SENDING -> STREAMING -> IDLE      (success)
                 \\           \\
                  +-----------+--> ERROR     (compensating rollback)

``send_message`` adds an optimistic user message before any network I/O,
then reads the event stream incrementally, growing ``streaming_buffer`` with
every ``{"text"}`` frame. The terminal ``{"done"}`` frame turns the buffer
into a finalized assistant message. On failure exactly the optimistic entry
is removed again.
"""

import asyncio
import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
from loguru import logger

from collective_chat.client.session import ChatSession
from collective_chat.streaming.cancellation import CancellationToken
from collective_chat.streaming.sse import SSELineDecoder, parse_data_line
from collective_chat.utils.errors import (
    ChatError,
    MalformedFrameError,
    StreamInterruptedError,
    UpstreamError,
)


class ConsumerState(str, enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    ERROR = "error"


@dataclass
class ChatMessage:
    id: str
    role: str
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    pending: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "pending": self.pending,
        }


class ChatStreamConsumer:
    """
    Drives one chat session's conversation from the client side.

    Exactly one turn may be in flight; ``send_message`` is a no-op while
    ``is_streaming`` is true, which is what keeps sends strictly ordered.
    """

    def __init__(
        self,
        session: ChatSession,
        conversation_type: str,
        conversation_id: Optional[str] = None,
        on_error: Optional[Callable[[ChatError], None]] = None,
        on_update: Optional[Callable[["ChatStreamConsumer"], None]] = None,
    ):
        self.session = session
        self.conversation_type = conversation_type
        self.conversation_id = conversation_id
        self.on_error = on_error
        self.on_update = on_update

        self.messages: List[ChatMessage] = []
        self.streaming_buffer = ""
        self.state = ConsumerState.IDLE
        self.conversations: List[Dict[str, Any]] = []
        self.last_error: Optional[ChatError] = None
        self.persistence_warning: Optional[str] = None

        self._cancel_token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._new_conversation = False

    @property
    def is_streaming(self) -> bool:
        return self.state in (ConsumerState.SENDING, ConsumerState.STREAMING)

    def snapshot(self) -> Dict[str, Any]:
        """The observable state: messages, isStreaming, streamingBuffer."""
        return {
            "messages": [m.to_dict() for m in self.messages],
            "isStreaming": self.is_streaming,
            "streamingBuffer": self.streaming_buffer,
        }

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update(self)

    def _transition(self, state: ConsumerState) -> None:
        logger.debug(f"Chat consumer {self.state.value} -> {state.value}")
        self.state = state
        self._notify()

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send_message(self, content: str) -> Optional[asyncio.Task]:
        """
        Send a user message and stream the reply in the background.

        Returns the background task, or None when the call was ignored
        (blank content or a turn already in flight). Must be called from a
        running event loop.
        """
        if not content or not content.strip() or self.is_streaming:
            return None

        optimistic = ChatMessage(
            id=f"temp-{uuid.uuid4().hex}",
            role="user",
            content=content,
            pending=True,
        )
        self.messages.append(optimistic)
        self.streaming_buffer = ""
        self.last_error = None
        self.persistence_warning = None
        self._cancel_token = CancellationToken()
        self._transition(ConsumerState.SENDING)

        self._task = asyncio.create_task(self._run_turn(optimistic, self._cancel_token))
        return self._task

    def cancel(self) -> bool:
        """
        Abort the turn in flight. Closing the response ends the server's
        relay, which in turn closes its upstream request.
        """
        if not self.is_streaming or self._cancel_token is None:
            return False
        self._cancel_token.cancel("cancelled by user")
        if self._task is not None and not self._task.done():
            self._task.cancel()
        return True

    async def _run_turn(self, optimistic: ChatMessage, token: CancellationToken) -> None:
        response: Optional[httpx.Response] = None
        try:
            response = await self.session.open_completion(
                message=optimistic.content,
                conversation_type=self.conversation_type,
                conversation_id=self.conversation_id,
            )
            self._transition(ConsumerState.STREAMING)

            if await self._consume(response, token):
                await self._refresh_if_new_conversation()
            elif token.cancelled:
                self._settle_cancelled(optimistic)
            else:
                raise StreamInterruptedError("Stream ended before the reply completed")
        except asyncio.CancelledError:
            if not token.cancelled:
                raise
            self._settle_cancelled(optimistic)
        except ChatError as e:
            self._settle_error(optimistic, e)
        except httpx.HTTPError as e:
            self._settle_error(optimistic, UpstreamError(f"Network error: {e}"))
        finally:
            if response is not None:
                await response.aclose()

    async def _consume(self, response: httpx.Response, token: CancellationToken) -> bool:
        """Read frames until the terminal one. Returns True if it arrived."""
        decoder = SSELineDecoder()
        async for chunk in response.aiter_bytes():
            if token.cancelled:
                return False
            for line in decoder.feed(chunk):
                if self._handle_line(line):
                    return True
        for line in decoder.flush():
            if self._handle_line(line):
                return True
        return False

    def _handle_line(self, line: str) -> bool:
        try:
            payload = parse_data_line(line)
        except MalformedFrameError as e:
            logger.debug(f"Skipping malformed frame: {e.message}")
            return False
        if payload is None:
            return False

        if payload.get("error"):
            raise UpstreamError(str(payload["error"]))

        if payload.get("persistenceError"):
            self.persistence_warning = str(payload["persistenceError"])
            logger.warning(f"Server could not store the reply: {self.persistence_warning}")

        text = payload.get("text")
        if isinstance(text, str) and text:
            self.streaming_buffer += text
            self._notify()

        if payload.get("done"):
            self._settle_success(payload.get("conversationId"))
            return True
        return False

    # ------------------------------------------------------------------
    # Settling
    # ------------------------------------------------------------------

    def _settle_success(self, conversation_id: Optional[str]) -> None:
        for message in self.messages:
            message.pending = False
        self.messages.append(
            ChatMessage(
                id=f"msg-{uuid.uuid4().hex}",
                role="assistant",
                content=self.streaming_buffer,
            )
        )
        self.streaming_buffer = ""
        self._new_conversation = self.conversation_id is None and bool(conversation_id)
        if conversation_id:
            self.conversation_id = conversation_id
        self._transition(ConsumerState.IDLE)

    def _settle_error(self, optimistic: ChatMessage, error: ChatError) -> None:
        """Compensating transition: drop exactly the optimistic entry."""
        self.messages = [m for m in self.messages if m.id != optimistic.id]
        self.streaming_buffer = ""
        self.last_error = error
        logger.error(f"Error sending message: {error.message}")
        self._transition(ConsumerState.ERROR)
        if self.on_error is not None:
            self.on_error(error)

    def _settle_cancelled(self, optimistic: ChatMessage) -> None:
        """
        The partial reply is discarded. The user message stays only if the
        server had already accepted (and stored) it.
        """
        accepted = self.state == ConsumerState.STREAMING
        if accepted:
            optimistic.pending = False
        else:
            self.messages = [m for m in self.messages if m.id != optimistic.id]
        self.streaming_buffer = ""
        logger.info("Chat turn cancelled")
        self._transition(ConsumerState.IDLE)

    async def _refresh_if_new_conversation(self) -> None:
        if not self._new_conversation:
            return
        self._new_conversation = False
        try:
            await self.refresh_conversations()
        except (ChatError, httpx.HTTPError) as e:
            logger.warning(f"Could not refresh conversation list: {e}")

    # ------------------------------------------------------------------
    # Conversation management
    # ------------------------------------------------------------------

    async def detect_mode(self) -> str:
        """Ask the server which assistant this user gets and adopt it."""
        mode = await self.session.fetch_mode()
        if mode != self.conversation_type:
            logger.info(f"Switching assistant mode {self.conversation_type} -> {mode}")
            self.conversation_type = mode
            self._notify()
        return mode

    async def refresh_conversations(self) -> List[Dict[str, Any]]:
        self.conversations = await self.session.fetch_conversations(self.conversation_type)
        self._notify()
        return self.conversations

    async def select_conversation(self, conversation_id: str) -> None:
        """Load an existing conversation's messages into the view."""
        if self.is_streaming:
            return
        data = await self.session.fetch_messages(conversation_id)
        self.conversation_id = conversation_id
        self.messages = [
            ChatMessage(
                id=m["id"],
                role=m["role"],
                content=m["content"],
                created_at=datetime.fromisoformat(m["createdAt"]) if m.get("createdAt") else datetime.now(timezone.utc),
            )
            for m in data.get("messages", [])
        ]
        self.streaming_buffer = ""
        self._transition(ConsumerState.IDLE)

    def new_conversation(self) -> None:
        """Start over; the next send creates a new conversation."""
        if self.is_streaming:
            return
        self.conversation_id = None
        self.messages = []
        self.streaming_buffer = ""
        self._transition(ConsumerState.IDLE)

    async def delete_conversation(self, conversation_id: str) -> None:
        await self.session.delete_conversation(conversation_id)
        self.conversations = [c for c in self.conversations if c.get("id") != conversation_id]
        if self.conversation_id == conversation_id and not self.is_streaming:
            self.new_conversation()
        else:
            self._notify()
