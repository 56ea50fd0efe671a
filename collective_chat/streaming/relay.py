"""
Stream relay

Consumes the provider's SSE byte stream, forwards each text delta to the
browser as soon as it is decoded, accumulates the full reply and persists the
assistant turn once the upstream stream ends cleanly.
"""

import asyncio
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional

import httpx
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from collective_chat.memory.message_store import MessageStore
from collective_chat.models.domain import MessageRole
from collective_chat.streaming.cancellation import CancellationToken
from collective_chat.streaming.sse import (
    SSELineDecoder,
    done_frame,
    error_frame,
    parse_data_line,
    persistence_error_frame,
    text_frame,
)
from collective_chat.utils.errors import MalformedFrameError, PersistenceError, UpstreamError


@dataclass
class RelayResult:
    """What the relay observed on one upstream stream"""
    full_response: str = ""
    tokens_used: Optional[int] = None
    deltas: int = 0
    malformed_frames: int = 0
    cancelled: bool = False
    persisted: bool = False


class StreamRelay:
    """
    Re-frame one upstream completion stream for one request.

    Holds no state shared across requests; the only side effects are the
    assistant message insert and the conversation timestamp update at the end.
    """

    def __init__(
        self,
        store: MessageStore,
        conversation_id: str,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.store = store
        self.conversation_id = conversation_id
        self.cancel_token = cancel_token or CancellationToken()
        self.result = RelayResult()

    def handle_line(self, line: str) -> Optional[str]:
        """
        Process one upstream line. Returns delta text to forward, if any.

        Malformed payloads are counted, logged and skipped.
        """
        try:
            payload = parse_data_line(line)
        except MalformedFrameError as e:
            self.result.malformed_frames += 1
            logger.warning(f"Skipping malformed upstream frame: {e.message}")
            return None

        if payload is None:
            return None

        frame_type = payload.get("type")
        if frame_type == "error":
            detail = payload.get("error") or {}
            message = detail.get("message") if isinstance(detail, dict) else str(detail)
            raise UpstreamError(f"LLM provider stream error: {message}")

        usage = payload.get("usage")
        if isinstance(usage, dict):
            output_tokens = usage.get("output_tokens")
            if isinstance(output_tokens, int) and not isinstance(output_tokens, bool):
                self.result.tokens_used = output_tokens

        if frame_type == "content_block_delta":
            delta = payload.get("delta") or {}
            text = delta.get("text") if isinstance(delta, dict) else None
            if text is not None and not isinstance(text, str):
                self.result.malformed_frames += 1
                logger.warning(f"Skipping upstream delta with non-text payload: {type(text).__name__}")
                return None
            if text:
                self.result.full_response += text
                self.result.deltas += 1
                return text
        return None

    async def iter_text(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
        """
        Decode upstream chunks and yield text deltas in arrival order.

        Stops early (setting ``result.cancelled``) when the cancellation token
        fires between chunks.
        """
        decoder = SSELineDecoder()
        async for chunk in chunks:
            if self.cancel_token.cancelled:
                self.result.cancelled = True
                return
            for line in decoder.feed(chunk):
                text = self.handle_line(line)
                if text is not None:
                    yield text
        for line in decoder.flush():
            text = self.handle_line(line)
            if text is not None:
                yield text

    def persist(self) -> Optional[str]:
        """
        Store the assistant turn and bump ``last_message_at``.

        Returns:
            None on success, otherwise a client-facing failure message
        """
        try:
            self.store.insert_message(
                self.conversation_id,
                MessageRole.ASSISTANT,
                self.result.full_response,
                tokens_used=self.result.tokens_used,
            )
            self.store.touch_conversation(self.conversation_id)
        except PersistenceError as e:
            logger.error(f"❌ Failed to persist assistant reply for conversation {self.conversation_id}: {e}")
            return "Assistant reply could not be saved"
        self.result.persisted = True
        return None

    async def stream(self, upstream: httpx.Response) -> AsyncIterator[str]:
        """
        Outbound SSE stream for the browser.

        Yields ``{"text"}`` frames while the upstream produces deltas, then
        persists and yields the terminal ``{"done", "conversationId"}`` frame.
        The done frame is only sent after the persistence attempt finishes; a
        failed write is reported with a ``{"persistenceError"}`` frame first.
        Upstream failures mid-stream yield ``{"error"}`` and end the stream
        without a done frame or an assistant message. The upstream response
        is closed on every exit path, including client disconnects.
        """
        try:
            try:
                async for text in self.iter_text(upstream.aiter_bytes()):
                    yield text_frame(text)
            except (httpx.HTTPError, UpstreamError) as e:
                logger.error(f"❌ Upstream stream failed for conversation {self.conversation_id}: {e}")
                yield error_frame("Upstream stream interrupted")
                return

            if self.result.cancelled:
                logger.info(
                    f"Stream cancelled ({self.cancel_token.reason}) for conversation {self.conversation_id} "
                    f"after {self.result.deltas} deltas; assistant reply not stored"
                )
                return

            failure = await run_in_threadpool(self.persist)
            if failure:
                yield persistence_error_frame(failure)

            logger.info(
                f"Stream completed - conversation={self.conversation_id}, deltas={self.result.deltas}, "
                f"tokens={self.result.tokens_used}, malformed={self.result.malformed_frames}"
            )
            yield done_frame(self.conversation_id)
        except (asyncio.CancelledError, GeneratorExit):
            # Client went away; the finally block tears down the upstream read
            if not self.result.persisted:
                self.cancel_token.cancel("client disconnected")
                self.result.cancelled = True
                logger.info(f"Client disconnected from conversation {self.conversation_id}; closing upstream")
            raise
        finally:
            await upstream.aclose()
