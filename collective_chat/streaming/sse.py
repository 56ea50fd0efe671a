"""
Server-sent event framing and incremental decoding.

Both directions of the chat protocol are line-delimited ``data: <json>``
frames. Network chunks do not respect character or line boundaries, so the
decoder carries partial UTF-8 sequences and partial lines from one chunk to
the next.
"""

import codecs
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from collective_chat.config.constants import DONE_SENTINEL, FRAME_PREFIX
from collective_chat.utils.errors import MalformedFrameError


class StreamFrame(BaseModel):
    """
    Outbound frame sent to the browser

    Frame kinds:
    - {"text": "..."}: incremental assistant text (zero or more)
    - {"persistenceError": "..."}: reply streamed but not durably stored
    - {"error": "..."}: stream aborted, no terminal frame follows
    - {"done": true, "conversationId": "..."}: terminal frame (exactly one on success)
    """
    text: Optional[str] = None
    done: Optional[bool] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    error: Optional[str] = None
    persistence_error: Optional[str] = Field(default=None, alias="persistenceError")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {"text": "I can help you find a plumber"},
                {"done": True, "conversationId": "conv-uuid-123"},
            ]
        },
    }

    def to_sse(self) -> str:
        return f"{FRAME_PREFIX}{self.model_dump_json(by_alias=True, exclude_none=True)}\n\n"


def text_frame(text: str) -> str:
    return StreamFrame(text=text).to_sse()


def done_frame(conversation_id: str) -> str:
    return StreamFrame(done=True, conversation_id=conversation_id).to_sse()


def error_frame(message: str) -> str:
    return StreamFrame(error=message).to_sse()


def persistence_error_frame(message: str) -> str:
    return StreamFrame(persistence_error=message).to_sse()


class SSELineDecoder:
    """
    Incremental bytes -> lines decoder.

    ``feed`` returns only complete lines; the trailing partial line and any
    incomplete multi-byte character stay buffered until the next chunk.
    ``flush`` returns whatever is left once the stream has ended.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        tail = tail.rstrip("\r")
        return [tail] if tail else []


def parse_data_line(line: str) -> Optional[Dict[str, Any]]:
    """
    Parse one SSE line.

    Returns:
        The JSON object carried by a ``data: `` line, or None for lines that
        carry no payload (other SSE fields, blank separators, the [DONE]
        sentinel).

    Raises:
        MalformedFrameError: payload is not a JSON object
    """
    if not line.startswith(FRAME_PREFIX):
        return None
    data = line[len(FRAME_PREFIX):]
    if data == DONE_SENTINEL:
        return None
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise MalformedFrameError(f"Invalid JSON payload: {data[:80]!r}") from e
    if not isinstance(payload, dict):
        raise MalformedFrameError(f"Payload is not an object: {data[:80]!r}")
    return payload
