"""
Streaming layer - SSE framing, incremental decoding and the upstream relay
"""

from collective_chat.streaming.cancellation import CancellationToken
from collective_chat.streaming.sse import (
    SSELineDecoder,
    StreamFrame,
    parse_data_line,
)
from collective_chat.streaming.relay import RelayResult, StreamRelay

__all__ = [
    "CancellationToken",
    "SSELineDecoder",
    "StreamFrame",
    "parse_data_line",
    "RelayResult",
    "StreamRelay",
]
