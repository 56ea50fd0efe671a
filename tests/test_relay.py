"""
Tests for the stream relay: re-framing, accumulation, persistence and
teardown of the upstream stream
"""

import asyncio
import json

from collective_chat.models.domain import ConversationMode, MessageRole
from collective_chat.streaming.cancellation import CancellationToken
from collective_chat.streaming.relay import StreamRelay
from collective_chat.utils.errors import PersistenceError


def delta(text):
    event = {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}
    return f"event: content_block_delta\ndata: {json.dumps(event)}\n\n".encode("utf-8")


def usage(**fields):
    event = {"type": "message_delta", "delta": {"stop_reason": None}, "usage": fields}
    return f"event: message_delta\ndata: {json.dumps(event)}\n\n".encode("utf-8")


def frames_of(chunks):
    return [json.loads(frame[len("data: "):].strip()) for frame in chunks]


async def collect(agen):
    return [frame async for frame in agen]


def new_conversation(store, user_id="homeowner-1"):
    conversation = store.create_conversation(user_id, ConversationMode.SERVICE_ASSISTANT, "Need a plumber")
    store.insert_message(conversation.id, MessageRole.USER, "Need a plumber")
    return conversation


class FailingStore:
    """Store whose writes always fail"""

    def insert_message(self, *args, **kwargs):
        raise PersistenceError("insert_message failed: disk full")

    def touch_conversation(self, *args, **kwargs):
        raise AssertionError("must not be reached")


def test_relay_forwards_deltas_and_persists(message_store, make_stream, make_fake_upstream):
    """Test happy path: text frames in order, then done after the reply is stored"""
    conversation = new_conversation(message_store)
    upstream = make_fake_upstream([make_stream("Try ", "Rivera ", "Plumbing.", output_tokens=7)])
    relay = StreamRelay(message_store, conversation.id)

    frames = frames_of(asyncio.run(collect(relay.stream(upstream))))

    assert frames == [
        {"text": "Try "},
        {"text": "Rivera "},
        {"text": "Plumbing."},
        {"done": True, "conversationId": conversation.id},
    ]
    assert upstream.closed

    messages = message_store.list_messages(conversation.id)
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[1].content == "Try Rivera Plumbing."
    assert messages[1].tokens_used == 7
    assert relay.result.persisted


def test_relay_updates_last_message_at(message_store, make_stream, make_fake_upstream):
    conversation = new_conversation(message_store)
    before = message_store.get_conversation(conversation.id).last_message_at

    relay = StreamRelay(message_store, conversation.id)
    asyncio.run(collect(relay.stream(make_fake_upstream([make_stream("ok")]))))

    assert message_store.get_conversation(conversation.id).last_message_at >= before


def test_relay_skips_malformed_frame_between_valid_ones(message_store, make_fake_upstream):
    """Test that one bad payload does not abort the stream"""
    conversation = new_conversation(message_store)
    upstream = make_fake_upstream([delta("Hello"), b"data: {this is not json\n\n", delta(" world")])
    relay = StreamRelay(message_store, conversation.id)

    frames = frames_of(asyncio.run(collect(relay.stream(upstream))))

    assert frames[:2] == [{"text": "Hello"}, {"text": " world"}]
    assert frames[-1]["done"] is True
    assert relay.result.malformed_frames == 1
    assert message_store.list_messages(conversation.id)[-1].content == "Hello world"


def test_relay_handles_chunks_split_mid_frame(message_store, make_stream, make_fake_upstream):
    conversation = new_conversation(message_store)
    raw = make_stream("naïve ", "café")
    chunks = [raw[i:i + 7] for i in range(0, len(raw), 7)]
    relay = StreamRelay(message_store, conversation.id)

    frames = frames_of(asyncio.run(collect(relay.stream(make_fake_upstream(chunks)))))

    assert [f["text"] for f in frames if "text" in f] == ["naïve ", "café"]
    assert relay.result.full_response == "naïve café"


def test_relay_missing_usage_stores_null_tokens(message_store, make_fake_upstream):
    conversation = new_conversation(message_store)
    relay = StreamRelay(message_store, conversation.id)

    asyncio.run(collect(relay.stream(make_fake_upstream([delta("hi")]))))

    assert message_store.list_messages(conversation.id)[-1].tokens_used is None


def test_relay_ignores_empty_deltas(message_store, make_fake_upstream):
    conversation = new_conversation(message_store)
    relay = StreamRelay(message_store, conversation.id)

    frames = frames_of(asyncio.run(collect(relay.stream(make_fake_upstream([delta(""), delta("x")])))))

    assert frames[0] == {"text": "x"}
    assert relay.result.deltas == 1


def test_relay_skips_delta_with_non_text_payload(message_store, make_fake_upstream):
    """Test that a well-formed frame carrying a number or list is skipped"""
    conversation = new_conversation(message_store)
    upstream = make_fake_upstream([delta("Hello"), delta(5), delta(["x"]), delta(" world")])
    relay = StreamRelay(message_store, conversation.id)

    frames = frames_of(asyncio.run(collect(relay.stream(upstream))))

    assert frames == [
        {"text": "Hello"},
        {"text": " world"},
        {"done": True, "conversationId": conversation.id},
    ]
    assert relay.result.full_response == "Hello world"
    assert relay.result.malformed_frames == 2
    assert upstream.closed


def test_relay_keeps_token_count_when_later_usage_omits_it(message_store, make_fake_upstream):
    conversation = new_conversation(message_store)
    upstream = make_fake_upstream([delta("hi"), usage(output_tokens=9), usage(input_tokens=3), usage(output_tokens="many")])
    relay = StreamRelay(message_store, conversation.id)

    asyncio.run(collect(relay.stream(upstream)))

    assert relay.result.tokens_used == 9
    assert message_store.list_messages(conversation.id)[-1].tokens_used == 9


def test_relay_upstream_error_event_sends_error_frame(message_store, make_fake_upstream):
    """Test that a provider error mid-stream ends with error and nothing is stored"""
    conversation = new_conversation(message_store)
    error_event = {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
    upstream = make_fake_upstream([delta("Partial"), f"data: {json.dumps(error_event)}\n\n".encode()])
    relay = StreamRelay(message_store, conversation.id)

    frames = frames_of(asyncio.run(collect(relay.stream(upstream))))

    assert frames == [{"text": "Partial"}, {"error": "Upstream stream interrupted"}]
    assert upstream.closed
    assert [m.role for m in message_store.list_messages(conversation.id)] == ["user"]


def test_relay_persistence_failure_is_reported_before_done(make_stream, make_fake_upstream):
    relay = StreamRelay(FailingStore(), "conv-1")

    frames = frames_of(asyncio.run(collect(relay.stream(make_fake_upstream([make_stream("Hi")])))))

    assert frames == [
        {"text": "Hi"},
        {"persistenceError": "Assistant reply could not be saved"},
        {"done": True, "conversationId": "conv-1"},
    ]
    assert not relay.result.persisted


def test_relay_cancellation_stops_without_persisting(message_store, make_fake_upstream):
    """Test that a cancelled turn sends no done frame and stores no reply"""
    conversation = new_conversation(message_store)
    upstream = make_fake_upstream([delta("one"), delta("two"), delta("three")])
    token = CancellationToken()
    relay = StreamRelay(message_store, conversation.id, cancel_token=token)

    async def run():
        agen = relay.stream(upstream)
        first = await agen.__anext__()
        token.cancel("user pressed stop")
        rest = [frame async for frame in agen]
        return [first] + rest

    frames = frames_of(asyncio.run(run()))

    assert frames == [{"text": "one"}]
    assert relay.result.cancelled
    assert upstream.closed
    assert [m.role for m in message_store.list_messages(conversation.id)] == ["user"]


def test_relay_client_disconnect_closes_upstream(message_store, make_fake_upstream):
    """Test that closing the outbound generator early tears down the upstream read"""
    conversation = new_conversation(message_store)
    upstream = make_fake_upstream([delta("one"), delta("two")])
    relay = StreamRelay(message_store, conversation.id)

    async def run():
        agen = relay.stream(upstream)
        await agen.__anext__()
        await agen.aclose()

    asyncio.run(run())

    assert upstream.closed
    assert relay.cancel_token.cancelled
    assert relay.cancel_token.reason == "client disconnected"
    assert [m.role for m in message_store.list_messages(conversation.id)] == ["user"]
