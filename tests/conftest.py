"""
Shared fixtures for the chat pipeline tests

Environment is pinned before the package is imported so settings never pick
up a developer's database, auth provider or log directory.
"""

import json
import os
from datetime import timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["AUTH_PROVIDER"] = "static"
os.environ["ANTHROPIC_API_KEY"] = "test-key"

import httpx
import pytest

from collective_chat.infra.database import Database
from collective_chat.memory.directory_store import DirectoryStore
from collective_chat.memory.message_store import MessageStore
from collective_chat.models.domain import (
    Business,
    Category,
    Favorite,
    Neighborhood,
    Profile,
    utcnow,
)

HOMEOWNER_ID = "homeowner-1"
OWNER_ID = "owner-1"
STRANGER_ID = "stranger-1"

TOKENS = {
    "home-token": HOMEOWNER_ID,
    "owner-token": OWNER_ID,
    "stranger-token": STRANGER_ID,
}


def anthropic_stream(*texts, output_tokens=12):
    """Bytes of an Anthropic Messages API event stream carrying ``texts``."""
    events = [
        {"type": "message_start", "message": {"id": "msg_1", "usage": {"input_tokens": 40, "output_tokens": 1}}},
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
    ]
    events += [
        {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}
        for text in texts
    ]
    events += [
        {"type": "content_block_stop", "index": 0},
        {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": output_tokens}},
        {"type": "message_stop"},
    ]
    return "".join(
        f"event: {event['type']}\ndata: {json.dumps(event)}\n\n" for event in events
    ).encode("utf-8")


class UpstreamStub:
    """Stand-in for the LLM provider, served through httpx.MockTransport"""

    def __init__(self):
        self.status_code = 200
        self.body = anthropic_stream("Hello", " there")
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(
            {"url": str(request.url), "headers": request.headers, "json": json.loads(request.content)}
        )
        if self.status_code != 200:
            return httpx.Response(
                self.status_code,
                json={"type": "error", "error": {"type": "api_error", "message": "boom"}},
            )
        return httpx.Response(200, content=self.body, headers={"content-type": "text/event-stream"})

    @property
    def last_payload(self):
        return self.requests[-1]["json"]


class FakeUpstream:
    """Minimal streaming response: async chunks plus aclose()"""

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.closed = False

    async def aiter_bytes(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


@pytest.fixture
def database():
    """Fresh in-memory database per test"""
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.engine.dispose()


@pytest.fixture
def message_store(database):
    return MessageStore(database)


@pytest.fixture
def directory_store(database):
    return DirectoryStore(database)


@pytest.fixture
def seeded_directory(database):
    """
    Directory rows for the tests:
    - homeowner-1 in Maple Grove with 7 favorites
    - owner-1 owning one business
    - 25 categories
    """
    now = utcnow()
    with database.session_scope() as session:
        maple = Neighborhood(id="nb-maple", name="Maple Grove")
        session.add(maple)
        categories = [
            Category(id=f"cat-{i:02d}", name=f"Category {i:02d}", emoji="🔧" if i == 0 else None)
            for i in range(25)
        ]
        session.add_all(categories)
        session.flush()

        businesses = [
            Business(id=f"biz-{i}", name=f"Business {i}", description=f"Description {i}",
                     category_id="cat-00", neighborhood_id="nb-maple")
            for i in range(7)
        ]
        businesses.append(
            Business(id="biz-owned", user_id=OWNER_ID, name="Rivera Plumbing Co.",
                     category_id="cat-00", neighborhood_id="nb-maple")
        )
        session.add_all(businesses)
        session.add_all([
            Profile(id=HOMEOWNER_ID, full_name="Dana Rivera", neighborhood_id="nb-maple"),
            Profile(id=OWNER_ID, full_name="Sam Ortiz", neighborhood_id="nb-maple"),
        ])
        session.flush()

        # biz-6 is the most recently favorited
        session.add_all([
            Favorite(id=f"fav-{i}", user_id=HOMEOWNER_ID, business_id=f"biz-{i}",
                     created_at=now - timedelta(hours=10 - i))
            for i in range(7)
        ])
    return database


@pytest.fixture
def upstream():
    return UpstreamStub()


@pytest.fixture
def make_stream():
    return anthropic_stream


@pytest.fixture
def make_fake_upstream():
    return FakeUpstream


@pytest.fixture
def auth_tokens():
    return dict(TOKENS)
