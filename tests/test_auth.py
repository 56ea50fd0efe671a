"""
Tests for bearer credential validation
"""

import asyncio

import httpx
import pytest

from collective_chat.auth.gate import StaticTokenAuthGate, SupabaseAuthGate, extract_bearer
from collective_chat.utils.errors import AuthError


def supabase_gate(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseAuthGate(http_client, supabase_url="http://auth.test/", anon_key="anon-key")


def test_extract_bearer():
    assert extract_bearer("Bearer abc.def") == "abc.def"
    assert extract_bearer("bearer abc") == "abc"


@pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "Basic dXNlcjpwYXNz", "abc"])
def test_extract_bearer_rejects_bad_headers(header):
    with pytest.raises(AuthError):
        extract_bearer(header)


def test_supabase_gate_resolves_user():
    """Test a valid token against the identity provider"""
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"id": "user-123", "email": "dana@example.com"})

    user = asyncio.run(supabase_gate(handler).authenticate("Bearer good-token"))

    assert user.id == "user-123"
    assert user.email == "dana@example.com"
    assert seen["url"] == "http://auth.test/auth/v1/user"
    assert seen["headers"]["apikey"] == "anon-key"
    assert seen["headers"]["authorization"] == "Bearer good-token"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"msg": "invalid JWT"}),
        httpx.Response(200, json={"email": "no-id@example.com"}),
        httpx.Response(200, content=b"not json"),
    ],
)
def test_supabase_gate_rejects(response):
    with pytest.raises(AuthError):
        asyncio.run(supabase_gate(lambda request: response).authenticate("Bearer bad"))


def test_supabase_gate_fails_closed_when_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AuthError):
        asyncio.run(supabase_gate(handler).authenticate("Bearer token"))


def test_missing_header_never_reaches_provider():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"id": "user-123"})

    with pytest.raises(AuthError):
        asyncio.run(supabase_gate(handler).authenticate(None))
    assert calls == []


def test_static_gate():
    gate = StaticTokenAuthGate({"dev-token": "user-1"})

    assert asyncio.run(gate.authenticate("Bearer dev-token")).id == "user-1"
    with pytest.raises(AuthError):
        asyncio.run(gate.authenticate("Bearer other"))
