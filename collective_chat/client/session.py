"""
Client session for the chat API.

One ChatSession is constructed when the client application starts and is
passed to every consumer that needs it. It owns the access token and the HTTP
connection pool; nothing looks it up from ambient state.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from collective_chat.utils.errors import (
    AuthError,
    ChatError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)

_STATUS_ERRORS = {
    400: ValidationError,
    401: AuthError,
    403: ForbiddenError,
    404: NotFoundError,
}


def error_from_response(status_code: int, body: bytes) -> ChatError:
    """Map an API error response to the matching ChatError."""
    message = f"Request failed with status {status_code}"
    try:
        payload = json.loads(body)
        if isinstance(payload, dict) and payload.get("error"):
            message = str(payload["error"])
    except ValueError:
        pass
    error_cls = _STATUS_ERRORS.get(status_code, UpstreamError)
    return error_cls(message)


class ChatSession:
    """Authenticated access to the chat API"""

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        connect_timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self._owns_client = http_client is None
        # Streamed replies can pause between tokens, so reads are unbounded;
        # consumers cancel explicitly instead.
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect=connect_timeout, read=None, write=10.0, pool=10.0)
        )

    def auth_headers(self) -> Dict[str, str]:
        if not self.access_token:
            raise AuthError("Not authenticated")
        return {"Authorization": f"Bearer {self.access_token}"}

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def open_completion(
        self,
        message: str,
        conversation_type: str,
        conversation_id: Optional[str] = None,
    ) -> httpx.Response:
        """
        POST a user message and return the open event-stream response.

        The caller owns the response and must close it.

        Raises:
            ChatError subclass matching the API's error status
        """
        request = self._client.build_request(
            "POST",
            self.url("/api/chat/completion"),
            json={
                "conversationId": conversation_id,
                "message": message,
                "conversationType": conversation_type,
            },
            headers={**self.auth_headers(), "Accept": "text/event-stream"},
        )
        response = await self._client.send(request, stream=True)
        if not response.is_success:
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            error = error_from_response(response.status_code, body)
            logger.warning(f"Chat completion rejected ({response.status_code}): {error.message}")
            raise error
        return response

    async def _request_json(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(
            method, self.url(path), headers=self.auth_headers(), **kwargs
        )
        if not response.is_success:
            raise error_from_response(response.status_code, response.content)
        return response.json()

    async def fetch_mode(self) -> str:
        data = await self._request_json("GET", "/api/chat/mode")
        return data["conversationType"]

    async def fetch_conversations(self, conversation_type: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"conversationType": conversation_type} if conversation_type else None
        data = await self._request_json("GET", "/api/chat/conversations", params=params)
        return data["conversations"]

    async def fetch_messages(self, conversation_id: str) -> Dict[str, Any]:
        return await self._request_json("GET", f"/api/chat/conversations/{conversation_id}/messages")

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request_json("DELETE", f"/api/chat/conversations/{conversation_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
