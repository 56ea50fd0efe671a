"""
Upstream completion client

Opens a streaming request against the Anthropic Messages API and hands the
raw response back to the stream relay. The response body is an SSE stream the
relay decodes itself, so no SDK sits between us and the bytes.
"""

from typing import Dict, List, Optional

import httpx
from loguru import logger

from collective_chat.config.settings import settings
from collective_chat.utils.errors import UpstreamError


def build_timeout(connect: Optional[float] = None, read: Optional[float] = None) -> httpx.Timeout:
    """Timeout for streaming calls: bounded connect, read bounded per chunk."""
    return httpx.Timeout(
        connect=connect if connect is not None else settings.upstream_connect_timeout,
        read=read if read is not None else settings.upstream_read_timeout,
        write=10.0,
        pool=10.0,
    )


class CompletionClient:
    """
    Streaming client for the LLM provider.

    A single attempt per turn: a non-success status or a transport failure
    raises UpstreamError and nothing is retried.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ):
        self._client = http_client
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.base_url = (base_url or settings.anthropic_base_url).rstrip("/")
        self.api_version = api_version or settings.anthropic_version
        self.max_tokens = max_tokens or settings.max_output_tokens

    def build_payload(self, system_prompt: str, history: List[Dict[str, str]]) -> Dict:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": history,
            "stream": True,
        }

    async def open_stream(self, system_prompt: str, history: List[Dict[str, str]]) -> httpx.Response:
        """
        Start a streamed completion.

        Args:
            system_prompt: Rendered system prompt
            history: Ordered provider turns ({role, content})

        Returns:
            An open httpx.Response in streaming mode. The caller owns it and
            must close it (the stream relay does).

        Raises:
            UpstreamError: provider unreachable or answered with a non-2xx status
        """
        request = self._client.build_request(
            "POST",
            f"{self.base_url}/v1/messages",
            json=self.build_payload(system_prompt, history),
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
                "anthropic-version": self.api_version,
            },
            timeout=build_timeout(),
        )

        logger.info(f"Opening upstream stream - model={self.model}, turns={len(history)}")
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"❌ Upstream request failed: {e}")
            raise UpstreamError(f"LLM provider unreachable: {e}") from e

        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
            logger.error(f"❌ Upstream returned {response.status_code}: {body[:500]}")
            raise UpstreamError(
                f"LLM provider error: {response.status_code}",
                upstream_status=response.status_code,
            )

        return response
