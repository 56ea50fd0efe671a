"""
Bearer credential validation.

Identity issuance lives with the identity provider; this module only checks a
presented token and resolves it to a user id. The gate runs before any other
part of the chat pipeline, so a rejected request leaves no trace in the store.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from loguru import logger

from collective_chat.utils.errors import AuthError


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str] = None


def extract_bearer(authorization: Optional[str]) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise AuthError("No authorization header")
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Authorization header must be a bearer token")
    return token


class AuthGate:
    """Base class for credential validators"""

    async def authenticate(self, authorization: Optional[str]) -> AuthenticatedUser:
        token = extract_bearer(authorization)
        return await self.resolve_token(token)

    async def resolve_token(self, token: str) -> AuthenticatedUser:
        raise NotImplementedError


class SupabaseAuthGate(AuthGate):
    """
    Validate access tokens against a Supabase project's auth endpoint.

    ``GET {supabase_url}/auth/v1/user`` answers 200 with the user record for a
    valid token; anything else is treated as unauthorized. Transport failures
    fail closed.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        supabase_url: str,
        anon_key: str,
        timeout: float = 5.0,
    ):
        self._client = http_client
        self._user_url = f"{supabase_url.rstrip('/')}/auth/v1/user"
        self._anon_key = anon_key
        self._timeout = timeout

    async def resolve_token(self, token: str) -> AuthenticatedUser:
        try:
            response = await self._client.get(
                self._user_url,
                headers={
                    "apikey": self._anon_key,
                    "Authorization": f"Bearer {token}",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise AuthError("Unauthorized") from e

        if response.status_code != 200:
            logger.info(f"Rejected bearer token (identity provider status {response.status_code})")
            raise AuthError("Unauthorized")

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthError("Unauthorized") from e

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthError("Unauthorized")
        return AuthenticatedUser(id=user_id, email=payload.get("email"))


class StaticTokenAuthGate(AuthGate):
    """Fixed token -> user id map for local development"""

    def __init__(self, tokens: Dict[str, str]):
        self._tokens = dict(tokens)

    async def resolve_token(self, token: str) -> AuthenticatedUser:
        user_id = self._tokens.get(token)
        if user_id is None:
            raise AuthError("Unauthorized")
        return AuthenticatedUser(id=user_id)
