"""HTTP client for the Cipherchat relay.

The relay is the untrusted store sitting between users: it holds the key
directory, chats and message documents. This client is the only place the
client side talks to it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from cipherchat.core.settings import MAX_FEED_PAGE_SIZE, settings

# Configure logger for this module
logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_BAD_REQUEST = 400

API_PREFIX = "/api/v1"


class RelayError(RuntimeError):
    """Base exception raised for relay request failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RelayNotFoundError(RelayError):
    """Raised when the relay answers 404 for the requested resource."""


@dataclass(frozen=True)
class RelayConfig:
    """Immutable configuration for relay access."""

    base_url: str
    timeout_seconds: float


def load_relay_config() -> RelayConfig:
    """Build configuration object from global settings."""
    return RelayConfig(
        base_url=settings.relay_base_url,
        timeout_seconds=float(settings.relay_http_timeout_seconds),
    )


class RelayClient:
    """Async wrapper around the relay's REST API."""

    def __init__(
        self,
        config: RelayConfig | None = None,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_relay_config()
        self.token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RelayClient:
        await self._ensure_client()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method,
                f"{API_PREFIX}{path}",
                json=json_data,
                params=params,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Relay request %s %s failed: %s", method, path, exc)
            raise RelayError(f"Relay request failed: {exc}") from exc

        if response.status_code == HTTP_NOT_FOUND:
            raise RelayNotFoundError(f"{method} {path} not found", HTTP_NOT_FOUND)
        if response.status_code >= HTTP_BAD_REQUEST:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("detail") if isinstance(body, dict) else response.text
            raise RelayError(
                f"Relay responded with {response.status_code}: {detail}",
                response.status_code,
            )
        return response.json()

    async def register(self, display_name: str, email: str | None = None) -> dict[str, Any]:
        """Create an account and adopt its bearer token."""
        payload = await self._request(
            "POST",
            "/auth/register",
            json_data={"display_name": display_name, "email": email},
        )
        self.token = payload["access_token"]
        return payload

    async def list_users(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/users/")

    async def get_public_key(self, user_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}/public-key")

    async def get_own_keys(self) -> dict[str, Any]:
        return await self._request("GET", "/keys/me")

    async def put_own_keys(self, public_key: str, private_key_b64: str) -> dict[str, Any]:
        return await self._request(
            "PUT",
            "/keys/me",
            json_data={"public_key": public_key, "private_key": private_key_b64},
        )

    async def set_encryption_enabled(self, enabled: bool) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            "/keys/me",
            json_data={"has_encryption_enabled": enabled},
        )

    async def create_chat(self, participant_id: str) -> dict[str, Any]:
        return await self._request("POST", "/chats/", json_data={"participant_id": participant_id})

    async def list_chats(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/chats/")

    async def post_message(self, chat_id: str, message: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"/chats/{chat_id}/messages", json_data=dict(message))

    async def list_messages(
        self,
        chat_id: str,
        *,
        after: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params = {"after": after, "limit": min(limit or settings.feed_page_size, MAX_FEED_PAGE_SIZE)}
        return await self._request("GET", f"/chats/{chat_id}/messages", params=params)
