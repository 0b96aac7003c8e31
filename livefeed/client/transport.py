"""HTTP transport for the feed API.

Wraps httpx.AsyncClient and turns every outcome into a FeedResponse value:
transport failures become NETWORK errors, undecodable bodies and ok:false
payloads become PROTOCOL errors. Nothing here raises on a failed request.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from livefeed.errors import ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class FeedResponse:
    """Decoded response payload or an error with its kind."""

    data: dict[str, Any] | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FeedClient:
    """Async client for the single /api endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the feed client.

        Args:
            base_url: Base URL of the feed service (e.g., "http://127.0.0.1:8000").
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, e.g. httpx.ASGITransport for in-process use.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "FeedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        action: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
    ) -> FeedResponse:
        query = {"action": action, **(params or {})}
        try:
            response = await self._client.request(method, "/api", params=query, json=json_data)
        except httpx.TransportError as e:
            logger.warning(f"{action}: request failed: {e!r}")
            return FeedResponse(error=f"Network error: {e}", kind=ErrorKind.NETWORK)

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"{action}: undecodable response (HTTP {response.status_code})")
            return FeedResponse(
                error=f"HTTP {response.status_code}: invalid response body",
                kind=ErrorKind.PROTOCOL,
            )

        if not isinstance(data, dict) or data.get("ok") is not True:
            error = data.get("error") if isinstance(data, dict) else None
            return FeedResponse(
                data=data if isinstance(data, dict) else None,
                error=error or "unknown",
                kind=ErrorKind.PROTOCOL,
            )

        return FeedResponse(data=data)

    async def send(self, author: str | None, body: str) -> FeedResponse:
        """Append a message; data["id"] is the assigned id."""
        return await self._request("POST", "send", json_data={"author": author, "body": body})

    async def fetch_since(self, cursor: int, limit: int) -> FeedResponse:
        """Messages with id > cursor; data["messages"], ascending."""
        return await self._request("GET", "fetchSince", params={"cursor": cursor, "limit": limit})

    async def fetch_recent(self, count: int) -> FeedResponse:
        """The newest count messages; data["messages"], ascending."""
        return await self._request("GET", "fetchRecent", params={"count": count})

    async def stats(self) -> FeedResponse:
        """data["total"] and data["maxId"]."""
        return await self._request("GET", "stats")
