"""
Shared HTTP plumbing for the kiosk's backend collaborators.

Each client reuses one pooled httpx.AsyncClient, created lazily on first
use under a lock so concurrent first calls (e.g. the seat poller and a
confirm) never build two pools.
"""

import asyncio
from typing import Any

import httpx

from shared.config.logging import get_logger
from shared.utils.exceptions import ExternalServiceError

logger = get_logger(__name__)


class BackendClient:
    """
    Base for JSON-over-HTTP clients.

    Transport failures and non-2xx responses surface as
    ExternalServiceError. Subclasses may inspect the response first by
    passing `allowed_statuses`.
    """

    service_name = "backend"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        # Fast path: client already initialized
        if self._client is not None and not self._client.is_closed:
            return self._client

        async with self._client_lock:
            # Double-check after acquiring lock
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self.timeout,
                    headers=self._headers,
                    transport=self._transport,
                    limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                )
        return self._client

    async def close(self) -> None:
        """Close the pooled client. Called when the kiosk shuts down."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        allowed_statuses: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(self.service_name, reason="timeout", path=path) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(self.service_name, reason=type(e).__name__, path=path) from e

        if response.status_code in allowed_statuses:
            return response

        if response.is_error:
            raise ExternalServiceError(
                self.service_name,
                status_code=response.status_code,
                reason=response.reason_phrase,
                path=path,
            )
        return response

    async def is_available(self, path: str = "/health") -> bool:
        """Check the service is reachable; used by the health command."""
        try:
            response = await self._request("GET", path)
        except ExternalServiceError:
            return False
        return response.status_code == 200
