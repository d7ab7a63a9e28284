"""
HTTP client for ESPN's public (undocumented) NBA APIs.

Wraps one shared httpx.AsyncClient for the process lifetime. Every failure
mode of a request (transport error, non-2xx status, non-JSON body) surfaces
as ESPNError so data operations have a single exception to contain.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from hoopsbot.config.settings import ESPNSettings

logger = logging.getLogger(__name__)


class ESPNError(Exception):
    """Raised when an ESPN request fails or returns unusable data."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ESPNClient:
    """
    Async ESPN API client.

    Use as an async context manager so the connection pool is closed:

        async with ESPNClient(settings.espn) as espn:
            data = await espn.get_json(f"{espn.site_api_base}/teams")

    Args:
        settings: ESPN endpoint and timeout configuration
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        settings: ESPNSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or ESPNSettings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def settings(self) -> ESPNSettings:
        return self._settings

    @property
    def site_api_base(self) -> str:
        return self._settings.site_api_base.rstrip("/")

    @property
    def site_web_api_base(self) -> str:
        return self._settings.site_web_api_base.rstrip("/")

    async def initialize(self) -> None:
        """Open the shared HTTP connection pool."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    async def shutdown(self) -> None:
        """Close the connection pool."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> ESPNClient:
        await self.initialize()
        return self

    async def __aexit__(self, *_args) -> None:
        await self.shutdown()

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET ``url`` and decode the JSON body.

        Raises:
            RuntimeError: If the client has not been initialized
            ESPNError: On transport failure, HTTP error status or invalid JSON
        """
        if self._client is None:
            raise RuntimeError("ESPN client not initialized")

        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        logger.debug(f"GET {url} params={clean_params}")
        try:
            response = await self._client.get(url, params=clean_params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ESPNError(f"ESPN returned HTTP {status} for {url}", status_code=status) from e
        except httpx.HTTPError as e:
            raise ESPNError(f"ESPN request failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ESPNError(f"ESPN returned invalid JSON for {url}") from e
