"""
Remote API Client

Talks to the remote sync service:
- Fetch the remote version marker (lastUpdated)
- Commit the aggregated provider payload

Transport failures surface as TransportUnreachableError; HTTP status
codes are mapped onto sync error kinds.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from .config import SyncConfig
from .exceptions import (
    ApiRequestError,
    NoDataFoundError,
    RateLimitedError,
    RemoteDataOutOfSyncError,
    TransportUnreachableError,
)
from .models import LastUpdatedResponse

_LOGGER = logging.getLogger(__name__)

USER_AGENT = "sync-engine/1.0"


class ApiClient(ABC):
    """Remote API contract consumed by the engine."""

    @abstractmethod
    async def get_last_updated(self) -> LastUpdatedResponse:
        ...

    @abstractmethod
    async def commit_update(
        self, payload: Dict[str, Any], last_updated: Optional[str] = None
    ) -> LastUpdatedResponse:
        ...


class HttpApiClient(ApiClient):
    """
    ApiClient over httpx.

    Usage:
        config = SyncConfig.from_env()
        async with HttpApiClient(config) as api:
            response = await api.get_last_updated()
    """

    def __init__(self, config: SyncConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "HttpApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for API requests."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _build_url(self, path: str = "") -> str:
        """Build full URL for API endpoint."""
        base = f"{self.config.api_url.rstrip('/')}/{self.config.sync_id}"
        return f"{base}/{path}" if path else base

    async def _request(
        self, method: str, path: str = "", data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = self._build_url(path)
        try:
            response = await self._get_client().request(
                method, url, json=data, headers=self._get_headers()
            )
        except httpx.TransportError as err:
            _LOGGER.warning("%s %s unreachable: %s", method, url, err)
            raise TransportUnreachableError(cause=err) from err

        if response.status_code == 404:
            raise NoDataFoundError()
        if response.status_code == 409:
            raise RemoteDataOutOfSyncError()
        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code >= 400:
            raise ApiRequestError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as err:
            raise ApiRequestError("Invalid response body", status_code=response.status_code, cause=err)

    async def get_last_updated(self) -> LastUpdatedResponse:
        data = await self._request("GET", "lastUpdated")
        return LastUpdatedResponse.from_dict(data)

    async def commit_update(
        self, payload: Dict[str, Any], last_updated: Optional[str] = None
    ) -> LastUpdatedResponse:
        body: Dict[str, Any] = {"data": payload}
        if last_updated:
            body["lastUpdated"] = last_updated
        data = await self._request("PUT", "", body)
        return LastUpdatedResponse.from_dict(data)
