"""Authenticated request helper for the Toast API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from shiftlead.pos.auth import TokenCache
from shiftlead.pos.errors import RateLimitedError, UpstreamError

logger = logging.getLogger(__name__)

RESTAURANT_HEADER = "Toast-Restaurant-External-ID"


class ToastClient:
    """Issues GET requests against the Toast API for one restaurant at a time.

    Status handling:
    - 2xx: decoded JSON is returned
    - 404: None is returned (the resource has no data, not a failure)
    - 401: the cached token is dropped and the request retried once
    - 429: RateLimitedError
    - anything else, including transport failures and timeouts: UpstreamError
    """

    def __init__(self, http: httpx.AsyncClient, tokens: TokenCache, base_url: str):
        self.http = http
        self.tokens = tokens
        self.base_url = base_url.rstrip("/")

    async def get_json(
        self,
        path: str,
        location_id: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._send(path, location_id, params)
        if response.status_code == 401:
            logger.info("Token rejected on %s, refreshing", path)
            self.tokens.invalidate()
            response = await self._send(path, location_id, params)

        if response.status_code == 404:
            return None
        if response.status_code == 429:
            raise RateLimitedError(
                path,
                retry_after=_retry_after(response),
                detail=response.text,
            )
        if response.is_error:
            raise UpstreamError(path, response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(path, response.status_code, "invalid JSON body") from e

    async def _send(
        self,
        path: str,
        location_id: str,
        params: dict[str, Any] | None,
    ) -> httpx.Response:
        token = await self.tokens.get_token()
        try:
            return await self.http.get(
                f"{self.base_url}{path}",
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    RESTAURANT_HEADER: location_id,
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamError(path, None, str(e)) from e


def unwrap_list(payload: Any, key: str) -> list[dict[str, Any]]:
    """Return the list of objects from a bare array or a ``{key: [...]}`` wrapper."""
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = payload.get(key) or []
    else:
        items = []
    return [item for item in items if isinstance(item, dict)]


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
