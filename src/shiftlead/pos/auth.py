"""Access token exchange and caching for the Toast API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

import httpx

from shiftlead.pos.errors import AuthError, ConfigurationError, RateLimitedError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/authentication/v1/authentication/login"
DEFAULT_TOKEN_TTL = timedelta(hours=23)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _retrieve_exception(future: asyncio.Future[str]) -> None:
    # Marks a failed exchange as retrieved when every waiter was cancelled.
    if not future.cancelled():
        future.exception()


class TokenCache:
    """Caches a bearer token with an expiry guard.

    The token is reused until ``expires_at`` passes, then ``acquire`` is called
    again. Callers arriving while an exchange is in flight await that same
    exchange instead of starting another one. No lock is held across the
    exchange itself.
    """

    def __init__(
        self,
        acquire: Callable[[], Awaitable[str]],
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._acquire = acquire
        self.ttl = ttl
        self._clock = clock
        self.token: str | None = None
        self.expires_at: datetime | None = None
        self._pending: asyncio.Future[str] | None = None

    @property
    def is_valid(self) -> bool:
        return (
            self.token is not None
            and self.expires_at is not None
            and self.expires_at > self._clock()
        )

    async def get_token(self) -> str:
        """Return the cached token, exchanging credentials only when needed."""
        if self.is_valid:
            return self.token  # type: ignore[return-value]

        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._refresh())
            self._pending.add_done_callback(_retrieve_exception)
        pending = self._pending
        try:
            return await asyncio.shield(pending)
        finally:
            if pending.done() and self._pending is pending:
                self._pending = None

    def invalidate(self) -> None:
        """Forget the cached token so the next call exchanges credentials."""
        self.token = None
        self.expires_at = None

    async def _refresh(self) -> str:
        issued_at = self._clock()
        token = await self._acquire()
        self.token = token
        self.expires_at = issued_at + self.ttl
        logger.info("Access token refreshed, valid until %s", self.expires_at.isoformat())
        return token


class ToastAuthenticator:
    """Exchanges machine-client credentials for an access token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str | None,
        client_secret: str | None,
        base_url: str,
    ):
        self.http = http
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")

    async def exchange(self) -> str:
        """Perform the login call and return the access token.

        Raises:
            ConfigurationError: If client id or secret is absent
            RateLimitedError: If the login endpoint answers 429
            AuthError: If the call fails or the response carries no token
        """
        missing = [
            name
            for name, value in (
                ("client_id", self.client_id),
                ("client_secret", self.client_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        try:
            response = await self.http.post(
                f"{self.base_url}{LOGIN_PATH}",
                json={
                    "clientId": self.client_id,
                    "clientSecret": self.client_secret,
                    "userAccessType": "TOAST_MACHINE_CLIENT",
                },
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Token exchange failed: {e}") from e

        if response.status_code == 429:
            raise RateLimitedError(LOGIN_PATH, detail=response.text)
        if response.is_error:
            logger.error("Token exchange failed with HTTP %s", response.status_code)
            raise AuthError(
                f"Token exchange failed ({response.status_code})",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError("Token exchange returned invalid JSON") from e

        token = extract_access_token(data)
        if not token:
            raise AuthError("Token exchange response did not contain an access token")
        return token


def extract_access_token(data: object) -> str | None:
    """Read the token from ``token.accessToken``, then top-level ``accessToken``."""
    if not isinstance(data, dict):
        return None
    nested = data.get("token")
    if isinstance(nested, dict) and nested.get("accessToken"):
        return str(nested["accessToken"])
    if data.get("accessToken"):
        return str(data["accessToken"])
    return None
