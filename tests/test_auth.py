"""Tests for token exchange and caching."""

import asyncio
import gc
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from shiftlead.pos.auth import LOGIN_PATH, TokenCache, ToastAuthenticator, extract_access_token
from shiftlead.pos.errors import AuthError, ConfigurationError, RateLimitedError
from tests.conftest import BASE_URL


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class CountingAcquire:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        return f"token-{self.calls}"


class TestTokenCache:
    """Test token reuse, expiry and single-flight refresh."""

    @pytest.mark.asyncio
    async def test_token_reused_within_ttl(self):
        """Test repeated calls share one exchange."""
        acquire = CountingAcquire()
        cache = TokenCache(acquire, clock=FakeClock())

        assert await cache.get_token() == "token-1"
        assert await cache.get_token() == "token-1"
        assert acquire.calls == 1

    @pytest.mark.asyncio
    async def test_token_refreshed_after_ttl(self):
        """Test the token is exchanged again once 23 hours have passed."""
        acquire = CountingAcquire()
        clock = FakeClock()
        cache = TokenCache(acquire, clock=clock)

        await cache.get_token()
        assert cache.expires_at == clock.now + timedelta(hours=23)

        clock.advance(hours=22, minutes=59)
        assert await cache.get_token() == "token-1"

        clock.advance(minutes=1)
        assert await cache.get_token() == "token-2"
        assert acquire.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_exchange(self):
        """Test callers arriving mid-exchange await the in-flight refresh."""
        release = asyncio.Event()
        calls = 0

        async def acquire() -> str:
            nonlocal calls
            calls += 1
            await release.wait()
            return "shared-token"

        cache = TokenCache(acquire)
        tasks = [asyncio.create_task(cache.get_token()) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(*tasks)

        assert results == ["shared-token"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failed_exchange_is_not_cached(self):
        """Test a failed exchange propagates and the next call retries."""
        attempts = 0

        async def acquire() -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise AuthError("Token exchange failed (500)", status_code=500)
            return "recovered"

        cache = TokenCache(acquire)

        with pytest.raises(AuthError):
            await cache.get_token()

        assert cache.token is None
        assert await cache.get_token() == "recovered"

    @pytest.mark.asyncio
    async def test_failure_after_waiters_cancelled_is_retrieved(self):
        """Test a failed exchange nobody is waiting for is not reported as unretrieved."""
        release = asyncio.Event()

        async def acquire() -> str:
            await release.wait()
            raise AuthError("Token exchange failed (500)", status_code=500)

        loop = asyncio.get_running_loop()
        reported = []
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda loop, context: reported.append(context))
        try:
            cache = TokenCache(acquire)
            waiter = asyncio.create_task(cache.get_token())
            await asyncio.sleep(0)
            pending = cache._pending
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

            release.set()
            await asyncio.wait([pending])
            await asyncio.sleep(0)
            del pending, waiter
            cache._pending = None
            gc.collect()
        finally:
            loop.set_exception_handler(previous_handler)

        assert reported == []

    @pytest.mark.asyncio
    async def test_invalidate_forces_exchange(self):
        """Test invalidate drops the cached token."""
        acquire = CountingAcquire()
        cache = TokenCache(acquire)

        await cache.get_token()
        cache.invalidate()

        assert not cache.is_valid
        assert await cache.get_token() == "token-2"


class TestToastAuthenticator:
    """Test the machine-client credential exchange."""

    @pytest.mark.asyncio
    async def test_exchange_posts_machine_client_credentials(self, toast_api, http):
        """Test the login request body and nested token extraction."""
        authenticator = ToastAuthenticator(http, "client-id", "client-secret", BASE_URL)

        token = await authenticator.exchange()

        assert token == "token-1"
        (request,) = toast_api.calls(LOGIN_PATH)
        assert request.method == "POST"
        assert json.loads(request.content) == {
            "clientId": "client-id",
            "clientSecret": "client-secret",
            "userAccessType": "TOAST_MACHINE_CLIENT",
        }

    @pytest.mark.asyncio
    async def test_missing_credentials_raise_configuration_error(self, toast_api, http):
        """Test absent credentials fail before any request is sent."""
        authenticator = ToastAuthenticator(http, "client-id", None, BASE_URL)

        with pytest.raises(ConfigurationError) as exc_info:
            await authenticator.exchange()

        assert exc_info.value.missing == ["client_secret"]
        assert toast_api.requests == []

    @pytest.mark.asyncio
    async def test_rejected_credentials_raise_auth_error(self, toast_api, http):
        """Test a 401 from the login endpoint."""
        toast_api.on(LOGIN_PATH, httpx.Response(401, json={"message": "bad credentials"}))
        authenticator = ToastAuthenticator(http, "client-id", "wrong", BASE_URL)

        with pytest.raises(AuthError) as exc_info:
            await authenticator.exchange()

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_response_without_token_raises_auth_error(self, toast_api, http):
        """Test a 200 response that carries no token."""
        toast_api.on(LOGIN_PATH, {"status": "SUCCESS"})
        authenticator = ToastAuthenticator(http, "client-id", "client-secret", BASE_URL)

        with pytest.raises(AuthError):
            await authenticator.exchange()

    @pytest.mark.asyncio
    async def test_throttled_login_raises_rate_limited(self, toast_api, http):
        """Test a 429 from the login endpoint."""
        toast_api.on(LOGIN_PATH, httpx.Response(429))
        authenticator = ToastAuthenticator(http, "client-id", "client-secret", BASE_URL)

        with pytest.raises(RateLimitedError):
            await authenticator.exchange()

    @pytest.mark.asyncio
    async def test_transport_failure_raises_auth_error(self, toast_api, http):
        """Test a connection failure during the exchange."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        toast_api.on(LOGIN_PATH, refuse)
        authenticator = ToastAuthenticator(http, "client-id", "client-secret", BASE_URL)

        with pytest.raises(AuthError):
            await authenticator.exchange()

    def test_extract_access_token_shapes(self):
        """Test nested and top-level token locations."""
        assert extract_access_token({"token": {"accessToken": "nested"}}) == "nested"
        assert extract_access_token({"accessToken": "flat"}) == "flat"
        assert extract_access_token({"token": {}}) is None
        assert extract_access_token(["not", "a", "dict"]) is None
