"""Errors raised by the point-of-sale client."""

from __future__ import annotations


class PosError(Exception):
    """Base class for point-of-sale integration failures."""


class ConfigurationError(PosError):
    """Raised when API credentials are missing. Not retried."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Point-of-sale API not configured: missing {', '.join(missing)}"
        )


class AuthError(PosError):
    """Raised when the credential exchange does not yield a usable token."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamError(PosError):
    """Raised for a non-404 failure from the point-of-sale API."""

    def __init__(self, endpoint: str, status_code: int | None, detail: str = ""):
        self.endpoint = endpoint
        self.status_code = status_code
        self.detail = detail
        status = status_code if status_code is not None else "transport"
        msg = f"Point-of-sale API error ({status}) on {endpoint}"
        if detail:
            msg += f": {detail[:100]}"
        super().__init__(msg)


class RateLimitedError(UpstreamError):
    """Raised when the upstream answers 429. Callers should wait and retry."""

    user_message = "The point-of-sale system is rate limiting requests. Try again in a few minutes."

    def __init__(self, endpoint: str, retry_after: float | None = None, detail: str = ""):
        self.retry_after = retry_after
        super().__init__(endpoint, 429, detail)
