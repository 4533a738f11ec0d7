"""Toast point-of-sale integration."""

from shiftlead.pos.auth import TokenCache, ToastAuthenticator
from shiftlead.pos.base import (
    AttendanceRecord,
    EmployeeName,
    Fetched,
    LaborOutcome,
    Skipped,
    SkipReason,
    Transaction,
)
from shiftlead.pos.client import ToastClient
from shiftlead.pos.errors import (
    AuthError,
    ConfigurationError,
    PosError,
    RateLimitedError,
    UpstreamError,
)
from shiftlead.pos.labor import LaborFetcher
from shiftlead.pos.orders import OrderFetcher

__all__ = [
    "AttendanceRecord",
    "AuthError",
    "ConfigurationError",
    "EmployeeName",
    "Fetched",
    "LaborFetcher",
    "LaborOutcome",
    "OrderFetcher",
    "PosError",
    "RateLimitedError",
    "SkipReason",
    "Skipped",
    "ToastAuthenticator",
    "ToastClient",
    "TokenCache",
    "Transaction",
    "UpstreamError",
]
