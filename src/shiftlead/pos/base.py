"""Typed records produced by the point-of-sale client.

Upstream payloads are loosely shaped JSON; everything downstream of the
fetchers works with these frozen dataclasses instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


@dataclass(frozen=True)
class Transaction:
    """A closed, non-voided order. Immutable once closed."""

    id: str
    order_number: str
    opened_at: datetime
    closed_at: datetime
    net_amount: Decimal  # pre-tax, summed over closed checks
    turn_time_minutes: float
    guest_count: int
    check_id: str
    payment_status: str = "CLOSED"

    @property
    def business_day(self) -> date:
        return self.opened_at.date()


@dataclass(frozen=True)
class AttendanceRecord:
    """One clock-in/clock-out entry. ``clock_out`` is None while clocked in."""

    employee_id: str
    employee_name: str
    job_title: str
    clock_in: datetime
    clock_out: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    def covers(self, instant: datetime, now: datetime) -> bool:
        """Return True if ``instant`` lies within [clock_in, clock_out or now]."""
        end = self.clock_out if self.clock_out is not None else now
        return self.clock_in <= instant <= end


@dataclass(frozen=True)
class EmployeeName:
    """Name fields from an employee directory entry or embedded reference."""

    chosen_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> EmployeeName | None:
        if not payload:
            return None
        return cls(
            chosen_name=_clean(payload.get("chosenName")),
            first_name=_clean(payload.get("firstName")),
            last_name=_clean(payload.get("lastName")),
        )

    def display_name(self) -> str | None:
        """Chosen name, then first + last, then first only."""
        if self.chosen_name:
            return self.chosen_name
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        if self.first_name:
            return self.first_name
        return None


class SkipReason(str, Enum):
    """Why a business date produced no attendance."""

    NO_ATTENDANCE = "no_attendance"
    UPSTREAM_FAILURE = "upstream_failure"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Fetched:
    """Attendance was retrieved and is non-empty."""

    records: tuple[AttendanceRecord, ...]


@dataclass(frozen=True)
class Skipped:
    """No attendance is available for the date."""

    reason: SkipReason
    detail: str = ""


LaborOutcome = Fetched | Skipped


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an upstream ISO-8601 timestamp into an aware datetime.

    Accepts a trailing ``Z`` and compact ``+0000`` offsets. Naive values are
    taken as UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _COMPACT_OFFSET.sub(r"\1:\2", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_business_date(day: date) -> str:
    """Format a date in the compact YYYYMMDD form the labor API expects."""
    return day.strftime("%Y%m%d")


def _clean(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None
