"""Pytest fixtures for shift leader engine tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shiftlead.calculators.types import AttributedOrder, Identity, UserRole
from shiftlead.config import Settings
from shiftlead.models import Base
from shiftlead.pos.auth import LOGIN_PATH, TokenCache, ToastAuthenticator
from shiftlead.pos.base import AttendanceRecord, Transaction
from shiftlead.pos.client import ToastClient

# In-memory SQLite with async support; one shared connection per engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_URL = "https://toast.test"
RESTAURANT_GUID = "rest-0001"
STORE_ID = "store-prosper"
BUSINESS_DAY = date(2024, 3, 4)
UTC = timezone.utc


# ============================================================================
# Builders
# ============================================================================


def at(hour: int, minute: int = 0, day: date = BUSINESS_DAY) -> datetime:
    """An aware UTC datetime on ``day``."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


def iso(moment: datetime) -> str:
    """Format the way the Toast API does, with a trailing Z."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def make_identity(
    user_id: str,
    name: str,
    role: UserRole = UserRole.MANAGER,
    pos_employee_id: str | None = None,
) -> Identity:
    return Identity(id=user_id, name=name, role=role, pos_employee_id=pos_employee_id)


def make_attendance(
    employee_id: str,
    name: str,
    job_title: str,
    clock_in: datetime,
    clock_out: datetime | None = None,
) -> AttendanceRecord:
    return AttendanceRecord(
        employee_id=employee_id,
        employee_name=name,
        job_title=job_title,
        clock_in=clock_in,
        clock_out=clock_out,
    )


def make_transaction(
    order_id: str,
    opened_at: datetime,
    turn_time: float = 3.0,
    amount: str = "10.00",
) -> Transaction:
    return Transaction(
        id=order_id,
        order_number=order_id.upper(),
        opened_at=opened_at,
        closed_at=opened_at + timedelta(minutes=turn_time),
        net_amount=Decimal(amount),
        turn_time_minutes=turn_time,
        guest_count=1,
        check_id=f"check-{order_id}",
    )


def make_attributed_order(
    order_id: str,
    leader_id: str,
    opened_at: datetime,
    turn_time: float = 3.0,
    amount: str = "10.00",
    store_id: str = STORE_ID,
    attributed_at: datetime | None = None,
) -> AttributedOrder:
    return AttributedOrder(
        id=order_id,
        store_id=store_id,
        order_number=order_id.upper(),
        opened_at=opened_at,
        closed_at=opened_at + timedelta(minutes=turn_time),
        net_amount=Decimal(amount),
        turn_time_minutes=turn_time,
        guest_count=2,
        check_id=f"check-{order_id}",
        shift_leader_id=leader_id,
        shift_leader_name=leader_id.title(),
        shift_leader_employee_id=f"emp-{leader_id}",
        attributed_at=attributed_at or at(23),
    )


def order_payload(
    guid: str,
    opened_at: datetime,
    closed_at: datetime,
    amount: str | float = "12.50",
    *,
    voided: bool = False,
    payment_status: str = "CLOSED",
    display_number: str | None = None,
    guests: int | None = None,
) -> dict[str, Any]:
    """A raw order as returned by the bulk orders endpoint."""
    order: dict[str, Any] = {
        "guid": guid,
        "openedDate": iso(opened_at),
        "closedDate": iso(closed_at),
        "voided": voided,
        "checks": [
            {
                "guid": f"check-{guid}",
                "amount": amount,
                "voided": False,
                "paymentStatus": payment_status,
                "openedDate": iso(opened_at),
                "closedDate": iso(closed_at),
            }
        ],
    }
    if display_number is not None:
        order["displayNumber"] = display_number
    if guests is not None:
        order["numberOfGuests"] = guests
    return order


def time_entry(
    employee_guid: str,
    first_name: str | None,
    last_name: str | None,
    job_name: str | None,
    clock_in: datetime,
    clock_out: datetime | None = None,
    *,
    deleted: bool = False,
) -> dict[str, Any]:
    """A raw labor time entry with embedded employee and job references."""
    entry: dict[str, Any] = {
        "guid": f"te-{employee_guid}-{clock_in:%H%M}",
        "employeeReference": {"guid": employee_guid},
        "inDate": iso(clock_in),
        "outDate": iso(clock_out) if clock_out else None,
        "deleted": deleted,
    }
    if first_name or last_name:
        entry["employee"] = {"guid": employee_guid, "firstName": first_name, "lastName": last_name}
    if job_name is not None:
        entry["jobReference"] = {"guid": f"job-{job_name.lower()}", "name": job_name}
    return entry


# ============================================================================
# Fake Toast API
# ============================================================================


Route = Callable[[httpx.Request], httpx.Response]


class FakeToastApi:
    """Routes requests to canned handlers by URL path and records every call.

    The login route answers with a fresh token per call. Unrouted paths
    answer 404, which the client treats as "no data".
    """

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []
        self.tokens_issued = 0
        self.on(LOGIN_PATH, self._login)

    def on(self, path: str, route: Route | httpx.Response | list | dict) -> None:
        """Register a handler, or a fixed response or JSON body, for ``path``."""
        if callable(route):
            self.routes[path] = route
        elif isinstance(route, httpx.Response):
            self.routes[path] = lambda request: route
        else:
            self.routes[path] = lambda request: httpx.Response(200, json=route)

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        return route(request)

    def _login(self, request: httpx.Request) -> httpx.Response:
        self.tokens_issued += 1
        return httpx.Response(200, json={"token": {"accessToken": f"token-{self.tokens_issued}"}})


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def toast_api() -> FakeToastApi:
    return FakeToastApi()


@pytest_asyncio.fixture
async def http(toast_api: FakeToastApi) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client wired to the fake Toast API."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(toast_api.handler)) as client:
        yield client


@pytest.fixture
def toast_client(http: httpx.AsyncClient) -> ToastClient:
    authenticator = ToastAuthenticator(http, "client-id", "client-secret", BASE_URL)
    return ToastClient(http, TokenCache(authenticator.exchange), BASE_URL)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        toast_api_base=BASE_URL,
        toast_client_id="client-id",
        toast_client_secret="client-secret",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        http_timeout_seconds=5.0,
        locations={"prosper": RESTAURANT_GUID},
    )


@pytest_asyncio.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()
