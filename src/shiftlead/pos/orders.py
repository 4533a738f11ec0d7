"""Closed order retrieval from the Toast bulk orders endpoint."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from shiftlead.config import AttributionConfig
from shiftlead.pos.base import Transaction, parse_timestamp
from shiftlead.pos.client import ToastClient, unwrap_list

logger = logging.getLogger(__name__)

ORDERS_PATH = "/orders/v2/ordersBulk"
CLOSED = "CLOSED"


class OrderFetcher:
    """Fetches closed, non-voided transactions for a date range.

    Each order becomes at most one Transaction built from its closed checks.
    Orders whose turn time is negative or above the configured ceiling are
    treated as instrumentation errors and dropped here, before attribution.
    """

    def __init__(self, client: ToastClient, config: AttributionConfig | None = None):
        self.client = client
        self.config = config or AttributionConfig()

    async def fetch_closed_orders(
        self,
        location_id: str,
        start_date: date,
        end_date: date,
    ) -> list[Transaction]:
        """Fetch every closed transaction opened between the two dates (inclusive).

        Raises:
            RateLimitedError: If the upstream throttles the request
            UpstreamError: For any other non-404 failure
        """
        transactions: list[Transaction] = []
        page_size = self.config.page_size
        page = 1
        pages_read = 0

        while True:
            orders = await self._fetch_page(location_id, start_date, end_date, page)
            pages_read += 1
            if not orders:
                break

            for order in orders:
                transaction = self.build_transaction(order)
                if transaction is not None:
                    transactions.append(transaction)

            if len(orders) < page_size:
                break
            if page >= self.config.max_pages:
                logger.warning(
                    "Hit pagination ceiling of %d pages for %s (%s to %s)",
                    self.config.max_pages,
                    location_id,
                    start_date,
                    end_date,
                )
                break
            page += 1

        transactions.sort(key=lambda t: (t.opened_at, t.id))
        logger.info(
            "Fetched %d closed orders across %d page(s) for %s",
            len(transactions),
            pages_read,
            location_id,
        )
        return transactions

    async def _fetch_page(
        self,
        location_id: str,
        start_date: date,
        end_date: date,
        page: int,
    ) -> list[dict[str, Any]]:
        payload = await self.client.get_json(
            ORDERS_PATH,
            location_id,
            params={
                "startDate": f"{start_date.isoformat()}T00:00:00.000Z",
                "endDate": f"{end_date.isoformat()}T23:59:59.999Z",
                "pageSize": self.config.page_size,
                "page": page,
            },
        )
        if payload is None:
            # 404 means no orders for the range
            return []
        return unwrap_list(payload, "orders")

    def build_transaction(self, order: dict[str, Any]) -> Transaction | None:
        """Convert one raw order into a Transaction, or None if it does not qualify."""
        guid = order.get("guid")
        if not guid or order.get("voided"):
            return None

        closed_checks = [
            check
            for check in order.get("checks") or []
            if isinstance(check, dict)
            and not check.get("voided")
            and check.get("paymentStatus") == CLOSED
        ]
        if not closed_checks:
            return None

        opened_at = resolve_opened_at(order, closed_checks)
        closed_at = resolve_closed_at(order, closed_checks)
        if opened_at is None or closed_at is None:
            return None

        turn_time = (closed_at - opened_at).total_seconds() / 60
        if turn_time < 0 or turn_time > self.config.max_turn_time_minutes:
            logger.debug("Discarding order %s with turn time %.2f min", guid, turn_time)
            return None

        net_amount = sum(
            (_to_decimal(check.get("amount")) for check in closed_checks),
            Decimal("0"),
        )

        return Transaction(
            id=str(guid),
            order_number=str(order.get("displayNumber") or str(guid)[:8]),
            opened_at=opened_at,
            closed_at=closed_at,
            net_amount=net_amount,
            turn_time_minutes=round(turn_time, 2),
            guest_count=int(order.get("numberOfGuests") or 1),
            check_id=str(closed_checks[0].get("guid") or ""),
            payment_status=CLOSED,
        )


def resolve_opened_at(order: dict[str, Any], checks: list[dict[str, Any]]) -> datetime | None:
    """Order openedDate, then order createdDate, then the earliest check openedDate."""
    for value in (order.get("openedDate"), order.get("createdDate")):
        parsed = parse_timestamp(value)
        if parsed is not None:
            return parsed
    check_times = [t for t in (parse_timestamp(c.get("openedDate")) for c in checks) if t]
    return min(check_times) if check_times else None


def resolve_closed_at(order: dict[str, Any], checks: list[dict[str, Any]]) -> datetime | None:
    """Order closedDate, then the latest check closedDate."""
    parsed = parse_timestamp(order.get("closedDate"))
    if parsed is not None:
        return parsed
    check_times = [t for t in (parse_timestamp(c.get("closedDate")) for c in checks) if t]
    return max(check_times) if check_times else None


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")
