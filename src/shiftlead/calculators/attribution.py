"""Order attribution engine - assigns each transaction to the leader on duty."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from shiftlead.calculators.leader_detector import detect_leaders
from shiftlead.calculators.types import AttributedOrder, Identity
from shiftlead.config import AttributionConfig
from shiftlead.pos.base import (
    AttendanceRecord,
    Skipped,
    SkipReason,
    Transaction,
)
from shiftlead.pos.labor import LaborFetcher, fetch_attendance_batched

logger = logging.getLogger(__name__)


@dataclass
class DateAttribution:
    """Result of attributing one business date."""

    day: date
    orders: list[AttributedOrder] = field(default_factory=list)
    unattributed_order_ids: list[str] = field(default_factory=list)


@dataclass
class AttributionResult:
    """Result of attributing a batch of transactions."""

    orders: list[AttributedOrder] = field(default_factory=list)
    skipped_dates: dict[date, SkipReason] = field(default_factory=dict)
    unattributed_order_ids: list[str] = field(default_factory=list)
    transaction_count: int = 0

    @property
    def attributed_count(self) -> int:
        return len(self.orders)

    @property
    def rate_limited(self) -> bool:
        return SkipReason.RATE_LIMITED in self.skipped_dates.values()


def group_by_date(transactions: Sequence[Transaction]) -> dict[date, list[Transaction]]:
    """Partition transactions by the calendar date of ``opened_at``."""
    grouped: dict[date, list[Transaction]] = {}
    for transaction in transactions:
        grouped.setdefault(transaction.business_day, []).append(transaction)
    return grouped


def on_duty_at(
    records: Sequence[AttendanceRecord],
    instant: datetime,
    now: datetime,
) -> list[AttendanceRecord]:
    """Records whose [clock_in, clock_out or now] interval contains ``instant``.

    Returned in a stable order (clock-in, then employee id) so upstream
    ordering cannot change who wins a tie.
    """
    covering = [record for record in records if record.covers(instant, now)]
    covering.sort(key=lambda record: (record.clock_in, record.employee_id))
    return covering


def attribute_date(
    day: date,
    transactions: Sequence[Transaction],
    attendance: Sequence[AttendanceRecord],
    store_id: str,
    identities: Sequence[Identity],
    now: datetime,
) -> DateAttribution:
    """Attribute one date's transactions against that date's attendance.

    Pure: no I/O, no clock reads. Transactions with no leader on duty are
    left out of ``orders`` and listed in ``unattributed_order_ids``.
    """
    result = DateAttribution(day=day)

    for transaction in sorted(transactions, key=lambda t: (t.opened_at, t.id)):
        on_duty = on_duty_at(attendance, transaction.opened_at, now)
        leaders = detect_leaders(on_duty, identities)
        if not leaders:
            result.unattributed_order_ids.append(transaction.id)
            continue

        result.orders.append(
            AttributedOrder.from_transaction(transaction, store_id, leaders[0], now)
        )

    if result.unattributed_order_ids:
        logger.warning(
            "No leader on duty for %d of %d orders on %s",
            len(result.unattributed_order_ids),
            len(transactions),
            day,
        )
    return result


class OrderAttributionEngine:
    """Assigns transactions to the highest-authority leader on duty.

    Pipeline:
    1) Partition transactions by date opened
    2) Fetch attendance once per date, in concurrent batches
    3) For each transaction, find who was clocked in when it opened
    4) Detect leaders among them and take the first (best priority)
    """

    def __init__(self, labor: LaborFetcher, config: AttributionConfig | None = None):
        self.labor = labor
        self.config = config or AttributionConfig()

    async def attribute(
        self,
        location_id: str,
        transactions: Sequence[Transaction],
        store_id: str,
        identities: Sequence[Identity],
        now: datetime | None = None,
    ) -> AttributionResult:
        """Attribute ``transactions`` to leaders.

        ``now`` closes open clock-ins and stamps ``attributed_at``; pass the
        same value to reproduce a previous run exactly.
        """
        now = now or datetime.now(timezone.utc)
        result = AttributionResult(transaction_count=len(transactions))
        if not transactions:
            return result

        by_date = group_by_date(transactions)
        logger.info(
            "Attributing %d orders across %d day(s) for store %s",
            len(transactions),
            len(by_date),
            store_id,
        )

        jobs, employees = await asyncio.gather(
            self.labor.fetch_jobs(location_id),
            self.labor.fetch_employees(location_id),
        )
        outcomes = await fetch_attendance_batched(
            self.labor,
            location_id,
            sorted(by_date),
            jobs,
            employees,
            self.config.labor_batch_size,
        )

        for day in sorted(by_date):
            day_transactions = by_date[day]
            outcome = outcomes[day]
            if isinstance(outcome, Skipped):
                logger.info(
                    "No attendance for %s (%s), skipping %d orders",
                    day,
                    outcome.reason.value,
                    len(day_transactions),
                )
                result.skipped_dates[day] = outcome.reason
                continue

            attributed = attribute_date(
                day, day_transactions, outcome.records, store_id, identities, now
            )
            result.orders.extend(attributed.orders)
            result.unattributed_order_ids.extend(attributed.unattributed_order_ids)

        logger.info(
            "Attributed %d of %d orders (%d without a leader, %d day(s) skipped)",
            result.attributed_count,
            result.transaction_count,
            len(result.unattributed_order_ids),
            len(result.skipped_dates),
        )
        return result
