"""Idempotent persistence of attributed orders."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftlead.calculators.types import AttributedOrder
from shiftlead.models import AttributedOrderRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveSummary:
    """Counts from one save pass."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0


class AttributionStore:
    """Stores attributed orders keyed by order id.

    Re-saving an order with the same leader leaves the stored row alone,
    including its original ``attributed_at``. A changed leader updates the
    row in place. Rows are never duplicated.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save_all(self, orders: Sequence[AttributedOrder]) -> SaveSummary:
        if not orders:
            return SaveSummary()

        latest: dict[str, AttributedOrder] = {order.id: order for order in orders}
        result = await self.session.execute(
            select(AttributedOrderRecord).where(AttributedOrderRecord.order_id.in_(list(latest)))
        )
        existing = {record.order_id: record for record in result.scalars().all()}

        created = updated = unchanged = 0
        for order_id, order in latest.items():
            record = existing.get(order_id)
            if record is None:
                self.session.add(AttributedOrderRecord.from_domain(order))
                created += 1
            elif record.same_leader(order):
                unchanged += 1
            else:
                logger.info(
                    "Order %s reassigned from %s to %s",
                    order_id,
                    record.shift_leader_id,
                    order.shift_leader_id,
                )
                record.reassign(order)
                updated += 1

        await self.session.flush()
        summary = SaveSummary(created=created, updated=updated, unchanged=unchanged)
        logger.info(
            "Saved attributions: %d created, %d updated, %d unchanged",
            summary.created,
            summary.updated,
            summary.unchanged,
        )
        return summary

    async def list_for_store(
        self,
        store_id: str,
        since: datetime | None = None,
    ) -> list[AttributedOrder]:
        """Attributed orders for a store, oldest first."""
        query = select(AttributedOrderRecord).where(AttributedOrderRecord.store_id == store_id)
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            query = query.where(AttributedOrderRecord.opened_at >= since.astimezone(timezone.utc))
        query = query.order_by(AttributedOrderRecord.opened_at, AttributedOrderRecord.order_id)

        result = await self.session.execute(query)
        return [record.to_domain() for record in result.scalars().all()]
