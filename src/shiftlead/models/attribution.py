"""Persisted order attributions."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from shiftlead.calculators.types import AttributedOrder
from shiftlead.models.base import Base, TimestampMixin


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AttributedOrderRecord(Base, TimestampMixin):
    """One attributed transaction, unique by point-of-sale order id."""

    __tablename__ = "attributed_order"

    order_id: Mapped[str] = mapped_column(String, primary_key=True)
    store_id: Mapped[str] = mapped_column(String, nullable=False)
    order_number: Mapped[str] = mapped_column(String, nullable=False)
    opened_at: Mapped[datetime] = mapped_column(nullable=False)
    closed_at: Mapped[datetime] = mapped_column(nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    turn_time_minutes: Mapped[float] = mapped_column(Numeric(8, 2, asdecimal=False), nullable=False)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    check_id: Mapped[str] = mapped_column(String, nullable=False, default="")
    shift_leader_id: Mapped[str] = mapped_column(String, nullable=False)
    shift_leader_name: Mapped[str] = mapped_column(String, nullable=False)
    shift_leader_employee_id: Mapped[str] = mapped_column(String, nullable=False)
    attributed_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        Index("ix_attributed_order_store_opened", "store_id", "opened_at"),
        Index("ix_attributed_order_leader", "shift_leader_id"),
    )

    @classmethod
    def from_domain(cls, order: AttributedOrder) -> AttributedOrderRecord:
        return cls(
            order_id=order.id,
            store_id=order.store_id,
            order_number=order.order_number,
            opened_at=order.opened_at.astimezone(timezone.utc),
            closed_at=order.closed_at.astimezone(timezone.utc),
            net_amount=order.net_amount,
            turn_time_minutes=order.turn_time_minutes,
            guest_count=order.guest_count,
            check_id=order.check_id,
            shift_leader_id=order.shift_leader_id,
            shift_leader_name=order.shift_leader_name,
            shift_leader_employee_id=order.shift_leader_employee_id,
            attributed_at=order.attributed_at.astimezone(timezone.utc),
        )

    def same_leader(self, order: AttributedOrder) -> bool:
        return (
            self.shift_leader_id == order.shift_leader_id
            and self.shift_leader_employee_id == order.shift_leader_employee_id
        )

    def reassign(self, order: AttributedOrder) -> None:
        """Point this record at the leader in ``order``."""
        self.shift_leader_id = order.shift_leader_id
        self.shift_leader_name = order.shift_leader_name
        self.shift_leader_employee_id = order.shift_leader_employee_id
        self.attributed_at = order.attributed_at.astimezone(timezone.utc)

    def to_domain(self) -> AttributedOrder:
        return AttributedOrder(
            id=self.order_id,
            store_id=self.store_id,
            order_number=self.order_number,
            opened_at=_as_utc(self.opened_at),
            closed_at=_as_utc(self.closed_at),
            net_amount=Decimal(self.net_amount),
            turn_time_minutes=float(self.turn_time_minutes),
            guest_count=self.guest_count,
            check_id=self.check_id,
            shift_leader_id=self.shift_leader_id,
            shift_leader_name=self.shift_leader_name,
            shift_leader_employee_id=self.shift_leader_employee_id,
            attributed_at=_as_utc(self.attributed_at),
        )
