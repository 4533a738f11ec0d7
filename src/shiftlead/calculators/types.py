"""Type definitions for the attribution and scoring pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from shiftlead.pos.base import Transaction

UNKNOWN_PREFIX = "unknown-"


class UserRole(str, Enum):
    """Internal account roles."""

    TRAINEE = "trainee"
    TRAINER = "trainer"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


LEADER_ROLES = frozenset({UserRole.MANAGER, UserRole.ADMIN})


@dataclass(frozen=True)
class Identity:
    """An internal user account. Read-only to the engine."""

    id: str
    name: str
    role: UserRole = UserRole.STAFF
    pos_employee_id: str | None = None

    @property
    def is_leader(self) -> bool:
        return self.role in LEADER_ROLES


@dataclass(frozen=True)
class LeaderCandidate:
    """An on-duty employee holding a leadership title. Never persisted."""

    user_id: str  # internal id, or "unknown-<external id>"
    name: str
    job_title: str  # canonical display title
    priority: int  # lower = more authority
    employee_id: str  # point-of-sale employee guid

    @property
    def resolved(self) -> bool:
        return not self.user_id.startswith(UNKNOWN_PREFIX)


@dataclass(frozen=True)
class AttributedOrder:
    """A transaction assigned to the leader on duty when it opened."""

    id: str
    store_id: str
    order_number: str
    opened_at: datetime
    closed_at: datetime
    net_amount: Decimal
    turn_time_minutes: float
    guest_count: int
    check_id: str
    shift_leader_id: str
    shift_leader_name: str
    shift_leader_employee_id: str
    attributed_at: datetime

    @classmethod
    def from_transaction(
        cls,
        transaction: Transaction,
        store_id: str,
        leader: LeaderCandidate,
        attributed_at: datetime,
    ) -> AttributedOrder:
        return cls(
            id=transaction.id,
            store_id=store_id,
            order_number=transaction.order_number,
            opened_at=transaction.opened_at,
            closed_at=transaction.closed_at,
            net_amount=transaction.net_amount,
            turn_time_minutes=transaction.turn_time_minutes,
            guest_count=transaction.guest_count,
            check_id=transaction.check_id,
            shift_leader_id=leader.user_id,
            shift_leader_name=leader.name,
            shift_leader_employee_id=leader.employee_id,
            attributed_at=attributed_at,
        )

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for comparison (deterministic ordering)."""
        return {
            "id": self.id,
            "store_id": self.store_id,
            "order_number": self.order_number,
            "opened_at": self.opened_at.isoformat(),
            "closed_at": self.closed_at.isoformat(),
            "net_amount": str(self.net_amount),
            "turn_time_minutes": self.turn_time_minutes,
            "guest_count": self.guest_count,
            "check_id": self.check_id,
            "shift_leader_id": self.shift_leader_id,
            "shift_leader_name": self.shift_leader_name,
            "shift_leader_employee_id": self.shift_leader_employee_id,
            "attributed_at": self.attributed_at.isoformat(),
        }


@dataclass(frozen=True)
class ChecklistTemplate:
    """Checklist definition. Only the fields scoring needs."""

    id: str
    name: str
    deadline_hour: int  # 24h clock
    type: str = "OPENING"


@dataclass(frozen=True)
class TaskResult:
    task_id: str
    completed: bool
    completed_by_user_id: str | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class PosSnapshot:
    """Point-of-sale figures captured on a submission (legacy path)."""

    average_turn_time: float | None = None
    average_check: Decimal | None = None
    total_sales: Decimal | None = None
    total_orders: int | None = None

    @property
    def has_data(self) -> bool:
        return self.average_turn_time is not None or self.average_check is not None


@dataclass(frozen=True)
class ChecklistSubmission:
    """A completed (or in-progress) checklist for one shift date."""

    id: str
    template_id: str
    date: date
    user_id: str | None = None
    submitted_at: datetime | None = None
    task_results: tuple[TaskResult, ...] = ()
    pos_snapshot: PosSnapshot | None = None

    def completed_by(self, user_id: str) -> bool:
        return any(
            result.completed and result.completed_by_user_id == user_id
            for result in self.task_results
        )


@dataclass(frozen=True)
class Review:
    """A tracked customer review attributed to a leader."""

    id: str
    leader_id: str | None
    rating: int
    published_at: datetime
    bonus_eligible: bool = False


@dataclass(frozen=True)
class ShiftScore:
    """Sub-scores for one shift."""

    date: date
    template_name: str
    timeliness_score: int
    turn_time_score: int
    avg_ticket_score: int
    has_pos_data: bool
    max_score: int
    delay_minutes: int | None = None
    avg_turn_time: float | None = None
    avg_ticket: Decimal | None = None

    @property
    def total(self) -> int:
        return self.timeliness_score + self.turn_time_score + self.avg_ticket_score

    @property
    def on_time(self) -> bool:
        return self.delay_minutes is not None and self.delay_minutes <= 0


@dataclass
class LeaderboardEntry:
    """Aggregated performance for one leader over the lookback window."""

    user_id: str
    name: str
    shift_count: int = 0
    order_count: int = 0
    total_net_sales: Decimal = Decimal("0")
    total_guests: int = 0
    avg_timeliness_score: float = 0.0
    avg_turn_time_score: float = 0.0
    avg_ticket_score: float = 0.0
    avg_turn_time_minutes: float | None = None
    avg_ticket: Decimal | None = None
    max_possible: int = 40
    composite_percent: float = 0.0
    on_time_rate: float = 0.0
    on_time_submissions: int = 0
    late_submissions: int = 0
    avg_delay_minutes: int = 0
    review_bonus_points: int = 0
    five_star_count: int = 0
    effective_score: float = 0.0
    rank: int = 0
    shifts: list[ShiftScore] = field(default_factory=list)

    @property
    def has_shifts(self) -> bool:
        return self.shift_count > 0
