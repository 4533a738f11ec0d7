"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from shiftlead.calculators.types import (
    ChecklistSubmission,
    ChecklistTemplate,
    Identity,
    PosSnapshot,
    Review,
    TaskResult,
    UserRole,
)


# ============================================================================
# Shared inputs
# ============================================================================


class IdentityIn(BaseModel):
    """An internal user account."""

    id: str
    name: str
    role: UserRole = UserRole.STAFF
    pos_employee_id: str | None = None

    def to_domain(self) -> Identity:
        return Identity(
            id=self.id,
            name=self.name,
            role=self.role,
            pos_employee_id=self.pos_employee_id,
        )


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str


# ============================================================================
# Attribution sync
# ============================================================================


class SyncRequest(BaseModel):
    """Schema for triggering an attribution sync."""

    location: str
    start_date: date
    end_date: date
    identities: list[IdentityIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_range(self) -> "SyncRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AttributedOrderResponse(BaseModel):
    """Schema for an attributed order."""

    model_config = ConfigDict(from_attributes=True)

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


class SyncResponse(BaseModel):
    """Schema for the result of an attribution sync."""

    store_id: str
    transaction_count: int
    attributed_count: int
    unattributed_count: int
    skipped_dates: dict[date, str]
    created: int
    updated: int
    unchanged: int
    orders: list[AttributedOrderResponse]


class AttributedOrderListResponse(BaseModel):
    """Schema for listing persisted attributions."""

    items: list[AttributedOrderResponse]
    total: int


# ============================================================================
# Leaderboard
# ============================================================================


class TemplateIn(BaseModel):
    id: str
    name: str
    deadline_hour: int = Field(ge=0, le=23)
    type: str = "OPENING"

    def to_domain(self) -> ChecklistTemplate:
        return ChecklistTemplate(
            id=self.id, name=self.name, deadline_hour=self.deadline_hour, type=self.type
        )


class TaskResultIn(BaseModel):
    task_id: str
    completed: bool
    completed_by_user_id: str | None = None
    completed_at: AwareDatetime | None = None


class PosSnapshotIn(BaseModel):
    average_turn_time: float | None = None
    average_check: Decimal | None = None
    total_sales: Decimal | None = None
    total_orders: int | None = None


class SubmissionIn(BaseModel):
    """A checklist submission for one shift date."""

    id: str
    template_id: str
    date: date
    user_id: str | None = None
    submitted_at: AwareDatetime | None = None
    task_results: list[TaskResultIn] = Field(default_factory=list)
    pos_snapshot: PosSnapshotIn | None = None

    def to_domain(self) -> ChecklistSubmission:
        snapshot = None
        if self.pos_snapshot is not None:
            snapshot = PosSnapshot(**self.pos_snapshot.model_dump())
        return ChecklistSubmission(
            id=self.id,
            template_id=self.template_id,
            date=self.date,
            user_id=self.user_id,
            submitted_at=self.submitted_at,
            task_results=tuple(TaskResult(**tr.model_dump()) for tr in self.task_results),
            pos_snapshot=snapshot,
        )


class ReviewIn(BaseModel):
    id: str
    leader_id: str | None = None
    rating: int = Field(ge=1, le=5)
    published_at: AwareDatetime
    bonus_eligible: bool = False

    def to_domain(self) -> Review:
        return Review(**self.model_dump())


class LeaderboardRequest(BaseModel):
    """Inputs for a leaderboard calculation; orders come from the store."""

    submissions: list[SubmissionIn] = Field(default_factory=list)
    templates: list[TemplateIn] = Field(default_factory=list)
    identities: list[IdentityIn] = Field(default_factory=list)
    reviews: list[ReviewIn] = Field(default_factory=list)
    lookback_days: int = Field(default=30, ge=1, le=365)


class ShiftScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    template_name: str
    timeliness_score: int
    turn_time_score: int
    avg_ticket_score: int
    has_pos_data: bool
    max_score: int
    total: int


class LeaderboardEntryResponse(BaseModel):
    """Schema for one leaderboard row."""

    model_config = ConfigDict(from_attributes=True)

    rank: int
    user_id: str
    name: str
    shift_count: int
    order_count: int
    total_net_sales: Decimal
    total_guests: int
    avg_timeliness_score: float
    avg_turn_time_score: float
    avg_ticket_score: float
    avg_turn_time_minutes: float | None
    avg_ticket: Decimal | None
    max_possible: int
    composite_percent: float
    on_time_rate: float
    on_time_submissions: int
    late_submissions: int
    avg_delay_minutes: int
    review_bonus_points: int
    five_star_count: int
    effective_score: float
    shifts: list[ShiftScoreResponse]


class LeaderboardResponse(BaseModel):
    store_id: str
    lookback_days: int
    generated_at: datetime
    entries: list[LeaderboardEntryResponse]


# ============================================================================
# Leadership roster
# ============================================================================


class RosterLeaderResponse(BaseModel):
    """Schema for an employee who worked a leadership title."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    name: str
    job_title: str
    display_title: str
    priority: int
    last_worked: date


class RosterResponse(BaseModel):
    location: str
    lookback_days: int
    generated_at: datetime
    leaders: list[RosterLeaderResponse]
