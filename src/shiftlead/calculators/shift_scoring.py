"""Per-shift scoring from checklist timeliness and attributed orders.

Sub-scores and breakpoints:
- Timeliness (-20..40): on time 40, up to an hour late -10, later -20,
  never submitted 0
- Turn time (-20..40): under 3.5 min 40, under 4.5 min 35, under the
  critical threshold -10, otherwise -20
- Average ticket (0..25): $10+ 25, $8+ 20, $6+ 15, $4+ 5, otherwise 0

Turn time and ticket are only scored when point-of-sale data exists for the
shift, and the shift's maximum drops from 105 to 40 without it.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date, datetime, time, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from shiftlead.calculators.types import (
    AttributedOrder,
    ChecklistSubmission,
    ChecklistTemplate,
    ShiftScore,
)
from shiftlead.config import CRITICAL_TURN_TIME_MINUTES

MAX_TIMELINESS_SCORE = 40
MAX_TURN_TIME_SCORE = 40
MAX_AVG_TICKET_SCORE = 25
MAX_SCORE_WITH_POS = MAX_TIMELINESS_SCORE + MAX_TURN_TIME_SCORE + MAX_AVG_TICKET_SCORE
MAX_SCORE_WITHOUT_POS = MAX_TIMELINESS_SCORE

LATE_GRACE_MINUTES = 60


def shift_deadline(shift_date: date, deadline_hour: int, store_tz: tzinfo = timezone.utc) -> datetime:
    """Deadline for a shift: ``deadline_hour``:00 store time on the shift date."""
    return datetime.combine(shift_date, time(hour=deadline_hour), tzinfo=store_tz)


def submission_delay_minutes(
    submitted_at: datetime,
    shift_date: date,
    deadline_hour: int,
    store_tz: tzinfo = timezone.utc,
) -> int:
    """Whole minutes past the deadline (negative when early).

    The deadline is read in the store's timezone, so the result depends only
    on the submission instant and not on the offset it was recorded with.
    """
    deadline = shift_deadline(shift_date, deadline_hour, store_tz)
    return math.floor((submitted_at - deadline).total_seconds() / 60)


def timeliness_score(delay_minutes: int | None) -> int:
    if delay_minutes is None:
        return 0
    if delay_minutes <= 0:
        return 40
    if delay_minutes <= LATE_GRACE_MINUTES:
        return -10
    return -20


def turn_time_score(avg_turn_time: float | None) -> int:
    if avg_turn_time is None:
        return 0
    if avg_turn_time < 3.5:
        return 40
    if avg_turn_time < 4.5:
        return 35
    if avg_turn_time < CRITICAL_TURN_TIME_MINUTES:
        return -10
    return -20


def avg_ticket_score(avg_ticket: Decimal | float | None) -> int:
    if avg_ticket is None:
        return 0
    if avg_ticket >= 10:
        return 25
    if avg_ticket >= 8:
        return 20
    if avg_ticket >= 6:
        return 15
    if avg_ticket >= 4:
        return 5
    return 0


def round_to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def order_metrics(orders: Sequence[AttributedOrder]) -> tuple[float | None, Decimal | None]:
    """Average turn time and average ticket over ``orders``; (None, None) if empty."""
    if not orders:
        return None, None
    count = len(orders)
    avg_turn = round(sum(order.turn_time_minutes for order in orders) / count, 2)
    total = sum((order.net_amount for order in orders), Decimal("0"))
    return avg_turn, round_to_cents(total / count)


def score_shift(
    submission: ChecklistSubmission,
    template: ChecklistTemplate,
    orders: Sequence[AttributedOrder] = (),
    store_tz: tzinfo = timezone.utc,
) -> ShiftScore:
    """Score one shift.

    Metrics come from the attributed orders when any exist; otherwise from the
    snapshot stored on the submission.
    """
    delay = None
    if submission.submitted_at is not None:
        delay = submission_delay_minutes(
            submission.submitted_at, submission.date, template.deadline_hour, store_tz
        )

    avg_turn, avg_ticket = order_metrics(orders)
    snapshot = submission.pos_snapshot
    if not orders and snapshot is not None and snapshot.has_data:
        avg_turn = snapshot.average_turn_time
        avg_ticket = snapshot.average_check

    has_pos_data = avg_turn is not None or avg_ticket is not None

    return ShiftScore(
        date=submission.date,
        template_name=template.name,
        timeliness_score=timeliness_score(delay),
        turn_time_score=turn_time_score(avg_turn) if has_pos_data else 0,
        avg_ticket_score=avg_ticket_score(avg_ticket) if has_pos_data else 0,
        has_pos_data=has_pos_data,
        max_score=MAX_SCORE_WITH_POS if has_pos_data else MAX_SCORE_WITHOUT_POS,
        delay_minutes=delay,
        avg_turn_time=avg_turn,
        avg_ticket=avg_ticket,
    )
