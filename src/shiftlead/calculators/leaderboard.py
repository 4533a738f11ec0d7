"""Leaderboard aggregation over a lookback window."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal

from shiftlead.calculators.shift_scoring import (
    MAX_SCORE_WITH_POS,
    MAX_SCORE_WITHOUT_POS,
    order_metrics,
    round_to_cents,
    score_shift,
)
from shiftlead.calculators.types import (
    AttributedOrder,
    ChecklistSubmission,
    ChecklistTemplate,
    Identity,
    LeaderboardEntry,
    Review,
    ShiftScore,
)

logger = logging.getLogger(__name__)

FIVE_STAR_BONUS_POINTS = 25


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def window_start_of_day(now: datetime, lookback_days: int, store_tz: tzinfo = timezone.utc) -> datetime:
    """Midnight store time on the first day of the lookback window."""
    first_day = (now - timedelta(days=lookback_days)).astimezone(store_tz).date()
    return datetime.combine(first_day, time(), tzinfo=store_tz)


def rank_key(entry: LeaderboardEntry) -> tuple[bool, float, str, str]:
    """Leaders with shifts first, then effective score desc, then name."""
    return (not entry.has_shifts, -entry.effective_score, entry.name.casefold(), entry.user_id)


class LeaderboardAggregator:
    """Rolls per-shift scores up per leader and ranks them.

    Composite percentage:
        (avg timeliness + avg turn time score + avg ticket score) / max * 100
    where max is 105 if the leader has any attributed orders in the window,
    else 40. Review bonuses are added on top, undivided.

    Shift dates and order days are read in ``store_tz``. Submissions and
    orders share a day-granular window; reviews are windowed by instant.
    """

    def __init__(
        self,
        templates: Sequence[ChecklistTemplate],
        lookback_days: int,
        now: datetime | None = None,
        store_tz: tzinfo = timezone.utc,
    ):
        if lookback_days < 1:
            raise ValueError("lookback_days must be at least 1")
        self.templates = {template.id: template for template in templates}
        self.lookback_days = lookback_days
        self.store_tz = store_tz
        self.now = now or datetime.now(timezone.utc)
        self.window_start = self.now - timedelta(days=lookback_days)
        self.first_day = window_start_of_day(self.now, lookback_days, store_tz).date()
        self.last_day = self.now.astimezone(store_tz).date()

    def in_window(self, moment: datetime) -> bool:
        return self.window_start <= moment <= self.now

    def date_in_window(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    def local_date(self, moment: datetime) -> date:
        return moment.astimezone(self.store_tz).date()

    def build(
        self,
        submissions: Sequence[ChecklistSubmission],
        identities: Sequence[Identity],
        reviews: Sequence[Review],
        attributed_orders: Sequence[AttributedOrder],
    ) -> list[LeaderboardEntry]:
        window_submissions = [s for s in submissions if self.date_in_window(s.date)]
        window_orders = [
            o
            for o in attributed_orders
            if self.date_in_window(self.local_date(o.opened_at)) and o.opened_at <= self.now
        ]
        window_reviews = [r for r in reviews if self.in_window(r.published_at)]

        entries = [
            self.score_leader(leader, window_submissions, window_reviews, window_orders)
            for leader in identities
            if leader.is_leader
        ]
        entries.sort(key=rank_key)
        for position, entry in enumerate(entries, start=1):
            entry.rank = position
        return entries

    def score_leader(
        self,
        leader: Identity,
        submissions: Sequence[ChecklistSubmission],
        reviews: Sequence[Review],
        orders: Sequence[AttributedOrder],
    ) -> LeaderboardEntry:
        leader_orders = [o for o in orders if o.shift_leader_id == leader.id]
        orders_by_date: dict[date, list[AttributedOrder]] = {}
        for order in leader_orders:
            orders_by_date.setdefault(self.local_date(order.opened_at), []).append(order)

        shifts: list[ShiftScore] = []
        for submission in sorted(submissions, key=lambda s: (s.date, s.id)):
            if not submission.completed_by(leader.id):
                continue
            template = self.templates.get(submission.template_id)
            if template is None:
                logger.debug("Submission %s has unknown template %s", submission.id, submission.template_id)
                continue
            shifts.append(
                score_shift(
                    submission,
                    template,
                    orders_by_date.get(submission.date, []),
                    store_tz=self.store_tz,
                )
            )

        entry = LeaderboardEntry(
            user_id=leader.id,
            name=leader.name,
            shift_count=len(shifts),
            order_count=len(leader_orders),
            total_net_sales=round_to_cents(
                sum((o.net_amount for o in leader_orders), Decimal("0"))
            ),
            total_guests=sum(o.guest_count for o in leader_orders),
            shifts=shifts,
        )
        entry.avg_turn_time_minutes, entry.avg_ticket = self._ticket_figures(leader_orders, shifts)
        if not shifts:
            return entry

        entry.avg_timeliness_score = round(_mean([s.timeliness_score for s in shifts]), 2)
        entry.avg_turn_time_score = round(_mean([s.turn_time_score for s in shifts]), 2)
        entry.avg_ticket_score = round(_mean([s.avg_ticket_score for s in shifts]), 2)
        entry.max_possible = MAX_SCORE_WITH_POS if leader_orders else MAX_SCORE_WITHOUT_POS

        average_total = _mean([float(s.total) for s in shifts])
        entry.composite_percent = round(average_total / entry.max_possible * 100, 2)

        submitted = [s for s in shifts if s.delay_minutes is not None]
        if submitted:
            entry.on_time_submissions = sum(1 for s in submitted if s.on_time)
            entry.late_submissions = len(submitted) - entry.on_time_submissions
            entry.on_time_rate = round(entry.on_time_submissions / len(submitted) * 100, 1)
            entry.avg_delay_minutes = round(_mean([s.delay_minutes for s in submitted]))

        for review in reviews:
            if review.leader_id == leader.id and review.bonus_eligible and review.rating == 5:
                entry.review_bonus_points += FIVE_STAR_BONUS_POINTS
                entry.five_star_count += 1

        entry.effective_score = entry.composite_percent + entry.review_bonus_points
        return entry

    @staticmethod
    def _ticket_figures(
        orders: Sequence[AttributedOrder],
        shifts: Sequence[ShiftScore],
    ) -> tuple[float | None, Decimal | None]:
        """Pooled over attributed orders when any exist, else averaged over shift snapshots."""
        if orders:
            return order_metrics(orders)

        turn_times = [s.avg_turn_time for s in shifts if s.avg_turn_time is not None]
        tickets = [s.avg_ticket for s in shifts if s.avg_ticket is not None]
        avg_turn = round(_mean(turn_times), 2) if turn_times else None
        avg_ticket = (
            round_to_cents(sum(tickets, Decimal("0")) / len(tickets)) if tickets else None
        )
        return avg_turn, avg_ticket


def build_leaderboard(
    submissions: Sequence[ChecklistSubmission],
    templates: Sequence[ChecklistTemplate],
    identities: Sequence[Identity],
    lookback_days: int,
    reviews: Sequence[Review] = (),
    attributed_orders: Sequence[AttributedOrder] = (),
    now: datetime | None = None,
    store_tz: tzinfo = timezone.utc,
) -> list[LeaderboardEntry]:
    """Rank managers and admins by effective score, best first."""
    aggregator = LeaderboardAggregator(templates, lookback_days, now=now, store_tz=store_tz)
    return aggregator.build(submissions, identities, reviews, attributed_orders)
