"""Leadership roster discovery from recent labor data."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from shiftlead.calculators.leader_detector import classify_title
from shiftlead.config import AttributionConfig
from shiftlead.pos.base import Skipped
from shiftlead.pos.labor import LaborFetcher, fetch_attendance_batched

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30
MAX_LOOKBACK_DAYS = 60


@dataclass(frozen=True)
class RosterLeader:
    """An employee who clocked in under a leadership title."""

    employee_id: str
    name: str
    job_title: str  # as recorded on the most recent shift
    display_title: str
    priority: int
    last_worked: date


class LeaderRosterService:
    """Lists everyone who worked a leadership title over the last N days.

    The roster is what internal accounts get linked against, so each entry
    carries the point-of-sale employee id. Days whose attendance cannot be
    fetched are passed over.
    """

    def __init__(self, labor: LaborFetcher, config: AttributionConfig | None = None):
        self.labor = labor
        self.config = config or AttributionConfig()

    async def discover(
        self,
        location_id: str,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        today: date | None = None,
    ) -> list[RosterLeader]:
        """Return leaders most recently worked first.

        ``lookback_days`` counts back from ``today`` inclusive and is capped
        at 60.
        """
        if lookback_days < 1:
            raise ValueError("lookback_days must be at least 1")
        lookback_days = min(lookback_days, MAX_LOOKBACK_DAYS)
        today = today or datetime.now(timezone.utc).date()
        days = [today - timedelta(days=offset) for offset in range(lookback_days)]

        jobs, employees = await asyncio.gather(
            self.labor.fetch_jobs(location_id),
            self.labor.fetch_employees(location_id),
        )
        outcomes = await fetch_attendance_batched(
            self.labor, location_id, days, jobs, employees, self.config.labor_batch_size
        )

        roster: dict[str, RosterLeader] = {}
        skipped = 0
        for day in sorted(outcomes):
            outcome = outcomes[day]
            if isinstance(outcome, Skipped):
                skipped += 1
                continue
            for record in outcome.records:
                match = classify_title(record.job_title)
                if match is None:
                    continue
                existing = roster.get(record.employee_id)
                if existing is not None and existing.last_worked >= day:
                    continue
                roster[record.employee_id] = RosterLeader(
                    employee_id=record.employee_id,
                    name=record.employee_name,
                    job_title=record.job_title,
                    display_title=match.display_title,
                    priority=match.priority,
                    last_worked=day,
                )

        leaders = sorted(
            roster.values(),
            key=lambda leader: (-leader.last_worked.toordinal(), leader.name.casefold()),
        )
        logger.info(
            "Found %d leader(s) for %s over %d day(s), %d day(s) without attendance",
            len(leaders),
            location_id,
            lookback_days,
            skipped,
        )
        return leaders
