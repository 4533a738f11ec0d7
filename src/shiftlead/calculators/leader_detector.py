"""Leadership classification of on-duty employees."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from shiftlead.calculators.name_matching import match_identity
from shiftlead.calculators.types import UNKNOWN_PREFIX, Identity, LeaderCandidate
from shiftlead.pos.base import AttendanceRecord
from shiftlead.pos.labor import UNKNOWN_EMPLOYEE

logger = logging.getLogger(__name__)

GENERAL_MANAGER = 1
TEAM_LEADER = 2


@dataclass(frozen=True)
class RoleMatch:
    """Result of classifying a job title."""

    priority: int
    display_title: str
    exact: bool


# Exact titles (normalized: trimmed, lowercase) -> (priority, display title)
LEADERSHIP_HIERARCHY: dict[str, tuple[int, str]] = {
    "gm (on bar)": (GENERAL_MANAGER, "GM (on bar)"),
    "gm": (GENERAL_MANAGER, "GM"),
    "general manager": (GENERAL_MANAGER, "General Manager"),
    "store manager": (GENERAL_MANAGER, "Store Manager"),
    "manager": (GENERAL_MANAGER, "Manager"),
    "team leader": (TEAM_LEADER, "Team Leader"),
    "team lead": (TEAM_LEADER, "Team Lead"),
    "shift lead": (TEAM_LEADER, "Shift Lead"),
    "shift leader": (TEAM_LEADER, "Shift Leader"),
    "shift manager": (TEAM_LEADER, "Shift Manager"),
}

# Fallback for non-standard titles such as "Shift Lead (Morning)" or
# "Assistant Manager". Order matters: first match wins.
LEADERSHIP_PATTERNS: tuple[tuple[re.Pattern[str], int, str], ...] = (
    (re.compile(r"\bgm\b", re.IGNORECASE), GENERAL_MANAGER, "GM"),
    (re.compile(r"\bgeneral\s*manager\b", re.IGNORECASE), GENERAL_MANAGER, "General Manager"),
    (re.compile(r"\bstore\s*manager\b", re.IGNORECASE), GENERAL_MANAGER, "Store Manager"),
    (re.compile(r"\bmanager\b", re.IGNORECASE), GENERAL_MANAGER, "Manager"),
    (re.compile(r"\b(team|shift)\s*(leader|lead)\b", re.IGNORECASE), TEAM_LEADER, "Team Leader"),
    (re.compile(r"\bshift\s*manager\b", re.IGNORECASE), TEAM_LEADER, "Shift Manager"),
    (re.compile(r"\bsupervisor\b", re.IGNORECASE), TEAM_LEADER, "Supervisor"),
)


def classify_title(job_title: str) -> RoleMatch | None:
    """Classify a job title against the leadership hierarchy.

    Exact lookup first, then the ordered pattern rules. None means the title
    is not a leadership role.
    """
    normalized = job_title.strip().lower()
    exact = LEADERSHIP_HIERARCHY.get(normalized)
    if exact is not None:
        return RoleMatch(priority=exact[0], display_title=exact[1], exact=True)

    for pattern, priority, display_title in LEADERSHIP_PATTERNS:
        if pattern.search(job_title):
            logger.debug(
                "Pattern match: %r -> %s (priority %d)", job_title, display_title, priority
            )
            return RoleMatch(priority=priority, display_title=display_title, exact=False)
    return None


def resolve_identity(record: AttendanceRecord, identities: Sequence[Identity]) -> Identity | None:
    """Exact point-of-sale id match, then fuzzy name match."""
    for identity in identities:
        if identity.pos_employee_id and identity.pos_employee_id == record.employee_id:
            return identity
    if record.employee_name == UNKNOWN_EMPLOYEE:
        return None
    return match_identity(record.employee_name, identities)


def detect_leaders(
    attendance: Sequence[AttendanceRecord],
    identities: Sequence[Identity],
) -> list[LeaderCandidate]:
    """Return the leaders among ``attendance``, most authority first.

    An empty list means no leader is on duty. Candidates sharing the minimum
    priority (co-leadership) keep their input order. An employee with several
    matching records appears once, at the best priority.
    """
    leaders: list[LeaderCandidate] = []

    for record in attendance:
        role = classify_title(record.job_title)
        if role is None:
            continue

        identity = resolve_identity(record, identities)
        leaders.append(
            LeaderCandidate(
                user_id=identity.id if identity else f"{UNKNOWN_PREFIX}{record.employee_id}",
                name=record.employee_name,
                job_title=role.display_title,
                priority=role.priority,
                employee_id=record.employee_id,
            )
        )

    if not leaders and attendance:
        logger.debug(
            "No leaders among titles: %s",
            ", ".join(repr(record.job_title) for record in attendance),
        )

    leaders.sort(key=lambda leader: leader.priority)

    # One candidate per employee, at their best priority
    seen: set[str] = set()
    unique: list[LeaderCandidate] = []
    for leader in leaders:
        if leader.employee_id in seen:
            continue
        seen.add(leader.employee_id)
        unique.append(leader)
    return unique


def has_co_leadership(leaders: Sequence[LeaderCandidate]) -> bool:
    """True when two or more candidates share the best priority present."""
    if not leaders:
        return False
    best = min(leader.priority for leader in leaders)
    return sum(1 for leader in leaders if leader.priority == best) > 1


@dataclass
class ShiftOwnership:
    """Who ran a shift, derived from the staff on duty."""

    leaders: list[LeaderCandidate]
    team_members: list[AttendanceRecord] = field(default_factory=list)

    @property
    def multiple_leaders_on_duty(self) -> bool:
        return has_co_leadership(self.leaders)

    @property
    def no_leader_on_duty(self) -> bool:
        return not self.leaders


def determine_shift_ownership(
    on_duty: Sequence[AttendanceRecord],
    identities: Sequence[Identity],
) -> ShiftOwnership:
    """Split on-duty staff into leaders and team members."""
    leaders = detect_leaders(on_duty, identities)
    leader_ids = {leader.employee_id for leader in leaders}
    return ShiftOwnership(
        leaders=leaders,
        team_members=[record for record in on_duty if record.employee_id not in leader_ids],
    )
