"""Shift leader engine.

Attributes point-of-sale orders to the leader on duty when each order opened
and ranks leaders by shift performance.
"""

from shiftlead.calculators.attribution import AttributionResult, OrderAttributionEngine
from shiftlead.calculators.leader_detector import detect_leaders
from shiftlead.calculators.leaderboard import build_leaderboard
from shiftlead.calculators.shift_scoring import score_shift
from shiftlead.calculators.types import (
    AttributedOrder,
    ChecklistSubmission,
    ChecklistTemplate,
    Identity,
    LeaderboardEntry,
    LeaderCandidate,
    Review,
    ShiftScore,
    UserRole,
)
from shiftlead.services.sync_service import SyncService

__version__ = "0.1.0"

# Exposed contract name for leaderboard consumers
calculate_leaderboard = build_leaderboard

__all__ = [
    "AttributedOrder",
    "AttributionResult",
    "ChecklistSubmission",
    "ChecklistTemplate",
    "Identity",
    "LeaderCandidate",
    "LeaderboardEntry",
    "OrderAttributionEngine",
    "Review",
    "ShiftScore",
    "SyncService",
    "UserRole",
    "__version__",
    "build_leaderboard",
    "calculate_leaderboard",
    "detect_leaders",
    "score_shift",
]
