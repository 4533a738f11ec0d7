"""Attribution, scoring and leaderboard calculators."""

from shiftlead.calculators.attribution import AttributionResult, OrderAttributionEngine
from shiftlead.calculators.leader_detector import classify_title, detect_leaders
from shiftlead.calculators.leaderboard import LeaderboardAggregator, build_leaderboard
from shiftlead.calculators.name_matching import match_identity
from shiftlead.calculators.shift_scoring import score_shift

__all__ = [
    "AttributionResult",
    "LeaderboardAggregator",
    "OrderAttributionEngine",
    "build_leaderboard",
    "classify_title",
    "detect_leaders",
    "match_identity",
    "score_shift",
]
