"""Shift leader engine services."""

from shiftlead.services.attribution_store import AttributionStore, SaveSummary
from shiftlead.services.roster_service import LeaderRosterService, RosterLeader
from shiftlead.services.sync_service import (
    SyncResult,
    SyncService,
    ToastServices,
    build_toast_services,
)

__all__ = [
    "AttributionStore",
    "LeaderRosterService",
    "RosterLeader",
    "SaveSummary",
    "SyncResult",
    "SyncService",
    "ToastServices",
    "build_toast_services",
]
