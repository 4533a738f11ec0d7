"""Leadership roster endpoint."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from shiftlead.api.dependencies import AppSettings, Toast
from shiftlead.api.schemas import ErrorResponse, RosterLeaderResponse, RosterResponse
from shiftlead.services.roster_service import (
    DEFAULT_LOOKBACK_DAYS,
    MAX_LOOKBACK_DAYS,
    LeaderRosterService,
)

router = APIRouter(prefix="/locations/{location}", tags=["roster"])


@router.get(
    "/leaders",
    response_model=RosterResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def list_leaders(
    settings: AppSettings,
    toast: Toast,
    location: Annotated[str, Path(min_length=1)],
    days: Annotated[int, Query(ge=1, le=MAX_LOOKBACK_DAYS)] = DEFAULT_LOOKBACK_DAYS,
) -> RosterResponse:
    """Employees who worked a leadership title at the location recently."""
    location_id = settings.restaurant_guid(location)
    if location_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown location '{location}'",
        )

    now = datetime.now(settings.store_tz)
    service = LeaderRosterService(toast.labor, toast.orders.config)
    leaders = await service.discover(location_id, lookback_days=days, today=now.date())
    return RosterResponse(
        location=location.strip().lower(),
        lookback_days=days,
        generated_at=now,
        leaders=[RosterLeaderResponse.model_validate(leader) for leader in leaders],
    )
