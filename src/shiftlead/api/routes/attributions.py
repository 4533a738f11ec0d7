"""Attribution sync and leaderboard endpoints."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from shiftlead.api.dependencies import AppSettings, DbSession, Toast
from shiftlead.api.schemas import (
    AttributedOrderListResponse,
    AttributedOrderResponse,
    ErrorResponse,
    LeaderboardEntryResponse,
    LeaderboardRequest,
    LeaderboardResponse,
    SyncRequest,
    SyncResponse,
)
from shiftlead.calculators.attribution import OrderAttributionEngine
from shiftlead.calculators.leaderboard import build_leaderboard, window_start_of_day
from shiftlead.services.attribution_store import AttributionStore
from shiftlead.services.sync_service import SyncService

router = APIRouter(prefix="/stores/{store_id}", tags=["attributions"])

StoreId = Annotated[str, Path(min_length=1)]


# ============================================================================
# Attribution sync
# ============================================================================


@router.post(
    "/attributions/sync",
    response_model=SyncResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def sync_attributions(
    db: DbSession,
    settings: AppSettings,
    toast: Toast,
    store_id: StoreId,
    payload: SyncRequest,
) -> SyncResponse:
    """Fetch orders for the range, attribute them and persist the result."""
    location_id = settings.restaurant_guid(payload.location)
    if location_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown location '{payload.location}'",
        )

    service = SyncService(
        orders=toast.orders,
        engine=OrderAttributionEngine(toast.labor, toast.orders.config),
        store=AttributionStore(db),
    )
    result = await service.sync(
        location_id,
        store_id,
        payload.start_date,
        payload.end_date,
        [identity.to_domain() for identity in payload.identities],
    )
    await db.commit()

    attribution = result.attribution
    return SyncResponse(
        store_id=store_id,
        transaction_count=attribution.transaction_count,
        attributed_count=attribution.attributed_count,
        unattributed_count=len(attribution.unattributed_order_ids),
        skipped_dates={day: reason.value for day, reason in attribution.skipped_dates.items()},
        created=result.saved.created,
        updated=result.saved.updated,
        unchanged=result.saved.unchanged,
        orders=[AttributedOrderResponse.model_validate(order) for order in attribution.orders],
    )


@router.get("/attributions", response_model=AttributedOrderListResponse)
async def list_attributions(
    db: DbSession,
    store_id: StoreId,
    since: Annotated[datetime | None, Query()] = None,
) -> AttributedOrderListResponse:
    """List persisted attributions for a store."""
    orders = await AttributionStore(db).list_for_store(store_id, since=since)
    return AttributedOrderListResponse(
        items=[AttributedOrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )


# ============================================================================
# Leaderboard
# ============================================================================


@router.post("/leaderboard", response_model=LeaderboardResponse)
async def calculate_leaderboard(
    db: DbSession,
    settings: AppSettings,
    store_id: StoreId,
    payload: LeaderboardRequest,
) -> LeaderboardResponse:
    """Rank the store's leaders over the lookback window."""
    now = datetime.now(timezone.utc)
    store_tz = settings.store_tz
    orders = await AttributionStore(db).list_for_store(
        store_id, since=window_start_of_day(now, payload.lookback_days, store_tz)
    )
    entries = build_leaderboard(
        submissions=[s.to_domain() for s in payload.submissions],
        templates=[t.to_domain() for t in payload.templates],
        identities=[i.to_domain() for i in payload.identities],
        lookback_days=payload.lookback_days,
        reviews=[r.to_domain() for r in payload.reviews],
        attributed_orders=orders,
        now=now,
        store_tz=store_tz,
    )
    return LeaderboardResponse(
        store_id=store_id,
        lookback_days=payload.lookback_days,
        generated_at=now,
        entries=[LeaderboardEntryResponse.model_validate(entry) for entry in entries],
    )
