"""Order attribution sync - fetch, attribute, persist."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import httpx

from shiftlead.calculators.attribution import AttributionResult, OrderAttributionEngine
from shiftlead.calculators.types import AttributedOrder, Identity
from shiftlead.config import AttributionConfig, Settings
from shiftlead.pos.auth import TokenCache, ToastAuthenticator
from shiftlead.pos.client import ToastClient
from shiftlead.pos.labor import LaborFetcher
from shiftlead.pos.orders import OrderFetcher
from shiftlead.services.attribution_store import AttributionStore, SaveSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToastServices:
    """The point-of-sale collaborators for one process."""

    client: ToastClient
    orders: OrderFetcher
    labor: LaborFetcher


def build_toast_services(
    settings: Settings,
    http: httpx.AsyncClient,
    config: AttributionConfig | None = None,
) -> ToastServices:
    """Wire the token cache, client and fetchers together."""
    config = config or AttributionConfig()
    authenticator = ToastAuthenticator(
        http,
        client_id=settings.toast_client_id,
        client_secret=settings.toast_client_secret,
        base_url=settings.toast_api_base,
    )
    tokens = TokenCache(authenticator.exchange, ttl=timedelta(hours=config.token_ttl_hours))
    client = ToastClient(http, tokens, settings.toast_api_base)
    return ToastServices(
        client=client,
        orders=OrderFetcher(client, config),
        labor=LaborFetcher(client),
    )


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    attribution: AttributionResult
    saved: SaveSummary

    @property
    def orders(self) -> list[AttributedOrder]:
        return self.attribution.orders


class SyncService:
    """Synchronizes order attributions for a store.

    An order fetch failure aborts the sync and propagates. Per-date labor
    failures only skip that date.
    """

    def __init__(
        self,
        orders: OrderFetcher,
        engine: OrderAttributionEngine,
        store: AttributionStore | None = None,
    ):
        self.orders = orders
        self.engine = engine
        self.store = store

    async def sync(
        self,
        location_id: str,
        store_id: str,
        start_date: date,
        end_date: date,
        identities: Sequence[Identity],
        now: datetime | None = None,
    ) -> SyncResult:
        if end_date < start_date:
            raise ValueError(f"end_date {end_date} is before start_date {start_date}")

        logger.info(
            "Starting attribution sync for store %s: %s to %s",
            store_id,
            start_date,
            end_date,
        )
        transactions = await self.orders.fetch_closed_orders(location_id, start_date, end_date)
        if not transactions:
            logger.info("No orders found for store %s", store_id)

        attribution = await self.engine.attribute(
            location_id, transactions, store_id, identities, now=now
        )

        saved = SaveSummary()
        if self.store is not None:
            saved = await self.store.save_all(attribution.orders)
        return SyncResult(attribution=attribution, saved=saved)

    async def sync_order_attributions(
        self,
        location_id: str,
        store_id: str,
        start_date: date,
        end_date: date,
        identities: Sequence[Identity],
    ) -> list[AttributedOrder]:
        """Push-on-demand sync; returns the attributed orders."""
        result = await self.sync(location_id, store_id, start_date, end_date, identities)
        return result.orders
