"""
Wiring of the station components.

StationRuntime owns the remote client, the local mirror, the offline write
buffer, the materialized views and their background refreshers, and
connects the order feed to the views.
"""

from __future__ import annotations

from typing import Callable

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.events import Event
from shared.utils.order_lifecycle import now_ms
from station.event_feed import EventFeed
from station.kitchen_view import KitchenQueueView
from station.ledger_view import LedgerView
from station.local_mirror import LocalOrderMirror
from station.offline_buffer import OfflineWriteBuffer
from station.order_api import OrderApiClient
from station.poller import PeriodicRefresher
from station.store import LastKnownLedgerSource

logger = get_logger(__name__)


class StationRuntime:
    def __init__(
        self,
        client: OrderApiClient | None = None,
        mirror: LocalOrderMirror | None = None,
        feed: EventFeed | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.client = client or OrderApiClient()
        self.mirror = mirror or LocalOrderMirror()
        self.buffer = OfflineWriteBuffer(self.client, self.mirror, clock=clock)
        self.ledger_source = LastKnownLedgerSource(self.client)
        self.kitchen = KitchenQueueView(self.buffer, menu_source=self.ledger_source, clock=clock)
        self.ledger = LedgerView(self.buffer, self.ledger_source, clock=clock)
        self.feed = feed or EventFeed()
        self._unsubscribe: Callable[[], None] | None = None

        self.refreshers = [
            PeriodicRefresher("kitchen", settings.kitchen_poll_interval_seconds, self.kitchen.rebuild),
            PeriodicRefresher("ledger", settings.ledger_poll_interval_seconds, self.ledger.recompute),
            PeriodicRefresher("clock", settings.clock_tick_seconds, self._tick, run_immediately=False),
        ]

    # =========================================================================
    # Feed handlers
    # =========================================================================

    async def on_order_changed(self, event: Event) -> None:
        await self.kitchen.refresh_order(event.order_id)
        await self.ledger.recompute()

    async def on_order_deleted(self, event: Event) -> None:
        self.kitchen.remove_order(event.order_id)
        self.mirror.delete_order(event.order_id)
        await self.ledger.recompute()

    async def _tick(self) -> None:
        if self.ledger.needs_rollover():
            logger.info("Business window rolled over, recomputing ledger")
            await self.ledger.recompute()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        self._unsubscribe = self.feed.subscribe(
            on_order_created=self.on_order_changed,
            on_order_updated=self.on_order_changed,
            on_online_order_created=self.on_order_changed,
            on_online_order_confirmed=self.on_order_changed,
            on_order_deleted=self.on_order_deleted,
        )
        await self.feed.start()
        for refresher in self.refreshers:
            await refresher.start()
        logger.info("Station runtime started", order_api=self.client.base_url, mode=self.buffer.status.mode)

    async def stop(self) -> None:
        for refresher in self.refreshers:
            await refresher.stop()
        await self.feed.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.client.close()
        self.mirror.close()
        logger.info("Station runtime stopped")
