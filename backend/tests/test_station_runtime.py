"""
Tests for the station's ledger view and the feed handlers that keep the
views current.
"""

import asyncio
from decimal import Decimal

import pytest

from shared.infrastructure.events import ORDER_DELETED, ORDER_UPDATED, Event
from shared.utils.schemas import MenuItemOutput, WithdrawalOutput
from station.event_feed import EventFeed
from station.kitchen_view import KitchenQueueView
from station.ledger_view import LedgerView
from station.local_mirror import LocalOrderMirror
from station.offline_buffer import OfflineWriteBuffer
from station.poller import PeriodicRefresher
from station.runtime import StationRuntime
from station.store import LastKnownLedgerSource
from tests.conftest import manila_ms, order_create
from tests.fakes import FakeOrderStore

MENU = [
    MenuItemOutput(id="m1", name="Latte", price=Decimal("120.00"), category="Coffee", owner="john"),
    MenuItemOutput(id="m2", name="Pancit", price=Decimal("180.00"), category="Noodles", owner="elwin"),
]

SAT_10AM = manila_ms(2026, 3, 14, 10)


@pytest.fixture
def store():
    return FakeOrderStore(menu_items=MENU)


@pytest.fixture
def mirror(tmp_path):
    mirror = LocalOrderMirror(f"sqlite:///{tmp_path / 'mirror.db'}")
    yield mirror
    mirror.close()


class TestLedgerView:
    @pytest.mark.asyncio
    async def test_recompute_counts_paid_orders_in_window(self, store):
        await store.create(order_create(id="ord-a", created_at=SAT_10AM))
        await store.toggle_payment("ord-a", paid=True, method="cash")
        await store.create(order_create(id="ord-b", created_at=SAT_10AM + 1))
        store.withdrawals.append(
            WithdrawalOutput(
                id="w1", type="withdrawal", amount=Decimal("80.00"), charged_to="john",
                description="change float", created_at=SAT_10AM + 2,
            )
        )
        view = LedgerView(store, store, clock=lambda: SAT_10AM + 3)

        daily, monthly = await view.recompute()

        assert daily.window.label == "2026-03-14"
        assert monthly.window.label == "2026-03"
        assert daily.order_count == 1
        assert daily.total_cash == Decimal("480.00")
        assert daily.net_sales == Decimal("400.00")
        assert daily.sales_by_owner["elwin"] == Decimal("360.00")

    @pytest.mark.asyncio
    async def test_rollover_detection(self, store):
        view = LedgerView(store, store, clock=lambda: SAT_10AM)
        assert view.needs_rollover() is True

        await view.recompute()

        assert view.needs_rollover(manila_ms(2026, 3, 15, 0, 30)) is False
        assert view.needs_rollover(manila_ms(2026, 3, 15, 8)) is True

    @pytest.mark.asyncio
    async def test_summary_for_past_day(self, store):
        await store.create(order_create(id="ord-a", created_at=manila_ms(2026, 3, 13, 20)))
        await store.toggle_payment("ord-a", paid=True, method="gcash")
        view = LedgerView(store, store, clock=lambda: SAT_10AM)

        summary = await view.summary_for_day("2026-03-13")

        assert summary.total_gcash == Decimal("480.00")


class TestFeedHandlers:
    @pytest.fixture
    def runtime(self, store, mirror):
        return StationRuntime(client=store, mirror=mirror, feed=EventFeed(), clock=lambda: SAT_10AM)

    @pytest.mark.asyncio
    async def test_update_event_refreshes_views(self, runtime, store):
        await runtime.kitchen.rebuild()
        await store.create(order_create(id="ord-a", created_at=SAT_10AM))
        await store.toggle_payment("ord-a", paid=True, method="cash")

        await runtime.on_order_changed(Event(type=ORDER_UPDATED, order_id="ord-a"))

        assert {g.name for g in runtime.kitchen.snapshot().groups} == {"Latte", "Pancit"}
        assert runtime.ledger.daily.total_cash == Decimal("480.00")

    @pytest.mark.asyncio
    async def test_delete_event_drops_order_everywhere(self, runtime, store, mirror):
        await runtime.buffer.create(order_create(id="ord-a", created_at=SAT_10AM))
        await runtime.kitchen.rebuild()
        await store.delete("ord-a")

        await runtime.on_order_deleted(Event(type=ORDER_DELETED, order_id="ord-a"))

        assert runtime.kitchen.snapshot().groups == []
        assert mirror.get_order("ord-a") is None
        assert runtime.ledger.daily.order_count == 0

    @pytest.mark.asyncio
    async def test_feed_dispatch_reaches_handlers(self, runtime, store):
        runtime.feed.subscribe(on_order_updated=runtime.on_order_changed)
        await store.create(order_create(id="ord-a", created_at=SAT_10AM))

        await runtime.feed.dispatch(Event(type=ORDER_UPDATED, order_id="ord-a").to_json())

        assert runtime.kitchen.snapshot().groups


class TestDegradedRefresh:
    @pytest.mark.asyncio
    async def test_ledger_recomputes_from_mirror_while_unreachable(self, store, mirror):
        buffer = OfflineWriteBuffer(store, mirror, clock=lambda: SAT_10AM)
        store.withdrawals.append(
            WithdrawalOutput(
                id="w1", type="withdrawal", amount=Decimal("80.00"), charged_to="john",
                description="change float", created_at=SAT_10AM + 2,
            )
        )
        view = LedgerView(buffer, LastKnownLedgerSource(store), clock=lambda: SAT_10AM + 3)
        await buffer.create(order_create(id="ord-a", created_at=SAT_10AM))
        await view.recompute()

        store.reachable = False
        await buffer.toggle_payment("ord-a", method="cash")
        assert buffer.status.mode == "degraded"

        daily, _ = await view.recompute()

        assert daily.order_count == 1
        assert daily.total_cash == Decimal("480.00")
        assert daily.net_sales == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_kitchen_rebuild_keeps_categories_while_unreachable(self, store, mirror):
        buffer = OfflineWriteBuffer(store, mirror, clock=lambda: SAT_10AM)
        view = KitchenQueueView(buffer, menu_source=LastKnownLedgerSource(store), clock=lambda: SAT_10AM)
        await buffer.create(order_create(id="ord-a", created_at=SAT_10AM))
        await view.rebuild()

        store.reachable = False
        await buffer.create(order_create(id="ord-b", created_at=SAT_10AM + 1))
        await view.rebuild()

        groups = {g.name: g for g in view.snapshot().groups}
        assert groups["Latte"].total_quantity == 2
        assert groups["Latte"].station == "drinks"


class TestPeriodicRefresher:
    @pytest.mark.asyncio
    async def test_keeps_running_after_a_failing_pass(self):
        calls = []

        async def flaky():
            calls.append(len(calls))
            if len(calls) == 1:
                raise RuntimeError("store down")

        refresher = PeriodicRefresher("test", 0.01, flaky)
        await refresher.start()
        await asyncio.sleep(0.05)
        await refresher.stop()

        assert len(calls) >= 2
        assert refresher.running is False

    @pytest.mark.asyncio
    async def test_run_once_accepts_sync_callbacks(self):
        calls = []
        await PeriodicRefresher("sync", 60, lambda: calls.append(1)).run_once()
        assert calls == [1]
