"""
Station-side sales summaries, recomputed from the order store.

The station keeps the current business day and calendar month in memory.
Both are recomputed in full from raw orders and withdrawals on every
refresh, so there is no incremental state to drift.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from shared.config.logging import get_logger
from shared.utils.order_lifecycle import now_ms
from shared.utils.report_schemas import SalesSummary
from rest_api.services.ledger import BusinessDayWindow, CalendarMonthWindow, aggregate_sales
from station.store import LedgerSource, OrderStore

logger = get_logger(__name__)


class LedgerView:
    def __init__(
        self,
        store: OrderStore,
        source: LedgerSource,
        business_day: BusinessDayWindow | None = None,
        calendar_month: CalendarMonthWindow | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self._source = source
        self._business_day = business_day or BusinessDayWindow()
        self._calendar_month = calendar_month or CalendarMonthWindow()
        self._clock = clock
        self._lock = asyncio.Lock()
        self.daily: SalesSummary | None = None
        self.monthly: SalesSummary | None = None

    async def recompute(self, at_ms: int | None = None) -> tuple[SalesSummary, SalesSummary]:
        """Rebuild the current day and month summaries as of at_ms."""
        now = self._clock() if at_ms is None else at_ms
        day_window = self._business_day.resolve(now)
        month_window = self._calendar_month.resolve(now)

        async with self._lock:
            orders = await self._store.get_all()
            # One fetch covers both; a business day can start in the previous month
            start = min(day_window.start_ms, month_window.start_ms)
            end = max(day_window.end_ms, month_window.end_ms)
            withdrawals = await self._source.list_withdrawals(start, end)
            menu_items = await self._source.list_menu_items()

            self.daily = aggregate_sales(orders, withdrawals, menu_items, day_window)
            self.monthly = aggregate_sales(orders, withdrawals, menu_items, month_window)

        logger.debug(
            "Ledger recomputed",
            business_day=day_window.label,
            month=month_window.label,
            daily_sales=str(self.daily.total_sales),
        )
        return self.daily, self.monthly

    async def summary_for_day(self, label: str) -> SalesSummary:
        """Summary of a past or current business day, e.g. '2026-03-14'."""
        window = self._business_day.for_label(label)
        orders = await self._store.get_all()
        withdrawals = await self._source.list_withdrawals(window.start_ms, window.end_ms)
        menu_items = await self._source.list_menu_items()
        return aggregate_sales(orders, withdrawals, menu_items, window)

    def needs_rollover(self, at_ms: int | None = None) -> bool:
        """True when the clock has moved into a different business day or month."""
        if self.daily is None or self.monthly is None:
            return True
        now = self._clock() if at_ms is None else at_ms
        return (
            self._business_day.resolve(now).label != self.daily.window.label
            or self._calendar_month.resolve(now).label != self.monthly.window.label
        )
