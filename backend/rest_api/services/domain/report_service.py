"""
Report Domain Service.

Loads raw records for a window and hands them to the ledger aggregation.
Nothing computed here is persisted except the owner's sign-off
(DailyReportValidation), which stores who validated a day and when.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.order_lifecycle import now_ms
from shared.utils.report_schemas import DailyHistoryPage, ReportWindow, SalesSummary, ValidateDayRequest
from rest_api.models import DailyReportValidation
from rest_api.repositories import MenuItemRepository, OrderRepository, WithdrawalRepository
from rest_api.services.ledger import (
    BusinessDayWindow,
    CalendarMonthWindow,
    aggregate_sales,
)

logger = get_logger(__name__)


class ReportService:
    """Daily, daily-history and monthly sales summaries."""

    def __init__(
        self,
        db: Session,
        business_day: BusinessDayWindow | None = None,
        calendar_month: CalendarMonthWindow | None = None,
    ):
        self._db = db
        self._orders = OrderRepository(db)
        self._withdrawals = WithdrawalRepository(db)
        self._menu = MenuItemRepository(db)
        self.business_day = business_day or BusinessDayWindow()
        self.calendar_month = calendar_month or CalendarMonthWindow()

    def summarize(self, window: ReportWindow) -> SalesSummary:
        """Aggregate one window from freshly loaded records."""
        validation = None
        if window.kind == BusinessDayWindow.kind:
            validation = self._db.get(DailyReportValidation, window.label)

        return aggregate_sales(
            self._orders.find_in_window(window.start_ms, window.end_ms),
            self._withdrawals.find_all(window.start_ms, window.end_ms),
            self._menu.find_all(),
            window,
            validation,
        )

    def daily_summary(self, business_date: str | None = None, at_ms: int | None = None) -> SalesSummary:
        """The business day named by business_date, or the one current at at_ms (default now)."""
        if business_date is not None:
            window = self.business_day.for_label(business_date)
        else:
            window = self.business_day.resolve(at_ms if at_ms is not None else now_ms())
        return self.summarize(window)

    def monthly_summary(self, year: int | None = None, month: int | None = None, at_ms: int | None = None) -> SalesSummary:
        if year is not None and month is not None:
            window = self.calendar_month.for_month(year, month)
        else:
            window = self.calendar_month.resolve(at_ms if at_ms is not None else now_ms())
        return self.summarize(window)

    def daily_history(self, page: int = 1, page_size: int = 10) -> DailyHistoryPage:
        """
        Business days that had orders or withdrawals, newest first.

        Days are discovered from raw timestamps; records between the end of
        one business day and the start of the next belong to no day.
        """
        labels: set[str] = set()
        for ts in [*self._orders.created_at_values(), *self._withdrawals.created_at_values()]:
            window = self.business_day.window_of(ts)
            if window is not None:
                labels.add(window.label)

        ordered = sorted(labels, reverse=True)
        offset = (page - 1) * page_size
        items = [self.summarize(self.business_day.for_label(label)) for label in ordered[offset:offset + page_size]]

        return DailyHistoryPage(items=items, page=page, page_size=page_size, total=len(ordered))

    def validate_day(self, data: ValidateDayRequest, at_ms: int | None = None) -> SalesSummary:
        """Record (or refresh) an owner's sign-off on one business day."""
        window = self.business_day.for_label(data.business_date)

        validation = self._db.scalar(
            select(DailyReportValidation).where(DailyReportValidation.business_date == window.label)
        )
        if validation is None:
            validation = DailyReportValidation(business_date=window.label)
            self._db.add(validation)
        validation.validated_at = at_ms if at_ms is not None else now_ms()
        validation.validated_by_name = data.validated_by_name
        validation.validated_by_email = data.validated_by_email
        safe_commit(self._db)

        logger.info("Daily report validated", business_date=window.label, validated_by=data.validated_by_name)
        return self.summarize(window)
