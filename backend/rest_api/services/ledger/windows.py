"""
Report windows in venue-local time.

A window is the half-open range [start_ms, end_ms) of epoch milliseconds.
Strategies turn "now" or a label into a window; the aggregation never
knows which strategy produced it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta

import pytz

from shared.config.settings import settings
from shared.utils.exceptions import ValidationError
from shared.utils.report_schemas import ReportWindow


def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def from_ms(ms: int, tz: pytz.BaseTzInfo) -> datetime:
    """Aware local datetime for an epoch-ms instant."""
    return datetime.fromtimestamp(ms / 1000, tz=pytz.utc).astimezone(tz)


def parse_date(label: str) -> date:
    try:
        return date.fromisoformat(label)
    except ValueError:
        raise ValidationError(f"Invalid date '{label}', expected YYYY-MM-DD", field="date")


class WindowStrategy(ABC):
    """Resolves report windows in one venue time zone."""

    kind: str = ""

    def __init__(self, timezone: str | None = None):
        self.timezone = timezone or settings.venue_timezone
        self._tz = pytz.timezone(self.timezone)

    def _local(self, year: int, month: int, day: int, hour: int = 0) -> datetime:
        return self._tz.localize(datetime(year, month, day, hour))

    def _window(self, label: str, start: datetime, end: datetime) -> ReportWindow:
        return ReportWindow(
            kind=self.kind,
            label=label,
            start_ms=to_ms(start),
            end_ms=to_ms(end),
            timezone=self.timezone,
        )

    @abstractmethod
    def resolve(self, now_ms: int) -> ReportWindow:
        """The window reported for the instant now_ms."""

    @abstractmethod
    def for_label(self, label: str) -> ReportWindow:
        """The window named by label (its date or month)."""

    @abstractmethod
    def window_of(self, ts_ms: int) -> ReportWindow | None:
        """The window containing ts_ms, or None if it falls in no window."""


class BusinessDayWindow(WindowStrategy):
    """
    [start_hour local, next day end_hour local), 08:00 to 01:00 by default.

    Before start_hour the current business day is still yesterday's, so at
    00:30 and at 07:00 the window is [yesterday 08:00, today 01:00). Instants
    between end_hour and start_hour belong to no business day.
    """

    kind = "business_day"

    def __init__(
        self,
        timezone: str | None = None,
        start_hour: int | None = None,
        end_hour: int | None = None,
    ):
        super().__init__(timezone)
        self.start_hour = settings.business_day_start_hour if start_hour is None else start_hour
        self.end_hour = settings.business_day_end_hour if end_hour is None else end_hour

    def for_date(self, day: date) -> ReportWindow:
        """Business day that starts on the given local date."""
        start = self._local(day.year, day.month, day.day, self.start_hour)
        following = day + timedelta(days=1)
        end = self._local(following.year, following.month, following.day, self.end_hour)
        return self._window(day.isoformat(), start, end)

    def business_date(self, ts_ms: int) -> date:
        local = from_ms(ts_ms, self._tz)
        if local.hour < self.start_hour:
            return local.date() - timedelta(days=1)
        return local.date()

    def resolve(self, now_ms: int) -> ReportWindow:
        return self.for_date(self.business_date(now_ms))

    def for_label(self, label: str) -> ReportWindow:
        return self.for_date(parse_date(label))

    def window_of(self, ts_ms: int) -> ReportWindow | None:
        window = self.resolve(ts_ms)
        if window.start_ms <= ts_ms < window.end_ms:
            return window
        return None


class CalendarMonthWindow(WindowStrategy):
    """[1st 00:00 local, 1st of next month 00:00 local)."""

    kind = "calendar_month"

    def for_month(self, year: int, month: int) -> ReportWindow:
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month {month}", field="month")
        start = self._local(year, month, 1)
        if month == 12:
            end = self._local(year + 1, 1, 1)
        else:
            end = self._local(year, month + 1, 1)
        return self._window(f"{year:04d}-{month:02d}", start, end)

    def resolve(self, now_ms: int) -> ReportWindow:
        local = from_ms(now_ms, self._tz)
        return self.for_month(local.year, local.month)

    def for_label(self, label: str) -> ReportWindow:
        try:
            year, month = (int(part) for part in label.split("-"))
        except ValueError:
            raise ValidationError(f"Invalid month '{label}', expected YYYY-MM", field="month")
        return self.for_month(year, month)

    def window_of(self, ts_ms: int) -> ReportWindow | None:
        return self.resolve(ts_ms)
