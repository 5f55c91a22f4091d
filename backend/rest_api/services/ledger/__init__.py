"""
Business-day ledger: window strategies and the shared sales aggregation.
"""

from .windows import (
    BusinessDayWindow,
    CalendarMonthWindow,
    WindowStrategy,
    from_ms,
    to_ms,
)
from .aggregation import (
    aggregate_sales,
    in_window,
    is_completed,
    normalize_charged_to,
    payment_contribution,
)

__all__ = [
    "BusinessDayWindow",
    "CalendarMonthWindow",
    "WindowStrategy",
    "from_ms",
    "to_ms",
    "aggregate_sales",
    "in_window",
    "is_completed",
    "normalize_charged_to",
    "payment_contribution",
]
