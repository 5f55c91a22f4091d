"""
SQLAlchemy ORM Models Package.

- base: Base class and RowStampMixin
- order: Order, OrderItem, AppendedOrder, AppendedOrderItem, OrderNote
- ledger: Withdrawal, MenuItem, DailyReportValidation
"""

from .base import Base, RowStampMixin

from .order import (
    Order,
    OrderItem,
    AppendedOrder,
    AppendedOrderItem,
    OrderNote,
)

from .ledger import Withdrawal, MenuItem, DailyReportValidation

__all__ = [
    "Base",
    "RowStampMixin",
    "Order",
    "OrderItem",
    "AppendedOrder",
    "AppendedOrderItem",
    "OrderNote",
    "Withdrawal",
    "MenuItem",
    "DailyReportValidation",
]
