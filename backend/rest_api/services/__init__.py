"""
Services module for business logic.

- domain/: application services used by the routers
- kitchen/: batch aggregation of open items into kitchen groups
- ledger/: report windows and the shared sales aggregation

Usage:
    from rest_api.services.domain import OrderService
    service = OrderService(db)
"""

from .domain import MenuService, OrderService, ReportService, WithdrawalService

__all__ = [
    "MenuService",
    "OrderService",
    "ReportService",
    "WithdrawalService",
]
