"""
Domain Services - application layer.

Services contain the business rules and orchestrate repositories; routers
only translate HTTP into service calls.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    service = OrderService(db)
    order, created = service.create(OrderCreate(...))
"""

from .order_service import OrderService, get_order_service
from .report_service import ReportService
from .withdrawal_service import MenuService, WithdrawalService

__all__ = [
    "OrderService",
    "get_order_service",
    "ReportService",
    "MenuService",
    "WithdrawalService",
]
