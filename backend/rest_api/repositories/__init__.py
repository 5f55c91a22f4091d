"""
Repository Pattern implementation.
Centralizes data access with guaranteed eager loading.

Usage:
    from rest_api.repositories import get_order_repository

    repo = get_order_repository(db)
    orders = repo.find_all(OrderFilter(is_paid=False))
    order = repo.find_by_id("ord-123")
"""

from .base import BaseRepository
from .order import OrderRepository, get_order_repository
from .withdrawal import (
    WithdrawalRepository,
    MenuItemRepository,
    get_withdrawal_repository,
    get_menu_item_repository,
)

__all__ = [
    # Base
    "BaseRepository",
    # Orders
    "OrderRepository",
    "get_order_repository",
    # Withdrawals and menu
    "WithdrawalRepository",
    "MenuItemRepository",
    "get_withdrawal_repository",
    "get_menu_item_repository",
]
