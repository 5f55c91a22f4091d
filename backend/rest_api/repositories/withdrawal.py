"""
Withdrawal and MenuItem Repositories.
"""

from typing import Sequence
from sqlalchemy.orm import Session
from sqlalchemy import select

from rest_api.models import MenuItem, Withdrawal
from .base import BaseRepository


class WithdrawalRepository(BaseRepository[Withdrawal]):
    model = Withdrawal

    def find_all(self, start_ms: int | None = None, end_ms: int | None = None) -> Sequence[Withdrawal]:
        """All withdrawals, newest first, optionally limited to [start_ms, end_ms)."""
        query = self._base_query()
        if start_ms is not None:
            query = query.where(Withdrawal.created_at >= start_ms)
        if end_ms is not None:
            query = query.where(Withdrawal.created_at < end_ms)
        return self._db.execute(query.order_by(Withdrawal.created_at.desc())).scalars().all()

    def created_at_values(self) -> Sequence[int]:
        return self._db.execute(select(Withdrawal.created_at)).scalars().all()


class MenuItemRepository(BaseRepository[MenuItem]):
    model = MenuItem

    def find_all(self) -> Sequence[MenuItem]:
        return self._db.execute(self._base_query().order_by(MenuItem.category, MenuItem.name)).scalars().all()


def get_withdrawal_repository(db: Session) -> WithdrawalRepository:
    return WithdrawalRepository(db)


def get_menu_item_repository(db: Session) -> MenuItemRepository:
    return MenuItemRepository(db)
