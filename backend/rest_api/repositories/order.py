"""
Order Repository - Data access for orders.
Eager loading of items, appended waves, and notes prevents N+1 queries
when orders are serialized into full snapshots.
"""

from typing import Sequence
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import Select, func, or_, select

from rest_api.models import AppendedOrder, AppendedOrderItem, Order, OrderItem
from shared.config.constants import ItemStatus
from shared.utils.schemas import OrderFilter
from shared.utils.validators import escape_like_pattern, sanitize_search_term
from .base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """
    Repository for Order aggregates.

    Guarantees eager loading of:
    - items
    - appended_orders -> items
    - notes
    """

    model = Order

    def _base_query(self) -> Select:
        return (
            select(Order)
            .options(selectinload(Order.items))
            .options(selectinload(Order.appended_orders).selectinload(AppendedOrder.items))
            .options(selectinload(Order.notes))
        )

    def find_all(self, filters: OrderFilter | None = None) -> Sequence[Order]:
        filters = filters or OrderFilter()
        query = self._apply_filters(self._base_query(), filters)

        sort_column = {
            "created_at": Order.created_at,
            "customer_name": Order.customer_name,
            "order_number": Order.order_number,
        }[filters.sort_by]
        query = query.order_by(sort_column.asc() if filters.sort_order == "asc" else sort_column.desc())

        if filters.limit:
            query = query.limit(filters.limit)

        return self._db.execute(query).scalars().unique().all()

    def _apply_filters(self, query: Select, filters: OrderFilter) -> Select:
        if filters.is_paid is not None:
            query = query.where(Order.is_paid.is_(filters.is_paid))

        if filters.source:
            query = query.where(Order.source == filters.source)

        if filters.branch_id:
            query = query.where(Order.branch_id == filters.branch_id)

        term = sanitize_search_term(filters.customer_name)
        if term:
            pattern = f"%{escape_like_pattern(term.lower())}%"
            query = query.where(func.lower(Order.customer_name).like(pattern, escape="\\"))

        if filters.status:
            query = query.where(self._has_item_in_status(filters.status))

        return query

    @staticmethod
    def _has_item_in_status(*statuses: str):
        """Correlated EXISTS: a main or appended item in one of the statuses."""
        main_item = (
            select(OrderItem.pk)
            .where(OrderItem.order_id == Order.id, OrderItem.status.in_(statuses))
            .exists()
        )
        appended_item = (
            select(AppendedOrderItem.pk)
            .join(AppendedOrder, AppendedOrder.id == AppendedOrderItem.appended_id)
            .where(AppendedOrder.order_id == Order.id, AppendedOrderItem.status.in_(statuses))
            .exists()
        )
        return or_(main_item, appended_item)

    def find_by_idempotency_key(self, key: str) -> Order | None:
        return self._db.scalar(self._base_query().where(Order.idempotency_key == key))

    def find_in_window(self, start_ms: int, end_ms: int) -> Sequence[Order]:
        """Orders created in [start_ms, end_ms)."""
        query = (
            self._base_query()
            .where(Order.created_at >= start_ms, Order.created_at < end_ms)
            .order_by(Order.created_at.asc())
        )
        return self._db.execute(query).scalars().unique().all()

    def find_with_open_items(self) -> Sequence[Order]:
        """Orders with at least one non-served item (main or appended)."""
        query = (
            self._base_query()
            .where(self._has_item_in_status(*ItemStatus.OPEN))
            .order_by(Order.created_at.asc())
        )
        return self._db.execute(query).scalars().unique().all()

    def next_order_number(self) -> int:
        current = self._db.scalar(select(func.max(Order.order_number)))
        return (current or 0) + 1

    def created_at_values(self) -> Sequence[int]:
        """Every order creation time; used to discover days with activity."""
        return self._db.execute(select(Order.created_at)).scalars().all()


def get_order_repository(db: Session) -> OrderRepository:
    return OrderRepository(db)
