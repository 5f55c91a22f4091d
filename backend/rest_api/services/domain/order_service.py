"""
Order Domain Service.

The authoritative order store: creation, appended waves, item status
transitions, payment toggles, notes, and the admin operations. Routers stay
thin and only translate HTTP into calls here; every rule about what a
mutation may do lives in shared.utils.order_lifecycle so the station's
offline mirror applies exactly the same rules.

Each mutation loads the order, changes only the addressed row (one item,
one wave, or the order's payment columns) and commits. SQLAlchemy emits
column-level UPDATEs, so two writers touching different parts of the same
order do not overwrite each other.
"""

from __future__ import annotations

import uuid
from typing import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.config.constants import ItemStatus, OnlinePaymentStatus, OrderSource
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils import order_lifecycle
from shared.utils.exceptions import (
    ConflictError,
    DuplicateOrderError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.order_lifecycle import Actor, now_ms
from shared.utils.validators import is_blank
from shared.utils.schemas import (
    AddNoteRequest,
    AppendItemsRequest,
    OrderCreate,
    OrderFilter,
    OrderItemInput,
    OrderUpdate,
)
from rest_api.models import AppendedOrder, AppendedOrderItem, Order, OrderItem, OrderNote
from rest_api.repositories import OrderRepository

logger = get_logger(__name__)


def _new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex}"


class OrderService:
    """
    Domain service for orders.

    Methods raise the AppException family (NotFound, Validation, Conflict),
    which FastAPI renders directly.
    """

    def __init__(self, db: Session):
        self._db = db
        self._repo = OrderRepository(db)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, order_id: str) -> Order:
        order = self._repo.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_all(self, filters: OrderFilter | None = None) -> Sequence[Order]:
        return self._repo.find_all(filters)

    def get_online_orders(self) -> Sequence[Order]:
        return self._repo.find_all(OrderFilter(source=OrderSource.ONLINE))

    def get_preparing_orders(self, branch_id: str | None = None) -> Sequence[Order]:
        """Orders with at least one item (main or appended) being prepared."""
        return self._repo.find_all(
            OrderFilter(status=ItemStatus.PREPARING, branch_id=branch_id, sort_order="asc")
        )

    # =========================================================================
    # Creation
    # =========================================================================

    def create(self, data: OrderCreate, idempotency_key: str | None = None) -> tuple[Order, bool]:
        """
        Create an order with all items pending and unpaid.

        Returns (order, created). A replay carrying an idempotency key that
        was already stored returns the stored order with created=False.

        Raises:
            ValidationError: blank customer name, no items, duplicate item ids
            DuplicateOrderError: an order with this id exists
        """
        if idempotency_key:
            existing = self._repo.find_by_idempotency_key(idempotency_key)
            if existing is not None:
                logger.info("Order create replayed", order_id=existing.id, idempotency_key=idempotency_key)
                return existing, False

        order_lifecycle.validate_new_order(data.customer_name, data.items)
        order_lifecycle.check_unique_item_ids(data.items)

        if self._repo.exists(data.id):
            raise DuplicateOrderError(data.id)

        order = Order(
            id=data.id,
            order_number=self._repo.next_order_number(),
            customer_name=data.customer_name.strip(),
            created_at=data.created_at if data.created_at is not None else now_ms(),
            order_type=data.order_type,
            source=data.source,
            online_code=data.online_code,
            online_payment_status=OnlinePaymentStatus.PENDING if data.source == OrderSource.ONLINE else None,
            branch_id=data.branch_id,
            order_taker_name=data.order_taker_name,
            order_taker_email=data.order_taker_email,
            idempotency_key=idempotency_key,
            is_paid=False,
        )
        order.items = [
            OrderItem(**self._item_columns(item, position, data.order_type))
            for position, item in enumerate(data.items)
        ]
        self._db.add(order)

        try:
            safe_commit(self._db)
        except IntegrityError as e:
            # Lost a race on id or order_number with a concurrent create
            raise ConflictError(f"Order {data.id} could not be created", order_id=data.id, error=str(e.orig))

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            source=order.source,
            items_count=len(order.items),
        )
        return order, True

    @staticmethod
    def _item_columns(item: OrderItemInput, position: int, default_type: str) -> dict:
        return {
            "id": item.id or _new_id("item-"),
            "position": position,
            "name": item.name.strip(),
            "price": item.price,
            "quantity": item.quantity,
            "status": ItemStatus.PENDING,
            "item_type": item.item_type or default_type,
            "note": item.note,
        }

    def append(self, order_id: str, data: AppendItemsRequest) -> tuple[Order, AppendedOrder]:
        """
        Add an independently payable wave of items to an existing order.

        A wave id that already exists on this order is treated as a replay
        and returns the stored wave unchanged.
        """
        order = self.get(order_id)
        order_lifecycle.validate_appended_items(data.items)
        order_lifecycle.check_unique_item_ids(data.items)

        created_at = data.created_at if data.created_at is not None else now_ms()
        wave_id = data.id or f"appended-{created_at}-{uuid.uuid4().hex[:8]}"

        for wave in order.appended_orders:
            if wave.id == wave_id:
                logger.info("Append replayed", order_id=order_id, appended_id=wave_id)
                return order, wave

        wave = AppendedOrder(id=wave_id, created_at=created_at, is_paid=False)
        wave.items = [
            AppendedOrderItem(**self._item_columns(item, position, order.order_type))
            for position, item in enumerate(data.items)
        ]
        order.appended_orders.append(wave)
        # A new pending wave reopens a fully served order
        order.all_items_served_at = None

        try:
            safe_commit(self._db)
        except IntegrityError as e:
            raise ConflictError(f"Appended order {wave_id} already exists", appended_id=wave_id, error=str(e.orig))

        logger.info("Items appended", order_id=order_id, appended_id=wave.id, items_count=len(wave.items))
        return order, wave

    # =========================================================================
    # Item status
    # =========================================================================

    def update_item_status(
        self,
        order_id: str,
        item_id: str,
        new_status: str,
        appended_id: str | None = None,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> tuple[Order, bool]:
        """
        Advance one item. Without appended_id the main items are searched
        first, then every appended wave.

        Returns (order, changed); re-entering the current state is a no-op.
        """
        order = self.get(order_id)
        item, wave = order_lifecycle.find_item(order, item_id, appended_id)

        previous = item.status
        changed = order_lifecycle.apply_status_transition(item, new_status, actor, at_ms)
        if not changed:
            return order, False

        order_lifecycle.stamp_all_served(order, at_ms)
        safe_commit(self._db)

        logger.info(
            "Item status updated",
            order_id=order_id,
            item_id=item_id,
            appended_id=wave.id if wave is not None else None,
            from_status=previous,
            to_status=new_status,
        )
        return order, True

    def update_appended_item_status(
        self,
        order_id: str,
        appended_id: str,
        item_id: str,
        new_status: str,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> tuple[Order, bool]:
        return self.update_item_status(order_id, item_id, new_status, appended_id, actor, at_ms)

    # =========================================================================
    # Payment
    # =========================================================================

    def toggle_payment(
        self,
        order_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount=None,
        gcash_amount=None,
        appended_id: str | None = None,
    ) -> Order:
        """
        Write the payment block of the main order or of one wave.

        paid=None flips the current flag.
        """
        order = self.get(order_id)
        target, subtotal = order_lifecycle.payment_target(order, appended_id)
        resolved = order_lifecycle.resolve_paid_flag(target, paid)

        order_lifecycle.apply_payment(target, resolved, subtotal, method, cash_amount, gcash_amount)
        safe_commit(self._db)

        logger.info(
            "Payment updated",
            order_id=order_id,
            appended_id=appended_id,
            is_paid=resolved,
            payment_method=target.payment_method,
        )
        return order

    def toggle_appended_payment(
        self,
        order_id: str,
        appended_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount=None,
        gcash_amount=None,
    ) -> Order:
        return self.toggle_payment(order_id, paid, method, cash_amount, gcash_amount, appended_id)

    def confirm_online_payment(self, order_id: str) -> Order:
        """Mark an online order's payment as confirmed by staff."""
        order = self.get(order_id)
        if order_lifecycle.confirm_online(order):
            safe_commit(self._db)
            logger.info("Online payment confirmed", order_id=order_id, online_code=order.online_code)
        return order

    # =========================================================================
    # Admin operations
    # =========================================================================

    def update(self, order_id: str, data: OrderUpdate) -> Order:
        """Partial update of header fields; items and payment have their own operations."""
        order = self.get(order_id)
        fields = order_lifecycle.apply_header_update(order, data.model_dump(exclude_unset=True))
        safe_commit(self._db)

        logger.info("Order updated", order_id=order_id, fields=fields)
        return order

    def delete(self, order_id: str) -> None:
        order = self.get(order_id)
        order_number = order.order_number
        self._repo.delete(order)
        safe_commit(self._db)
        logger.info("Order deleted", order_id=order_id, order_number=order_number)

    def add_note(self, order_id: str, data: AddNoteRequest) -> tuple[Order, OrderNote]:
        order = self.get(order_id)
        if is_blank(data.content):
            raise ValidationError("Note content is required", field="content")

        note = OrderNote(
            id=data.id or _new_id("note-"),
            content=data.content.strip(),
            created_at=data.created_at if data.created_at is not None else now_ms(),
            created_by=data.author.name if data.author else None,
            created_by_email=data.author.email if data.author else None,
        )
        order.notes.append(note)
        safe_commit(self._db)

        logger.info("Note added", order_id=order_id, note_id=note.id)
        return order, note

    def delete_appended(self, order_id: str, appended_id: str) -> Order:
        order = self.get(order_id)
        # Removing the only open wave can complete the order
        order_lifecycle.remove_wave(order, appended_id)
        safe_commit(self._db)

        logger.info("Appended order deleted", order_id=order_id, appended_id=appended_id)
        return order


def get_order_service(db: Session) -> OrderService:
    return OrderService(db)
