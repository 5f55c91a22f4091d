"""
Order Models: Order, OrderItem, AppendedOrder, AppendedOrderItem, OrderNote.

Each mutable sub-record (an item, an appended wave, the order-level payment
columns) is its own row or column group, so a status change and a payment
change on the same order touch different rows/columns.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import ItemStatus, OrderSource, OrderType
from .base import RowStampMixin, Base


class ItemColumnsMixin:
    """Columns shared by main-order items and appended-wave items."""

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=ItemStatus.PENDING, nullable=False, index=True)
    item_type: Mapped[str] = mapped_column(String(16), default=OrderType.DINE_IN, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)

    # Transition stamps (epoch ms) and actor attribution, set on first entry only
    preparing_at: Mapped[Optional[int]] = mapped_column(BigInteger)
    prepared_by: Mapped[Optional[str]] = mapped_column(String(200))
    prepared_by_email: Mapped[Optional[str]] = mapped_column(String(255))
    ready_at: Mapped[Optional[int]] = mapped_column(BigInteger)
    ready_by: Mapped[Optional[str]] = mapped_column(String(200))
    ready_by_email: Mapped[Optional[str]] = mapped_column(String(255))
    served_at: Mapped[Optional[int]] = mapped_column(BigInteger)
    served_by: Mapped[Optional[str]] = mapped_column(String(200))
    served_by_email: Mapped[Optional[str]] = mapped_column(String(255))


class PaymentColumnsMixin:
    """The payment block: always written together."""

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(16))
    cash_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    gcash_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))


class Order(PaymentColumnsMixin, RowStampMixin, Base):
    """
    A customer order. The id is client-supplied so offline-created orders
    keep their identity when replayed; order_number is server-assigned.
    """

    __tablename__ = "customer_order"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    order_type: Mapped[str] = mapped_column(String(16), default=OrderType.DINE_IN, nullable=False)

    source: Mapped[str] = mapped_column(String(16), default=OrderSource.IN_HOUSE, nullable=False, index=True)
    online_code: Mapped[Optional[str]] = mapped_column(String(64))
    online_payment_status: Mapped[Optional[str]] = mapped_column(String(16))

    branch_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    order_taker_name: Mapped[Optional[str]] = mapped_column(String(200))
    order_taker_email: Mapped[Optional[str]] = mapped_column(String(255))
    all_items_served_at: Mapped[Optional[int]] = mapped_column(BigInteger)

    # Replayed offline creates carry the same key and get the stored order back
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(128), unique=True)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
    appended_orders: Mapped[list["AppendedOrder"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="AppendedOrder.created_at",
    )
    notes: Mapped[list["OrderNote"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderNote.created_at",
    )

    __table_args__ = (
        Index("ix_customer_order_paid_created", "is_paid", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, order_number={self.order_number}, customer='{self.customer_name}')>"


class OrderItem(ItemColumnsMixin, RowStampMixin, Base):
    """A line on the main order."""

    __tablename__ = "order_item"

    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True
    )

    order: Mapped["Order"] = relationship(back_populates="items")


class AppendedOrder(PaymentColumnsMixin, RowStampMixin, Base):
    """A second, independently payable wave of items added to an order."""

    __tablename__ = "appended_order"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    order: Mapped["Order"] = relationship(back_populates="appended_orders")
    items: Mapped[list["AppendedOrderItem"]] = relationship(
        back_populates="appended_order",
        cascade="all, delete-orphan",
        order_by="AppendedOrderItem.position",
    )


class AppendedOrderItem(ItemColumnsMixin, RowStampMixin, Base):
    """A line on an appended wave."""

    __tablename__ = "appended_order_item"

    appended_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("appended_order.id", ondelete="CASCADE"), nullable=False, index=True
    )

    appended_order: Mapped["AppendedOrder"] = relationship(back_populates="items")


class OrderNote(RowStampMixin, Base):
    """Free-text note attached to an order by staff."""

    __tablename__ = "order_note"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(200))
    created_by_email: Mapped[Optional[str]] = mapped_column(String(255))

    order: Mapped["Order"] = relationship(back_populates="notes")
