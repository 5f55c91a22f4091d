"""
Order lifecycle rules shared by the server and the station.

Every function here works on any object with the order/item/wave attribute
names (ORM rows on the server, pydantic snapshots in the station's offline
mirror), so a mutation applied locally during an outage follows exactly the
same rules as the authoritative store.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Iterator

from shared.config.constants import (
    ErrorMessages,
    ItemStatus,
    OnlinePaymentStatus,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    validate_item_status,
    validate_item_transition,
)
from shared.utils.exceptions import (
    AppendedOrderNotFoundError,
    InvalidTransitionError,
    OrderItemNotFoundError,
    PaymentAmountError,
    ValidationError,
)
from shared.utils.validators import is_blank, to_money


@dataclass(frozen=True)
class Actor:
    """Staff member performing a transition."""

    name: str | None = None
    email: str | None = None


# Target state -> (timestamp attr, actor name attr, actor email attr)
_TRANSITION_STAMPS: dict[str, tuple[str, str, str]] = {
    ItemStatus.PREPARING: ("preparing_at", "prepared_by", "prepared_by_email"),
    ItemStatus.READY: ("ready_at", "ready_by", "ready_by_email"),
    ItemStatus.SERVED: ("served_at", "served_by", "served_by_email"),
}


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# =============================================================================
# Totals
# =============================================================================


def line_total(item: Any) -> Decimal:
    return to_money(item.price) * item.quantity


def items_subtotal(items: Iterable[Any]) -> Decimal:
    return sum((line_total(item) for item in items), Decimal("0.00"))


def order_total(order: Any) -> Decimal:
    """Sum of price x quantity over the main items and every appended wave."""
    total = items_subtotal(order.items)
    for wave in order.appended_orders:
        total += items_subtotal(wave.items)
    return total


def iter_all_items(order: Any) -> Iterator[Any]:
    """Main items first, then each appended wave's items."""
    yield from order.items
    for wave in order.appended_orders:
        yield from wave.items


def total_item_count(order: Any) -> int:
    return sum(item.quantity for item in iter_all_items(order))


def is_fully_paid(order: Any) -> bool:
    """The main order and every appended wave are paid."""
    return bool(order.is_paid) and all(wave.is_paid for wave in order.appended_orders)


def is_fully_served(order: Any) -> bool:
    items = list(iter_all_items(order))
    return bool(items) and all(item.status == ItemStatus.SERVED for item in items)


def pending_amount(order: Any) -> Decimal:
    """Amount still owed: subtotals of the unpaid parts."""
    owed = Decimal("0.00") if order.is_paid else items_subtotal(order.items)
    for wave in order.appended_orders:
        if not wave.is_paid:
            owed += items_subtotal(wave.items)
    return owed


def derive_order_status(order: Any) -> str:
    statuses = [item.status for item in iter_all_items(order)]
    if statuses and all(s == ItemStatus.SERVED for s in statuses):
        return OrderStatus.COMPLETED
    if all(s == ItemStatus.PENDING for s in statuses):
        return OrderStatus.PENDING
    return OrderStatus.IN_PROGRESS


# =============================================================================
# Creation
# =============================================================================


def validate_new_order(customer_name: str | None, items: list[Any]) -> None:
    """Reject orders without a customer name or without items."""
    if is_blank(customer_name):
        raise ValidationError(ErrorMessages.CUSTOMER_NAME_REQUIRED, field="customer_name")
    if not items:
        raise ValidationError(ErrorMessages.ITEMS_REQUIRED, field="items")


def validate_appended_items(items: list[Any]) -> None:
    if not items:
        raise ValidationError(ErrorMessages.ITEMS_REQUIRED, field="items")


def check_unique_item_ids(items: list[Any]) -> None:
    """Client-supplied item ids must not repeat within one submission."""
    seen: set[str] = set()
    for item in items:
        if item.id is None:
            continue
        if item.id in seen:
            raise ValidationError(f"Duplicate item id '{item.id}'", field="items")
        seen.add(item.id)


# =============================================================================
# Item status
# =============================================================================


def find_item(order: Any, item_id: str, appended_id: str | None = None) -> tuple[Any, Any | None]:
    """
    Locate an item and the wave holding it (None for main items).

    Without an appended_id the main items are searched first, then every
    wave, so callers that only know the item id still reach appended items.
    """
    if appended_id is not None:
        wave = find_wave(order, appended_id)
        for item in wave.items:
            if item.id == item_id:
                return item, wave
        raise OrderItemNotFoundError(item_id, order_id=order.id, appended_id=appended_id)

    for item in order.items:
        if item.id == item_id:
            return item, None
    for wave in order.appended_orders:
        for item in wave.items:
            if item.id == item_id:
                return item, wave
    raise OrderItemNotFoundError(item_id, order_id=order.id)


def find_wave(order: Any, appended_id: str) -> Any:
    for wave in order.appended_orders:
        if wave.id == appended_id:
            return wave
    raise AppendedOrderNotFoundError(appended_id, order_id=order.id)


def apply_status_transition(
    item: Any,
    new_status: str,
    actor: Actor | None = None,
    at_ms: int | None = None,
) -> bool:
    """
    Move an item forward to new_status.

    Forward skips are allowed (pending -> ready); moving backward raises
    InvalidTransitionError; re-entering the current state is a no-op.
    The entered state's timestamp and actor are only stamped the first time.

    Returns True if the item changed.
    """
    if not validate_item_status(new_status):
        raise ValidationError(f"Invalid item status '{new_status}'", field="status")

    current = item.status
    if new_status == current:
        return False
    if not validate_item_transition(current, new_status):
        raise InvalidTransitionError("order item", current, new_status, item_id=item.id)

    item.status = new_status
    ts_attr, by_attr, email_attr = _TRANSITION_STAMPS[new_status]
    if getattr(item, ts_attr) is None:
        setattr(item, ts_attr, at_ms if at_ms is not None else now_ms())
        if actor is not None:
            setattr(item, by_attr, actor.name)
            setattr(item, email_attr, actor.email)
    return True


def stamp_all_served(order: Any, at_ms: int | None = None) -> bool:
    """Set all_items_served_at once, when every item of every wave is served."""
    if order.all_items_served_at is None and is_fully_served(order):
        order.all_items_served_at = at_ms if at_ms is not None else now_ms()
        return True
    return False


# =============================================================================
# Payment
# =============================================================================


def resolve_paid_flag(target: Any, paid: bool | None) -> bool:
    """An omitted flag means toggle."""
    return (not target.is_paid) if paid is None else paid


def apply_payment(
    target: Any,
    paid: bool,
    subtotal: Decimal,
    method: str | None = None,
    cash_amount: Any = None,
    gcash_amount: Any = None,
) -> None:
    """
    Write the payment block (is_paid, method, cash, gcash) as one unit.

    target is an order (main part) or an appended wave. Marking unpaid clears
    method and amounts. A cash/gcash payment records the tendered amount, or
    the subtotal if none was given; split needs both amounts and their sum
    must cover the subtotal. Everything is validated before anything is set.
    """
    if not paid:
        target.is_paid = False
        target.payment_method = None
        target.cash_amount = None
        target.gcash_amount = None
        return

    if method is not None and method not in PaymentMethod.ALL:
        raise ValidationError(f"Invalid payment method '{method}'", field="payment_method")

    cash = to_money(cash_amount) if cash_amount is not None else None
    gcash = to_money(gcash_amount) if gcash_amount is not None else None
    for amount in (cash, gcash):
        if amount is not None and amount < 0:
            raise PaymentAmountError(amount, "amount cannot be negative")

    if method == PaymentMethod.SPLIT:
        if cash is None or gcash is None:
            raise ValidationError("Split payment requires cash and gcash amounts", field="payment_method")
        if cash + gcash < subtotal:
            raise PaymentAmountError(cash + gcash, ErrorMessages.PAYMENT_BELOW_TOTAL.lower(), subtotal=str(subtotal))
    elif method == PaymentMethod.CASH:
        cash = subtotal if cash is None else cash
        if cash < subtotal:
            raise PaymentAmountError(cash, ErrorMessages.PAYMENT_BELOW_TOTAL.lower(), subtotal=str(subtotal))
        gcash = None
    elif method == PaymentMethod.GCASH:
        gcash = subtotal if gcash is None else gcash
        if gcash < subtotal:
            raise PaymentAmountError(gcash, ErrorMessages.PAYMENT_BELOW_TOTAL.lower(), subtotal=str(subtotal))
        cash = None
    else:
        # Paid with no method recorded; the ledger counts it as cash
        cash = None
        gcash = None

    target.is_paid = True
    target.payment_method = method
    target.cash_amount = cash
    target.gcash_amount = gcash


def payment_target(order: Any, appended_id: str | None) -> tuple[Any, Decimal]:
    """The payment block addressed by appended_id and the subtotal it must cover."""
    if appended_id is None:
        return order, items_subtotal(order.items)
    wave = find_wave(order, appended_id)
    return wave, items_subtotal(wave.items)


# =============================================================================
# Header fields, waves, online confirmation
# =============================================================================

UPDATABLE_FIELDS: tuple[str, ...] = ("customer_name", "order_type", "order_taker_name", "order_taker_email")


def apply_header_update(order: Any, changes: dict[str, Any]) -> list[str]:
    """
    Apply a partial update of the header fields; returns the changed field names.

    Only customer_name, order_type and the order taker can change this way.
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}", fields=sorted(unknown))

    if "customer_name" in changes:
        if is_blank(changes["customer_name"]):
            raise ValidationError(ErrorMessages.CUSTOMER_NAME_REQUIRED, field="customer_name")
        changes = {**changes, "customer_name": changes["customer_name"].strip()}
    if "order_type" in changes and changes["order_type"] is None:
        raise ValidationError("order_type cannot be null", field="order_type")

    for field, value in changes.items():
        setattr(order, field, value)
    return sorted(changes)


def remove_wave(order: Any, appended_id: str) -> Any:
    """Detach an appended wave; an order left fully served gets its stamp."""
    wave = find_wave(order, appended_id)
    order.appended_orders.remove(wave)
    stamp_all_served(order)
    return wave


def confirm_online(order: Any) -> bool:
    """Mark an online order's payment confirmed; returns False if it already was."""
    if order.source != OrderSource.ONLINE:
        raise ValidationError(ErrorMessages.NOT_ONLINE_ORDER, order_id=order.id)
    if order.online_payment_status == OnlinePaymentStatus.CONFIRMED:
        return False
    order.online_payment_status = OnlinePaymentStatus.CONFIRMED
    return True
