"""
Sales aggregation over one report window.

Everything is recomputed from raw orders, withdrawals and menu items on
every call; no totals are ever stored. The same function backs the daily
and monthly reports, only the window differs.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable

from shared.config.constants import Owners, PaymentMethod, WithdrawalType
from shared.utils import order_lifecycle
from shared.utils.report_schemas import CategoryLine, OrderTakerSales, ReportWindow, SalesSummary
from shared.utils.schemas import WithdrawalOutput
from shared.utils.validators import to_money

ZERO = Decimal("0.00")
UNCATEGORIZED = "uncategorized"
UNKNOWN_TAKER = "Unknown"


def in_window(ts_ms: int, window: ReportWindow) -> bool:
    return window.start_ms <= ts_ms < window.end_ms


def is_completed(order: Any) -> bool:
    """An order counts toward sales only when the main part and every wave are paid."""
    return order_lifecycle.is_fully_paid(order)


def payment_contribution(part: Any) -> tuple[Decimal, Decimal]:
    """
    (cash, gcash) contributed by one paid part (main order or wave).

    cash/gcash count the full subtotal; split counts the recorded amounts
    verbatim; paid without a method counts as cash.
    """
    if not part.is_paid:
        return ZERO, ZERO
    subtotal = order_lifecycle.items_subtotal(part.items)
    if part.payment_method == PaymentMethod.GCASH:
        return ZERO, subtotal
    if part.payment_method == PaymentMethod.SPLIT:
        return to_money(part.cash_amount), to_money(part.gcash_amount)
    return subtotal, ZERO


def normalize_charged_to(charged_to: str | None) -> str:
    if charged_to is None or charged_to == Owners.ALL_ALIAS:
        return Owners.SPLIT
    return charged_to


def _charge_owners(bucket: dict[str, Decimal], charged_to: str, amount: Decimal) -> None:
    target = normalize_charged_to(charged_to)
    if target in bucket:
        bucket[target] += amount
    else:
        # split, or an owner name no longer configured
        half = amount / 2
        for owner in Owners.BOTH:
            bucket[owner] += half


def _owner_bucket() -> dict[str, Decimal]:
    return {owner: ZERO for owner in Owners.BOTH}


def _menu_lookup(menu_items: Iterable[Any]) -> dict[str, Any]:
    """Menu items by exact name, which is how order lines reference them."""
    return {item.name: item for item in menu_items}


def aggregate_sales(
    orders: Iterable[Any],
    withdrawals: Iterable[Any],
    menu_items: Iterable[Any],
    window: ReportWindow,
    validation: Any | None = None,
) -> SalesSummary:
    """
    Build the sales summary for a window.

    Orders and withdrawals outside the window are ignored, so callers may
    pass a superset.
    """
    menu = _menu_lookup(menu_items)

    total_cash = ZERO
    total_gcash = ZERO
    order_count = 0
    sales_by_owner = _owner_bucket()
    lines: dict[tuple[str, str, Decimal], list] = {}
    takers: dict[tuple[str, str | None], OrderTakerSales] = {}

    for order in orders:
        if not in_window(order.created_at, window) or not is_completed(order):
            continue
        order_count += 1

        order_cash = ZERO
        order_gcash = ZERO
        for part in [order, *order.appended_orders]:
            cash, gcash = payment_contribution(part)
            order_cash += cash
            order_gcash += gcash
        total_cash += order_cash
        total_gcash += order_gcash

        for item in order_lifecycle.iter_all_items(order):
            amount = order_lifecycle.line_total(item)
            menu_item = menu.get(item.name)
            owner = menu_item.owner if menu_item is not None else None
            if owner in sales_by_owner:
                sales_by_owner[owner] += amount
            else:
                half = amount / 2
                for name in Owners.BOTH:
                    sales_by_owner[name] += half

            category = (menu_item.category if menu_item is not None else None) or UNCATEGORIZED
            price = to_money(item.price)
            key = (category, item.name, price)
            if key not in lines:
                lines[key] = [0, ZERO]
            lines[key][0] += item.quantity
            lines[key][1] += amount

        taker_name = order.order_taker_name or UNKNOWN_TAKER
        taker_key = (taker_name, order.order_taker_email)
        taker = takers.get(taker_key)
        if taker is None:
            taker = takers[taker_key] = OrderTakerSales(name=taker_name, email=order.order_taker_email)
        taker.cash += order_cash
        taker.gcash += order_gcash
        taker.total += order_cash + order_gcash
        taker.order_count += 1

    items_by_category: dict[str, list[CategoryLine]] = defaultdict(list)
    for (category, name, price), (quantity, total) in sorted(lines.items(), key=lambda kv: (kv[0][0], kv[0][1])):
        items_by_category[category].append(CategoryLine(name=name, price=price, quantity=quantity, total=total))

    withdrawal_list: list[WithdrawalOutput] = []
    purchase_list: list[WithdrawalOutput] = []
    withdrawals_by_owner = _owner_bucket()
    purchases_by_owner = _owner_bucket()
    for record in withdrawals:
        if not in_window(record.created_at, window):
            continue
        amount = to_money(record.amount)
        output = WithdrawalOutput.model_validate(record).model_copy(
            update={"charged_to": normalize_charged_to(record.charged_to)}
        )
        if record.type == WithdrawalType.PURCHASE:
            purchase_list.append(output)
            _charge_owners(purchases_by_owner, record.charged_to, amount)
        else:
            withdrawal_list.append(output)
            _charge_owners(withdrawals_by_owner, record.charged_to, amount)

    total_sales = total_cash + total_gcash
    total_withdrawals = sum((to_money(w.amount) for w in withdrawal_list), ZERO)
    total_purchases = sum((to_money(p.amount) for p in purchase_list), ZERO)

    net_by_owner = {
        owner: sales_by_owner[owner] - withdrawals_by_owner[owner] - purchases_by_owner[owner]
        for owner in Owners.BOTH
    }

    return SalesSummary(
        window=window,
        order_count=order_count,
        items_by_category=dict(items_by_category),
        withdrawals=withdrawal_list,
        purchases=purchase_list,
        total_sales=total_sales,
        total_cash=total_cash,
        total_gcash=total_gcash,
        total_withdrawals=total_withdrawals,
        total_purchases=total_purchases,
        net_sales=total_sales - (total_withdrawals + total_purchases),
        sales_by_owner=sales_by_owner,
        withdrawals_by_owner=withdrawals_by_owner,
        purchases_by_owner=purchases_by_owner,
        net_by_owner=net_by_owner,
        order_taker_sales=sorted(takers.values(), key=lambda t: (-t.total, t.name)),
        is_validated=validation is not None,
        validated_at=validation.validated_at if validation is not None else None,
        validated_by_name=validation.validated_by_name if validation is not None else None,
    )
