"""
Tests for report windows and the sales aggregation.
"""

from decimal import Decimal

import pytest

from shared.utils.exceptions import ValidationError
from shared.utils.schemas import (
    AppendedOrderOutput,
    MenuItemOutput,
    OrderItemOutput,
    OrderOutput,
    WithdrawalOutput,
)
from rest_api.services.ledger import BusinessDayWindow, CalendarMonthWindow, aggregate_sales
from tests.conftest import manila_ms


@pytest.fixture
def business_day():
    return BusinessDayWindow("Asia/Manila", 8, 1)


@pytest.fixture
def calendar_month():
    return CalendarMonthWindow("Asia/Manila")


MENU = [
    MenuItemOutput(id="m1", name="Latte", price=Decimal("120.00"), owner="john", category="Coffee"),
    MenuItemOutput(id="m2", name="Pancit", price=Decimal("180.00"), owner="elwin", category="Noodles"),
    MenuItemOutput(id="m3", name="Turon", price=Decimal("50.00"), owner=None, category="Desserts"),
]


def paid_order(order_id: str, created_at: int, items: list[tuple[str, str, int]], **overrides) -> OrderOutput:
    data = {
        "id": order_id,
        "order_number": 1,
        "customer_name": "Ana",
        "created_at": created_at,
        "items": [
            OrderItemOutput(id=f"{order_id}-{n}", name=name, price=Decimal(price), quantity=qty)
            for n, (name, price, qty) in enumerate(items)
        ],
        "is_paid": True,
        "payment_method": "cash",
    }
    data.update(overrides)
    return OrderOutput(**data)


def withdrawal(wid: str, amount: str, charged_to: str, created_at: int, type_: str = "withdrawal") -> WithdrawalOutput:
    return WithdrawalOutput(
        id=wid,
        type=type_,
        amount=Decimal(amount),
        charged_to=charged_to,
        description="float",
        created_at=created_at,
    )


class TestBusinessDayWindow:
    def test_after_midnight_belongs_to_previous_day(self, business_day):
        window = business_day.resolve(manila_ms(2026, 3, 15, 0, 30))
        assert window.label == "2026-03-14"
        assert window.start_ms == manila_ms(2026, 3, 14, 8)
        assert window.end_ms == manila_ms(2026, 3, 15, 1)

    def test_morning_is_current_day(self, business_day):
        window = business_day.resolve(manila_ms(2026, 3, 14, 9, 15))
        assert window.label == "2026-03-14"

    def test_before_opening_still_resolves_previous_day(self, business_day):
        ts = manila_ms(2026, 3, 15, 7, 59)
        assert business_day.resolve(ts).label == "2026-03-14"
        assert business_day.window_of(ts) is None

    def test_just_after_opening_is_new_day(self, business_day):
        ts = manila_ms(2026, 3, 15, 8, 1)
        assert business_day.resolve(ts).label == "2026-03-15"
        assert business_day.window_of(ts).label == "2026-03-15"

    def test_end_is_exclusive(self, business_day):
        assert business_day.window_of(manila_ms(2026, 3, 15, 1)) is None

    def test_for_label_rejects_garbage(self, business_day):
        with pytest.raises(ValidationError):
            business_day.for_label("14/03/2026")


class TestCalendarMonthWindow:
    def test_december_rolls_into_next_year(self, calendar_month):
        window = calendar_month.for_month(2025, 12)
        assert window.label == "2025-12"
        assert window.end_ms == manila_ms(2026, 1, 1)

    def test_resolve_uses_local_time(self, calendar_month):
        # 2026-03-31 23:30 UTC is already April 1st in Manila
        window = calendar_month.resolve(manila_ms(2026, 4, 1, 7, 30))
        assert window.label == "2026-04"

    def test_invalid_month(self, calendar_month):
        with pytest.raises(ValidationError):
            calendar_month.for_label("2026-13")


class TestAggregateSales:
    def test_owner_attribution_and_cash_totals(self, business_day):
        window = business_day.for_label("2026-03-14")
        order = paid_order("o1", manila_ms(2026, 3, 14, 10), [("Latte", "120.00", 1), ("Pancit", "180.00", 2)])

        summary = aggregate_sales([order], [], MENU, window)

        assert summary.order_count == 1
        assert summary.total_cash == Decimal("480.00")
        assert summary.total_gcash == Decimal("0.00")
        assert summary.sales_by_owner == {"john": Decimal("120.00"), "elwin": Decimal("360.00")}

    def test_ownerless_item_is_split_in_half(self, business_day):
        window = business_day.for_label("2026-03-14")
        order = paid_order("o1", manila_ms(2026, 3, 14, 10), [("Turon", "50.00", 1), ("Mystery", "30.00", 1)])

        summary = aggregate_sales([order], [], MENU, window)

        assert summary.sales_by_owner == {"john": Decimal("40.00"), "elwin": Decimal("40.00")}
        assert [line.name for line in summary.items_by_category["uncategorized"]] == ["Mystery"]

    def test_split_payment_counts_recorded_amounts(self, business_day):
        window = business_day.for_label("2026-03-14")
        order = paid_order(
            "o1",
            manila_ms(2026, 3, 14, 12),
            [("Latte", "120.00", 1)],
            payment_method="split",
            cash_amount=Decimal("70.00"),
            gcash_amount=Decimal("50.00"),
        )

        summary = aggregate_sales([order], [], MENU, window)

        assert summary.total_cash == Decimal("70.00")
        assert summary.total_gcash == Decimal("50.00")
        assert summary.total_sales == Decimal("120.00")

    def test_unpaid_wave_excludes_whole_order(self, business_day):
        window = business_day.for_label("2026-03-14")
        wave = AppendedOrderOutput(
            id="w1",
            created_at=manila_ms(2026, 3, 14, 11),
            items=[OrderItemOutput(id="w1-a", name="Turon", price=Decimal("50.00"), quantity=1)],
        )
        order = paid_order("o1", manila_ms(2026, 3, 14, 10), [("Latte", "120.00", 1)], appended_orders=[wave])

        assert aggregate_sales([order], [], MENU, window).order_count == 0

        order.appended_orders[0].is_paid = True
        order.appended_orders[0].payment_method = "gcash"
        summary = aggregate_sales([order], [], MENU, window)
        assert summary.order_count == 1
        assert summary.total_cash == Decimal("120.00")
        assert summary.total_gcash == Decimal("50.00")

    def test_orders_outside_window_ignored(self, business_day):
        window = business_day.for_label("2026-03-14")
        late = paid_order("o1", manila_ms(2026, 3, 15, 0, 30), [("Latte", "120.00", 1)])
        closed = paid_order("o2", manila_ms(2026, 3, 15, 2), [("Latte", "120.00", 1)])

        summary = aggregate_sales([late, closed], [], MENU, window)

        assert summary.order_count == 1

    def test_withdrawals_and_purchases_charged_to_owners(self, business_day):
        window = business_day.for_label("2026-03-14")
        order = paid_order("o1", manila_ms(2026, 3, 14, 10), [("Pancit", "180.00", 1)])
        records = [
            withdrawal("w1", "100.00", "john", manila_ms(2026, 3, 14, 9)),
            withdrawal("w2", "60.00", "all", manila_ms(2026, 3, 14, 13), type_="purchase"),
            withdrawal("w3", "999.00", "john", manila_ms(2026, 3, 13, 9)),
        ]

        summary = aggregate_sales([order], records, MENU, window)

        assert summary.total_withdrawals == Decimal("100.00")
        assert summary.total_purchases == Decimal("60.00")
        assert summary.net_sales == Decimal("20.00")
        assert summary.purchases[0].charged_to == "split"
        assert summary.withdrawals_by_owner == {"john": Decimal("100.00"), "elwin": Decimal("0.00")}
        assert summary.purchases_by_owner == {"john": Decimal("30.00"), "elwin": Decimal("30.00")}
        assert summary.net_by_owner == {"john": Decimal("-130.00"), "elwin": Decimal("150.00")}

    def test_order_taker_sales_sorted_by_total(self, business_day):
        window = business_day.for_label("2026-03-14")
        at = manila_ms(2026, 3, 14, 10)
        orders = [
            paid_order("o1", at, [("Latte", "120.00", 1)], order_taker_name="Mia", order_taker_email="mia@venue.ph"),
            paid_order("o2", at, [("Pancit", "180.00", 2)], order_taker_name="Leo", order_taker_email="leo@venue.ph"),
            paid_order("o3", at, [("Turon", "50.00", 1)]),
        ]

        summary = aggregate_sales(orders, [], MENU, window)

        assert [t.name for t in summary.order_taker_sales] == ["Leo", "Mia", "Unknown"]
        assert summary.order_taker_sales[0].total == Decimal("360.00")

    def test_category_lines_merge_same_item_and_price(self, business_day):
        window = business_day.for_label("2026-03-14")
        at = manila_ms(2026, 3, 14, 10)
        orders = [
            paid_order("o1", at, [("Latte", "120.00", 1)]),
            paid_order("o2", at, [("Latte", "120.00", 2)]),
        ]

        coffee = aggregate_sales(orders, [], MENU, window).items_by_category["Coffee"]

        assert len(coffee) == 1
        assert coffee[0].quantity == 3
        assert coffee[0].total == Decimal("360.00")
