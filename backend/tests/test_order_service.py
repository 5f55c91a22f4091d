"""
Tests for OrderService domain service.
"""

from decimal import Decimal

import pytest

from shared.utils.exceptions import (
    DuplicateOrderError,
    InvalidTransitionError,
    OrderNotFoundError,
    PaymentAmountError,
    ValidationError,
)
from shared.utils.order_lifecycle import Actor
from shared.utils.schemas import AddNoteRequest, AppendItemsRequest, OrderFilter, OrderUpdate
from rest_api.services.domain.order_service import OrderService
from tests.conftest import item, order_create


class TestCreate:
    def test_create_assigns_sequential_numbers(self, db_session):
        service = OrderService(db_session)

        first, created = service.create(order_create(id="ord-a", created_at=1_000))
        second, _ = service.create(order_create(id="ord-b", created_at=2_000))

        assert created is True
        assert (first.order_number, second.order_number) == (1, 2)
        assert first.created_at == 1_000
        assert all(i.status == "pending" for i in first.items)
        assert first.is_paid is False

    def test_blank_customer_name_rejected(self, db_session):
        with pytest.raises(ValidationError):
            OrderService(db_session).create(order_create(customer_name="   "))

    def test_no_items_rejected(self, db_session):
        with pytest.raises(ValidationError):
            OrderService(db_session).create(order_create(items=[]))

    def test_duplicate_id_conflicts(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        with pytest.raises(DuplicateOrderError):
            service.create(order_create(id="ord-a"))

    def test_idempotent_replay_returns_stored_order(self, db_session):
        service = OrderService(db_session)
        order, _ = service.create(order_create(id="ord-a"), idempotency_key="key-1")

        replay, created = service.create(order_create(id="ord-a"), idempotency_key="key-1")

        assert created is False
        assert replay.id == order.id
        assert replay.order_number == order.order_number

    def test_online_order_starts_pending_confirmation(self, db_session):
        order, _ = OrderService(db_session).create(order_create(source="online", online_code="ONL-7"))
        assert order.online_payment_status == "pending"

    def test_item_type_defaults_to_order_type(self, db_session):
        order, _ = OrderService(db_session).create(order_create(order_type="take-out"))
        assert {i.item_type for i in order.items} == {"take-out"}


class TestItemStatus:
    def test_transition_records_actor_and_time(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))

        order, changed = service.update_item_status("ord-a", "i1", "preparing", actor=Actor("Mia"), at_ms=5_000)

        assert changed is True
        item = next(i for i in order.items if i.id == "i1")
        assert item.preparing_at == 5_000
        assert item.prepared_by == "Mia"

    def test_backward_move_rejected(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.update_item_status("ord-a", "i1", "ready")
        with pytest.raises(InvalidTransitionError):
            service.update_item_status("ord-a", "i1", "pending")

    def test_serving_everything_stamps_order(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.update_item_status("ord-a", "i1", "served", at_ms=7_000)
        order, _ = service.update_item_status("ord-a", "i2", "served", at_ms=8_000)
        assert order.all_items_served_at == 8_000

    def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            OrderService(db_session).update_item_status("missing", "i1", "ready")


class TestAppend:
    def test_append_reopens_served_order(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.update_item_status("ord-a", "i1", "served")
        service.update_item_status("ord-a", "i2", "served")

        order, wave = service.append(
            "ord-a", AppendItemsRequest(id="w1", items=[item("a1", "Turon", "50.00", 2)], created_at=9_000)
        )

        assert wave.id == "w1"
        assert order.all_items_served_at is None
        assert order.appended_orders[0].items[0].status == "pending"

    def test_append_replay_is_idempotent(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        request = AppendItemsRequest(id="w1", items=[item("a1", "Turon", "50.00")], created_at=9_000)

        service.append("ord-a", request)
        order, _ = service.append("ord-a", request)

        assert len(order.appended_orders) == 1

    def test_appended_item_status_addressed_by_wave(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.append("ord-a", AppendItemsRequest(id="w1", items=[item("a1", "Turon", "50.00")], created_at=9_000))

        order, changed = service.update_appended_item_status("ord-a", "w1", "a1", "preparing")

        assert changed is True
        assert order.appended_orders[0].items[0].status == "preparing"

    def test_delete_appended(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.append("ord-a", AppendItemsRequest(id="w1", items=[item("a1", "Turon", "50.00")], created_at=9_000))

        order = service.delete_appended("ord-a", "w1")

        assert order.appended_orders == []


class TestPayment:
    def test_cash_payment(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))

        order = service.toggle_payment("ord-a", paid=True, method="cash")

        assert order.is_paid is True
        assert order.cash_amount == Decimal("480.00")

    def test_toggle_without_flag_flips(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.toggle_payment("ord-a", method="gcash")
        order = service.toggle_payment("ord-a")
        assert order.is_paid is False
        assert order.payment_method is None

    def test_split_below_total_rejected(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        with pytest.raises(PaymentAmountError):
            service.toggle_payment("ord-a", True, "split", Decimal("100"), Decimal("100"))
        assert service.get("ord-a").is_paid is False

    def test_wave_paid_independently(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.append("ord-a", AppendItemsRequest(id="w1", items=[item("a1", "Turon", "50.00")], created_at=9_000))

        order = service.toggle_appended_payment("ord-a", "w1", paid=True, method="gcash")

        assert order.is_paid is False
        assert order.appended_orders[0].is_paid is True
        assert order.appended_orders[0].gcash_amount == Decimal("50.00")

    def test_confirm_online_payment(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a", source="online"))
        order = service.confirm_online_payment("ord-a")
        assert order.online_payment_status == "confirmed"
        assert order.is_paid is False

    def test_confirm_in_house_order_rejected(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        with pytest.raises(ValidationError):
            service.confirm_online_payment("ord-a")


class TestAdmin:
    def test_update_header(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        order = service.update("ord-a", OrderUpdate(customer_name=" Ben ", order_taker_name="Mia"))
        assert order.customer_name == "Ben"
        assert order.order_taker_name == "Mia"

    def test_delete(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        service.delete("ord-a")
        with pytest.raises(OrderNotFoundError):
            service.get("ord-a")

    def test_add_note(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a"))
        order, note = service.add_note("ord-a", AddNoteRequest(content=" no onions ", created_at=3_000))
        assert note.id.startswith("note-")
        assert order.notes[0].content == "no onions"


class TestQueries:
    def test_filters(self, db_session):
        service = OrderService(db_session)
        service.create(order_create(id="ord-a", customer_name="Ana Cruz", created_at=1_000))
        service.create(order_create(id="ord-b", customer_name="Ben", created_at=2_000, source="online"))
        service.toggle_payment("ord-a", True, "cash")
        service.update_item_status("ord-b", "i1", "preparing")

        assert [o.id for o in service.get_all()] == ["ord-b", "ord-a"]
        assert [o.id for o in service.get_all(OrderFilter(is_paid=True))] == ["ord-a"]
        assert [o.id for o in service.get_all(OrderFilter(customer_name="cruz"))] == ["ord-a"]
        assert [o.id for o in service.get_online_orders()] == ["ord-b"]
        assert [o.id for o in service.get_preparing_orders()] == ["ord-b"]
