"""
In-memory stand-ins for the remote order store used by the station tests.
"""

from typing import Any

from shared.utils import order_lifecycle
from shared.utils.exceptions import DuplicateOrderError, OrderNotFoundError, UnreachableError
from shared.utils.schemas import MenuItemOutput, OrderFilter, OrderOutput, WithdrawalOutput
from station.offline_buffer import apply_local_append, apply_local_note, build_local_order, filter_orders


class FakeOrderStore:
    """
    OrderStore applying the shared lifecycle rules to in-memory snapshots.

    Flip `reachable` to simulate an outage; every call is recorded in `calls`.
    """

    def __init__(self, menu_items: list[MenuItemOutput] | None = None):
        self.orders: dict[str, OrderOutput] = {}
        self.withdrawals: list[WithdrawalOutput] = []
        self.menu_items = menu_items or []
        self.reachable = True
        self.calls: list[str] = []
        self._keys: dict[str, str] = {}
        self._next_number = 1

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.reachable:
            raise UnreachableError(reason="test outage")

    def _order(self, order_id: str) -> OrderOutput:
        if order_id not in self.orders:
            raise OrderNotFoundError(order_id)
        return self.orders[order_id]

    @staticmethod
    def _copy(order: OrderOutput) -> OrderOutput:
        return order.model_copy(deep=True)

    async def create(self, data, idempotency_key=None):
        self._enter("create")
        if idempotency_key and idempotency_key in self._keys:
            return self._copy(self.orders[self._keys[idempotency_key]])
        if data.id in self.orders:
            raise DuplicateOrderError(data.id)
        order = build_local_order(data)
        order.order_number = self._next_number
        self._next_number += 1
        self.orders[order.id] = order
        if idempotency_key:
            self._keys[idempotency_key] = order.id
        return self._copy(order)

    async def append(self, order_id, data):
        self._enter("append")
        order = self._order(order_id)
        apply_local_append(order, data)
        return self._copy(order)

    async def update_item_status(self, order_id, item_id, new_status, appended_id=None, actor=None, at_ms=None):
        self._enter("update_item_status")
        order = self._order(order_id)
        item, _ = order_lifecycle.find_item(order, item_id, appended_id)
        if order_lifecycle.apply_status_transition(item, new_status, actor, at_ms):
            order_lifecycle.stamp_all_served(order, at_ms)
        return self._copy(order)

    async def update_appended_item_status(self, order_id, appended_id, item_id, new_status, actor=None, at_ms=None):
        return await self.update_item_status(order_id, item_id, new_status, appended_id, actor, at_ms)

    async def toggle_payment(self, order_id, paid=None, method=None, cash_amount=None, gcash_amount=None, appended_id=None):
        self._enter("toggle_payment")
        order = self._order(order_id)
        target, subtotal = order_lifecycle.payment_target(order, appended_id)
        is_paid = order_lifecycle.resolve_paid_flag(target, paid)
        order_lifecycle.apply_payment(target, is_paid, subtotal, method, cash_amount, gcash_amount)
        return self._copy(order)

    async def toggle_appended_payment(self, order_id, appended_id, paid=None, method=None, cash_amount=None, gcash_amount=None):
        return await self.toggle_payment(order_id, paid, method, cash_amount, gcash_amount, appended_id)

    async def confirm_online_payment(self, order_id):
        self._enter("confirm_online_payment")
        order = self._order(order_id)
        order_lifecycle.confirm_online(order)
        return self._copy(order)

    async def update(self, order_id, data):
        self._enter("update")
        order = self._order(order_id)
        order_lifecycle.apply_header_update(order, data.model_dump(exclude_unset=True))
        return self._copy(order)

    async def delete(self, order_id):
        self._enter("delete")
        self._order(order_id)
        del self.orders[order_id]

    async def add_note(self, order_id, data):
        self._enter("add_note")
        order = self._order(order_id)
        apply_local_note(order, data)
        return self._copy(order)

    async def delete_appended(self, order_id, appended_id):
        self._enter("delete_appended")
        order = self._order(order_id)
        order_lifecycle.remove_wave(order, appended_id)
        return self._copy(order)

    async def get(self, order_id):
        self._enter("get")
        return self._copy(self._order(order_id))

    async def get_all(self, filters: OrderFilter | None = None):
        self._enter("get_all")
        return [self._copy(o) for o in filter_orders(list(self.orders.values()), filters)]

    async def get_online_orders(self):
        return await self.get_all(OrderFilter(source="online"))

    async def get_preparing_orders(self, branch_id=None):
        return await self.get_all(OrderFilter(status="preparing", branch_id=branch_id, sort_order="asc"))

    # LedgerSource

    async def list_withdrawals(self, start_ms: Any = None, end_ms: Any = None):
        self._enter("list_withdrawals")
        return list(self.withdrawals)

    async def list_menu_items(self):
        self._enter("list_menu_items")
        return list(self.menu_items)
