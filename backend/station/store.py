"""
The order store interface the station codes against.

Implemented by the HTTP client (remote authoritative store) and by the
offline write buffer that wraps it, so views never know which one they
are talking to.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from shared.config.logging import get_logger
from shared.utils.exceptions import UnreachableError
from shared.utils.order_lifecycle import Actor
from shared.utils.schemas import (
    AddNoteRequest,
    AppendItemsRequest,
    MenuItemOutput,
    OrderCreate,
    OrderFilter,
    OrderOutput,
    OrderUpdate,
    WithdrawalOutput,
)

logger = get_logger(__name__)


@runtime_checkable
class OrderStore(Protocol):
    """Order operations, all async, all returning full order snapshots."""

    async def create(self, data: OrderCreate, idempotency_key: str | None = None) -> OrderOutput: ...

    async def append(self, order_id: str, data: AppendItemsRequest) -> OrderOutput: ...

    async def update_item_status(
        self,
        order_id: str,
        item_id: str,
        new_status: str,
        appended_id: str | None = None,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> OrderOutput: ...

    async def update_appended_item_status(
        self,
        order_id: str,
        appended_id: str,
        item_id: str,
        new_status: str,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> OrderOutput: ...

    async def toggle_payment(
        self,
        order_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount: Any = None,
        gcash_amount: Any = None,
        appended_id: str | None = None,
    ) -> OrderOutput: ...

    async def toggle_appended_payment(
        self,
        order_id: str,
        appended_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount: Any = None,
        gcash_amount: Any = None,
    ) -> OrderOutput: ...

    async def confirm_online_payment(self, order_id: str) -> OrderOutput: ...

    async def update(self, order_id: str, data: OrderUpdate) -> OrderOutput: ...

    async def delete(self, order_id: str) -> None: ...

    async def add_note(self, order_id: str, data: AddNoteRequest) -> OrderOutput: ...

    async def delete_appended(self, order_id: str, appended_id: str) -> OrderOutput: ...

    async def get(self, order_id: str) -> OrderOutput: ...

    async def get_all(self, filters: OrderFilter | None = None) -> list[OrderOutput]: ...

    async def get_online_orders(self) -> list[OrderOutput]: ...

    async def get_preparing_orders(self, branch_id: str | None = None) -> list[OrderOutput]: ...


@runtime_checkable
class LedgerSource(Protocol):
    """Raw records the ledger view needs besides orders."""

    async def list_withdrawals(self, start_ms: int | None = None, end_ms: int | None = None) -> list[WithdrawalOutput]: ...

    async def list_menu_items(self) -> list[MenuItemOutput]: ...


class LastKnownLedgerSource:
    """
    LedgerSource that answers from the last good fetch while the store is down.

    Views keep recomputing from the local mirror during an outage; menu
    categories and withdrawals just stop changing until the store is back.
    Callers filter withdrawals by window, so the cached list is returned whole.
    """

    def __init__(self, source: LedgerSource):
        self._source = source
        self._withdrawals: list[WithdrawalOutput] = []
        self._menu_items: list[MenuItemOutput] = []

    async def list_withdrawals(self, start_ms: int | None = None, end_ms: int | None = None) -> list[WithdrawalOutput]:
        try:
            self._withdrawals = await self._source.list_withdrawals(start_ms, end_ms)
        except UnreachableError:
            logger.debug("Order store unreachable, using cached withdrawals", count=len(self._withdrawals))
        return list(self._withdrawals)

    async def list_menu_items(self) -> list[MenuItemOutput]:
        try:
            self._menu_items = await self._source.list_menu_items()
        except UnreachableError:
            logger.debug("Order store unreachable, using cached menu", count=len(self._menu_items))
        return list(self._menu_items)
