"""
Incrementally maintained kitchen queue for the station.

Keeps a multimap from group key to instances plus an index from order to
the keys it contributes to, so a feed event for one order re-indexes only
that order instead of rebuilding the whole queue.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable

from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundError, UnreachableError, ValidationError
from shared.utils.kitchen_schemas import (
    AdvanceGroupResult,
    ItemAdvanceResult,
    KitchenGroup,
    KitchenInstance,
    KitchenQueueOutput,
)
from shared.utils.order_lifecycle import Actor, now_ms
from shared.utils.schemas import MenuItemOutput, OrderOutput
from rest_api.services.kitchen import aggregator
from rest_api.services.kitchen.aggregator import GroupKey
from station.store import LedgerSource, OrderStore

logger = get_logger(__name__)


class KitchenQueueView:
    """Batched kitchen queue over an OrderStore, refreshed per order."""

    def __init__(
        self,
        store: OrderStore,
        menu_source: LedgerSource | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self._menu_source = menu_source
        self._clock = clock
        self._groups: dict[GroupKey, list[KitchenInstance]] = {}
        self._names: dict[GroupKey, str] = {}
        self._keys_by_order: dict[str, set[GroupKey]] = {}
        self._categories: dict[str, str | None] = {}
        self._lock = asyncio.Lock()

    # =========================================================================
    # Index maintenance
    # =========================================================================

    def _drop_order(self, order_id: str) -> None:
        for key in self._keys_by_order.pop(order_id, set()):
            remaining = [i for i in self._groups.get(key, []) if i.order_id != order_id]
            if remaining:
                self._groups[key] = remaining
            else:
                self._groups.pop(key, None)
                self._names.pop(key, None)

    def _index_order(self, order: OrderOutput) -> None:
        self._drop_order(order.id)
        keys: set[GroupKey] = set()
        for key, name, instance in aggregator.iter_instances(order):
            self._groups.setdefault(key, []).append(instance)
            self._names.setdefault(key, name)
            keys.add(key)
        if keys:
            self._keys_by_order[order.id] = keys

    def load(self, orders: Iterable[OrderOutput], menu_items: Iterable[MenuItemOutput] = ()) -> None:
        """Replace the whole index with the given orders."""
        self._groups.clear()
        self._names.clear()
        self._keys_by_order.clear()
        menu_items = list(menu_items)
        if menu_items:
            self._categories = aggregator.category_index(menu_items)
        for order in orders:
            self._index_order(order)

    def apply_order(self, order: OrderOutput) -> None:
        self._index_order(order)

    def remove_order(self, order_id: str) -> None:
        self._drop_order(order_id)

    # =========================================================================
    # Refresh from the store
    # =========================================================================

    async def rebuild(self) -> None:
        """Reload every order (and the menu categories) from the store."""
        async with self._lock:
            orders = await self._store.get_all()
            menu_items: list[MenuItemOutput] = []
            if self._menu_source is not None:
                menu_items = await self._menu_source.list_menu_items()
            self.load(orders, menu_items)
        logger.debug("Kitchen queue rebuilt", orders=len(orders), groups=len(self._groups))

    async def refresh_order(self, order_id: str) -> None:
        """Re-fetch one order and re-index it; a missing order leaves the queue."""
        async with self._lock:
            try:
                order = await self._store.get(order_id)
            except NotFoundError:
                self._drop_order(order_id)
                return
            self._index_order(order)

    # =========================================================================
    # Queries
    # =========================================================================

    def snapshot(self, station: str | None = None, now_ms: int | None = None) -> KitchenQueueOutput:
        """The ordered queue as of now_ms (the station clock if omitted)."""
        now = self._clock() if now_ms is None else now_ms
        groups = [
            aggregator.build_group(key, self._names[key], instances, self._categories, now)
            for key, instances in self._groups.items()
        ]
        if station is not None:
            groups = [g for g in groups if g.station == station]
        groups.sort(key=aggregator.sort_key)
        return KitchenQueueOutput(generated_at=now, groups=groups)

    def group(self, key: str) -> KitchenGroup | None:
        for group_key, instances in self._groups.items():
            if aggregator.key_string(group_key) == key:
                return aggregator.build_group(group_key, self._names[group_key], instances, self._categories, self._clock())
        return None

    # =========================================================================
    # Group advance
    # =========================================================================

    async def advance_group(self, key: str, new_status: str, actor: Actor | None = None) -> AdvanceGroupResult:
        """
        Move every instance of a group to new_status.

        Updates run concurrently, one per instance; a failure is reported per
        instance and never rolls back the others.
        """
        group = self.group(key)
        if group is None:
            raise NotFoundError("Kitchen group", key)
        if new_status == group.status:
            raise ValidationError(f"Group is already {new_status}", key=key)

        at_ms = self._clock()
        # Snapshots in completion order; the last one per order is the freshest
        finished: dict[str, OrderOutput] = {}

        async def advance(instance: KitchenInstance) -> OrderOutput:
            order = await self._store.update_item_status(
                instance.order_id, instance.item_id, new_status, instance.appended_id, actor, at_ms
            )
            finished.pop(order.id, None)
            finished[order.id] = order
            return order

        outcomes = await asyncio.gather(
            *(advance(instance) for instance in group.instances),
            return_exceptions=True,
        )

        results = []
        for instance, outcome in zip(group.instances, outcomes):
            error = None
            if isinstance(outcome, BaseException):
                error = getattr(outcome, "detail", None) or str(outcome)
                logger.warning(
                    "Group advance failed for item",
                    key=key,
                    order_id=instance.order_id,
                    item_id=instance.item_id,
                    error=error,
                )
            results.append(ItemAdvanceResult(
                order_id=instance.order_id,
                item_id=instance.item_id,
                appended_id=instance.appended_id,
                ok=error is None,
                error=error,
            ))

        await self._reindex_after_advance(finished)

        result = AdvanceGroupResult(key=key, new_status=new_status, results=results)
        logger.info("Kitchen group advanced", key=key, new_status=new_status, succeeded=result.succeeded, failed=result.failed)
        return result

    async def _reindex_after_advance(self, finished: dict[str, OrderOutput]) -> None:
        """Re-read each touched order once; an order holding several instances gets all their updates."""
        for order_id, last_snapshot in finished.items():
            try:
                order = await self._store.get(order_id)
            except NotFoundError:
                self._drop_order(order_id)
                continue
            except UnreachableError:
                order = last_snapshot
            self._index_order(order)
