"""
Offline write buffer: the station's OrderStore.

Every call goes to the remote order store first. When the store is
unreachable the mutation is applied to the local mirror with the same
lifecycle rules the server uses, queued as a PendingWrite, and the buffer
switches to degraded mode. Queued writes are replayed in order as soon as
the store answers again.

Ids and timestamps are assigned here, before the first remote attempt, so
a replayed write produces the same order, item, wave and note ids as the
local copy the staff already saw.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from decimal import Decimal
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel

from shared.config.constants import ItemStatus, OnlinePaymentStatus, OrderSource
from shared.config.logging import get_logger
from shared.utils import order_lifecycle
from shared.utils.exceptions import (
    ConflictError,
    DuplicateOrderError,
    NotFoundError,
    OrderNotFoundError,
    UnknownError,
    UnreachableError,
    ValidationError,
)
from shared.utils.order_lifecycle import Actor, now_ms
from shared.utils.schemas import (
    AddNoteRequest,
    AppendedOrderOutput,
    AppendItemsRequest,
    OrderCreate,
    OrderFilter,
    OrderItemInput,
    OrderItemOutput,
    OrderNoteOutput,
    OrderOutput,
    OrderUpdate,
)
from station.local_mirror import LocalOrderMirror, PendingWrite
from station.store import OrderStore

logger = get_logger(__name__)

ONLINE = "online"
DEGRADED = "degraded"

# Rejections that will never succeed on replay
_PERMANENT_ERRORS = (ValidationError, NotFoundError, ConflictError)
# Failures that leave the write queued for the next attempt
_RETRYABLE_ERRORS = (UnreachableError, UnknownError)


class BufferStatus(BaseModel):
    mode: Literal["online", "degraded"] = ONLINE
    pending_writes: int = 0
    last_sync_at: int | None = None
    last_error: str | None = None


class SyncResult(BaseModel):
    replayed: int = 0
    dropped: int = 0
    remaining: int = 0
    completed: bool = False


StatusListener = Callable[[BufferStatus], Any]


# =============================================================================
# Local filtering (mirror reads while degraded)
# =============================================================================


def _sort_value(order: OrderOutput, field: str) -> Any:
    if field == "customer_name":
        return order.customer_name.lower()
    if field == "order_number":
        # Locally created orders have no number yet; keep them after numbered ones
        return order.order_number if order.order_number is not None else float("inf")
    return order.created_at


def filter_orders(orders: list[OrderOutput], filters: OrderFilter | None = None) -> list[OrderOutput]:
    """Apply an OrderFilter to mirrored snapshots the way the store does."""
    filters = filters or OrderFilter()
    result = []
    for order in orders:
        if filters.is_paid is not None and order.is_paid != filters.is_paid:
            continue
        if filters.status is not None and not any(
            item.status == filters.status for item in order_lifecycle.iter_all_items(order)
        ):
            continue
        if filters.customer_name and filters.customer_name.lower() not in order.customer_name.lower():
            continue
        if filters.source is not None and order.source != filters.source:
            continue
        if filters.branch_id is not None and order.branch_id != filters.branch_id:
            continue
        result.append(order)

    result.sort(key=lambda o: _sort_value(o, filters.sort_by), reverse=filters.sort_order == "desc")
    if filters.limit is not None:
        result = result[: filters.limit]
    return result


# =============================================================================
# Local application of mutations
# =============================================================================


def _item_snapshot(item: OrderItemInput, default_type: str) -> OrderItemOutput:
    return OrderItemOutput(
        id=item.id,
        name=item.name.strip(),
        price=item.price,
        quantity=item.quantity,
        status=ItemStatus.PENDING,
        item_type=item.item_type or default_type,
        note=item.note,
    )


def build_local_order(data: OrderCreate) -> OrderOutput:
    """Snapshot of a new order as the store would create it, minus the order number."""
    order_lifecycle.validate_new_order(data.customer_name, data.items)
    order_lifecycle.check_unique_item_ids(data.items)
    return OrderOutput(
        id=data.id,
        order_number=None,
        customer_name=data.customer_name.strip(),
        created_at=data.created_at,
        order_type=data.order_type,
        items=[_item_snapshot(item, data.order_type) for item in data.items],
        source=data.source,
        online_code=data.online_code,
        online_payment_status=OnlinePaymentStatus.PENDING if data.source == OrderSource.ONLINE else None,
        branch_id=data.branch_id,
        order_taker_name=data.order_taker_name,
        order_taker_email=data.order_taker_email,
    )


def apply_local_append(order: OrderOutput, data: AppendItemsRequest) -> None:
    if any(wave.id == data.id for wave in order.appended_orders):
        return
    order_lifecycle.validate_appended_items(data.items)
    order_lifecycle.check_unique_item_ids(data.items)
    order.appended_orders.append(AppendedOrderOutput(
        id=data.id,
        created_at=data.created_at,
        items=[_item_snapshot(item, order.order_type) for item in data.items],
    ))
    order.all_items_served_at = None


def apply_local_note(order: OrderOutput, data: AddNoteRequest) -> None:
    if any(note.id == data.id for note in order.notes):
        return
    if not data.content.strip():
        raise ValidationError("Note content is required", field="content")
    order.notes.append(OrderNoteOutput(
        id=data.id,
        content=data.content.strip(),
        created_at=data.created_at,
        created_by=data.author.name if data.author else None,
        created_by_email=data.author.email if data.author else None,
    ))


def _actor_from(payload: dict | None) -> Actor | None:
    return Actor(**payload) if payload else None


def _actor_payload(actor: Actor | None) -> dict | None:
    return {"name": actor.name, "email": actor.email} if actor else None


def _money_payload(value: Any) -> str | None:
    return None if value is None else str(value)


def _money_from(value: str | None) -> Decimal | None:
    return None if value is None else Decimal(value)


# =============================================================================
# Buffer
# =============================================================================


class OfflineWriteBuffer:
    """
    OrderStore over a remote store and a local mirror.

    Remote rejections (validation, not found, conflict) propagate unchanged
    and leave the mirror untouched; only UnreachableError switches to the
    local path. While writes are queued, new writes queue behind them so the
    replay order matches the order staff made them in.
    """

    def __init__(
        self,
        remote: OrderStore,
        mirror: LocalOrderMirror,
        clock: Callable[[], int] = now_ms,
    ):
        self._remote = remote
        self._mirror = mirror
        self._clock = clock
        self._listeners: list[StatusListener] = []
        self._sync_lock = asyncio.Lock()
        self._listener_tasks: set[asyncio.Task] = set()
        pending = mirror.pending_count()
        # Writes left over from a previous run mean the store never saw them
        self._status = BufferStatus(mode=DEGRADED if pending else ONLINE, pending_writes=pending)

    # =========================================================================
    # Status
    # =========================================================================

    @property
    def status(self) -> BufferStatus:
        return self._status.model_copy()

    @property
    def degraded(self) -> bool:
        return self._status.mode == DEGRADED

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register a callback for status changes; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_status(self, **changes: Any) -> None:
        changes.setdefault("pending_writes", self._mirror.pending_count())
        updated = self._status.model_copy(update=changes)
        if updated == self._status:
            return
        self._status = updated
        for listener in list(self._listeners):
            try:
                result = listener(updated.model_copy())
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._listener_tasks.add(task)
                    task.add_done_callback(self._listener_done)
            except Exception as e:
                logger.error("Buffer status listener failed", error=str(e), exc_info=True)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Buffer status listener failed", error=str(error), exc_info=error)

    async def drain_listeners(self) -> None:
        """Wait for async status listeners still running."""
        if self._listener_tasks:
            await asyncio.gather(*list(self._listener_tasks), return_exceptions=True)

    def _mark_degraded(self, error: Exception) -> None:
        if not self.degraded:
            logger.warning("Order store unreachable, working from the local mirror", error=str(error))
        self._set_status(mode=DEGRADED, last_error=getattr(error, "detail", None) or str(error))

    # =========================================================================
    # Write path
    # =========================================================================

    def _load(self, order_id: str) -> OrderOutput:
        order = self._mirror.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id, source="local mirror")
        return order

    async def _write(
        self,
        operation: str,
        order_id: str,
        payload: dict[str, Any],
        remote: Callable[[], Awaitable[Any]],
        local: Callable[[OrderOutput | None], OrderOutput | None],
        idempotency_key: str | None = None,
    ) -> Any:
        # Held until the write is stored or queued, so a sync never refreshes the mirror over it
        async with self._sync_lock:
            if self._mirror.pending_count():
                await self._sync_locked()

            if not self._mirror.pending_count():
                try:
                    result = await remote()
                except UnreachableError as e:
                    self._mark_degraded(e)
                else:
                    if operation == "delete":
                        self._mirror.delete_order(order_id)
                    else:
                        self._mirror.save_orders([result])
                    if self.degraded:
                        await self._sync_locked()
                    return result

            return self._queue_locally(operation, order_id, payload, local, idempotency_key)

    def _queue_locally(
        self,
        operation: str,
        order_id: str,
        payload: dict[str, Any],
        local: Callable[[OrderOutput | None], OrderOutput | None],
        idempotency_key: str | None,
    ) -> Any:
        # Validate and apply locally before queueing so a rejected write never reaches the queue
        result = local(None if operation == "create" else self._load(order_id))
        if operation == "delete":
            self._mirror.delete_order(order_id)
        else:
            self._mirror.save_orders([result])

        write = self._mirror.enqueue(PendingWrite(
            idempotency_key=idempotency_key or uuid.uuid4().hex,
            operation=operation,
            order_id=order_id,
            payload=payload,
            queued_at=self._clock(),
        ))
        logger.info("Write queued for replay", operation=operation, order_id=order_id, seq=write.seq)
        self._set_status(mode=DEGRADED)
        return result

    async def create(self, data: OrderCreate, idempotency_key: str | None = None) -> OrderOutput:
        created_at = data.created_at if data.created_at is not None else self._clock()
        data = data.model_copy(update={
            "created_at": created_at,
            "items": [
                item if item.id else item.model_copy(update={"id": f"item-{uuid.uuid4().hex}"})
                for item in data.items
            ],
        })
        key = idempotency_key or f"create-{data.id}-{uuid.uuid4().hex[:8]}"

        def local(_: OrderOutput | None) -> OrderOutput:
            if self._mirror.get_order(data.id) is not None:
                raise DuplicateOrderError(data.id)
            return build_local_order(data)

        return await self._write(
            "create",
            data.id,
            {"order": data.model_dump(mode="json")},
            remote=lambda: self._remote.create(data, idempotency_key=key),
            local=local,
            idempotency_key=key,
        )

    async def append(self, order_id: str, data: AppendItemsRequest) -> OrderOutput:
        created_at = data.created_at if data.created_at is not None else self._clock()
        data = data.model_copy(update={
            "id": data.id or f"appended-{created_at}-{uuid.uuid4().hex[:8]}",
            "created_at": created_at,
            "items": [
                item if item.id else item.model_copy(update={"id": f"item-{uuid.uuid4().hex}"})
                for item in data.items
            ],
        })

        def local(order: OrderOutput) -> OrderOutput:
            apply_local_append(order, data)
            return order

        return await self._write(
            "append",
            order_id,
            {"request": data.model_dump(mode="json")},
            remote=lambda: self._remote.append(order_id, data),
            local=local,
        )

    async def update_item_status(
        self,
        order_id: str,
        item_id: str,
        new_status: str,
        appended_id: str | None = None,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> OrderOutput:
        at_ms = at_ms if at_ms is not None else self._clock()

        def local(order: OrderOutput) -> OrderOutput:
            item, _ = order_lifecycle.find_item(order, item_id, appended_id)
            if order_lifecycle.apply_status_transition(item, new_status, actor, at_ms):
                order_lifecycle.stamp_all_served(order, at_ms)
            return order

        payload = {
            "item_id": item_id,
            "new_status": new_status,
            "appended_id": appended_id,
            "actor": _actor_payload(actor),
            "at_ms": at_ms,
        }
        return await self._write(
            "update_item_status",
            order_id,
            payload,
            remote=lambda: self._remote.update_item_status(order_id, item_id, new_status, appended_id, actor, at_ms),
            local=local,
        )

    async def update_appended_item_status(
        self,
        order_id: str,
        appended_id: str,
        item_id: str,
        new_status: str,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> OrderOutput:
        return await self.update_item_status(order_id, item_id, new_status, appended_id, actor, at_ms)

    async def toggle_payment(
        self,
        order_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount: Any = None,
        gcash_amount: Any = None,
        appended_id: str | None = None,
    ) -> OrderOutput:
        payload = {
            "paid": paid,
            "method": method,
            "cash_amount": _money_payload(cash_amount),
            "gcash_amount": _money_payload(gcash_amount),
            "appended_id": appended_id,
        }

        def local(order: OrderOutput) -> OrderOutput:
            target, subtotal = order_lifecycle.payment_target(order, appended_id)
            is_paid = order_lifecycle.resolve_paid_flag(target, paid)
            order_lifecycle.apply_payment(target, is_paid, subtotal, method, cash_amount, gcash_amount)
            # A queued toggle replays as the flag staff saw, never as a second flip
            payload["paid"] = is_paid
            return order

        return await self._write(
            "toggle_payment",
            order_id,
            payload,
            remote=lambda: self._remote.toggle_payment(order_id, paid, method, cash_amount, gcash_amount, appended_id),
            local=local,
        )

    async def toggle_appended_payment(
        self,
        order_id: str,
        appended_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount: Any = None,
        gcash_amount: Any = None,
    ) -> OrderOutput:
        return await self.toggle_payment(order_id, paid, method, cash_amount, gcash_amount, appended_id)

    async def confirm_online_payment(self, order_id: str) -> OrderOutput:
        def local(order: OrderOutput) -> OrderOutput:
            order_lifecycle.confirm_online(order)
            return order

        return await self._write(
            "confirm_online_payment",
            order_id,
            {},
            remote=lambda: self._remote.confirm_online_payment(order_id),
            local=local,
        )

    async def update(self, order_id: str, data: OrderUpdate) -> OrderOutput:
        changes = data.model_dump(mode="json", exclude_unset=True)

        def local(order: OrderOutput) -> OrderOutput:
            order_lifecycle.apply_header_update(order, changes)
            return order

        return await self._write(
            "update",
            order_id,
            {"changes": changes},
            remote=lambda: self._remote.update(order_id, data),
            local=local,
        )

    async def delete(self, order_id: str) -> None:
        def local(order: OrderOutput) -> None:
            return None

        await self._write(
            "delete",
            order_id,
            {},
            remote=lambda: self._remote.delete(order_id),
            local=local,
        )

    async def add_note(self, order_id: str, data: AddNoteRequest) -> OrderOutput:
        data = data.model_copy(update={
            "id": data.id or f"note-{uuid.uuid4().hex}",
            "created_at": data.created_at if data.created_at is not None else self._clock(),
        })

        def local(order: OrderOutput) -> OrderOutput:
            apply_local_note(order, data)
            return order

        return await self._write(
            "add_note",
            order_id,
            {"request": data.model_dump(mode="json")},
            remote=lambda: self._remote.add_note(order_id, data),
            local=local,
        )

    async def delete_appended(self, order_id: str, appended_id: str) -> OrderOutput:
        def local(order: OrderOutput) -> OrderOutput:
            order_lifecycle.remove_wave(order, appended_id)
            return order

        return await self._write(
            "delete_appended",
            order_id,
            {"appended_id": appended_id},
            remote=lambda: self._remote.delete_appended(order_id, appended_id),
            local=local,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, order_id: str) -> OrderOutput:
        try:
            order = await self._remote.get(order_id)
        except UnreachableError as e:
            self._mark_degraded(e)
            return self._load(order_id)
        if self.degraded:
            await self.sync()
            return self._load(order_id)
        self._mirror.save_orders([order])
        return order

    async def get_all(self, filters: OrderFilter | None = None) -> list[OrderOutput]:
        """
        Orders from the store; an unfiltered result replaces the whole mirror.
        While degraded, answers come from the mirror after a sync attempt.
        """
        try:
            orders = await self._remote.get_all(filters)
        except UnreachableError as e:
            self._mark_degraded(e)
            return filter_orders(self._mirror.get_all_orders(), filters)
        if self.degraded:
            await self.sync()
            return filter_orders(self._mirror.get_all_orders(), filters)

        if filters is None or filters.is_empty():
            self._mirror.replace_all(orders)
        else:
            self._mirror.save_orders(orders)
        return orders

    async def get_online_orders(self) -> list[OrderOutput]:
        return await self.get_all(OrderFilter(source=OrderSource.ONLINE))

    async def get_preparing_orders(self, branch_id: str | None = None) -> list[OrderOutput]:
        return await self.get_all(
            OrderFilter(status=ItemStatus.PREPARING, branch_id=branch_id, sort_order="asc")
        )

    # =========================================================================
    # Replay
    # =========================================================================

    async def _replay(self, write: PendingWrite) -> None:
        p = write.payload
        order_id = write.order_id
        op = write.operation

        if op == "create":
            await self._remote.create(OrderCreate.model_validate(p["order"]), idempotency_key=write.idempotency_key)
        elif op == "append":
            await self._remote.append(order_id, AppendItemsRequest.model_validate(p["request"]))
        elif op == "update_item_status":
            await self._remote.update_item_status(
                order_id, p["item_id"], p["new_status"], p.get("appended_id"), _actor_from(p.get("actor")), p["at_ms"]
            )
        elif op == "toggle_payment":
            await self._remote.toggle_payment(
                order_id,
                p.get("paid"),
                p.get("method"),
                _money_from(p.get("cash_amount")),
                _money_from(p.get("gcash_amount")),
                p.get("appended_id"),
            )
        elif op == "confirm_online_payment":
            await self._remote.confirm_online_payment(order_id)
        elif op == "update":
            await self._remote.update(order_id, OrderUpdate.model_validate(p["changes"]))
        elif op == "delete":
            await self._remote.delete(order_id)
        elif op == "add_note":
            await self._remote.add_note(order_id, AddNoteRequest.model_validate(p["request"]))
        elif op == "delete_appended":
            await self._remote.delete_appended(order_id, p["appended_id"])
        else:
            raise ValidationError(f"Unknown queued operation '{op}'", seq=write.seq)

    async def sync(self) -> SyncResult:
        """
        Replay queued writes in order, then refresh the whole mirror.

        A write the store rejects outright is dropped with a warning; an
        unreachable store (or an unexpected failure) stops the replay and
        keeps the write for the next attempt.
        """
        async with self._sync_lock:
            return await self._sync_locked()

    async def _sync_locked(self) -> SyncResult:
        result = SyncResult()
        for write in self._mirror.pending_writes():
            try:
                await self._replay(write)
            except _RETRYABLE_ERRORS as e:
                self._mark_degraded(e)
                result.remaining = self._mirror.pending_count()
                return result
            except _PERMANENT_ERRORS as e:
                logger.warning(
                    "Queued write rejected by the order store, dropping",
                    operation=write.operation,
                    order_id=write.order_id,
                    seq=write.seq,
                    error=e.detail,
                )
                result.dropped += 1
            else:
                result.replayed += 1
            self._mirror.remove_write(write.seq)

        try:
            orders = await self._remote.get_all()
        except _RETRYABLE_ERRORS as e:
            self._mark_degraded(e)
            return result

        result.remaining = self._mirror.pending_count()
        if result.remaining:
            # Local changes the store has not seen yet; the next sync picks them up
            self._set_status(mode=DEGRADED)
            return result

        self._mirror.replace_all(orders)
        result.completed = True
        self._set_status(mode=ONLINE, last_sync_at=self._clock(), last_error=None)
        if result.replayed or result.dropped:
            logger.info("Offline writes replayed", replayed=result.replayed, dropped=result.dropped)
        return result
