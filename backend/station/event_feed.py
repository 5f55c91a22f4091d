"""
Order feed subscriber for the station.

Listens on the venue's order channel and dispatches each event to the
registered callbacks. The feed only says which order changed; subscribers
re-fetch through the OrderStore to get the new state.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.events import (
    ONLINE_ORDER_CONFIRMED,
    ONLINE_ORDER_CREATED,
    ORDER_CREATED,
    ORDER_DELETED,
    ORDER_UPDATED,
    Event,
    retry_delay,
    channel_branch_orders,
    channel_orders,
    get_redis_pool,
)

logger = get_logger(__name__)

EventCallback = Callable[[Event], Any]


class EventFeed:
    """
    Redis pub/sub listener with reconnect.

    Usage:
        feed = EventFeed()
        unsubscribe = feed.subscribe(on_order_updated=handle)
        await feed.start()
        ...
        await feed.stop()
    """

    def __init__(
        self,
        branch_id: str | None = None,
        redis_factory: Callable[[], Awaitable[redis.Redis]] = get_redis_pool,
        max_reconnect_attempts: int | None = None,
    ):
        self.channel = channel_branch_orders(branch_id) if branch_id else channel_orders()
        self._redis_factory = redis_factory
        self._max_attempts = (
            settings.redis_max_reconnect_attempts if max_reconnect_attempts is None else max_reconnect_attempts
        )
        self._subscribers: dict[str, list[EventCallback]] = {
            ORDER_CREATED: [],
            ORDER_UPDATED: [],
            ORDER_DELETED: [],
            ONLINE_ORDER_CREATED: [],
            ONLINE_ORDER_CONFIRMED: [],
        }
        self._task: asyncio.Task | None = None
        self._running = False

    def subscribe(
        self,
        on_order_created: EventCallback | None = None,
        on_order_updated: EventCallback | None = None,
        on_online_order_created: EventCallback | None = None,
        on_online_order_confirmed: EventCallback | None = None,
        on_order_deleted: EventCallback | None = None,
    ) -> Callable[[], None]:
        """Register callbacks per event type; returns a function that removes them all."""
        registered = [
            (ORDER_CREATED, on_order_created),
            (ORDER_UPDATED, on_order_updated),
            (ONLINE_ORDER_CREATED, on_online_order_created),
            (ONLINE_ORDER_CONFIRMED, on_online_order_confirmed),
            (ORDER_DELETED, on_order_deleted),
        ]
        registered = [(event_type, cb) for event_type, cb in registered if cb is not None]
        for event_type, callback in registered:
            self._subscribers[event_type].append(callback)

        def unsubscribe() -> None:
            for event_type, callback in registered:
                if callback in self._subscribers[event_type]:
                    self._subscribers[event_type].remove(callback)

        return unsubscribe

    async def dispatch(self, raw: str | bytes) -> Event | None:
        """Parse one message and run its callbacks. Malformed messages are logged and skipped."""
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if len(raw) > settings.max_event_size:
            logger.warning("Oversized event dropped", size=len(raw), channel=self.channel)
            return None
        try:
            event = Event.from_json(raw)
        except (ValueError, TypeError) as e:
            logger.warning("Invalid event on order feed", error=str(e), channel=self.channel)
            return None

        for callback in list(self._subscribers.get(event.type, ())):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Order feed callback failed",
                    event_type=event.type,
                    order_id=event.order_id,
                    error=str(e),
                    exc_info=True,
                )
        return event

    async def _listen(self) -> None:
        client = await self._redis_factory()
        pubsub = client.pubsub()
        await pubsub.subscribe(self.channel)
        logger.info("Order feed subscribed", channel=self.channel)
        try:
            async for msg in pubsub.listen():
                if msg is None or msg.get("type") != "message":
                    continue
                await self.dispatch(msg["data"])
        finally:
            try:
                await asyncio.wait_for(pubsub.unsubscribe(self.channel), timeout=settings.redis_pubsub_cleanup_timeout)
                await pubsub.aclose()
            except Exception as e:
                logger.warning("Order feed cleanup failed", error=str(e))

    async def _run(self) -> None:
        attempt = 0
        while self._running:
            try:
                await self._listen()
                attempt = 0
            except asyncio.CancelledError:
                raise
            except Exception as e:
                attempt += 1
                if attempt > self._max_attempts:
                    logger.critical("Order feed gave up reconnecting", attempts=attempt - 1, error=str(e))
                    self._running = False
                    return
                delay = retry_delay(attempt)
                logger.warning("Order feed disconnected, reconnecting", attempt=attempt, delay=round(delay, 2), error=str(e))
                await asyncio.sleep(delay)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("Order feed started", channel=self.channel)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Order feed stopped", channel=self.channel)

    @property
    def running(self) -> bool:
        return self._running
