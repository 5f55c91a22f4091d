"""
Order feed publishing.

The REST API publishes one event per committed order mutation, in a
background task after the response is sent. Publishing is best effort:
stations also poll, so a lost event only delays a view refresh.

While Redis is failing, FeedPublisher stops trying for a cooldown period
instead of paying the socket timeout on every mutation. After the
cooldown one publish is let through as a probe; success resumes normal
publishing, failure starts another cooldown.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import settings
from .backoff import retry_delay
from .channels import channel_branch_orders, channel_orders
from .event_schema import Event

logger = get_logger(__name__)


class FeedPublisher:
    def __init__(
        self,
        max_retries: int | None = None,
        failure_threshold: int = 5,
        cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_retries = settings.redis_publish_max_retries if max_retries is None else max_retries
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._consecutive_failures = 0
        self._paused_until: float | None = None
        self._probing = False
        self.published = 0
        self.skipped = 0

    @property
    def paused(self) -> bool:
        return self._paused_until is not None and self._clock() < self._paused_until

    def stats(self) -> dict[str, Any]:
        return {
            "paused": self.paused,
            "consecutive_failures": self._consecutive_failures,
            "published": self.published,
            "skipped": self.skipped,
        }

    def _allow(self) -> bool:
        if self._paused_until is None:
            return True
        if self.paused or self._probing:
            return False
        self._probing = True
        return True

    def _succeeded(self) -> None:
        if self._paused_until is not None:
            logger.info("Order feed publishing resumed")
        self._consecutive_failures = 0
        self._paused_until = None
        self._probing = False
        self.published += 1

    def _failed(self) -> None:
        self._consecutive_failures += 1
        if self._probing or self._consecutive_failures >= self.failure_threshold:
            self._paused_until = self._clock() + self.cooldown_seconds
            self._probing = False
            logger.error(
                "Order feed publishing paused",
                failures=self._consecutive_failures,
                cooldown_seconds=self.cooldown_seconds,
            )

    async def publish(self, client: redis.Redis, channel: str, event: Event) -> int:
        """
        Publish one event, retrying with backoff.

        Returns the receiver count, or 0 when publishing is paused. Raises
        ValueError for an oversized event and the last Redis error once
        retries run out.
        """
        payload = event.to_json()
        size = len(payload.encode("utf-8"))
        if size > settings.max_event_size:
            raise ValueError(f"Event {event.type} is {size} bytes, limit is {settings.max_event_size}")

        if not self._allow():
            self.skipped += 1
            logger.warning("Order feed paused, event skipped", event_type=event.type, order_id=event.order_id)
            return 0

        for attempt in range(1, self.max_retries + 1):
            try:
                receivers = await client.publish(channel, payload)
            except Exception as e:
                if attempt == self.max_retries:
                    self._failed()
                    logger.error("Order event not published", channel=channel, event_type=event.type, error=str(e))
                    raise
                delay = retry_delay(attempt, settings.redis_publish_retry_delay)
                logger.warning(
                    "Order event publish failed, retrying",
                    channel=channel,
                    attempt=attempt,
                    delay=round(delay, 2),
                    error=str(e),
                )
                await asyncio.sleep(delay)
            else:
                self._succeeded()
                return receivers
        return 0


_publisher: FeedPublisher | None = None


def get_feed_publisher() -> FeedPublisher:
    global _publisher
    if _publisher is None:
        _publisher = FeedPublisher()
    return _publisher


async def publish_event(client: redis.Redis, channel: str, event: Event) -> int:
    return await get_feed_publisher().publish(client, channel, event)


async def publish_order_event(
    redis_client: redis.Redis,
    event_type: str,
    order_id: str,
    order_number: int | None = None,
    source: str | None = None,
    branch_id: str | None = None,
    appended_id: str | None = None,
    actor_name: str | None = None,
    actor_email: str | None = None,
) -> None:
    """Publish to the venue channel, and to the branch channel when the order has one."""
    entity: dict[str, Any] = {"order_number": order_number, "source": source}
    if appended_id:
        entity["appended_id"] = appended_id
    event = Event(
        type=event_type,
        order_id=order_id,
        branch_id=branch_id,
        entity=entity,
        actor={"name": actor_name, "email": actor_email},
    )

    await publish_event(redis_client, channel_orders(), event)
    if branch_id:
        await publish_event(redis_client, channel_branch_orders(branch_id), event)
