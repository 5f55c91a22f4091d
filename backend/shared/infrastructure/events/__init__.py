"""
Order feed over Redis pub/sub.

- event_types.py: the five order event names
- event_schema.py: Event, the JSON message on the wire
- channels.py: venue and branch channel names
- redis_pool.py: the shared async Redis client
- backoff.py: retry and reconnect delays
- publisher.py: FeedPublisher and publish_order_event
"""

from .event_types import (
    ORDER_CREATED,
    ORDER_UPDATED,
    ORDER_DELETED,
    ONLINE_ORDER_CREATED,
    ONLINE_ORDER_CONFIRMED,
    ALL_ORDER_EVENTS,
)
from .event_schema import Event
from .channels import channel_orders, channel_branch_orders
from .redis_pool import get_redis_pool, check_redis_health, close_redis_pool
from .backoff import retry_delay
from .publisher import FeedPublisher, get_feed_publisher, publish_event, publish_order_event

__all__ = [
    "ORDER_CREATED",
    "ORDER_UPDATED",
    "ORDER_DELETED",
    "ONLINE_ORDER_CREATED",
    "ONLINE_ORDER_CONFIRMED",
    "ALL_ORDER_EVENTS",
    "Event",
    "channel_orders",
    "channel_branch_orders",
    "get_redis_pool",
    "check_redis_health",
    "close_redis_pool",
    "retry_delay",
    "FeedPublisher",
    "get_feed_publisher",
    "publish_event",
    "publish_order_event",
]
