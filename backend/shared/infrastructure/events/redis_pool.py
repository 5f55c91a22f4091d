"""
The process-wide async Redis client used for the order feed.

redis.asyncio.Redis already pools connections internally, so one client
per process is enough. It is created on first use; the lock only stops
two concurrent first calls from both building one.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import REDIS_URL, settings

logger = get_logger(__name__)

_client: redis.Redis | None = None
_client_lock: asyncio.Lock | None = None


async def get_redis_pool() -> redis.Redis:
    global _client, _client_lock
    if _client is not None:
        return _client
    if _client_lock is None:
        _client_lock = asyncio.Lock()

    async with _client_lock:
        if _client is None:
            _client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                max_connections=settings.redis_pool_max_connections,
                socket_connect_timeout=settings.redis_socket_timeout,
                socket_timeout=settings.redis_socket_timeout,
                health_check_interval=30,
            )
            logger.info("Redis client created", url=REDIS_URL.split("@")[-1])
    return _client


async def check_redis_health() -> bool:
    """True if Redis answers a PING."""
    try:
        client = await get_redis_pool()
        return bool(await client.ping())
    except Exception as e:
        logger.warning("Redis ping failed", error=str(e))
        return False


async def close_redis_pool() -> None:
    global _client, _client_lock
    if _client is not None:
        await _client.aclose()
        logger.info("Redis client closed")
    _client = None
    _client_lock = None
