"""
Infrastructure: SQLAlchemy sessions (db.py), the Redis order feed
(events/), and request correlation ids (correlation.py).
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    create_db_engine,
    get_db,
    safe_commit,
)
from shared.infrastructure.events import (
    get_redis_pool,
    close_redis_pool,
    publish_order_event,
)

__all__ = [
    "engine",
    "SessionLocal",
    "create_db_engine",
    "get_db",
    "safe_commit",
    "get_redis_pool",
    "close_redis_pool",
    "publish_order_event",
]
