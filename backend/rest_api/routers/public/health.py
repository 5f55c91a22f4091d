"""
Liveness and dependency checks for the order API.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import check_redis_health, get_feed_publisher

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

SERVICE = "rest-api"


@router.get("/health")
def health_check():
    return {"status": "healthy", "service": SERVICE, "environment": settings.environment}


def _database_ok() -> tuple[bool, str | None]:
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database ping failed", error=str(e))
        return False, str(e)
    return True, None


@router.get("/health/detailed")
async def detailed_health_check():
    """
    503 when the database is down. A Redis outage only reports "degraded":
    stations poll, so orders keep flowing without the feed.
    """
    db_ok, db_error = _database_ok()
    redis_ok = await check_redis_health()

    if not db_ok:
        overall = "unhealthy"
    elif not redis_ok:
        overall = "degraded"
    else:
        overall = "healthy"

    body = {
        "status": overall,
        "service": SERVICE,
        "environment": settings.environment,
        "dependencies": {
            "database": {"status": "healthy" if db_ok else "unhealthy", "error": db_error},
            "redis": {"status": "healthy" if redis_ok else "unhealthy"},
        },
        "order_feed": get_feed_publisher().stats(),
    }
    return JSONResponse(content=body, status_code=503 if overall == "unhealthy" else 200)
