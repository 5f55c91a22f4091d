"""
Startup and shutdown of the order API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.config.logging import get_logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine
from shared.infrastructure.events import close_redis_pool
from rest_api.models import Base

logger = get_logger(__name__)


def _check_settings() -> None:
    problems = settings.validate_production_settings()
    for problem in problems:
        logger.error("Configuration problem", problem=problem)
    if problems and settings.environment == "production":
        raise RuntimeError("Refusing to start: " + "; ".join(problems))


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("rest-api")
    _check_settings()

    Base.metadata.create_all(bind=engine)
    logger.info(
        "Order API started",
        port=settings.rest_api_port,
        environment=settings.environment,
        venue_timezone=settings.venue_timezone,
        business_day=f"{settings.business_day_start_hour:02d}:00-{settings.business_day_end_hour:02d}:00",
    )

    yield

    await close_redis_pool()
    engine.dispose()
    logger.info("Order API stopped")
