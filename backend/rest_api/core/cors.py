"""
CORS for the counter screens and the station app.

ALLOWED_ORIGINS is a comma-separated list; when unset, the local dev
servers of the counter UI (port 3000) and the station (port 8100) are
allowed.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings

DEV_ORIGINS = [f"http://{host}:{port}" for host in ("localhost", "127.0.0.1") for port in (3000, 8100)]


def get_cors_origins() -> list[str]:
    configured = [origin.strip() for origin in settings.allowed_origins.split(",")]
    return [origin for origin in configured if origin] or DEV_ORIGINS


def configure_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID", "X-Idempotency-Key"],
        expose_headers=["X-Request-ID"],
        max_age=0 if settings.environment == "development" else 600,
    )
