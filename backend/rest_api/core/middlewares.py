"""
HTTP middlewares for the order API.
"""

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

# Anything slower than this at the counter is noticeable
SLOW_REQUEST_MS = 500

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# JSON-only API; nothing here is meant to be framed or rendered
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class JsonOnlyMiddleware(BaseHTTPMiddleware):
    """415 for request bodies that declare a non-JSON content type."""

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type")
        if request.method in BODY_METHODS and content_type and not content_type.startswith("application/json"):
            return JSONResponse(status_code=415, content={"detail": "Request body must be application/json"})
        return await call_next(request)


class ResponseHeadersMiddleware(BaseHTTPMiddleware):
    """Security headers on every response, plus slow-request logging."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000)

        response.headers.update(SECURITY_HEADERS)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000"

        if elapsed_ms >= SLOW_REQUEST_MS:
            logger.warning(
                "Slow request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
            )
        return response


def register_middlewares(app: FastAPI) -> None:
    # Starlette runs the last-added middleware first
    app.add_middleware(ResponseHeadersMiddleware)
    app.add_middleware(JsonOnlyMiddleware)
