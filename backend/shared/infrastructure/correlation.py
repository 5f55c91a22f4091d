"""
Request ids shared across the station and the order API.

Each inbound request gets an id (taken from X-Request-ID or generated),
stored in a context variable so log records pick it up. The station's
HTTP client forwards the same id to the order API, so one counter action
can be followed through both processes' logs.
"""

import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def current_request_id() -> str | None:
    return _request_id.get()


def forwarded_headers() -> dict[str, str]:
    """Headers to attach to an outbound call made while serving a request."""
    request_id = _request_id.get()
    return {REQUEST_ID_HEADER: request_id} if request_id else {}


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _request_id.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
        finally:
            _request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class CorrelationIdFilter:
    """Logging filter stamping the current request id onto every record."""

    def filter(self, record) -> bool:
        record.request_id = _request_id.get() or "-"
        return True
