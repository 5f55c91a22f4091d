"""
Error family shared by the order API and the station.

Domain services raise these, FastAPI renders them as {"detail": ...} with
the matching status, and the station's HTTP client maps error responses
back onto the same classes. Every instance logs itself once, at the level
its class declares, with whatever keyword context the raiser passed.

    raise OrderNotFoundError(order_id)
    raise ValidationError("Customer name is required", field="customer_name")

Each class also carries a ``kind`` and a ``retryable`` flag. The station
keeps a queued write for another attempt only when the failure is
retryable; anything else means the store answered and said no.
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "unknown"
    log_level: str = "warning"
    retryable: bool = False

    def __init__(self, detail: str, headers: dict[str, str] | None = None, **log_context: Any):
        getattr(logger, self.log_level)(detail, kind=self.kind, status_code=self.http_status, **log_context)
        super().__init__(status_code=self.http_status, detail=detail, headers=headers)


# -----------------------------------------------------------------------------
# not_found (404)
# -----------------------------------------------------------------------------


class NotFoundError(AppException):
    """Raised as NotFoundError("Order", "ord-123") -> "Order ord-123 not found"."""

    http_status = status.HTTP_404_NOT_FOUND
    kind = "not_found"

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        label = entity if entity_id is None else f"{entity} {entity_id}"
        super().__init__(f"{label} not found", entity=entity, entity_id=entity_id, **log_context)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class OrderItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str | None = None, **log_context: Any):
        super().__init__("Order item", item_id, **log_context)


class AppendedOrderNotFoundError(NotFoundError):
    def __init__(self, appended_id: str | None = None, **log_context: Any):
        super().__init__("Appended order", appended_id, **log_context)


# -----------------------------------------------------------------------------
# validation (400)
# -----------------------------------------------------------------------------


class ValidationError(AppException):
    http_status = status.HTTP_400_BAD_REQUEST
    kind = "validation"


class InvalidTransitionError(ValidationError):
    """Backward or unknown item status change."""

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        super().__init__(
            f"Invalid transition from '{from_status}' to '{to_status}' for {entity}",
            entity=entity,
            from_status=from_status,
            to_status=to_status,
            **log_context,
        )


class PaymentAmountError(ValidationError):
    """Cash/GCash amounts that are negative or do not cover the subtotal."""

    def __init__(self, amount: Any, reason: str, **log_context: Any):
        super().__init__(f"Invalid payment amount ({amount}): {reason}", amount=str(amount), **log_context)


# -----------------------------------------------------------------------------
# conflict (409)
# -----------------------------------------------------------------------------


class ConflictError(AppException):
    http_status = status.HTTP_409_CONFLICT
    kind = "conflict"


class DuplicateOrderError(ConflictError):
    def __init__(self, order_id: str, **log_context: Any):
        super().__init__(f"Order {order_id} already exists", order_id=order_id, **log_context)


# -----------------------------------------------------------------------------
# unknown (500) and unreachable (503)
# -----------------------------------------------------------------------------


class UnknownError(AppException):
    """
    Failure that fits no other kind: an unexpected status from the store,
    a body that does not parse, a bug. Retryable, since nothing says the
    store rejected the write.
    """

    log_level = "error"
    retryable = True

    def __init__(self, detail: str = "Unknown error", **log_context: Any):
        super().__init__(detail, **log_context)


class UnreachableError(AppException):
    """
    The order store could not be reached: connect error, timeout, or a
    gateway answering 502/503/504 on its behalf. The station switches to
    degraded mode instead of failing the call.
    """

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    kind = "unreachable"
    log_level = "error"
    retryable = True

    def __init__(self, service: str = "order store", retry_after: int | None = None, **log_context: Any):
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(f"Service {service} temporarily unavailable", headers=headers, service=service, **log_context)
