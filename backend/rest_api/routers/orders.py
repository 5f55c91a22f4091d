"""
Orders router - /api/orders/*
Thin controller over OrderService. Every committed mutation is announced on
the order feed from a background task after the response is produced.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Response, status
from sqlalchemy.orm import Session

from shared.config.constants import OrderSource
from shared.config.logging import get_logger
from shared.infrastructure.db import get_db
from shared.infrastructure.events import (
    ONLINE_ORDER_CONFIRMED,
    ONLINE_ORDER_CREATED,
    ORDER_CREATED,
    ORDER_DELETED,
    ORDER_UPDATED,
    get_redis_pool,
    publish_order_event,
)
from shared.utils.order_lifecycle import Actor
from shared.utils.schemas import (
    AddNoteRequest,
    AppendItemsRequest,
    DeleteResponse,
    ItemStatusType,
    OrderCreate,
    OrderFilter,
    OrderOutput,
    OrderSourceType,
    OrderUpdate,
    SortField,
    SortOrder,
    TogglePaymentRequest,
    UpdateItemStatusRequest,
)
from rest_api.models import Order
from rest_api.services.domain.order_service import OrderService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _get_service(db: Session) -> OrderService:
    return OrderService(db)


def _to_output(order: Order) -> OrderOutput:
    return OrderOutput.model_validate(order)


# =============================================================================
# Event publishing
# =============================================================================


async def _bg_publish_order_event(**kwargs):
    """Background task to publish an order feed event."""
    try:
        redis = await get_redis_pool()
        await publish_order_event(redis_client=redis, **kwargs)
        logger.debug("Order event published (bg)", event_type=kwargs.get("event_type"), order_id=kwargs.get("order_id"))
    except Exception as e:
        logger.error("Failed to publish order event (bg)", event_type=kwargs.get("event_type"), error=str(e))


def _schedule_event(
    background_tasks: BackgroundTasks,
    event_type: str,
    order: OrderOutput,
    appended_id: str | None = None,
    actor: Actor | None = None,
) -> None:
    background_tasks.add_task(
        _bg_publish_order_event,
        event_type=event_type,
        order_id=order.id,
        order_number=order.order_number,
        source=order.source,
        branch_id=order.branch_id,
        appended_id=appended_id,
        actor_name=actor.name if actor else None,
        actor_email=actor.email if actor else None,
    )


# =============================================================================
# Reads
# =============================================================================


@router.get("", response_model=list[OrderOutput])
def list_orders(
    is_paid: bool | None = None,
    item_status: ItemStatusType | None = Query(default=None, alias="status"),
    customer_name: str | None = Query(default=None, max_length=100),
    source: OrderSourceType | None = None,
    branch_id: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=1000),
    sort_by: SortField = "created_at",
    sort_order: SortOrder = "desc",
    db: Session = Depends(get_db),
) -> list[OrderOutput]:
    """
    List orders. status matches orders with any main or appended item in
    that status; customer_name is a case-insensitive substring.
    """
    filters = OrderFilter(
        is_paid=is_paid,
        status=item_status,
        customer_name=customer_name,
        source=source,
        branch_id=branch_id,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return [_to_output(order) for order in _get_service(db).get_all(filters)]


@router.get("/online", response_model=list[OrderOutput])
def list_online_orders(db: Session = Depends(get_db)) -> list[OrderOutput]:
    return [_to_output(order) for order in _get_service(db).get_online_orders()]


@router.get("/preparing", response_model=list[OrderOutput])
def list_preparing_orders(
    branch_id: str | None = None,
    db: Session = Depends(get_db),
) -> list[OrderOutput]:
    """Orders with at least one item being prepared, oldest first."""
    return [_to_output(order) for order in _get_service(db).get_preparing_orders(branch_id)]


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(order_id: str, db: Session = Depends(get_db)) -> OrderOutput:
    return _to_output(_get_service(db).get(order_id))


# =============================================================================
# Creation
# =============================================================================


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: OrderCreate,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    x_idempotency_key: str | None = Header(None, max_length=128),
) -> OrderOutput:
    """
    Create an order (items pending, unpaid).

    A replay with an already stored X-Idempotency-Key returns the stored
    order with 200 instead of a 409 conflict.
    """
    order, created = _get_service(db).create(body, idempotency_key=x_idempotency_key)
    output = _to_output(order)

    if not created:
        response.status_code = status.HTTP_200_OK
        return output

    event_type = ONLINE_ORDER_CREATED if output.source == OrderSource.ONLINE else ORDER_CREATED
    _schedule_event(background_tasks, event_type, output)
    return output


@router.post("/{order_id}/append", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def append_items(
    order_id: str,
    body: AppendItemsRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    """Add an independently payable wave of items to an order."""
    order, wave = _get_service(db).append(order_id, body)
    output = _to_output(order)
    _schedule_event(background_tasks, ORDER_UPDATED, output, appended_id=wave.id)
    return output


# =============================================================================
# Item status
# =============================================================================


@router.patch("/{order_id}/items/{item_id}/status", response_model=OrderOutput)
def update_item_status(
    order_id: str,
    item_id: str,
    body: UpdateItemStatusRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    """
    Advance one item (pending -> preparing -> ready -> served).
    Backward moves are rejected; repeating the current status is a no-op.
    """
    actor = body.actor.to_actor() if body.actor else None
    order, changed = _get_service(db).update_item_status(
        order_id, item_id, body.status, appended_id=body.appended_id, actor=actor, at_ms=body.at
    )
    output = _to_output(order)
    if changed:
        _schedule_event(background_tasks, ORDER_UPDATED, output, appended_id=body.appended_id, actor=actor)
    return output


@router.patch("/{order_id}/appended/{appended_id}/items/{item_id}/status", response_model=OrderOutput)
def update_appended_item_status(
    order_id: str,
    appended_id: str,
    item_id: str,
    body: UpdateItemStatusRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    actor = body.actor.to_actor() if body.actor else None
    order, changed = _get_service(db).update_appended_item_status(
        order_id, appended_id, item_id, body.status, actor=actor, at_ms=body.at
    )
    output = _to_output(order)
    if changed:
        _schedule_event(background_tasks, ORDER_UPDATED, output, appended_id=appended_id, actor=actor)
    return output


# =============================================================================
# Payment
# =============================================================================


@router.patch("/{order_id}/payment", response_model=OrderOutput)
def toggle_payment(
    order_id: str,
    body: TogglePaymentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    """
    Set the payment block of the main order (or of body.appended_id).
    Omitting is_paid flips the current flag.
    """
    order = _get_service(db).toggle_payment(
        order_id,
        paid=body.is_paid,
        method=body.payment_method,
        cash_amount=body.cash_amount,
        gcash_amount=body.gcash_amount,
        appended_id=body.appended_id,
    )
    output = _to_output(order)
    _schedule_event(background_tasks, ORDER_UPDATED, output, appended_id=body.appended_id)
    return output


@router.patch("/{order_id}/appended/{appended_id}/payment", response_model=OrderOutput)
def toggle_appended_payment(
    order_id: str,
    appended_id: str,
    body: TogglePaymentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    order = _get_service(db).toggle_appended_payment(
        order_id,
        appended_id,
        paid=body.is_paid,
        method=body.payment_method,
        cash_amount=body.cash_amount,
        gcash_amount=body.gcash_amount,
    )
    output = _to_output(order)
    _schedule_event(background_tasks, ORDER_UPDATED, output, appended_id=appended_id)
    return output


@router.post("/{order_id}/confirm-payment", response_model=OrderOutput)
def confirm_online_payment(
    order_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    """Confirm an online order's payment. 400 for in-house orders."""
    output = _to_output(_get_service(db).confirm_online_payment(order_id))
    _schedule_event(background_tasks, ONLINE_ORDER_CONFIRMED, output)
    return output


# =============================================================================
# Admin operations
# =============================================================================


@router.patch("/{order_id}", response_model=OrderOutput)
def update_order(
    order_id: str,
    body: OrderUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    """Partial update of customer_name, order_type and the order taker."""
    output = _to_output(_get_service(db).update(order_id, body))
    _schedule_event(background_tasks, ORDER_UPDATED, output)
    return output


@router.delete("/{order_id}", response_model=DeleteResponse)
def delete_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> DeleteResponse:
    service = _get_service(db)
    output = _to_output(service.get(order_id))
    service.delete(order_id)
    _schedule_event(background_tasks, ORDER_DELETED, output)
    return DeleteResponse(id=order_id)


@router.post("/{order_id}/notes", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def add_note(
    order_id: str,
    body: AddNoteRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    order, _ = _get_service(db).add_note(order_id, body)
    output = _to_output(order)
    _schedule_event(background_tasks, ORDER_UPDATED, output, actor=body.author.to_actor() if body.author else None)
    return output


@router.delete("/{order_id}/appended/{appended_id}", response_model=OrderOutput)
def delete_appended(
    order_id: str,
    appended_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> OrderOutput:
    output = _to_output(_get_service(db).delete_appended(order_id, appended_id))
    _schedule_event(background_tasks, ORDER_UPDATED, output, appended_id=appended_id)
    return output
