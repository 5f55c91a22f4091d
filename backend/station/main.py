"""
Station application.
Serves the counter and kitchen screens from the station's local views and
forwards writes through the offline write buffer.
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status

from shared.config.logging import get_logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.utils.kitchen_schemas import AdvanceGroupRequest, AdvanceGroupResult, KitchenQueueOutput, StationType
from shared.utils.report_schemas import SalesSummary
from shared.utils.schemas import (
    AddNoteRequest,
    AppendItemsRequest,
    DeleteResponse,
    ItemStatusType,
    OrderCreate,
    OrderFilter,
    OrderOutput,
    OrderUpdate,
    TogglePaymentRequest,
    UpdateItemStatusRequest,
)
from station.offline_buffer import BufferStatus, SyncResult
from station.runtime import StationRuntime

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("station")
    runtime = StationRuntime()
    app.state.runtime = runtime
    await runtime.start()
    yield
    await runtime.stop()


def get_runtime(request: Request) -> StationRuntime:
    return request.app.state.runtime


router = APIRouter(prefix="/station", tags=["station"])


# =============================================================================
# Buffer status
# =============================================================================


@router.get("/status", response_model=BufferStatus)
def get_status(runtime: StationRuntime = Depends(get_runtime)) -> BufferStatus:
    """online or degraded, with the number of writes waiting for replay."""
    return runtime.buffer.status


@router.post("/sync", response_model=SyncResult)
async def sync_now(runtime: StationRuntime = Depends(get_runtime)) -> SyncResult:
    return await runtime.buffer.sync()


# =============================================================================
# Orders
# =============================================================================


@router.get("/orders", response_model=list[OrderOutput])
async def list_orders(
    is_paid: bool | None = None,
    item_status: ItemStatusType | None = Query(default=None, alias="status"),
    customer_name: str | None = None,
    runtime: StationRuntime = Depends(get_runtime),
) -> list[OrderOutput]:
    filters = OrderFilter(is_paid=is_paid, status=item_status, customer_name=customer_name)
    return await runtime.buffer.get_all(filters)


@router.post("/orders", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    x_idempotency_key: str | None = Header(None, max_length=128),
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    order = await runtime.buffer.create(body, idempotency_key=x_idempotency_key)
    runtime.kitchen.apply_order(order)
    return order


@router.post("/orders/{order_id}/append", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
async def append_items(
    order_id: str,
    body: AppendItemsRequest,
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    order = await runtime.buffer.append(order_id, body)
    runtime.kitchen.apply_order(order)
    return order


@router.patch("/orders/{order_id}/items/{item_id}/status", response_model=OrderOutput)
async def update_item_status(
    order_id: str,
    item_id: str,
    body: UpdateItemStatusRequest,
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    order = await runtime.buffer.update_item_status(
        order_id,
        item_id,
        body.status,
        appended_id=body.appended_id,
        actor=body.actor.to_actor() if body.actor else None,
        at_ms=body.at,
    )
    runtime.kitchen.apply_order(order)
    return order


@router.patch("/orders/{order_id}/payment", response_model=OrderOutput)
async def toggle_payment(
    order_id: str,
    body: TogglePaymentRequest,
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    return await runtime.buffer.toggle_payment(
        order_id,
        paid=body.is_paid,
        method=body.payment_method,
        cash_amount=body.cash_amount,
        gcash_amount=body.gcash_amount,
        appended_id=body.appended_id,
    )


@router.post("/orders/{order_id}/confirm-payment", response_model=OrderOutput)
async def confirm_online_payment(order_id: str, runtime: StationRuntime = Depends(get_runtime)) -> OrderOutput:
    return await runtime.buffer.confirm_online_payment(order_id)


@router.patch("/orders/{order_id}", response_model=OrderOutput)
async def update_order(
    order_id: str,
    body: OrderUpdate,
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    order = await runtime.buffer.update(order_id, body)
    runtime.kitchen.apply_order(order)
    return order


@router.delete("/orders/{order_id}", response_model=DeleteResponse)
async def delete_order(order_id: str, runtime: StationRuntime = Depends(get_runtime)) -> DeleteResponse:
    await runtime.buffer.delete(order_id)
    runtime.kitchen.remove_order(order_id)
    return DeleteResponse(id=order_id)


@router.post("/orders/{order_id}/notes", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
async def add_note(
    order_id: str,
    body: AddNoteRequest,
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    return await runtime.buffer.add_note(order_id, body)


@router.delete("/orders/{order_id}/appended/{appended_id}", response_model=OrderOutput)
async def delete_appended(
    order_id: str,
    appended_id: str,
    runtime: StationRuntime = Depends(get_runtime),
) -> OrderOutput:
    order = await runtime.buffer.delete_appended(order_id, appended_id)
    runtime.kitchen.apply_order(order)
    return order


# =============================================================================
# Kitchen
# =============================================================================


@router.get("/kitchen/queue", response_model=KitchenQueueOutput)
def kitchen_queue(
    station: StationType | None = None,
    runtime: StationRuntime = Depends(get_runtime),
) -> KitchenQueueOutput:
    return runtime.kitchen.snapshot(station=station)


@router.post("/kitchen/groups/advance", response_model=AdvanceGroupResult)
async def advance_group(
    body: AdvanceGroupRequest,
    key: str = Query(..., description="Group key as returned in the queue"),
    runtime: StationRuntime = Depends(get_runtime),
) -> AdvanceGroupResult:
    """Advance every instance of a group; per-item failures are reported, not rolled back."""
    actor = body.actor.to_actor() if body.actor else None
    return await runtime.kitchen.advance_group(key, body.new_status, actor)


# =============================================================================
# Ledger
# =============================================================================


@router.get("/ledger/daily", response_model=SalesSummary)
async def ledger_daily(
    date: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    runtime: StationRuntime = Depends(get_runtime),
) -> SalesSummary:
    if date is not None:
        return await runtime.ledger.summary_for_day(date)
    if runtime.ledger.daily is None:
        await runtime.ledger.recompute()
    return runtime.ledger.daily


@router.get("/ledger/monthly", response_model=SalesSummary)
async def ledger_monthly(runtime: StationRuntime = Depends(get_runtime)) -> SalesSummary:
    if runtime.ledger.monthly is None:
        await runtime.ledger.recompute()
    return runtime.ledger.monthly


app = FastAPI(
    title="Counter Ops Station",
    description="Counter and kitchen station with offline write buffering",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("station.main:app", host="0.0.0.0", port=settings.station_port, reload=True)
