"""
Kitchen queue router - /api/kitchen/*
Batches identical open items across orders so the kitchen cooks in groups.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.kitchen_schemas import KitchenQueueOutput, StationType
from rest_api.repositories import MenuItemRepository, OrderRepository
from rest_api.services.kitchen import build_kitchen_queue

router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])


@router.get("/queue", response_model=KitchenQueueOutput)
def get_kitchen_queue(
    station: StationType | None = None,
    at: int | None = Query(default=None, description="Client epoch ms used for urgency"),
    db: Session = Depends(get_db),
) -> KitchenQueueOutput:
    """
    Grouped queue of every non-served item, pending first, then preparing,
    then ready; oldest first within a status. Pending groups carry urgency.
    """
    orders = OrderRepository(db).find_with_open_items()
    menu_items = MenuItemRepository(db).find_all()
    return build_kitchen_queue(orders, menu_items, now_ms=at, station=station)
