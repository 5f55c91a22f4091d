"""
Withdrawals and menu routers.
- /api/withdrawals - cash withdrawals and purchases charged to the owners
- /api/menu-items - read-only menu, used for owner attribution and categories
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import DeleteResponse, MenuItemOutput, WithdrawalCreate, WithdrawalOutput
from rest_api.services.domain.withdrawal_service import MenuService, WithdrawalService

router = APIRouter(prefix="/api/withdrawals", tags=["withdrawals"])
menu_router = APIRouter(prefix="/api/menu-items", tags=["menu"])


def _get_service(db: Session) -> WithdrawalService:
    return WithdrawalService(db)


@router.get("", response_model=list[WithdrawalOutput])
def list_withdrawals(
    start: int | None = Query(default=None, description="Epoch ms, inclusive"),
    end: int | None = Query(default=None, description="Epoch ms, exclusive"),
    db: Session = Depends(get_db),
) -> list[WithdrawalOutput]:
    return [WithdrawalOutput.model_validate(w) for w in _get_service(db).list(start, end)]


@router.post("", response_model=WithdrawalOutput, status_code=status.HTTP_201_CREATED)
def create_withdrawal(body: WithdrawalCreate, db: Session = Depends(get_db)) -> WithdrawalOutput:
    """Record a withdrawal or purchase. charged_to 'all' is stored as 'split'."""
    return WithdrawalOutput.model_validate(_get_service(db).create(body))


@router.delete("/{withdrawal_id}", response_model=DeleteResponse)
def delete_withdrawal(withdrawal_id: str, db: Session = Depends(get_db)) -> DeleteResponse:
    _get_service(db).delete(withdrawal_id)
    return DeleteResponse(id=withdrawal_id)


@menu_router.get("", response_model=list[MenuItemOutput])
def list_menu_items(db: Session = Depends(get_db)) -> list[MenuItemOutput]:
    return [MenuItemOutput.model_validate(item) for item in MenuService(db).list()]
