"""
Withdrawal Domain Service.

Records cash taken out by an owner or spent on purchases, charged to one
owner or split between both.
"""

import uuid
from typing import Sequence

from sqlalchemy.orm import Session

from shared.config.constants import Owners
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.order_lifecycle import now_ms
from shared.utils.schemas import WithdrawalCreate
from rest_api.models import MenuItem, Withdrawal
from rest_api.repositories import MenuItemRepository, WithdrawalRepository
from rest_api.services.ledger import normalize_charged_to

logger = get_logger(__name__)


class WithdrawalService:
    """Create, list and delete withdrawals and purchases."""

    def __init__(self, db: Session):
        self._db = db
        self._repo = WithdrawalRepository(db)

    def list(self, start_ms: int | None = None, end_ms: int | None = None) -> Sequence[Withdrawal]:
        return self._repo.find_all(start_ms, end_ms)

    def create(self, data: WithdrawalCreate) -> Withdrawal:
        """
        Raises:
            ValidationError: charged_to is not an owner, 'split' or 'all'
        """
        charged_to = normalize_charged_to(data.charged_to.strip().lower())
        if charged_to not in (*Owners.BOTH, Owners.SPLIT):
            raise ValidationError(
                f"charged_to must be one of {', '.join((*Owners.BOTH, Owners.SPLIT))}",
                field="charged_to",
                value=data.charged_to,
            )

        withdrawal = Withdrawal(
            id=data.id or f"wd-{uuid.uuid4().hex}",
            type=data.type,
            amount=data.amount,
            charged_to=charged_to,
            description=data.description.strip(),
            payment_method=data.payment_method,
            created_at=data.created_at if data.created_at is not None else now_ms(),
            created_by_name=data.created_by_name,
            created_by_email=data.created_by_email,
        )
        self._repo.save(withdrawal)
        safe_commit(self._db)

        logger.info(
            "Withdrawal recorded",
            withdrawal_id=withdrawal.id,
            type=withdrawal.type,
            amount=str(withdrawal.amount),
            charged_to=charged_to,
        )
        return withdrawal

    def delete(self, withdrawal_id: str) -> None:
        withdrawal = self._repo.find_by_id(withdrawal_id)
        if withdrawal is None:
            raise NotFoundError("Withdrawal", withdrawal_id)
        self._repo.delete(withdrawal)
        safe_commit(self._db)
        logger.info("Withdrawal deleted", withdrawal_id=withdrawal_id)


class MenuService:
    """Read-only view of the menu catalog."""

    def __init__(self, db: Session):
        self._repo = MenuItemRepository(db)

    def list(self) -> Sequence[MenuItem]:
        return self._repo.find_all()
