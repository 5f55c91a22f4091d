"""
Ledger Models: Withdrawal, MenuItem, DailyReportValidation.

Only raw records live here. Report totals are always recomputed from
orders and withdrawals and never stored.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import WithdrawalType
from .base import RowStampMixin, Base


class Withdrawal(RowStampMixin, Base):
    """Cash taken out (withdrawal) or spent on supplies (purchase), charged to an owner."""

    __tablename__ = "withdrawal"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(16), default=WithdrawalType.WITHDRAWAL, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    charged_to: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(16))
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    created_by_name: Mapped[Optional[str]] = mapped_column(String(200))
    created_by_email: Mapped[Optional[str]] = mapped_column(String(255))


class MenuItem(RowStampMixin, Base):
    """
    Menu entry, maintained by the catalog collaborator.
    Read here only for owner attribution and category classification.
    """

    __tablename__ = "menu_item"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    owner: Mapped[Optional[str]] = mapped_column(String(32))
    category: Mapped[Optional[str]] = mapped_column(String(100))


class DailyReportValidation(RowStampMixin, Base):
    """An owner's sign-off on one business day (keyed by the day the window starts)."""

    __tablename__ = "daily_report_validation"

    business_date: Mapped[str] = mapped_column(String(10), primary_key=True)  # YYYY-MM-DD
    validated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    validated_by_name: Mapped[Optional[str]] = mapped_column(String(200))
    validated_by_email: Mapped[Optional[str]] = mapped_column(String(255))
