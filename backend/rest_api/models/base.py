"""
Declarative base and the row bookkeeping mixin.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={getattr(self, 'id', None)!r}>"


class RowStampMixin:
    """
    Server-side write times.

    Business times (order created_at, item preparing_at, ...) are epoch
    milliseconds from the client clock and live on each model. These
    columns only say when the row reached the database.
    """

    inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
