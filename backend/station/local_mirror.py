"""
Local durable mirror of the order store, kept in SQLite on the station.

Two tables:
- mirrored_order: last known snapshot of each order as JSON
- pending_write: mutations applied locally while the remote store was
  unreachable, replayed in order by the offline write buffer
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from pydantic import BaseModel, Field
from sqlalchemy import BigInteger, Integer, String, Text, delete, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import create_db_engine, safe_commit
from shared.utils.order_lifecycle import now_ms
from shared.utils.schemas import OrderOutput

logger = get_logger(__name__)


class MirrorBase(DeclarativeBase):
    pass


class MirroredOrder(MirrorBase):
    __tablename__ = "mirrored_order"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    mirrored_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class PendingWriteRow(MirrorBase):
    __tablename__ = "pending_write"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    operation: Mapped[str] = mapped_column(String(32), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    queued_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class PendingWrite(BaseModel):
    """A queued offline mutation."""

    seq: int | None = None
    idempotency_key: str
    operation: str
    order_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    queued_at: int | None = None


class LocalOrderMirror:
    """
    SQLite-backed order snapshots and the pending-write queue.

    Calls are synchronous; SQLite on local disk answers in well under a
    millisecond for the venue's order volume.
    """

    def __init__(self, url: str | None = None):
        self.url = url or settings.station_mirror_url
        self._engine = create_db_engine(self.url)
        self._session_factory = sessionmaker(bind=self._engine, autoflush=False, expire_on_commit=False)
        MirrorBase.metadata.create_all(self._engine)
        logger.info("Local order mirror ready", url=self.url)

    def close(self) -> None:
        self._engine.dispose()

    def _session(self) -> Session:
        return self._session_factory()

    # =========================================================================
    # Orders
    # =========================================================================

    def get_all_orders(self) -> list[OrderOutput]:
        """Every mirrored order, newest first."""
        with self._session() as db:
            rows = db.execute(select(MirroredOrder).order_by(MirroredOrder.created_at.desc())).scalars().all()
            return [OrderOutput.model_validate_json(row.payload) for row in rows]

    def get_order(self, order_id: str) -> OrderOutput | None:
        with self._session() as db:
            row = db.get(MirroredOrder, order_id)
            return OrderOutput.model_validate_json(row.payload) if row is not None else None

    def save_orders(self, orders: Iterable[OrderOutput]) -> None:
        """Insert or overwrite the given snapshots."""
        stamp = now_ms()
        with self._session() as db:
            for order in orders:
                db.merge(MirroredOrder(
                    id=order.id,
                    created_at=order.created_at,
                    payload=order.model_dump_json(),
                    mirrored_at=stamp,
                ))
            safe_commit(db)

    def replace_all(self, orders: Iterable[OrderOutput]) -> None:
        """Drop every snapshot and store exactly the given ones."""
        orders = list(orders)
        stamp = now_ms()
        with self._session() as db:
            db.execute(delete(MirroredOrder))
            db.add_all(
                MirroredOrder(id=o.id, created_at=o.created_at, payload=o.model_dump_json(), mirrored_at=stamp)
                for o in orders
            )
            safe_commit(db)
        logger.debug("Mirror replaced", orders=len(orders))

    def delete_order(self, order_id: str) -> None:
        with self._session() as db:
            db.execute(delete(MirroredOrder).where(MirroredOrder.id == order_id))
            safe_commit(db)

    # =========================================================================
    # Pending writes
    # =========================================================================

    def enqueue(self, write: PendingWrite) -> PendingWrite:
        row = PendingWriteRow(
            idempotency_key=write.idempotency_key,
            operation=write.operation,
            order_id=write.order_id,
            payload=json.dumps(write.payload, default=str),
            queued_at=write.queued_at if write.queued_at is not None else now_ms(),
        )
        with self._session() as db:
            db.add(row)
            safe_commit(db)
            return write.model_copy(update={"seq": row.seq, "queued_at": row.queued_at})

    def pending_writes(self) -> list[PendingWrite]:
        """Queued writes in the order they were made."""
        with self._session() as db:
            rows = db.execute(select(PendingWriteRow).order_by(PendingWriteRow.seq)).scalars().all()
            return [
                PendingWrite(
                    seq=row.seq,
                    idempotency_key=row.idempotency_key,
                    operation=row.operation,
                    order_id=row.order_id,
                    payload=json.loads(row.payload),
                    queued_at=row.queued_at,
                )
                for row in rows
            ]

    def remove_write(self, seq: int) -> None:
        with self._session() as db:
            db.execute(delete(PendingWriteRow).where(PendingWriteRow.seq == seq))
            safe_commit(db)

    def pending_count(self) -> int:
        with self._session() as db:
            return db.scalar(select(func.count()).select_from(PendingWriteRow)) or 0
