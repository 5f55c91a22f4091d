"""
Repository base: id lookups and writes shared by every aggregate.

Subclasses set ``model`` and override ``_base_query`` when the aggregate
needs eager loading. Writes flush but never commit; the service decides
when the unit of work ends.
"""

from typing import Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, db: Session):
        self._db = db

    def _base_query(self) -> Select:
        return select(self.model)

    def find_by_id(self, entity_id: str) -> ModelT | None:
        return self._db.scalar(self._base_query().where(self.model.id == entity_id))

    def exists(self, entity_id: str) -> bool:
        query = select(func.count()).select_from(self.model).where(self.model.id == entity_id)
        return bool(self._db.scalar(query))

    def save(self, entity: ModelT) -> ModelT:
        self._db.add(entity)
        self._db.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        """Hard delete; child rows go with it through ORM cascades."""
        self._db.delete(entity)
        self._db.flush()
