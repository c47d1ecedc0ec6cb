"""
SQLAlchemy implementation of the Base Repository.
"""

from typing import Any, Generic, Mapping, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.repositories.base import BaseRepository
from app.infrastructure.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class SQLAlchemyRepository(BaseRepository[ModelType], Generic[ModelType]):
    """Generic repository implementation for SQLAlchemy models."""

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    def get_by_id(self, id: int) -> Optional[ModelType]:
        return self.db.get(self.model, id)

    def count(self) -> int:
        return self.db.query(func.count(self.model.id)).scalar() or 0

    def create(self, obj_in: Any) -> ModelType:
        if isinstance(obj_in, self.model):
            db_obj = obj_in
        else:
            data = obj_in.model_dump(exclude_unset=True) if hasattr(obj_in, "model_dump") else dict(obj_in)
            db_obj = self.model(**data)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def update(self, db_obj: ModelType, changes: Mapping[str, Any]) -> ModelType:
        for field, value in changes.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def delete(self, db_obj: ModelType) -> None:
        self.db.delete(db_obj)
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
