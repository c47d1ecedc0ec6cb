"""
SQLAlchemy Implementation of User Repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func

from app.domain.models.user import User
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User], UserRepository):
    """User repository implementation using SQLAlchemy."""

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def list_recent(self, limit: int = 5, skip: int = 0) -> List[User]:
        return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()

    def count_created_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        query = self.db.query(func.count(User.id)).filter(User.created_at >= start)
        if end is not None:
            query = query.filter(User.created_at < end)
        return query.scalar() or 0
