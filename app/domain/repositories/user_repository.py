"""
User Repository Interface.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from app.domain.repositories.base import BaseRepository
from app.domain.models.user import User


class UserRepository(BaseRepository[User], Protocol):
    """Interface for User-specific operations."""

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def list_recent(self, limit: int = 5, skip: int = 0) -> List[User]:
        """Most recently created first."""
        ...

    def count_created_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        ...
