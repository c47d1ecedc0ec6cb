"""
Tract Repository Interface.
Data access for tracts and their classification links.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from app.domain.repositories.base import BaseRepository
from app.domain.models.category import Category, Tag
from app.domain.models.scripture import ScriptureReference
from app.domain.models.tract import Tract


class TractRepository(BaseRepository[Tract], Protocol):
    """Interface for Tract-specific operations."""

    def list_tracts(self, status: Optional[str] = None, search: str = "") -> List[Tract]:
        """Newest first; `status=None` means every status."""
        ...

    def set_status(self, tract: Tract, status: str) -> Tract:
        """Change the review status and stamp the modification time."""
        ...

    def increment_download_count(self, tract_id: int) -> int:
        """Atomic +1 on the counter; returns the number of rows touched."""
        ...

    def count_by_status(self, status: Optional[str] = None) -> int:
        ...

    def count_created_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        ...

    def count_by_author(self, author_id: int) -> int:
        ...

    def top_downloaded(self, status: str, limit: int = 5) -> List[Tract]:
        ...

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        ...

    def list_categories(self) -> List[Category]:
        ...

    def get_or_create_tag(self, name: str) -> Tag:
        ...

    def link_category(self, tract: Tract, category: Category) -> None:
        ...

    def link_tag(self, tract: Tract, tag: Tag) -> None:
        ...

    def link_scripture(self, tract: Tract, scripture: ScriptureReference) -> None:
        ...
