"""
Base Repository Interface.
Defines the CRUD contract every repository implements.
"""

from typing import TypeVar, Optional, Any, Mapping, Protocol

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Interface for generic CRUD operations."""

    def get_by_id(self, id: int) -> Optional[T]:
        """Get a single entity by ID."""
        ...

    def count(self) -> int:
        """Count all entities."""
        ...

    def create(self, obj_in: Any) -> T:
        """Create and persist a new entity."""
        ...

    def update(self, db_obj: T, changes: Mapping[str, Any]) -> T:
        """Apply field changes to an entity and persist them."""
        ...

    def delete(self, db_obj: T) -> None:
        """Delete an entity."""
        ...

    def rollback(self) -> None:
        """Discard a failed unit of work so the session stays usable."""
        ...
