"""
Download Ledger Interface.
Append-only: rows are added and aggregated, never updated.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from app.domain.models.download import Download


class DownloadRepository(Protocol):
    """Interface for the download ledger."""

    def append(
        self,
        tract_id: int,
        user_id: Optional[int],
        ip_address: str,
        user_agent: Optional[str] = None,
    ) -> Download:
        ...

    def count(self) -> int:
        ...

    def rollback(self) -> None:
        ...

    def count_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        ...

    def count_for_tract_between(self, tract_id: int, start: datetime, end: Optional[datetime] = None) -> int:
        ...

    def count_by_user(self, user_id: int) -> int:
        ...

    def last_downloader_name(self, tract_id: int) -> str:
        """Name, else email, else 'Anonymous' for the most recent download."""
        ...

    def popular_since(self, since: datetime, limit: int = 10) -> List[Dict[str, Any]]:
        """Per-tract counts since `since`, busiest first, with the last downloader."""
        ...
