"""
SQLAlchemy Implementation of the Download Ledger.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.models.download import Download
from app.domain.models.tract import Tract
from app.domain.models.user import User
from app.domain.repositories.download_repository import DownloadRepository


class SQLAlchemyDownloadRepository(DownloadRepository):
    """Download ledger backed by the 'downloads' table."""

    def __init__(self, db: Session):
        self.db = db

    def rollback(self) -> None:
        self.db.rollback()

    def append(
        self,
        tract_id: int,
        user_id: Optional[int],
        ip_address: str,
        user_agent: Optional[str] = None,
    ) -> Download:
        row = Download(
            tract_id=tract_id,
            user_id=user_id,
            ip_address=ip_address[:45],
            user_agent=user_agent,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def count(self) -> int:
        return self.db.query(func.count(Download.id)).scalar() or 0

    def count_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        query = self.db.query(func.count(Download.id)).filter(Download.downloaded_at >= start)
        if end is not None:
            query = query.filter(Download.downloaded_at < end)
        return query.scalar() or 0

    def count_for_tract_between(self, tract_id: int, start: datetime, end: Optional[datetime] = None) -> int:
        query = self.db.query(func.count(Download.id)).filter(
            Download.tract_id == tract_id,
            Download.downloaded_at >= start,
        )
        if end is not None:
            query = query.filter(Download.downloaded_at < end)
        return query.scalar() or 0

    def count_by_user(self, user_id: int) -> int:
        return self.db.query(func.count(Download.id)).filter(Download.user_id == user_id).scalar() or 0

    def last_downloader_name(self, tract_id: int) -> str:
        row = (
            self.db.query(User.name, User.email)
            .select_from(Download)
            .outerjoin(User, Download.user_id == User.id)
            .filter(Download.tract_id == tract_id)
            .order_by(Download.downloaded_at.desc(), Download.id.desc())
            .first()
        )
        if row is None:
            return "Anonymous"
        return row.name or row.email or "Anonymous"

    def popular_since(self, since: datetime, limit: int = 10) -> List[Dict[str, Any]]:
        download_count = func.count(Download.id).label("download_count")
        last_downloaded_at = func.max(Download.downloaded_at).label("last_downloaded_at")
        results = (
            self.db.query(
                Download.tract_id,
                Tract.title.label("tract_title"),
                download_count,
                last_downloaded_at,
            )
            .outerjoin(Tract, Download.tract_id == Tract.id)
            .filter(Download.downloaded_at >= since)
            .group_by(Download.tract_id, Tract.title)
            .order_by(download_count.desc(), last_downloaded_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "tract_id": r.tract_id,
                "tract_title": r.tract_title,
                "download_count": r.download_count,
                "last_downloaded_at": r.last_downloaded_at,
                "last_downloaded_by": self.last_downloader_name(r.tract_id),
            }
            for r in results
        ]
