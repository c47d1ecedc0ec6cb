"""
SQLAlchemy Implementation of Tract Repository.
"""

import re
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.domain.models.category import Category, Tag
from app.domain.models.scripture import ScriptureReference
from app.domain.models.tract import Tract
from app.domain.repositories.tract_repository import TractRepository
from app.infrastructure.database import utcnow
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


def tag_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name)


class SQLAlchemyTractRepository(SQLAlchemyRepository[Tract], TractRepository):
    """Tract repository implementation using SQLAlchemy."""

    def list_tracts(self, status: Optional[str] = None, search: str = "") -> List[Tract]:
        query = self.db.query(Tract).options(
            selectinload(Tract.author),
            selectinload(Tract.categories),
            selectinload(Tract.tags),
        )
        if status is not None:
            query = query.filter(Tract.status == status)

        term = search.strip().lower()
        if term:
            query = query.filter(
                or_(
                    func.lower(Tract.title).contains(term, autoescape=True),
                    func.lower(Tract.description).contains(term, autoescape=True),
                    func.lower(Tract.denomination).contains(term, autoescape=True),
                )
            )

        return query.order_by(Tract.created_at.desc(), Tract.id.desc()).all()

    def set_status(self, tract: Tract, status: str) -> Tract:
        tract.status = status
        tract.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(tract)
        return tract

    def increment_download_count(self, tract_id: int) -> int:
        # Single UPDATE ... SET download_count = download_count + 1
        rows = (
            self.db.query(Tract)
            .filter(Tract.id == tract_id)
            .update({Tract.download_count: Tract.download_count + 1}, synchronize_session=False)
        )
        self.db.commit()
        return rows

    def count_by_status(self, status: Optional[str] = None) -> int:
        query = self.db.query(func.count(Tract.id))
        if status is not None:
            query = query.filter(Tract.status == status)
        return query.scalar() or 0

    def count_created_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        query = self.db.query(func.count(Tract.id)).filter(Tract.created_at >= start)
        if end is not None:
            query = query.filter(Tract.created_at < end)
        return query.scalar() or 0

    def count_by_author(self, author_id: int) -> int:
        return self.db.query(func.count(Tract.id)).filter(Tract.author_id == author_id).scalar() or 0

    def top_downloaded(self, status: str, limit: int = 5) -> List[Tract]:
        return (
            self.db.query(Tract)
            .filter(Tract.status == status)
            .order_by(Tract.download_count.desc(), Tract.id.asc())
            .limit(limit)
            .all()
        )

    # Classification

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.slug == slug).first()

    def list_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.order, Category.name).all()

    def _find_tag(self, name: str, slug: str) -> Optional[Tag]:
        return self.db.query(Tag).filter(or_(Tag.name == name, Tag.slug == slug)).first()

    def get_or_create_tag(self, name: str) -> Tag:
        """Names that slug alike ("end times", "end-times") share one tag."""
        slug = tag_slug(name)
        tag = self._find_tag(name, slug)
        if tag is not None:
            return tag

        try:
            tag = Tag(name=name, slug=slug)
            self.db.add(tag)
            self.db.commit()
        except IntegrityError:
            # Created by a concurrent upload between the lookup and the insert
            self.db.rollback()
            tag = self._find_tag(name, slug)
            if tag is None:
                raise
            return tag

        self.db.refresh(tag)
        return tag

    def link_category(self, tract: Tract, category: Category) -> None:
        if category not in tract.categories:
            tract.categories.append(category)
            self.db.commit()

    def link_tag(self, tract: Tract, tag: Tag) -> None:
        if tag not in tract.tags:
            tract.tags.append(tag)
            self.db.commit()

    def link_scripture(self, tract: Tract, scripture: ScriptureReference) -> None:
        tract.scriptures.append(scripture)
        self.db.commit()
