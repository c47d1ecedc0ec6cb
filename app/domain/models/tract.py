"""Tract domain model — uploaded PDF tracts and their junction tables."""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base, utcnow


class TractStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


tract_categories = Table(
    "tract_categories",
    Base.metadata,
    Column("tract_id", Integer, ForeignKey("tracts.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True, index=True),
)

tract_tags = Table(
    "tract_tags",
    Base.metadata,
    Column("tract_id", Integer, ForeignKey("tracts.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)

tract_scriptures = Table(
    "tract_scriptures",
    Base.metadata,
    Column("tract_id", Integer, ForeignKey("tracts.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column(
        "scripture_id",
        Integer,
        ForeignKey("scripture_references.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Tract(Base):
    __tablename__ = "tracts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    denomination = Column(String(100), nullable=True)
    language = Column(String(10), nullable=False, default="en")

    # Stored file — file_url is relative to MEDIA_ROOT, file_name is the client's name
    file_url = Column(Text, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    thumbnail_url = Column(Text, nullable=True)

    download_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=TractStatus.PENDING.value, index=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="tracts")
    categories = relationship("Category", secondary=tract_categories, back_populates="tracts")
    tags = relationship("Tag", secondary=tract_tags, back_populates="tracts")
    scriptures = relationship("ScriptureReference", secondary=tract_scriptures)
    downloads = relationship(
        "Download",
        back_populates="tract",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Tract {self.id} - {self.title} [{self.status}]>"
