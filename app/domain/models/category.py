"""Classification vocabularies — categories and tags."""

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base, utcnow
from app.domain.models.tract import tract_categories, tract_tags


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tracts = relationship("Tract", secondary=tract_categories, back_populates="categories")

    def __repr__(self):
        return f"<Category {self.slug}>"


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    slug = Column(String(50), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tracts = relationship("Tract", secondary=tract_tags, back_populates="tags")

    def __repr__(self):
        return f"<Tag {self.name}>"
