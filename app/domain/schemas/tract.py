"""Pydantic schemas for the Tract domain."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

from app.domain.models.tract import TractStatus


class AuthorRead(BaseModel):
    id: int
    name: Optional[str] = None
    email: str

    model_config = {"from_attributes": True}


class CategoryRead(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class TractRead(BaseModel):
    id: int
    title: str
    description: str
    author_id: int
    denomination: Optional[str] = None
    language: str
    file_url: str
    file_name: str
    file_size: int
    thumbnail_url: Optional[str] = None
    download_count: int
    status: str
    featured: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TractListItem(TractRead):
    author: Optional[AuthorRead] = None
    categories: list[CategoryRead] = []
    tags: list[str] = []

    @classmethod
    def from_tract(cls, tract) -> "TractListItem":
        return cls(
            **TractRead.model_validate(tract).model_dump(),
            author=AuthorRead.model_validate(tract.author) if tract.author else None,
            categories=[CategoryRead.model_validate(c) for c in tract.categories],
            tags=sorted(tag.name for tag in tract.tags),
        )


class TractSummary(BaseModel):
    """Returned by the upload endpoint."""
    id: int
    title: str
    status: str
    file_url: str

    model_config = {"from_attributes": True}


class ScriptureReferenceIn(BaseModel):
    book: str = Field(min_length=1, max_length=50)
    chapter: int = Field(ge=1)
    verse_start: Optional[int] = Field(default=None, ge=1)
    verse_end: Optional[int] = Field(default=None, ge=1)
    version: str = Field(default="NIV", max_length=20)


class TractSubmission(BaseModel):
    """Validated upload metadata."""
    title: str
    description: str
    category: str
    denomination: str
    language: str
    tags: list[str]
    scripture_references: list[ScriptureReferenceIn] = []


class TractUpdate(BaseModel):
    """Admin patch. Only the fields that are sent get written."""
    id: int
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    denomination: Optional[str] = None
    language: Optional[str] = Field(default=None, max_length=10)
    thumbnail_url: Optional[str] = None
    status: Optional[TractStatus] = None
    featured: Optional[bool] = None


class TractDelete(BaseModel):
    tract_id: int


class TractReview(BaseModel):
    tract_id: int
    status: Literal["approved", "rejected"]


class FeaturedToggle(BaseModel):
    featured: bool
