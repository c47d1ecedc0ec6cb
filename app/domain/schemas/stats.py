"""Pydantic schemas for the admin dashboard."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class MonthlyGrowth(BaseModel):
    tracts: int
    users: int
    downloads: int


class TopTract(BaseModel):
    id: int
    title: str
    downloads: int
    trend: str
    change: int


class RecentUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: str
    joined_at: Optional[datetime] = None
    uploads: int


class PopularDownload(BaseModel):
    tract_id: int
    tract_title: Optional[str] = None
    download_count: int
    last_downloaded_at: Optional[datetime] = None
    last_downloaded_by: str


class DashboardStats(BaseModel):
    total_tracts: int
    approved_tracts: int
    pending_review: int
    total_users: int
    total_downloads: int
    monthly_growth: MonthlyGrowth
    top_tracts: list[TopTract]
    recent_users: list[RecentUser]
    recent_downloads: list[PopularDownload]
