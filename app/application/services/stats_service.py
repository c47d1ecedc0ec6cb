"""Stats service — admin dashboard figures derived from tracts, users and the download ledger.

Nothing is cached: each call re-reads the store, so a review followed by a
refresh always shows the new counts.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.domain.authorization import Action, Caller, ensure_authorized
from app.domain.models.tract import TractStatus
from app.domain.repositories.download_repository import DownloadRepository
from app.domain.repositories.tract_repository import TractRepository
from app.domain.repositories.user_repository import UserRepository
from app.domain.schemas.stats import (
    DashboardStats,
    MonthlyGrowth,
    PopularDownload,
    RecentUser,
    TopTract,
)

GROWTH_WINDOW = timedelta(days=30)
TREND_WINDOW = timedelta(days=7)
POPULAR_WINDOW = timedelta(days=7)
TOP_TRACTS_LIMIT = 5
RECENT_USERS_LIMIT = 5
POPULAR_DOWNLOADS_LIMIT = 10


def calculate_growth(recent: int, previous: int) -> int:
    """Period-over-period change in percent; halves round up."""
    if previous == 0:
        return 100 if recent > 0 else 0
    return math.floor((recent - previous) / previous * 100 + 0.5)


def get_top_tracts(
    tract_repo: TractRepository,
    download_repo: DownloadRepository,
    now: datetime,
    limit: int = TOP_TRACTS_LIMIT,
) -> list[TopTract]:
    """Most downloaded approved tracts, with their week-over-week trend."""
    week_ago = now - TREND_WINDOW
    two_weeks_ago = now - 2 * TREND_WINDOW

    top = []
    for tract in tract_repo.top_downloaded(TractStatus.APPROVED.value, limit=limit):
        change = calculate_growth(
            download_repo.count_for_tract_between(tract.id, week_ago),
            download_repo.count_for_tract_between(tract.id, two_weeks_ago, week_ago),
        )
        top.append(
            TopTract(
                id=tract.id,
                title=tract.title,
                downloads=tract.download_count,
                trend="up" if change >= 0 else "down",
                change=abs(change),
            )
        )
    return top


def get_recent_users(
    user_repo: UserRepository,
    tract_repo: TractRepository,
    limit: int = RECENT_USERS_LIMIT,
) -> list[RecentUser]:
    return [
        RecentUser(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            joined_at=user.created_at,
            uploads=tract_repo.count_by_author(user.id),
        )
        for user in user_repo.list_recent(limit=limit)
    ]


def get_dashboard_stats(
    tract_repo: TractRepository,
    user_repo: UserRepository,
    download_repo: DownloadRepository,
    caller: Caller,
    now: Optional[datetime] = None,
) -> DashboardStats:
    ensure_authorized(caller, Action.VIEW_STATS)

    now = now or datetime.now(timezone.utc)
    thirty_days_ago = now - GROWTH_WINDOW
    sixty_days_ago = now - 2 * GROWTH_WINDOW

    growth = MonthlyGrowth(
        tracts=calculate_growth(
            tract_repo.count_created_between(thirty_days_ago),
            tract_repo.count_created_between(sixty_days_ago, thirty_days_ago),
        ),
        users=calculate_growth(
            user_repo.count_created_between(thirty_days_ago),
            user_repo.count_created_between(sixty_days_ago, thirty_days_ago),
        ),
        downloads=calculate_growth(
            download_repo.count_between(thirty_days_ago),
            download_repo.count_between(sixty_days_ago, thirty_days_ago),
        ),
    )

    popular = download_repo.popular_since(now - POPULAR_WINDOW, limit=POPULAR_DOWNLOADS_LIMIT)

    return DashboardStats(
        total_tracts=tract_repo.count_by_status(),
        approved_tracts=tract_repo.count_by_status(TractStatus.APPROVED.value),
        pending_review=tract_repo.count_by_status(TractStatus.PENDING.value),
        total_users=user_repo.count(),
        total_downloads=download_repo.count(),
        monthly_growth=growth,
        top_tracts=get_top_tracts(tract_repo, download_repo, now),
        recent_users=get_recent_users(user_repo, tract_repo),
        recent_downloads=[PopularDownload(**item) for item in popular],
    )
