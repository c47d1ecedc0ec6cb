"""Admin API routes — review queue, dashboard stats and user management."""

from fastapi import APIRouter, Depends, Query

from app.application.services import stats_service, tract_service, user_service
from app.domain.authorization import Caller
from app.domain.repositories.download_repository import DownloadRepository
from app.domain.repositories.tract_repository import TractRepository
from app.domain.repositories.user_repository import UserRepository
from app.domain.schemas.auth import UserRead, UserUpdate
from app.domain.schemas.tract import TractListItem, TractRead, TractReview
from app.infrastructure.mail_api import MailAPIClient
from app.infrastructure.storage import TractFileStorage
from app.interfaces.api.deps import get_caller
from app.interfaces.deps import (
    get_download_repository,
    get_mailer,
    get_storage,
    get_tract_repository,
    get_user_repository,
)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# Review queue

@router.get("/pending-tracts")
def list_pending_tracts(
    repo: TractRepository = Depends(get_tract_repository),
    caller: Caller = Depends(get_caller),
):
    tracts = tract_service.list_pending_tracts(repo, caller)
    items = [TractListItem.from_tract(t) for t in tracts]
    return {"success": True, "tracts": items, "count": len(items)}


@router.patch("/pending-tracts")
def review_tract(
    body: TractReview,
    repo: TractRepository = Depends(get_tract_repository),
    caller: Caller = Depends(get_caller),
):
    tract = tract_service.review_tract(repo, caller, body.tract_id, body.status)
    return {
        "success": True,
        "message": f"Tract {body.status} successfully",
        "tract": TractRead.model_validate(tract),
    }


# Dashboard

@router.get("/stats")
def get_stats(
    tract_repo: TractRepository = Depends(get_tract_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    download_repo: DownloadRepository = Depends(get_download_repository),
    caller: Caller = Depends(get_caller),
):
    stats = stats_service.get_dashboard_stats(tract_repo, user_repo, download_repo, caller)
    return {"success": True, "stats": stats}


# Users

@router.get("/users")
def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    repo: UserRepository = Depends(get_user_repository),
    caller: Caller = Depends(get_caller),
):
    users = user_service.list_users(repo, caller, skip=skip, limit=limit)
    return {"success": True, "users": [UserRead.model_validate(u) for u in users]}


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    repo: UserRepository = Depends(get_user_repository),
    tract_repo: TractRepository = Depends(get_tract_repository),
    download_repo: DownloadRepository = Depends(get_download_repository),
    caller: Caller = Depends(get_caller),
):
    user = user_service.get_user(repo, caller, user_id)
    return {"success": True, "user": user_service.build_user_detail(user, tract_repo, download_repo)}


@router.patch("/users/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdate,
    repo: UserRepository = Depends(get_user_repository),
    caller: Caller = Depends(get_caller),
):
    user = user_service.update_user(repo, caller, user_id, body)
    return {"success": True, "message": "User updated successfully", "user": UserRead.model_validate(user)}


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    repo: UserRepository = Depends(get_user_repository),
    storage: TractFileStorage = Depends(get_storage),
    caller: Caller = Depends(get_caller),
):
    user_service.delete_user(repo, storage, caller, user_id)
    return {"success": True, "message": "User deleted successfully"}


@router.post("/users/{user_id}/reset-password")
async def reset_user_password(
    user_id: int,
    repo: UserRepository = Depends(get_user_repository),
    mailer: MailAPIClient = Depends(get_mailer),
    caller: Caller = Depends(get_caller),
):
    delivered = await user_service.reset_password(repo, caller, user_id, mailer=mailer)
    message = "Password reset link sent" if delivered else "Password reset link could not be delivered"
    return {"success": True, "delivered": delivered, "message": message}
