from fastapi import APIRouter, Depends

from app.application.services import user_service
from app.domain.authorization import Caller
from app.domain.repositories.download_repository import DownloadRepository
from app.domain.repositories.tract_repository import TractRepository
from app.domain.repositories.user_repository import UserRepository
from app.domain.schemas.auth import ProfileUpdate
from app.interfaces.api.deps import get_caller
from app.interfaces.deps import get_download_repository, get_tract_repository, get_user_repository

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("")
def get_profile(
    repo: UserRepository = Depends(get_user_repository),
    tract_repo: TractRepository = Depends(get_tract_repository),
    download_repo: DownloadRepository = Depends(get_download_repository),
    caller: Caller = Depends(get_caller),
):
    user = user_service.get_profile(repo, caller)
    return {"success": True, "user": user_service.build_user_detail(user, tract_repo, download_repo)}


@router.patch("")
def update_profile(
    body: ProfileUpdate,
    repo: UserRepository = Depends(get_user_repository),
    tract_repo: TractRepository = Depends(get_tract_repository),
    download_repo: DownloadRepository = Depends(get_download_repository),
    caller: Caller = Depends(get_caller),
):
    user = user_service.update_profile(repo, caller, body)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": user_service.build_user_detail(user, tract_repo, download_repo),
    }
