"""User service — admin user management and self-service profile."""

from typing import Optional

import structlog

from app.application.services.auth_service import create_password_reset_token, hash_password
from app.config import get_settings
from app.core.exceptions import EntityNotFoundException, InvalidInputException, UnauthorizedException
from app.domain.authorization import Action, Caller, ensure_authorized
from app.domain.models.user import User
from app.domain.repositories.download_repository import DownloadRepository
from app.domain.repositories.tract_repository import TractRepository
from app.domain.repositories.user_repository import UserRepository
from app.domain.schemas.auth import ProfileUpdate, UserDetail, UserRead, UserUpdate
from app.infrastructure.database import utcnow
from app.infrastructure.mail_api import MailAPIClient
from app.infrastructure.storage import TractFileStorage

settings = get_settings()
logger = structlog.get_logger(__name__)


def build_user_detail(user: User, tract_repo: TractRepository, download_repo: DownloadRepository) -> UserDetail:
    return UserDetail(
        **UserRead.model_validate(user).model_dump(),
        tracts_count=tract_repo.count_by_author(user.id),
        downloads_count=download_repo.count_by_user(user.id),
    )


def _get_user_or_404(repo: UserRepository, user_id: int) -> User:
    user = repo.get_by_id(user_id)
    if user is None:
        raise EntityNotFoundException("User not found")
    return user


def list_users(repo: UserRepository, caller: Caller, skip: int = 0, limit: int = 100) -> list[User]:
    ensure_authorized(caller, Action.MANAGE_USERS)
    return repo.list_recent(limit=limit, skip=skip)


def get_user(repo: UserRepository, caller: Caller, user_id: int) -> User:
    ensure_authorized(caller, Action.MANAGE_USERS)
    return _get_user_or_404(repo, user_id)


def update_user(repo: UserRepository, caller: Caller, user_id: int, patch: UserUpdate) -> User:
    admin = ensure_authorized(caller, Action.MANAGE_USERS)
    user = _get_user_or_404(repo, user_id)

    changes = patch.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if "email" in changes:
        if changes["email"] is None:
            raise InvalidInputException("Email cannot be empty")
        other = repo.get_by_email(changes["email"])
        if other is not None and other.id != user.id:
            raise InvalidInputException("Email already registered")
    if "role" in changes:
        if changes["role"] is None:
            raise InvalidInputException("Role cannot be empty")
        changes["role"] = changes["role"].value
    if password:
        changes["password_hash"] = hash_password(password)
    changes["updated_at"] = utcnow()

    user = repo.update(user, changes)
    logger.info(
        "User updated",
        user_id=user.id,
        admin_id=admin.id,
        fields=sorted(k for k in changes if k != "password_hash"),
        password_changed=bool(password),
    )
    return user


def delete_user(repo: UserRepository, storage: TractFileStorage, caller: Caller, user_id: int) -> None:
    """Delete a user; their tracts go with them, other users' history stays."""
    admin = ensure_authorized(caller, Action.MANAGE_USERS)
    if admin.id == user_id:
        raise InvalidInputException("Cannot delete your own account")

    user = _get_user_or_404(repo, user_id)
    file_urls = [tract.file_url for tract in user.tracts]

    repo.delete(user)
    removed = sum(1 for url in file_urls if storage.remove(url))
    logger.info("User deleted", user_id=user_id, admin_id=admin.id, tracts=len(file_urls), files_removed=removed)


async def reset_password(
    repo: UserRepository,
    caller: Caller,
    user_id: int,
    mailer: Optional[MailAPIClient] = None,
) -> bool:
    """Mail the user a one-time reset link. The token never goes back to the admin."""
    admin = ensure_authorized(caller, Action.MANAGE_USERS)
    user = _get_user_or_404(repo, user_id)

    token = create_password_reset_token(user)
    link = f"{settings.PASSWORD_RESET_URL}?token={token}"
    mailer = mailer or MailAPIClient()
    delivered = await mailer.send_password_reset(user.email, link, settings.PASSWORD_RESET_EXPIRATION_MINUTES)

    logger.info("Password reset issued", user_id=user.id, admin_id=admin.id, delivered=delivered)
    return delivered


# Self-service

def get_profile(repo: UserRepository, caller: Caller) -> User:
    if not caller.is_authenticated:
        raise UnauthorizedException()
    user = repo.get_by_email(caller.email)
    if user is None:
        raise EntityNotFoundException("User not found")
    return user


def update_profile(repo: UserRepository, caller: Caller, patch: ProfileUpdate) -> User:
    """Callers may only change their own name."""
    user = get_profile(repo, caller)
    changes = patch.model_dump(exclude_unset=True, include={"name"})
    changes["updated_at"] = utcnow()
    return repo.update(user, changes)
