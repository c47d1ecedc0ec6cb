"""
Role-based authorization guard.

Access is decided by the caller's single role only; resource ownership never
grants anything. The caller is passed explicitly so the guard can be tested
without a request.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.domain.models.user import User


class Role(str, enum.Enum):
    ADMIN = "admin"
    APPROVER = "approver"
    UPLOADER = "uploader"
    USER = "user"


class Action(str, enum.Enum):
    UPLOAD = "upload"
    REVIEW = "review"
    VIEW_PENDING = "view_pending"
    VIEW_STATS = "view_stats"
    MANAGE_TRACTS = "manage_tracts"
    MANAGE_USERS = "manage_users"
    VIEW_ALL_TRACTS = "view_all_tracts"


PERMISSIONS: dict[Action, frozenset[Role]] = {
    Action.UPLOAD: frozenset({Role.ADMIN, Role.UPLOADER}),
    Action.REVIEW: frozenset({Role.ADMIN, Role.APPROVER}),
    Action.VIEW_PENDING: frozenset({Role.ADMIN, Role.APPROVER}),
    Action.VIEW_STATS: frozenset({Role.ADMIN, Role.APPROVER}),
    Action.MANAGE_TRACTS: frozenset({Role.ADMIN}),
    Action.MANAGE_USERS: frozenset({Role.ADMIN}),
    Action.VIEW_ALL_TRACTS: frozenset({Role.ADMIN}),
}

_DENIAL_MESSAGES = {
    Action.UPLOAD: "Forbidden - Only admins and uploaders can upload tracts",
    Action.REVIEW: "Forbidden - Admin or Approver access required",
    Action.VIEW_PENDING: "Forbidden - Admin or Approver access required",
    Action.VIEW_STATS: "Forbidden - Admin or Approver access required",
}


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Unknown or missing role strings map to None."""
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def authorize(role: Optional[Role | str], action: Action) -> bool:
    """Pure guard: True when `role` may perform `action`. Fails closed."""
    if not isinstance(role, Role):
        role = parse_role(role)
    if role is None:
        return False
    return role in PERMISSIONS.get(action, frozenset())


@dataclass(frozen=True)
class Caller:
    """Who is making the request.

    `email` is the token subject; `user` is the database record it maps to,
    re-read on every request. A valid token with no record is authenticated
    but carries no role.
    """

    email: Optional[str] = None
    user: Optional[User] = None

    @classmethod
    def anonymous(cls) -> "Caller":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.email is not None

    @property
    def role(self) -> Optional[Role]:
        return parse_role(self.user.role) if self.user is not None else None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user is not None else None

    def can(self, action: Action) -> bool:
        return authorize(self.role, action)


def ensure_authorized(caller: Caller, action: Action) -> User:
    """Raise unless the caller may perform `action`; return their record."""
    if not caller.is_authenticated:
        raise UnauthorizedException()
    if not caller.can(action):
        raise ForbiddenException(_DENIAL_MESSAGES.get(action, "Forbidden - Admin access required"))
    return caller.user
