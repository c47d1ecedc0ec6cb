"""Auth API routes — login, register, me, role, password reset."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.application.services.auth_service import (
    authenticate_user,
    create_access_token,
    create_user,
    reset_password_with_token,
)
from app.core.exceptions import EntityNotFoundException, UnauthorizedException
from app.domain.authorization import Caller
from app.domain.schemas.auth import (
    LoginRequest,
    PasswordResetConfirm,
    TokenResponse,
    UserCreate,
    UserRead,
)
from app.infrastructure.database import get_db
from app.interfaces.api.deps import get_authenticated_caller, get_public_caller

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, body.email, body.password)
    if not user:
        raise UnauthorizedException("Invalid email or password")

    access_token = create_access_token(data={"sub": user.email})
    return TokenResponse(access_token=access_token, user=UserRead.model_validate(user))


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db)):
    # Self-registration always yields the plain `user` role
    user = create_user(db=db, name=body.name, email=body.email, password=body.password)
    return {"success": True, "user": UserRead.model_validate(user)}


@router.get("/me")
def get_me(caller: Caller = Depends(get_authenticated_caller)):
    if caller.user is None:
        raise EntityNotFoundException("User not found")
    return {"success": True, "user": UserRead.model_validate(caller.user)}


@router.get("/role")
def get_role(caller: Caller = Depends(get_public_caller)):
    """UI hint only — never errors, every guarded route re-checks."""
    if caller.role is None:
        return {"role": None}
    return {"success": True, "role": caller.role.value}


@router.post("/reset-password")
def confirm_password_reset(body: PasswordResetConfirm, db: Session = Depends(get_db)):
    reset_password_with_token(db, body.token, body.new_password)
    return {"success": True, "message": "Password updated successfully"}
