"""Auth service — JWT tokens, password hashing and password reset tokens."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.exceptions import InvalidInputException, UnauthorizedException
from app.domain.authorization import Role
from app.domain.models.user import User
from app.infrastructure.database import utcnow

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_PURPOSE = "access"
RESET_TOKEN_PURPOSE = "password_reset"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    to_encode.update({"exp": expire, "purpose": ACCESS_TOKEN_PURPOSE})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None
    if payload.get("purpose", ACCESS_TOKEN_PURPOSE) != ACCESS_TOKEN_PURPOSE:
        return None
    return payload


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def create_user(
    db: Session,
    email: str,
    password: Optional[str],
    name: Optional[str] = None,
    role: str = Role.USER.value,
) -> User:
    if get_user_by_email(db, email):
        raise InvalidInputException("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password) if password else None,
        role=Role(role).value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# Password reset

def _password_fingerprint(user: User) -> str:
    # Changing the password invalidates any reset token issued before it.
    return (user.password_hash or "")[-12:]


def create_password_reset_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_EXPIRATION_MINUTES)
    claims = {
        "sub": str(user.id),
        "purpose": RESET_TOKEN_PURPOSE,
        "pwd": _password_fingerprint(user),
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def reset_password_with_token(db: Session, token: str, new_password: str) -> User:
    """Redeem a reset token. Each token works once."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Invalid or expired reset token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedException("Invalid or expired reset token")

    if payload.get("purpose") != RESET_TOKEN_PURPOSE:
        raise UnauthorizedException("Invalid or expired reset token")

    user = db.get(User, user_id)
    if user is None or payload.get("pwd") != _password_fingerprint(user):
        raise UnauthorizedException("Invalid or expired reset token")

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user
