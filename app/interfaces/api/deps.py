"""FastAPI dependency — resolves the bearer token to an explicit Caller."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.application.services.auth_service import decode_access_token, get_user_by_email
from app.core.exceptions import UnauthorizedException
from app.domain.authorization import Caller
from app.infrastructure.database import get_db

security = HTTPBearer(auto_error=False)


def _resolve_caller(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
    strict: bool,
) -> Caller:
    # The role is always read fresh from the database, never from the token.
    if credentials is None:
        return Caller.anonymous()

    payload = decode_access_token(credentials.credentials)
    email = payload.get("sub") if payload else None
    if not email:
        if strict:
            raise UnauthorizedException("Invalid or expired token")
        return Caller.anonymous()

    return Caller(email=email, user=get_user_by_email(db, email))


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Caller:
    """Anonymous without a token; 401 for a token that does not verify."""
    return _resolve_caller(credentials, db, strict=True)


def get_public_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Caller:
    """For public reads: a bad token just means anonymous."""
    return _resolve_caller(credentials, db, strict=False)


def get_authenticated_caller(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_authenticated:
        raise UnauthorizedException()
    return caller


def get_client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
