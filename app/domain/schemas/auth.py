"""Pydantic schemas for User, Auth and Profile."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from app.domain.authorization import Role


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8)


class UserRead(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserDetail(UserRead):
    tracts_count: int = 0
    downloads_count: int = 0


class UserUpdate(BaseModel):
    """Admin edit — every field optional."""
    name: Optional[str] = None
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    role: Optional[Role] = None
    password: Optional[str] = Field(default=None, min_length=8)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(min_length=8)
