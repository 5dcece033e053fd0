"""Pydantic request/response schemas for pp_gateway.

All responses are wrapped in ApiResponse at the router layer.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.pp_gateway.user.db_models import UserModel


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        """Enforce: at least one uppercase, one lowercase, one digit."""
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    """Minimal user info embedded in responses."""

    user_id: str
    username: str
    email: str
    is_admin: bool = False

    @classmethod
    def from_model(cls, user: UserModel) -> "UserInfo":
        return cls(
            user_id=user.id,
            username=user.username,
            email=user.email,
            is_admin=user.is_admin,
        )


class MeResponse(UserInfo):
    token_balance: int
    points_balance: int
    created_at: str

    @classmethod
    def from_model(cls, user: UserModel) -> "MeResponse":
        return cls(
            user_id=user.id,
            username=user.username,
            email=user.email,
            is_admin=user.is_admin,
            token_balance=user.token_balance,
            points_balance=user.points_balance,
            created_at=user.created_at.isoformat(),
        )


class RegisterResponse(BaseModel):
    user_id: str
    username: str
    email: str
    token_balance: int
    created_at: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = 1800  # 30 minutes in seconds
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    expires_in: int = 1800
