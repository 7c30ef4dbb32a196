"""Pydantic schemas for the /auth endpoints."""

from typing import Optional

from pydantic import Field

from io_manager.common.schemas import CamelModel, RecordModel


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthUser(RecordModel):
    user_id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    roles: list[str] = []
    permissions: list[str] = []


class LoginData(CamelModel):
    user: AuthUser
    access_token: str
    refresh_token: str
    permissions: list[str]


class TokenPairData(CamelModel):
    access_token: str
    refresh_token: str


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)
