"""Pydantic schemas for user administration."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from io_manager.common.schemas import RecordModel


class UserCreate(RecordModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    role_ids: list[int] = []


class UserUpdate(RecordModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: Optional[bool] = None
    role_ids: Optional[list[int]] = None


class RoleRef(RecordModel):
    role_id: int
    role_name: str


class UserRead(RecordModel):
    user_id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    role_names: str = ""


class UserDetail(UserRead):
    roles: list[RoleRef] = []


class UserCreated(RecordModel):
    user_id: int
