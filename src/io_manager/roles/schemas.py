"""Pydantic schemas for roles and the permission catalog."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from io_manager.common.schemas import CamelModel, RecordModel


class RoleCreate(RecordModel):
    role_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    permission_ids: list[int] = []


class RoleUpdate(RecordModel):
    role_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    permission_ids: Optional[list[int]] = None


class PermissionResponse(RecordModel):
    permission_id: int
    permission_name: str
    description: Optional[str] = None
    module: str
    action: str


class RoleRead(RecordModel):
    role_id: int
    role_name: str
    description: Optional[str] = None
    is_system: bool
    created_at: datetime
    user_count: int = 0


class RoleDetail(RoleRead):
    permissions: list[PermissionResponse] = []
    permission_ids: list[int] = []


class RoleCreated(RecordModel):
    role_id: int


class PermissionCatalogResponse(CamelModel):
    success: bool = True
    data: list[PermissionResponse] = []
    grouped: dict[str, list[PermissionResponse]] = {}
