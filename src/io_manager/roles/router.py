"""Role administration and permission catalog API routers."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from io_manager.audit.service import AuditAction, AuditEntry, AuditModule
from io_manager.auth.gate import AuthIdentity, require_permission
from io_manager.auth.permissions import Permission
from io_manager.common.schemas import ApiResponse, PaginatedResponse, page_offset, paginated
from io_manager.deps import Container, get_container
from io_manager.roles.schemas import (
    PermissionCatalogResponse,
    PermissionResponse,
    RoleCreate,
    RoleCreated,
    RoleDetail,
    RoleRead,
    RoleUpdate,
)

router = APIRouter(prefix="/roles", tags=["roles"])
permissions_router = APIRouter(prefix="/permissions", tags=["roles"])


def _detail(role, user_count: int) -> RoleDetail:
    return RoleDetail.model_validate(role).model_copy(update={"user_count": user_count})


@router.get("", response_model=PaginatedResponse[RoleRead])
async def list_roles(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    _: AuthIdentity = Depends(require_permission(Permission.ROLES_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size)
    async with container.db.get_session() as session:
        rows, total = await container.roles.list_roles(
            session, search=search, offset=page_offset(page, size), limit=size,
        )
        items = [
            RoleRead.model_validate(role).model_copy(update={"user_count": count})
            for role, count in rows
        ]
    return PaginatedResponse[RoleRead](**paginated(items, total, page, size))


@router.get("/{role_id}", response_model=ApiResponse[RoleDetail])
async def get_role(
    role_id: int,
    _: AuthIdentity = Depends(require_permission(Permission.ROLES_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        role = await container.roles.get_role(session, role_id)
        count = await container.roles.user_count(session, role_id)
        return ApiResponse[RoleDetail](data=_detail(role, count))


@router.post("", response_model=ApiResponse[RoleCreated], status_code=201)
async def create_role(
    body: RoleCreate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.ROLES_CREATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        role = await container.roles.create_role(
            session,
            role_name=body.role_name,
            description=body.description,
            permission_ids=body.permission_ids,
        )
        role_id = role.role_id
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.CREATE,
        AuditModule.ROLES,
        actor=identity,
        record_id=role_id,
        description=f"Created role: {body.role_name}",
        new_value=body.model_dump(by_alias=True, mode="json"),
    ))
    return ApiResponse[RoleCreated](
        data=RoleCreated(role_id=role_id), message="Role created successfully",
    )


@router.put("/{role_id}", response_model=ApiResponse[RoleDetail])
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.ROLES_UPDATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        count = await container.roles.user_count(session, role_id)
        old = _detail(await container.roles.get_role(session, role_id), count).model_dump(
            by_alias=True, mode="json",
        )
        role = await container.roles.update_role(
            session, role_id, body.model_dump(exclude_unset=True),
        )
        data = _detail(role, count)
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.UPDATE,
        AuditModule.ROLES,
        actor=identity,
        record_id=role_id,
        description=f"Updated role: {old['RoleName']}",
        old_value=old,
        new_value=body.model_dump(by_alias=True, mode="json", exclude_unset=True),
    ))
    return ApiResponse[RoleDetail](data=data, message="Role updated successfully")


@router.delete("/{role_id}", response_model=ApiResponse[None])
async def delete_role(
    role_id: int,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.ROLES_DELETE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        count = await container.roles.user_count(session, role_id)
        role = await container.roles.delete_role(session, role_id)
        old = _detail(role, count).model_dump(by_alias=True, mode="json")
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.DELETE,
        AuditModule.ROLES,
        actor=identity,
        record_id=role_id,
        description=f"Deleted role: {old['RoleName']}",
        old_value=old,
    ))
    return ApiResponse[None](message="Role deleted successfully")


@permissions_router.get("", response_model=PermissionCatalogResponse)
async def list_permissions(
    _: AuthIdentity = Depends(require_permission(Permission.ROLES_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        rows = await container.roles.list_permissions(session)
        items = [PermissionResponse.model_validate(p) for p in rows]
    grouped: dict[str, list[PermissionResponse]] = {}
    for item in items:
        grouped.setdefault(item.module, []).append(item)
    return PermissionCatalogResponse(data=items, grouped=grouped)
