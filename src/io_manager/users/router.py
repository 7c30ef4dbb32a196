"""User administration API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from io_manager.audit.service import AuditAction, AuditEntry, AuditModule
from io_manager.auth.gate import AuthIdentity, require_permission
from io_manager.auth.permissions import Permission
from io_manager.common.schemas import ApiResponse, PaginatedResponse, page_offset, paginated
from io_manager.deps import Container, get_container
from io_manager.users.schemas import UserCreate, UserCreated, UserDetail, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


def _snapshot(user) -> dict:
    return UserDetail.model_validate(user).model_dump(by_alias=True, mode="json")


@router.get("", response_model=PaginatedResponse[UserRead])
async def list_users(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    _: AuthIdentity = Depends(require_permission(Permission.USERS_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size)
    async with container.db.get_session() as session:
        rows, total = await container.users.list_users(
            session, search=search, offset=page_offset(page, size), limit=size,
        )
        items = [UserRead.model_validate(u) for u in rows]
    return PaginatedResponse[UserRead](**paginated(items, total, page, size))


@router.get("/{user_id}", response_model=ApiResponse[UserDetail])
async def get_user(
    user_id: int,
    _: AuthIdentity = Depends(require_permission(Permission.USERS_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        user = await container.users.get_user(session, user_id)
        return ApiResponse[UserDetail](data=UserDetail.model_validate(user))


@router.post("", response_model=ApiResponse[UserCreated], status_code=201)
async def create_user(
    body: UserCreate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.USERS_CREATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        user = await container.users.create_user(
            session,
            username=body.username,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            is_active=body.is_active,
            role_ids=body.role_ids,
        )
        user_id = user.user_id
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.CREATE,
        AuditModule.USERS,
        actor=identity,
        record_id=user_id,
        description=f"Created user: {body.username}",
        new_value=body.model_dump(by_alias=True, mode="json"),
    ))
    return ApiResponse[UserCreated](
        data=UserCreated(user_id=user_id), message="User created successfully",
    )


@router.put("/{user_id}", response_model=ApiResponse[UserDetail])
async def update_user(
    user_id: int,
    body: UserUpdate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.USERS_UPDATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        old = _snapshot(await container.users.get_user(session, user_id))
        user = await container.users.update_user(
            session, user_id, body.model_dump(exclude_unset=True),
        )
        data = UserDetail.model_validate(user)
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.UPDATE,
        AuditModule.USERS,
        actor=identity,
        record_id=user_id,
        description=f"Updated user: {old['Username']}",
        old_value=old,
        new_value=body.model_dump(by_alias=True, mode="json", exclude_unset=True),
    ))
    return ApiResponse[UserDetail](data=data, message="User updated successfully")


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: int,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.USERS_DELETE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        old = _snapshot(await container.users.delete_user(session, user_id))
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.DELETE,
        AuditModule.USERS,
        actor=identity,
        record_id=user_id,
        description=f"Deleted user: {old['Username']}",
        old_value=old,
    ))
    return ApiResponse[None](message="User deleted successfully")
