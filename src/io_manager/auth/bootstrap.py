"""Seed the permission catalog, the Administrator role and admin accounts."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.auth.models import PermissionModel, RoleModel, UserModel
from io_manager.auth.passwords import hash_password
from io_manager.auth.permissions import Permission
from io_manager.common.logging import get_logger
from io_manager.common.models import utcnow

logger = get_logger("auth.bootstrap")


async def _sync_catalog(session: AsyncSession) -> tuple[list[PermissionModel], list[PermissionModel]]:
    result = await session.execute(select(PermissionModel))
    existing = {p.permission_name: p for p in result.scalars().all()}
    added = []
    for permission in Permission:
        if permission.value in existing:
            continue
        row = PermissionModel(
            permission_name=permission.value,
            description=permission.description,
            module=permission.module,
            action=permission.action,
        )
        session.add(row)
        existing[permission.value] = row
        added.append(row)
    await session.flush()
    if added:
        logger.info("permission catalog synchronized: %d added", len(added))
    return [existing[p.value] for p in Permission], added


async def sync_permission_catalog(session: AsyncSession) -> list[PermissionModel]:
    """Insert catalog entries missing from the permissions table."""
    permissions, _ = await _sync_catalog(session)
    return permissions


async def ensure_admin_role(session: AsyncSession, role_name: str) -> RoleModel:
    """System role created with every catalogued permission.

    An existing role keeps its edited permission set; it only receives
    catalog entries added by this synchronization.
    """
    permissions, added = await _sync_catalog(session)
    result = await session.execute(select(RoleModel).where(RoleModel.role_name == role_name))
    role = result.scalar_one_or_none()
    if role is None:
        role = RoleModel(
            role_name=role_name,
            description="Full access to every module",
            is_system=True,
            permissions=permissions,
        )
        session.add(role)
        logger.info("created system role %s", role_name)
    elif added:
        role.permissions = list(role.permissions) + added
    await session.flush()
    return role


async def create_admin_user(
    session: AsyncSession,
    username: str,
    email: str,
    password: str,
    role_name: str = "Administrator",
) -> UserModel:
    """Create ``username`` as an administrator, or reset it if it exists."""
    role = await ensure_admin_role(session, role_name)
    result = await session.execute(select(UserModel).where(UserModel.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        user = UserModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            is_active=True,
            roles=[role],
        )
        session.add(user)
    else:
        user.password_hash = hash_password(password)
        user.is_active = True
        user.updated_at = utcnow()
        if role not in user.roles:
            user.roles = list(user.roles) + [role]
    await session.flush()
    return user
