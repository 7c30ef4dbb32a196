"""Role administration and permission catalog queries."""

from typing import Any, Iterable

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.auth.models import PermissionModel, RoleModel, user_roles
from io_manager.common.exceptions import ConflictError, NotFoundError, ValidationError
from io_manager.common.logging import get_logger

logger = get_logger("roles")


def _user_count():
    return (
        select(func.count())
        .select_from(user_roles)
        .where(user_roles.c.role_id == RoleModel.role_id)
        .correlate(RoleModel)
        .scalar_subquery()
    )


async def load_permissions(
    session: AsyncSession, permission_ids: Iterable[int],
) -> list[PermissionModel]:
    """Fetch catalog entries by id; every id must exist."""
    wanted = set(permission_ids)
    if not wanted:
        return []
    result = await session.execute(
        select(PermissionModel).where(PermissionModel.permission_id.in_(wanted))
    )
    permissions = list(result.scalars().all())
    missing = wanted - {p.permission_id for p in permissions}
    if missing:
        raise ValidationError(
            f"Unknown permission id(s): {', '.join(str(i) for i in sorted(missing))}"
        )
    return permissions


class RoleService:
    async def list_roles(
        self, session: AsyncSession, search: str | None = None, offset: int = 0, limit: int = 10,
    ) -> tuple[list[tuple[RoleModel, int]], int]:
        """Roles ordered by name, each paired with the number of users holding it."""
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                RoleModel.role_name.ilike(pattern),
                RoleModel.description.ilike(pattern),
            ))
        total = (await session.execute(
            select(func.count(RoleModel.role_id)).where(*conditions)
        )).scalar_one()
        result = await session.execute(
            select(RoleModel, _user_count())
            .where(*conditions)
            .order_by(RoleModel.role_name)
            .offset(offset)
            .limit(limit)
        )
        return [(role, count) for role, count in result.all()], total

    async def get_role(self, session: AsyncSession, role_id: int) -> RoleModel:
        role = await session.get(RoleModel, role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    async def user_count(self, session: AsyncSession, role_id: int) -> int:
        result = await session.execute(
            select(func.count()).select_from(user_roles).where(user_roles.c.role_id == role_id)
        )
        return result.scalar_one()

    async def _name_taken(
        self, session: AsyncSession, role_name: str, exclude_id: int | None = None,
    ) -> bool:
        query = select(RoleModel.role_id).where(RoleModel.role_name == role_name)
        if exclude_id is not None:
            query = query.where(RoleModel.role_id != exclude_id)
        return (await session.execute(query)).first() is not None

    async def create_role(
        self,
        session: AsyncSession,
        role_name: str,
        description: str | None = None,
        permission_ids: Iterable[int] = (),
    ) -> RoleModel:
        if await self._name_taken(session, role_name):
            raise ConflictError("Role name already exists")
        role = RoleModel(
            role_name=role_name,
            description=description,
            is_system=False,
            permissions=await load_permissions(session, permission_ids),
        )
        session.add(role)
        await session.flush()
        logger.info("role created: %s", role_name)
        return role

    async def update_role(
        self, session: AsyncSession, role_id: int, changes: dict[str, Any],
    ) -> RoleModel:
        """System roles keep their name; their permission set may still change."""
        role = await self.get_role(session, role_id)

        new_name = changes.get("role_name")
        if new_name is not None and new_name != role.role_name:
            if role.is_system:
                raise ValidationError("Cannot rename system roles")
            if await self._name_taken(session, new_name, exclude_id=role_id):
                raise ConflictError("Role name already exists")
            role.role_name = new_name

        if "description" in changes:
            role.description = changes["description"]
        if changes.get("permission_ids") is not None:
            role.permissions = await load_permissions(session, changes["permission_ids"])

        await session.flush()
        return role

    async def delete_role(self, session: AsyncSession, role_id: int) -> RoleModel:
        role = await self.get_role(session, role_id)
        if role.is_system:
            raise ValidationError("Cannot delete system roles")
        await session.execute(delete(user_roles).where(user_roles.c.role_id == role_id))
        await session.delete(role)
        await session.flush()
        logger.info("role deleted: %s", role.role_name)
        return role

    async def count(self, session: AsyncSession) -> int:
        return (await session.execute(select(func.count(RoleModel.role_id)))).scalar_one()

    async def list_permissions(self, session: AsyncSession) -> list[PermissionModel]:
        result = await session.execute(
            select(PermissionModel).order_by(PermissionModel.module, PermissionModel.action)
        )
        return list(result.scalars().all())
