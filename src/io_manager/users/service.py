"""User administration service."""

from typing import Any, Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.auth.models import RoleModel, UserModel
from io_manager.auth.passwords import hash_password
from io_manager.auth.sessions import SessionStore
from io_manager.common.config import IOManagerSettings
from io_manager.common.exceptions import ConflictError, NotFoundError, ValidationError
from io_manager.common.logging import get_logger
from io_manager.common.models import utcnow

logger = get_logger("users")


async def load_roles(session: AsyncSession, role_ids: Iterable[int]) -> list[RoleModel]:
    """Fetch roles by id; every id must exist."""
    wanted = set(role_ids)
    if not wanted:
        return []
    result = await session.execute(select(RoleModel).where(RoleModel.role_id.in_(wanted)))
    roles = list(result.scalars().all())
    missing = wanted - {r.role_id for r in roles}
    if missing:
        raise ValidationError(f"Unknown role id(s): {', '.join(str(i) for i in sorted(missing))}")
    return roles


class UserService:
    def __init__(self, settings: IOManagerSettings, sessions: SessionStore):
        self.settings = settings
        self.sessions = sessions

    def _check_password(self, password: str) -> None:
        minimum = self.settings.min_password_length
        if len(password) < minimum:
            raise ValidationError(f"Password must be at least {minimum} characters")

    async def list_users(
        self, session: AsyncSession, search: str | None = None, offset: int = 0, limit: int = 10,
    ) -> tuple[list[UserModel], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                UserModel.username.ilike(pattern),
                UserModel.email.ilike(pattern),
                UserModel.first_name.ilike(pattern),
                UserModel.last_name.ilike(pattern),
            ))
        total = (await session.execute(
            select(func.count(UserModel.user_id)).where(*conditions)
        )).scalar_one()
        result = await session.execute(
            select(UserModel)
            .where(*conditions)
            .order_by(UserModel.username)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_user(self, session: AsyncSession, user_id: int) -> UserModel:
        user = await session.get(UserModel, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def create_user(
        self,
        session: AsyncSession,
        username: str,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        is_active: bool = True,
        role_ids: Iterable[int] = (),
    ) -> UserModel:
        self._check_password(password)
        existing = await session.execute(
            select(UserModel.user_id).where(
                or_(UserModel.username == username, UserModel.email == email)
            )
        )
        if existing.first() is not None:
            raise ConflictError("Username or Email already exists")

        user = UserModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            is_active=is_active,
            roles=await load_roles(session, role_ids),
        )
        session.add(user)
        await session.flush()
        logger.info("user created: %s", username)
        return user

    async def update_user(
        self, session: AsyncSession, user_id: int, changes: dict[str, Any],
    ) -> UserModel:
        """Apply a partial update; ``role_ids`` replaces the role set."""
        user = await self.get_user(session, user_id)

        email = changes.get("email")
        if email is not None and email != user.email:
            clash = await session.execute(
                select(UserModel.user_id).where(
                    UserModel.email == email, UserModel.user_id != user_id
                )
            )
            if clash.first() is not None:
                raise ConflictError("Email already in use by another user")
            user.email = email

        for field in ("first_name", "last_name"):
            if field in changes:
                setattr(user, field, changes[field])

        if changes.get("password"):
            self._check_password(changes["password"])
            user.password_hash = hash_password(changes["password"])

        if changes.get("role_ids") is not None:
            user.roles = await load_roles(session, changes["role_ids"])

        if changes.get("is_active") is not None:
            if user.is_active and not changes["is_active"]:
                revoked = await self.sessions.revoke_all_for_user(session, user_id)
                logger.info("user deactivated: %s (%d sessions revoked)", user.username, revoked)
            user.is_active = changes["is_active"]

        user.updated_at = utcnow()
        await session.flush()
        return user

    async def delete_user(self, session: AsyncSession, user_id: int) -> UserModel:
        user = await self.get_user(session, user_id)
        if user.username == self.settings.protected_username:
            raise ValidationError("Cannot delete admin user")
        await self.sessions.purge_user(session, user_id)
        await session.delete(user)
        await session.flush()
        logger.info("user deleted: %s", user.username)
        return user

    async def count(self, session: AsyncSession) -> int:
        return (await session.execute(select(func.count(UserModel.user_id)))).scalar_one()
