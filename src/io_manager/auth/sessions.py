"""Session store: server-side refresh-token records enabling forced logout."""

from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.auth.models import RefreshTokenModel
from io_manager.auth.tokens import generate_session_token
from io_manager.common.models import utcnow


class SessionStore:
    def __init__(self, lifetime: timedelta):
        self.lifetime = lifetime

    async def create(self, session: AsyncSession, user_id: int) -> RefreshTokenModel:
        record = RefreshTokenModel(
            user_id=user_id,
            token=generate_session_token(),
            expires_at=utcnow() + self.lifetime,
        )
        session.add(record)
        await session.flush()
        return record

    async def get(self, session: AsyncSession, token: str) -> RefreshTokenModel | None:
        result = await session.execute(
            select(RefreshTokenModel).where(RefreshTokenModel.token == token)
        )
        return result.scalar_one_or_none()

    async def get_active(
        self, session: AsyncSession, token: str,
    ) -> RefreshTokenModel | None:
        """Return the record only if it is neither revoked nor expired."""
        if not token:
            return None
        result = await session.execute(
            select(RefreshTokenModel).where(
                RefreshTokenModel.token == token,
                RefreshTokenModel.revoked_at.is_(None),
                RefreshTokenModel.expires_at > utcnow(),
            )
        )
        return result.scalar_one_or_none()

    async def revoke(self, session: AsyncSession, token: str) -> bool:
        """Soft-revoke; records are never deleted by logout."""
        record = await self.get(session, token)
        if record is None or record.revoked_at is not None:
            return False
        record.revoked_at = utcnow()
        await session.flush()
        return True

    async def revoke_all_for_user(self, session: AsyncSession, user_id: int) -> int:
        result = await session.execute(
            select(RefreshTokenModel).where(
                RefreshTokenModel.user_id == user_id,
                RefreshTokenModel.revoked_at.is_(None),
            )
        )
        records = list(result.scalars().all())
        now = utcnow()
        for record in records:
            record.revoked_at = now
        await session.flush()
        return len(records)

    async def purge_user(self, session: AsyncSession, user_id: int) -> None:
        """Remove a deleted user's records; the foreign key forbids orphans."""
        await session.execute(
            delete(RefreshTokenModel).where(RefreshTokenModel.user_id == user_id)
        )
