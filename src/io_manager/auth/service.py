"""Authentication service: login, logout, refresh, profile, password change."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.auth.models import UserModel
from io_manager.auth.passwords import hash_password, verify_password
from io_manager.auth.permissions import resolve_permissions
from io_manager.auth.sessions import SessionStore
from io_manager.auth.tokens import TokenIdentity, TokenIssuer, TokenPair
from io_manager.common.config import IOManagerSettings
from io_manager.common.exceptions import (
    AuthenticationError,
    LoginFailedError,
    NotFoundError,
    ValidationError,
)
from io_manager.common.logging import get_logger
from io_manager.common.models import utcnow

logger = get_logger("auth")


@dataclass
class LoginResult:
    user: UserModel
    permissions: list[str]
    tokens: TokenPair
    session_token: str


def identity_of(user: UserModel) -> TokenIdentity:
    return TokenIdentity(user_id=user.user_id, username=user.username, email=user.email)


class AuthService:
    def __init__(
        self,
        settings: IOManagerSettings,
        tokens: TokenIssuer,
        sessions: SessionStore,
    ):
        self.settings = settings
        self.tokens = tokens
        self.sessions = sessions

    async def get_user_by_username(
        self, session: AsyncSession, username: str,
    ) -> UserModel | None:
        result = await session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()

    async def login(
        self, session: AsyncSession, username: str, password: str,
    ) -> LoginResult:
        """Verify credentials, open a server-side session and mint tokens.

        Unknown usernames and wrong passwords fail with the same message.
        """
        user = await self.get_user_by_username(session, username)
        if user is None:
            raise LoginFailedError(
                reason=f"Failed login attempt for username: {username}",
            )
        if not user.is_active:
            raise LoginFailedError(
                "Account is inactive",
                reason=f"Login attempt for inactive user: {username}",
                user_id=user.user_id,
                username=user.username,
            )
        if not verify_password(password, user.password_hash):
            raise LoginFailedError(
                reason=f"Invalid password for user: {username}",
                user_id=user.user_id,
                username=user.username,
            )

        permissions = sorted(await resolve_permissions(session, user.user_id))
        record = await self.sessions.create(session, user.user_id)
        user.last_login_at = utcnow()
        await session.flush()
        logger.info("user logged in: %s", user.username)
        return LoginResult(
            user=user,
            permissions=permissions,
            tokens=self.tokens.issue_pair(identity_of(user)),
            session_token=record.token,
        )

    async def refresh(
        self, session: AsyncSession, refresh_token: str | None, session_token: str | None,
    ) -> TokenPair:
        """Mint a new token pair from a signed refresh token and a live session."""
        if not refresh_token:
            raise AuthenticationError("Refresh token not found")
        claims = self.tokens.verify_refresh_token(refresh_token)
        if claims is None:
            raise AuthenticationError("Invalid refresh token")

        record = await self.sessions.get_active(session, session_token or "")
        if record is None or record.user_id != claims.user_id:
            raise AuthenticationError("Session expired or revoked")

        user = await session.get(UserModel, claims.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return self.tokens.issue_pair(identity_of(user))

    async def logout(self, session: AsyncSession, session_token: str | None) -> bool:
        if not session_token:
            return False
        return await self.sessions.revoke(session, session_token)

    async def get_profile(self, session: AsyncSession, user_id: int) -> UserModel:
        user = await session.get(UserModel, user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User not found")
        return user

    async def change_password(
        self,
        session: AsyncSession,
        user_id: int,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> UserModel:
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        minimum = self.settings.min_password_length
        if len(new_password) < minimum:
            raise ValidationError(f"New password must be at least {minimum} characters")

        user = await self.get_profile(session, user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        user.updated_at = utcnow()
        await session.flush()
        return user
