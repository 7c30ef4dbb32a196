"""Authorization gate: FastAPI dependencies guarding every route.

``authenticate`` turns a request into an identity (or None); the
``require_*`` factories build dependencies that reject with 401 when no
identity can be established and 403 when the resolved permission set does
not satisfy the route.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from fastapi import Depends, Request

from io_manager.auth.permissions import Permission, grants_admin, resolve_permissions
from io_manager.common.exceptions import AuthenticationError, AuthorizationError
from io_manager.common.logging import get_logger

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
SESSION_COOKIE = "sessionToken"

logger = get_logger("auth.gate")


@dataclass(frozen=True)
class AuthIdentity:
    """Verified caller plus the permissions resolved for this request."""

    user_id: int
    username: str
    email: str
    permissions: frozenset[str] = field(default_factory=frozenset)

    def has(self, permission: Permission) -> bool:
        return permission.value in self.permissions

    def has_any(self, permissions: Iterable[Permission]) -> bool:
        return any(self.has(p) for p in permissions)

    @property
    def is_admin(self) -> bool:
        return grants_admin(self.permissions)


def extract_token(request: Request) -> Optional[str]:
    """Bearer header first, then the ``accessToken`` cookie."""
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE) or None


async def authenticate(request: Request) -> Optional[AuthIdentity]:
    token = extract_token(request)
    if not token:
        return None

    container = request.app.state.container
    claims = container.tokens.verify_access_token(token)
    if claims is None:
        return None

    async with container.db.get_session() as session:
        permissions = await resolve_permissions(session, claims.user_id)
    return AuthIdentity(
        user_id=claims.user_id,
        username=claims.username,
        email=claims.email,
        permissions=permissions,
    )


async def optional_identity(request: Request) -> Optional[AuthIdentity]:
    return await authenticate(request)


async def current_identity(request: Request) -> AuthIdentity:
    identity = await authenticate(request)
    if identity is None:
        raise AuthenticationError("Unauthorized")
    return identity


def authorize(
    identity: AuthIdentity,
    required: Permission | Iterable[Permission],
    allow_admin: bool = False,
) -> AuthIdentity:
    """Accept if ``identity`` holds ``required`` (any-of for a collection).

    With ``allow_admin`` the administrative shortcut also satisfies the check.
    """
    if isinstance(required, Permission):
        granted = identity.has(required)
    else:
        granted = identity.has_any(required)
    if not granted and allow_admin:
        granted = identity.is_admin
    if not granted:
        logger.info(
            "permission denied: user=%s required=%s",
            identity.username,
            required.value if isinstance(required, Permission) else [p.value for p in required],
        )
        raise AuthorizationError()
    return identity


def require_permission(permission: Permission):
    async def dependency(identity: AuthIdentity = Depends(current_identity)) -> AuthIdentity:
        return authorize(identity, permission)

    return dependency


def require_any_permission(*permissions: Permission):
    async def dependency(identity: AuthIdentity = Depends(current_identity)) -> AuthIdentity:
        return authorize(identity, permissions)

    return dependency


def require_permission_or_admin(permission: Permission):
    async def dependency(identity: AuthIdentity = Depends(current_identity)) -> AuthIdentity:
        return authorize(identity, permission, allow_admin=True)

    return dependency
