"""Authentication API router (/auth)."""

from fastapi import APIRouter, Depends, Request, Response

from io_manager.audit.service import AuditAction, AuditEntry, AuditModule
from io_manager.auth.gate import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    SESSION_COOKIE,
    AuthIdentity,
    current_identity,
    optional_identity,
)
from io_manager.auth.schemas import (
    AuthUser,
    ChangePasswordRequest,
    LoginData,
    LoginRequest,
    TokenPairData,
)
from io_manager.auth.tokens import TokenPair
from io_manager.common.exceptions import LoginFailedError
from io_manager.common.schemas import ApiResponse
from io_manager.deps import Container, get_container

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookies(
    response: Response,
    container: Container,
    tokens: TokenPair,
    session_token: str | None = None,
) -> None:
    settings = container.settings
    common = {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure, "path": "/"}
    refresh_max_age = int(container.tokens.refresh_lifetime.total_seconds())
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=int(container.tokens.access_lifetime.total_seconds()),
        **common,
    )
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, max_age=refresh_max_age, **common)
    if session_token:
        response.set_cookie(SESSION_COOKIE, session_token, max_age=refresh_max_age, **common)


def _clear_auth_cookies(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE, SESSION_COOKIE):
        response.delete_cookie(name, path="/")


@router.post("/login", response_model=ApiResponse[LoginData])
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    container: Container = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            result = await container.auth.login(session, body.username, body.password)
            user = AuthUser(
                user_id=result.user.user_id,
                username=result.user.username,
                email=result.user.email,
                first_name=result.user.first_name,
                last_name=result.user.last_name,
                is_active=result.user.is_active,
                roles=[r.role_name for r in result.user.roles],
                permissions=result.permissions,
            )
    except LoginFailedError as exc:
        await container.audit.record(AuditEntry.from_request(
            request,
            AuditAction.LOGIN_FAILED,
            AuditModule.AUTH,
            actor_user_id=exc.user_id,
            actor_username=exc.username,
            description=exc.reason,
        ))
        raise

    _set_auth_cookies(response, container, result.tokens, result.session_token)
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.LOGIN,
        AuditModule.AUTH,
        actor=user,
        description=f"User {user.username} logged in",
    ))
    return ApiResponse[LoginData](data=LoginData(
        user=user,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        permissions=result.permissions,
    ))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    request: Request,
    response: Response,
    identity: AuthIdentity | None = Depends(optional_identity),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        await container.auth.logout(session, request.cookies.get(SESSION_COOKIE))

    _clear_auth_cookies(response)
    if identity is not None:
        await container.audit.record(AuditEntry.from_request(
            request,
            AuditAction.LOGOUT,
            AuditModule.AUTH,
            actor=identity,
            description=f"User {identity.username} logged out",
        ))
    return ApiResponse[None](message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[AuthUser])
async def me(
    identity: AuthIdentity = Depends(current_identity),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        user = await container.auth.get_profile(session, identity.user_id)
        data = AuthUser(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            roles=[r.role_name for r in user.roles],
            permissions=sorted(identity.permissions),
        )
    return ApiResponse[AuthUser](data=data)


@router.post("/refresh", response_model=ApiResponse[TokenPairData])
async def refresh(
    request: Request,
    response: Response,
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        tokens = await container.auth.refresh(
            session,
            request.cookies.get(REFRESH_COOKIE),
            request.cookies.get(SESSION_COOKIE),
        )
    _set_auth_cookies(response, container, tokens)
    return ApiResponse[TokenPairData](data=TokenPairData(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    ))


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    identity: AuthIdentity = Depends(current_identity),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        await container.auth.change_password(
            session,
            identity.user_id,
            body.current_password,
            body.new_password,
            body.confirm_password,
        )
    await container.audit.record(AuditEntry.from_request(
        request,
        AuditAction.UPDATE,
        AuditModule.USERS,
        actor=identity,
        record_id=identity.user_id,
        description=f"Password changed for user: {identity.username}",
    ))
    return ApiResponse[None](message="Password changed successfully")
