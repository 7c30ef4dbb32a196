"""Shared test fixtures for the Telematics IO Manager."""

import os

import pytest
from httpx import ASGITransport, AsyncClient

JWT_SECRET = "test-jwt-secret-for-unit-tests-0123456789"
ADMIN_PASSWORD = "admin-pass-123"


@pytest.fixture
def settings():
    os.environ["IOM_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["IOM_JWT_SECRET"] = JWT_SECRET
    os.environ["IOM_ENVIRONMENT"] = "development"

    # Clear the cache so new env vars take effect
    from io_manager.common.config import get_settings
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def app(settings):
    """Create a test app with in-memory DB."""
    from io_manager.app import create_app
    return create_app(settings)


@pytest.fixture
async def container(app):
    # ASGITransport doesn't run lifespan, so start the container by hand
    container = app.state.container
    await container.startup()
    yield container
    await container.shutdown()


@pytest.fixture
async def client(app, container):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def bearer(container):
    """Authorization header for a user id/name pair."""
    from io_manager.auth.tokens import TokenIdentity

    def _bearer(user) -> dict[str, str]:
        token = container.tokens.issue_access_token(
            TokenIdentity(user_id=user.user_id, username=user.username, email=user.email)
        )
        return {"Authorization": f"Bearer {token}"}

    return _bearer


@pytest.fixture
async def admin_user(container):
    from io_manager.auth.bootstrap import create_admin_user

    async with container.db.get_session() as session:
        return await create_admin_user(session, "admin", "admin@example.com", ADMIN_PASSWORD)


@pytest.fixture
def admin_headers(admin_user, bearer):
    return bearer(admin_user)


@pytest.fixture
def make_user(container):
    """Create a user holding one fresh role with exactly ``permissions``."""
    from io_manager.auth.models import RoleModel, UserModel
    from io_manager.auth.passwords import hash_password
    from io_manager.auth.bootstrap import sync_permission_catalog

    counter = {"n": 0}

    async def _make_user(username: str, permissions=(), password: str = "secret-pw"):
        counter["n"] += 1
        async with container.db.get_session() as session:
            catalog = {p.permission_name: p for p in await sync_permission_catalog(session)}
            role = RoleModel(
                role_name=f"{username}-role-{counter['n']}",
                permissions=[catalog[getattr(p, "value", p)] for p in permissions],
            )
            user = UserModel(
                username=username,
                email=f"{username}@example.com",
                password_hash=hash_password(password),
                roles=[role],
            )
            session.add(user)
            await session.flush()
            return user

    return _make_user


@pytest.fixture
def audit_rows(container):
    """Fetch all audit rows, oldest first."""
    from sqlalchemy import select
    from io_manager.audit.models import AuditLogModel

    async def _rows():
        async with container.db.get_session() as session:
            result = await session.execute(
                select(AuditLogModel).order_by(AuditLogModel.audit_log_id)
            )
            return list(result.scalars().all())

    return _rows
