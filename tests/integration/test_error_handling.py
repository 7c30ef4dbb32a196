"""Integration tests for the generic 500 envelope on database failures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from io_manager.auth.bootstrap import create_admin_user
from io_manager.auth.tokens import TokenIdentity


def _failing_list(*args, **kwargs):
    raise OperationalError("SELECT vendors", {}, Exception("database is locked"))


@pytest.fixture
def make_failing_client(monkeypatch):
    """Client for an app whose vendor listing hits a database error."""
    from io_manager.app import create_app

    async def _make(settings):
        app = create_app(settings)
        container = app.state.container
        await container.startup()
        async with container.db.get_session() as session:
            admin = await create_admin_user(session, "admin", "admin@example.com", "admin-pass-123")
            identity = TokenIdentity(user_id=admin.user_id, username=admin.username, email=admin.email)
        monkeypatch.setattr(container.catalog, "list_vendors", _failing_list)
        token = container.tokens.issue_access_token(identity)
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        client = AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"Authorization": f"Bearer {token}"},
        )
        return client, container

    return _make


class TestUpstreamFailure:
    async def test_development_includes_details(self, settings, make_failing_client):
        client, container = await make_failing_client(settings)
        async with client:
            resp = await client.get("/api/vendors")
        await container.shutdown()

        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Internal server error"
        assert "OperationalError" in body["details"]

    async def test_production_hides_details(self, settings, make_failing_client):
        production = settings.model_copy(update={"environment": "production"})
        client, container = await make_failing_client(production)
        async with client:
            resp = await client.get("/api/vendors")
        await container.shutdown()

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Internal server error"}
