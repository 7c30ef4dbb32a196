"""Tests for the authorization gate."""

import pytest
from starlette.requests import Request

from io_manager.auth.gate import AuthIdentity, authenticate, authorize, extract_token
from io_manager.auth.permissions import Permission
from io_manager.auth.tokens import TokenIdentity
from io_manager.common.exceptions import AuthorizationError


def make_request(headers: dict[str, str] | None = None, app=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    if app is not None:
        scope["app"] = app
    return Request(scope)


def identity(*permissions: str) -> AuthIdentity:
    return AuthIdentity(
        user_id=1, username="u", email="u@example.com", permissions=frozenset(permissions),
    )


class TestExtractToken:
    def test_bearer_header(self):
        assert extract_token(make_request({"Authorization": "Bearer abc"})) == "abc"

    def test_cookie_fallback(self):
        assert extract_token(make_request({"Cookie": "accessToken=xyz"})) == "xyz"

    def test_header_preferred_over_cookie(self):
        request = make_request({"Authorization": "Bearer hdr", "Cookie": "accessToken=ck"})
        assert extract_token(request) == "hdr"

    def test_non_bearer_scheme_ignored(self):
        assert extract_token(make_request({"Authorization": "Basic dXNlcjpwYXNz"})) is None

    def test_nothing(self):
        assert extract_token(make_request()) is None


class TestAuthorize:
    def test_exact_permission(self):
        who = identity("vendors.read")
        assert authorize(who, Permission.VENDORS_READ) is who

    def test_missing_permission(self):
        with pytest.raises(AuthorizationError) as exc:
            authorize(identity("vendors.read"), Permission.VENDORS_DELETE)
        assert exc.value.status_code == 403
        assert exc.value.message == "Forbidden: Insufficient permissions"

    def test_any_of(self):
        who = identity("products.read")
        assert authorize(who, [Permission.VENDORS_READ, Permission.PRODUCTS_READ]) is who
        with pytest.raises(AuthorizationError):
            authorize(who, [Permission.VENDORS_READ, Permission.USERS_READ])

    def test_empty_set_always_rejected(self):
        for permission in Permission:
            with pytest.raises(AuthorizationError):
                authorize(identity(), permission)

    def test_admin_shortcut_only_when_allowed(self):
        who = identity("roles.read")
        with pytest.raises(AuthorizationError):
            authorize(who, Permission.AUDIT_LOGS_READ)
        assert authorize(who, Permission.AUDIT_LOGS_READ, allow_admin=True) is who

    def test_shortcut_ignores_uncatalogued_strings(self):
        who = identity("users.anything", "roles")
        assert not who.is_admin
        with pytest.raises(AuthorizationError):
            authorize(who, Permission.AUDIT_LOGS_READ, allow_admin=True)


class TestAuthenticate:
    async def test_no_token(self, app, container):
        assert await authenticate(make_request(app=app)) is None

    async def test_invalid_token(self, app, container):
        request = make_request({"Authorization": "Bearer junk"}, app=app)
        assert await authenticate(request) is None

    async def test_resolves_fresh_permissions(self, app, container, make_user):
        user = await make_user("gina", [Permission.VENDORS_READ])
        token = container.tokens.issue_access_token(
            TokenIdentity(user_id=user.user_id, username="gina", email="gina@example.com")
        )
        who = await authenticate(make_request({"Authorization": f"Bearer {token}"}, app=app))
        assert who is not None
        assert who.user_id == user.user_id
        assert who.permissions == {"vendors.read"}
