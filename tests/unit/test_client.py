"""Tests for client.py: SessionController state transitions."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from io_manager.auth.permissions import Permission
from io_manager.client import SessionController, SessionStatus

PROFILE = {
    "UserID": 1,
    "Username": "amy",
    "Email": "amy@example.com",
    "FirstName": None,
    "LastName": None,
    "IsActive": True,
    "Roles": ["Operators"],
    "Permissions": ["vendors.read", "products.read"],
}


def _mock_response(data, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    if isinstance(data, Exception):
        resp.json.side_effect = data
    else:
        resp.json.return_value = data
    return resp


@pytest.fixture
def controller():
    ctrl = SessionController()
    ctrl._http = MagicMock()
    yield ctrl


def _authenticate(ctrl):
    ctrl._http.get.return_value = _mock_response({"success": True, "data": PROFILE})
    assert ctrl.load() is SessionStatus.AUTHENTICATED


class TestLoad:
    def test_initial_state(self):
        ctrl = SessionController(base_url="http://custom:9090/", api_prefix="/api/")
        assert ctrl.status is SessionStatus.UNKNOWN
        assert ctrl.user is None
        assert ctrl.base_url == "http://custom:9090"
        ctrl.close()

    def test_success_authenticates(self, controller):
        _authenticate(controller)
        assert controller.is_authenticated
        assert controller.user.username == "amy"
        controller._http.get.assert_called_with("/api/auth/me")

    def test_fresh_401_is_anonymous_not_expired(self, controller):
        controller._http.get.return_value = _mock_response({"success": False}, 401)
        assert controller.load() is SessionStatus.ANONYMOUS
        assert not controller.session_expired

    def test_401_after_authenticated_is_expired(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({"success": False}, 401)
        assert controller.load() is SessionStatus.EXPIRED
        assert controller.session_expired
        assert controller.user is None

    def test_repeated_401_keeps_expired(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({"success": False}, 401)
        assert controller.load() is SessionStatus.EXPIRED
        assert controller.load() is SessionStatus.EXPIRED
        assert controller.session_expired

    def test_other_failure_is_anonymous(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({"success": False}, 500)
        assert controller.load() is SessionStatus.ANONYMOUS

    def test_network_error_on_fresh_load(self, controller):
        controller._http.get.side_effect = httpx.ConnectError("down")
        assert controller.load() is SessionStatus.ANONYMOUS

    def test_network_error_keeps_known_state(self, controller):
        _authenticate(controller)
        controller._http.get.side_effect = httpx.ConnectError("down")
        assert controller.load() is SessionStatus.AUTHENTICATED

    def test_success_clears_expired(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({}, 401)
        controller.load()
        _authenticate(controller)
        assert not controller.session_expired


class TestCheckSession:
    def test_valid(self, controller):
        _authenticate(controller)
        assert controller.check_session() is True
        assert controller.is_authenticated

    def test_401_expires_authenticated(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({}, 401)
        assert controller.check_session() is False
        assert controller.status is SessionStatus.EXPIRED

    def test_401_when_anonymous_stays_anonymous(self, controller):
        controller._http.get.return_value = _mock_response({}, 401)
        controller.load()
        assert controller.check_session() is False
        assert controller.status is SessionStatus.ANONYMOUS

    def test_network_error_is_optimistic(self, controller):
        _authenticate(controller)
        controller._http.get.side_effect = httpx.ReadTimeout("slow")
        assert controller.check_session() is True
        assert controller.is_authenticated

    def test_server_error_does_not_expire(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({}, 503)
        assert controller.check_session() is False
        assert controller.is_authenticated


class TestLoginLogout:
    def test_login_success(self, controller):
        controller._http.post.return_value = _mock_response({
            "success": True,
            "data": {
                "user": PROFILE,
                "accessToken": "a",
                "refreshToken": "r",
                "permissions": PROFILE["Permissions"],
            },
        })
        assert controller.login("amy", "pw") == (True, None)
        assert controller.is_authenticated
        controller._http.post.assert_called_with(
            "/api/auth/login", json={"username": "amy", "password": "pw"},
        )

    def test_login_failure_message(self, controller):
        controller._http.post.return_value = _mock_response(
            {"success": False, "error": "Invalid credentials"}, 401,
        )
        assert controller.login("amy", "bad") == (False, "Invalid credentials")
        assert not controller.is_authenticated

    def test_login_network_error(self, controller):
        controller._http.post.side_effect = httpx.ConnectError("down")
        assert controller.login("amy", "pw") == (False, "Network error")

    def test_login_bad_json(self, controller):
        controller._http.post.return_value = _mock_response(
            json.JSONDecodeError("x", "", 0), 502,
        )
        assert controller.login("amy", "pw") == (False, "Login failed")

    def test_logout_always_anonymous(self, controller):
        _authenticate(controller)
        controller._http.post.side_effect = httpx.ConnectError("down")
        controller.logout()
        assert controller.status is SessionStatus.ANONYMOUS
        assert controller.user is None

    def test_clear_session_expired(self, controller):
        _authenticate(controller)
        controller._http.get.return_value = _mock_response({}, 401)
        controller.load()
        controller.clear_session_expired()
        assert controller.status is SessionStatus.ANONYMOUS

    def test_clear_is_noop_when_authenticated(self, controller):
        _authenticate(controller)
        controller.clear_session_expired()
        assert controller.is_authenticated


class TestPermissions:
    def test_anonymous_has_nothing(self, controller):
        assert not controller.has_permission("vendors.read")
        assert not controller.has_any_permission(["vendors.read"])

    def test_checks(self, controller):
        _authenticate(controller)
        assert controller.has_permission("vendors.read")
        assert controller.has_permission(Permission.PRODUCTS_READ)
        assert not controller.has_permission("users.read")
        assert controller.has_any_permission(["users.read", "products.read"])
        assert not controller.has_any_permission([])
