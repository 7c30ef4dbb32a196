"""
SessionController: sync client-side session state for the IO manager API.

Keeps the httpOnly auth cookies in an ``httpx.Client`` cookie jar and tracks
whether the caller is signed in, never was, or lost a session it had.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

import httpx


class SessionStatus(str, Enum):
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


@dataclass
class SessionUser:
    """Profile returned by ``/auth/me`` and ``/auth/login``."""

    user_id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    roles: list[str] = field(default_factory=list)
    permissions: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "SessionUser":
        return cls(
            user_id=data["UserID"],
            username=data["Username"],
            email=data.get("Email", ""),
            first_name=data.get("FirstName"),
            last_name=data.get("LastName"),
            is_active=data.get("IsActive", True),
            roles=list(data.get("Roles") or []),
            permissions=list(data.get("Permissions") or []),
        )


class SessionController:
    """
    Single state container for the client's view of its session.

    Transitions happen only on probe results: a 401 after having been
    authenticated means EXPIRED, a 401 on a fresh load means ANONYMOUS.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        api_prefix: str = "/api",
        timeout: int = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix.rstrip("/")
        self.status = SessionStatus.UNKNOWN
        self._user: Optional[SessionUser] = None
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout)

    def _path(self, path: str) -> str:
        return f"{self.api_prefix}{path}"

    def _profile(self, resp: httpx.Response) -> Optional[SessionUser]:
        try:
            body = resp.json()
        except json.JSONDecodeError:
            return None
        if body.get("success") and body.get("data"):
            return SessionUser.from_payload(body["data"])
        return None

    def _become(self, status: SessionStatus, user: Optional[SessionUser] = None) -> None:
        self.status = status
        self._user = user if status is SessionStatus.AUTHENTICATED else None

    @property
    def user(self) -> Optional[SessionUser]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def session_expired(self) -> bool:
        return self.status is SessionStatus.EXPIRED

    def load(self) -> SessionStatus:
        """Probe the current identity and settle the session status."""
        try:
            resp = self._http.get(self._path("/auth/me"))
        except httpx.HTTPError:
            if self.status is SessionStatus.UNKNOWN:
                self._become(SessionStatus.ANONYMOUS)
            return self.status

        if resp.status_code == 200:
            user = self._profile(resp)
            if user is not None:
                self._become(SessionStatus.AUTHENTICATED, user)
                return self.status
        if resp.status_code == 401 and self.status in (
            SessionStatus.AUTHENTICATED, SessionStatus.EXPIRED,
        ):
            # only a successful probe or clear_session_expired() ends EXPIRED
            self._become(SessionStatus.EXPIRED)
        else:
            self._become(SessionStatus.ANONYMOUS)
        return self.status

    def check_session(self) -> bool:
        """Non-mutating probe before navigation; True while the session holds.

        Only a 401 can move an authenticated session to EXPIRED. Network
        errors are assumed transient and report the session as valid.
        """
        try:
            resp = self._http.get(self._path("/auth/me"))
        except httpx.HTTPError:
            return True

        if resp.status_code == 200 and self._profile(resp) is not None:
            return True
        if resp.status_code == 401 and self.status is SessionStatus.AUTHENTICATED:
            self._become(SessionStatus.EXPIRED)
        return False

    def login(self, username: str, password: str) -> tuple[bool, Optional[str]]:
        """Returns ``(ok, error)``; cookies from a successful login are kept."""
        try:
            resp = self._http.post(
                self._path("/auth/login"),
                json={"username": username, "password": password},
            )
        except httpx.HTTPError:
            return False, "Network error"
        try:
            body = resp.json()
        except json.JSONDecodeError:
            return False, "Login failed"

        if body.get("success") and body.get("data"):
            data = body["data"]
            user = SessionUser.from_payload(data["user"])
            if not user.permissions:
                user.permissions = list(data.get("permissions") or [])
            self._become(SessionStatus.AUTHENTICATED, user)
            return True, None
        return False, body.get("error") or "Login failed"

    def logout(self) -> None:
        """Always ends ANONYMOUS, whether or not the server was reachable."""
        try:
            self._http.post(self._path("/auth/logout"))
        except httpx.HTTPError:
            pass
        finally:
            self._http.cookies.clear()
            self._become(SessionStatus.ANONYMOUS)

    def clear_session_expired(self) -> None:
        if self.status is SessionStatus.EXPIRED:
            self._become(SessionStatus.ANONYMOUS)

    def has_permission(self, permission: Any) -> bool:
        if self._user is None:
            return False
        return getattr(permission, "value", permission) in self._user.permissions

    def has_any_permission(self, permissions: Iterable[Any]) -> bool:
        return any(self.has_permission(p) for p in permissions)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
