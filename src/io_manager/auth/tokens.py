"""Token issuer: signed, time-limited access and refresh tokens.

Tokens carry only the identity claims (``userId``, ``username``, ``email``)
plus the registered ``exp``/``iat``/``aud`` claims. Permissions are never
embedded; they are resolved fresh on every request.
"""

import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import jwt

from io_manager.common.config import IOManagerSettings
from io_manager.common.models import utcnow

ACCESS_AUDIENCE = "iom:access"
REFRESH_AUDIENCE = "iom:refresh"


@dataclass(frozen=True)
class TokenIdentity:
    """The minimal identity claim carried by every token."""

    user_id: int
    username: str
    email: str

    def to_claims(self) -> dict[str, Any]:
        return {"userId": self.user_id, "username": self.username, "email": self.email}

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "TokenIdentity":
        user_id = claims["userId"]
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise ValueError("userId claim must be an integer")
        return cls(
            user_id=user_id,
            username=str(claims["username"]),
            email=str(claims["email"]),
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def generate_session_token() -> str:
    """Opaque 64-byte random token persisted by the session store."""
    return secrets.token_hex(64)


class TokenIssuer:
    def __init__(self, settings: IOManagerSettings):
        self.settings = settings

    @property
    def access_lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_minutes)

    @property
    def refresh_lifetime(self) -> timedelta:
        return timedelta(days=self.settings.refresh_token_days)

    def issue_access_token(
        self, identity: TokenIdentity, expires_in: Optional[timedelta] = None,
    ) -> str:
        return self._encode(identity, ACCESS_AUDIENCE, expires_in or self.access_lifetime)

    def issue_refresh_token(
        self, identity: TokenIdentity, expires_in: Optional[timedelta] = None,
    ) -> str:
        return self._encode(identity, REFRESH_AUDIENCE, expires_in or self.refresh_lifetime)

    def issue_pair(self, identity: TokenIdentity) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(identity),
            refresh_token=self.issue_refresh_token(identity),
        )

    def verify_access_token(self, token: str) -> Optional[TokenIdentity]:
        return self.verify(token, ACCESS_AUDIENCE)

    def verify_refresh_token(self, token: str) -> Optional[TokenIdentity]:
        return self.verify(token, REFRESH_AUDIENCE)

    def verify(self, token: str, audience: str = ACCESS_AUDIENCE) -> Optional[TokenIdentity]:
        """Decode ``token``; any failure yields None, never an exception."""
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                audience=audience,
                options={"require": ["exp", "aud"]},
            )
            return TokenIdentity.from_claims(claims)
        except (jwt.PyJWTError, KeyError, TypeError, ValueError):
            return None

    def _encode(self, identity: TokenIdentity, audience: str, lifetime: timedelta) -> str:
        now = utcnow()
        payload = {
            **identity.to_claims(),
            "aud": audience,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
