"""Telematics IO Manager: role-based administration of a telematics IO catalog."""

from io_manager.client import SessionController, SessionStatus, SessionUser

__all__ = [
    "SessionController",
    "SessionStatus",
    "SessionUser",
]
__version__ = "0.1.0"
