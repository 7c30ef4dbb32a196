"""Application container: the services one app instance wires together.

A ``Container`` is created per application and stored on ``app.state``;
routers reach it through the ``get_container`` dependency.
"""

from datetime import timedelta

from fastapi import Request

from io_manager.audit.service import AuditLogService, AuditRecorder
from io_manager.auth.bootstrap import ensure_admin_role
from io_manager.auth.service import AuthService
from io_manager.auth.sessions import SessionStore
from io_manager.auth.tokens import TokenIssuer
from io_manager.catalog.service import CatalogService
from io_manager.common.config import IOManagerSettings, get_settings
from io_manager.common.database import DatabaseManager
from io_manager.common.logging import get_logger
from io_manager.roles.service import RoleService
from io_manager.users.service import UserService

logger = get_logger("deps")


class Container:
    def __init__(self, settings: IOManagerSettings | None = None):
        self.settings = settings or get_settings()
        self.db = DatabaseManager(self.settings)
        self.tokens = TokenIssuer(self.settings)
        self.sessions = SessionStore(timedelta(days=self.settings.refresh_token_days))
        self.audit = AuditRecorder(self.db)
        self.audit_logs = AuditLogService()
        self.auth = AuthService(self.settings, self.tokens, self.sessions)
        self.users = UserService(self.settings, self.sessions)
        self.roles = RoleService()
        self.catalog = CatalogService()

    def page_size(self, requested: int | None, audit: bool = False) -> int:
        """Requested page size, defaulted and clamped to the configured maximum."""
        if not requested:
            requested = (
                self.settings.audit_default_page_size if audit
                else self.settings.default_page_size
            )
        return max(1, min(requested, self.settings.max_page_size))

    async def startup(self) -> None:
        if not self.db.initialized:
            await self.db.init()
        await self.db.create_all()
        async with self.db.get_session() as session:
            await ensure_admin_role(session, self.settings.admin_role_name)
        logger.info("startup complete")

    async def shutdown(self) -> None:
        await self.db.close()


def get_container(request: Request) -> Container:
    return request.app.state.container
