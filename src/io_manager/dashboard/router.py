"""Landing-page record counts."""

from fastapi import APIRouter, Depends

from io_manager.auth.gate import AuthIdentity, current_identity
from io_manager.common.schemas import ApiResponse, CamelModel
from io_manager.deps import Container, get_container

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class DashboardStats(CamelModel):
    vendors: int = 0
    products: int = 0
    io_universal: int = 0
    io_mappings: int = 0
    users: int = 0
    roles: int = 0
    audit_logs: int = 0


@router.get("/stats", response_model=ApiResponse[DashboardStats])
async def dashboard_stats(
    identity: AuthIdentity = Depends(current_identity),
    container: Container = Depends(get_container),
):
    """Catalog counts for everyone; administration counts only for admins."""
    async with container.db.get_session() as session:
        stats = DashboardStats(**await container.catalog.count_all(session))
        if identity.is_admin:
            stats.users = await container.users.count(session)
            stats.roles = await container.roles.count(session)
            stats.audit_logs = await container.audit_logs.count(session)
    return ApiResponse[DashboardStats](data=stats)
