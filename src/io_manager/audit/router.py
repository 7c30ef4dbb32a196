"""Audit-log API router."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from io_manager.audit.schemas import AppliedFilters, AuditLogPage, AuditLogResponse
from io_manager.audit.service import AuditAction, AuditLogFilters
from io_manager.auth.gate import AuthIdentity, require_permission_or_admin
from io_manager.auth.permissions import Permission
from io_manager.common.schemas import page_offset, paginated
from io_manager.deps import Container, get_container

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    module: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    user_id: Optional[int] = Query(None, alias="userId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    _: AuthIdentity = Depends(require_permission_or_admin(Permission.AUDIT_LOGS_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size, audit=True)
    filters = AuditLogFilters(
        search=search or None,
        module=module or None,
        action=action.value if action else None,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
    )
    async with container.db.get_session() as session:
        rows, total = await container.audit_logs.list_logs(
            session, filters, offset=page_offset(page, size), limit=size,
        )
        items = [AuditLogResponse.model_validate(r) for r in rows]
    return AuditLogPage(
        **paginated(items, total, page, size),
        filters=AppliedFilters(**vars(filters)),
    )
