"""Pydantic schemas for audit-log API responses."""

from datetime import date, datetime
from typing import Optional

from io_manager.common.schemas import CamelModel, PaginatedResponse, RecordModel


class AuditLogResponse(RecordModel):
    audit_log_id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    module: str
    record_id: Optional[str] = None
    record_description: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime


class AppliedFilters(CamelModel):
    search: Optional[str] = None
    module: Optional[str] = None
    action: Optional[str] = None
    user_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class AuditLogPage(PaginatedResponse[AuditLogResponse]):
    filters: AppliedFilters = AppliedFilters()
