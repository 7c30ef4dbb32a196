"""Audit recorder and audit-log queries.

Recording is best-effort: the recorder writes in its own unit of work after
the business operation committed, and a failed write is logged and counted
but never reaches the caller.
"""

import json
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from io_manager.audit.models import AuditLogModel
from io_manager.common.database import DatabaseManager
from io_manager.common.logging import get_logger

logger = get_logger("audit")


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"


class AuditModule(str, Enum):
    VENDORS = "Vendors"
    PRODUCTS = "Products"
    IO_UNIVERSAL = "IOUniversal"
    IO_MAPPING = "IOMapping"
    USERS = "Users"
    ROLES = "Roles"
    AUTH = "Auth"
    AUDIT = "AuditLogs"


# Compared after lower-casing and dropping underscores.
SENSITIVE_KEYS = frozenset({
    "password",
    "passwordhash",
    "currentpassword",
    "newpassword",
    "confirmpassword",
    "token",
    "accesstoken",
    "refreshtoken",
    "sessiontoken",
})


def _is_sensitive(key: Any) -> bool:
    return isinstance(key, str) and key.replace("_", "").lower() in SENSITIVE_KEYS


def _strip_secrets(value: Any) -> Any:
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, mode="json")
    elif is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, dict):
        return {k: _strip_secrets(v) for k, v in value.items() if not _is_sensitive(k)}
    if isinstance(value, (list, tuple)):
        return [_strip_secrets(v) for v in value]
    return value


def sanitize_for_audit(snapshot: Any) -> Optional[str]:
    """Serialize a before/after snapshot with password and token keys removed."""
    if snapshot is None:
        return None
    return json.dumps(_strip_secrets(snapshot), default=str)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"


@dataclass
class AuditEntry:
    action: AuditAction
    module: AuditModule
    actor_user_id: Optional[int] = None
    actor_username: Optional[str] = None
    record_id: Optional[str] = None
    description: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(
        cls,
        request: Request,
        action: AuditAction,
        module: AuditModule,
        actor: Any = None,
        **fields: Any,
    ) -> "AuditEntry":
        """Build an entry stamped with the request's client address and agent.

        ``actor`` is anything with ``user_id`` and ``username`` attributes.
        """
        if actor is not None:
            fields.setdefault("actor_user_id", actor.user_id)
            fields.setdefault("actor_username", actor.username)
        record_id = fields.pop("record_id", None)
        return cls(
            action=action,
            module=module,
            record_id=str(record_id) if record_id is not None else None,
            ip_address=client_ip(request),
            user_agent=user_agent(request),
            **fields,
        )


class AuditRecorder:
    """Best-effort writer of immutable audit rows."""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.failure_count = 0

    async def record(self, entry: AuditEntry) -> None:
        try:
            row = AuditLogModel(
                user_id=entry.actor_user_id,
                username=entry.actor_username,
                action=AuditAction(entry.action).value,
                module=AuditModule(entry.module).value,
                record_id=entry.record_id,
                record_description=entry.description,
                old_value=sanitize_for_audit(entry.old_value),
                new_value=sanitize_for_audit(entry.new_value),
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
            )
            async with self.db.get_session() as session:
                session.add(row)
        except Exception:
            self.failure_count += 1
            logger.exception(
                "audit write failed (failures=%d): action=%s module=%s record=%s",
                self.failure_count,
                getattr(entry.action, "value", entry.action),
                getattr(entry.module, "value", entry.module),
                entry.record_id,
            )


@dataclass
class AuditLogFilters:
    search: Optional[str] = None
    module: Optional[str] = None
    action: Optional[str] = None
    user_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class AuditLogService:
    """Read side of the audit trail; rows are never updated or deleted."""

    async def list_logs(
        self,
        session: AsyncSession,
        filters: AuditLogFilters,
        offset: int = 0,
        limit: int = 25,
    ) -> tuple[list[AuditLogModel], int]:
        query = select(AuditLogModel)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(or_(
                AuditLogModel.username.ilike(pattern),
                AuditLogModel.record_description.ilike(pattern),
                AuditLogModel.record_id.ilike(pattern),
            ))
        if filters.module:
            query = query.where(AuditLogModel.module == filters.module)
        if filters.action:
            query = query.where(AuditLogModel.action == filters.action)
        if filters.user_id is not None:
            query = query.where(AuditLogModel.user_id == filters.user_id)
        if filters.date_from:
            query = query.where(AuditLogModel.timestamp >= _day_start(filters.date_from))
        if filters.date_to:
            query = query.where(
                AuditLogModel.timestamp < _day_start(filters.date_to + timedelta(days=1))
            )

        count_result = await session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await session.execute(
            query.order_by(AuditLogModel.timestamp.desc(), AuditLogModel.audit_log_id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def count(self, session: AsyncSession) -> int:
        result = await session.execute(select(func.count()).select_from(AuditLogModel))
        return result.scalar_one()


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
