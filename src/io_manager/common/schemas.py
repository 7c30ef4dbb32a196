"""Shared Pydantic schemas: the JSON envelope, record aliases, pagination."""

import math
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")

_ACRONYMS = {"id": "ID", "io": "IO", "ip": "IP"}


def to_record_alias(name: str) -> str:
    """``vendor_id`` -> ``VendorID``, ``universal_io_name`` -> ``UniversalIOName``."""
    return "".join(_ACRONYMS.get(part, part.capitalize()) for part in name.split("_"))


class RecordModel(BaseModel):
    """Base for record payloads, which use PascalCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_record_alias,
        populate_by_name=True,
        from_attributes=True,
    )


class CamelModel(BaseModel):
    """Base for auth and envelope payloads, which use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "telematics-io-manager"


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class PaginatedResponse(CamelModel, Generic[T]):
    success: bool = True
    data: list[T] = []
    total: int
    page: int
    page_size: int
    total_pages: int


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


def page_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def paginated(items: list, total: int, page: int, page_size: int) -> dict:
    """Keyword arguments for a ``PaginatedResponse``."""
    return {
        "data": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }
