"""Pydantic schemas for catalog requests and responses."""

from typing import Any, Optional

from pydantic import Field, field_validator

from io_manager.common.schemas import RecordModel


def _numbers_to_str(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


# ── Vendors ──

class VendorCreate(RecordModel):
    vendor_name: str = Field(..., min_length=1, max_length=255)
    country: Optional[str] = None
    website: Optional[str] = None


class VendorUpdate(RecordModel):
    vendor_name: Optional[str] = Field(None, min_length=1, max_length=255)
    country: Optional[str] = None
    website: Optional[str] = None


class VendorResponse(RecordModel):
    vendor_id: int
    vendor_name: str
    country: Optional[str] = None
    website: Optional[str] = None


# ── Products ──

class ProductCreate(RecordModel):
    vendor_id: int
    product_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    temp_type_id: int = Field(0, alias="TempTypeId")


class ProductUpdate(RecordModel):
    vendor_id: Optional[int] = None
    product_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    temp_type_id: Optional[int] = Field(None, alias="TempTypeId")


class ProductResponse(RecordModel):
    product_id: int
    vendor_id: int
    product_name: str
    description: Optional[str] = None
    temp_type_id: int = Field(0, alias="TempTypeId")
    vendor_name: Optional[str] = None


# ── IO universal ──

class IOUniversalFields(RecordModel):
    io_name: Optional[str] = None
    io_category: Optional[str] = None
    data_type: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None


class IOUniversalCreate(IOUniversalFields):
    io_id: int = Field(..., ge=0)


class IOUniversalUpdate(IOUniversalFields):
    pass


class IOUniversalResponse(IOUniversalFields):
    io_id: int


# ── IO mappings ──

class IOMappingFields(RecordModel):
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    io_code: Optional[str] = None
    io_name: Optional[str] = None
    bytes: Optional[int] = None
    min_value: Optional[str] = None
    max_value: Optional[str] = None
    multiplier: Optional[float] = None
    offset: Optional[float] = None
    unit: Optional[str] = None
    error_values: Optional[str] = None
    conversion_formula: Optional[str] = None
    averaging: Optional[str] = None
    event_on_change: Optional[bool] = None
    event_on_hysterisis: Optional[bool] = None
    parameter_group: Optional[str] = None
    description: Optional[str] = None
    raw_value_json: Optional[str] = None

    @field_validator("min_value", "max_value", mode="before")
    @classmethod
    def _limits_as_text(cls, value: Any) -> Any:
        return _numbers_to_str(value)


class IOMappingCreate(IOMappingFields):
    io_id: int


class IOMappingUpdate(IOMappingFields):
    io_id: Optional[int] = None


class IOMappingResponse(IOMappingFields):
    mapping_id: int
    io_id: int
    vendor_name: Optional[str] = None
    product_name: Optional[str] = None
    universal_io_name: Optional[str] = None


class IOMappingGroup(RecordModel):
    """Mappings sharing one universal IO, as shown in the tree view."""

    io_id: int
    io_name: str
    io_category: Optional[str] = None
    data_type: Optional[str] = None
    mappings: list[IOMappingResponse] = []
