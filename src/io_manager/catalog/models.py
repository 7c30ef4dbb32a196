"""SQLAlchemy models for the telematics device catalog."""

from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from io_manager.common.models import Base


class VendorModel(Base):
    __tablename__ = "vendors"

    vendor_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class ProductModel(Base):
    __tablename__ = "products"

    product_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.vendor_id"), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    temp_type_id: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    vendor: Mapped[VendorModel] = relationship(lazy="joined")

    @property
    def vendor_name(self) -> Optional[str]:
        return self.vendor.vendor_name if self.vendor else None


class IOUniversalModel(Base):
    """Universal IO parameter; the IOID is assigned by the client."""

    __tablename__ = "io_universal"

    io_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    io_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    io_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    data_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class IOMappingModel(Base):
    __tablename__ = "io_mappings"

    mapping_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("vendors.vendor_id"), nullable=True, index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("products.product_id"), nullable=True, index=True
    )
    io_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("io_universal.io_id"), nullable=False, index=True
    )
    io_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    io_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    min_value: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    max_value: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    multiplier: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    offset: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    error_values: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    conversion_formula: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    averaging: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    event_on_change: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    event_on_hysterisis: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    parameter_group: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    raw_value_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    vendor: Mapped[Optional[VendorModel]] = relationship(lazy="joined")
    product: Mapped[Optional[ProductModel]] = relationship(lazy="joined")
    io_universal: Mapped[IOUniversalModel] = relationship(lazy="joined")

    @property
    def vendor_name(self) -> Optional[str]:
        return self.vendor.vendor_name if self.vendor else None

    @property
    def product_name(self) -> Optional[str]:
        return self.product.product_name if self.product else None

    @property
    def universal_io_name(self) -> Optional[str]:
        return self.io_universal.io_name if self.io_universal else None
