"""Catalog service: vendors, products, universal IO definitions, IO mappings."""

from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from io_manager.catalog.models import (
    IOMappingModel,
    IOUniversalModel,
    ProductModel,
    VendorModel,
)
from io_manager.common.exceptions import ConflictError, NotFoundError, ValidationError
from io_manager.common.logging import get_logger
from io_manager.common.schemas import to_record_alias

logger = get_logger("catalog")

# Columns that may never be cleared through an update.
_REQUIRED = {
    VendorModel: {"vendor_name"},
    ProductModel: {"vendor_id", "product_name", "temp_type_id"},
    IOUniversalModel: set(),
    IOMappingModel: {"io_id"},
}


async def _page(
    session: AsyncSession,
    query: Select,
    count_query: Select,
    offset: int,
    limit: int,
) -> tuple[list[Any], int]:
    total = (await session.execute(count_query)).scalar_one()
    result = await session.execute(query.offset(offset).limit(limit))
    return list(result.scalars().all()), total


def _apply(model: Any, changes: dict[str, Any]) -> None:
    required = _REQUIRED[type(model)]
    for field, value in changes.items():
        if value is None and field in required:
            raise ValidationError(f"{to_record_alias(field)} is required")
    for field, value in changes.items():
        setattr(model, field, value)


class CatalogService:
    """CRUD over the device catalog tables."""

    # ── Vendors ──

    async def list_vendors(
        self, session: AsyncSession, search: str | None = None, offset: int = 0, limit: int = 10,
    ) -> tuple[list[VendorModel], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                VendorModel.vendor_name.ilike(pattern),
                VendorModel.country.ilike(pattern),
            ))
        query = select(VendorModel).where(*conditions).order_by(
            VendorModel.vendor_name, VendorModel.vendor_id
        )
        count_query = select(func.count(VendorModel.vendor_id)).where(*conditions)
        return await _page(session, query, count_query, offset, limit)

    async def get_vendor(self, session: AsyncSession, vendor_id: int) -> VendorModel:
        vendor = await session.get(VendorModel, vendor_id)
        if vendor is None:
            raise NotFoundError("Vendor not found")
        return vendor

    async def create_vendor(self, session: AsyncSession, **fields: Any) -> VendorModel:
        vendor = VendorModel(**fields)
        session.add(vendor)
        await session.flush()
        logger.info("vendor created: %s", vendor.vendor_name)
        return vendor

    async def update_vendor(
        self, session: AsyncSession, vendor_id: int, changes: dict[str, Any],
    ) -> VendorModel:
        vendor = await self.get_vendor(session, vendor_id)
        _apply(vendor, changes)
        await session.flush()
        return vendor

    async def delete_vendor(self, session: AsyncSession, vendor_id: int) -> VendorModel:
        vendor = await self.get_vendor(session, vendor_id)
        products = await self._count(session, ProductModel.vendor_id == vendor_id, ProductModel)
        mappings = await self._count(session, IOMappingModel.vendor_id == vendor_id, IOMappingModel)
        if products or mappings:
            raise ConflictError(
                "Cannot delete vendor: it is referenced by "
                f"{products} product(s) and {mappings} IO mapping(s)"
            )
        await session.delete(vendor)
        await session.flush()
        return vendor

    # ── Products ──

    async def list_products(
        self,
        session: AsyncSession,
        search: str | None = None,
        vendor_id: int | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[ProductModel], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                ProductModel.product_name.ilike(pattern),
                VendorModel.vendor_name.ilike(pattern),
            ))
        if vendor_id is not None:
            conditions.append(ProductModel.vendor_id == vendor_id)
        query = (
            select(ProductModel)
            .join(VendorModel, ProductModel.vendor_id == VendorModel.vendor_id)
            .where(*conditions)
            .order_by(ProductModel.product_name, ProductModel.product_id)
        )
        count_query = (
            select(func.count(ProductModel.product_id))
            .select_from(ProductModel)
            .join(VendorModel, ProductModel.vendor_id == VendorModel.vendor_id)
            .where(*conditions)
        )
        return await _page(session, query, count_query, offset, limit)

    async def get_product(self, session: AsyncSession, product_id: int) -> ProductModel:
        product = await session.get(ProductModel, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def create_product(self, session: AsyncSession, **fields: Any) -> ProductModel:
        await self._require_vendor(session, fields.get("vendor_id"))
        product = ProductModel(**fields)
        session.add(product)
        await session.flush()
        await session.refresh(product, ["vendor"])
        logger.info("product created: %s", product.product_name)
        return product

    async def update_product(
        self, session: AsyncSession, product_id: int, changes: dict[str, Any],
    ) -> ProductModel:
        product = await self.get_product(session, product_id)
        if changes.get("vendor_id") is not None:
            await self._require_vendor(session, changes["vendor_id"])
        _apply(product, changes)
        await session.flush()
        await session.refresh(product, ["vendor"])
        return product

    async def delete_product(self, session: AsyncSession, product_id: int) -> ProductModel:
        product = await self.get_product(session, product_id)
        mappings = await self._count(
            session, IOMappingModel.product_id == product_id, IOMappingModel
        )
        if mappings:
            raise ConflictError(
                f"Cannot delete product: it is referenced by {mappings} IO mapping(s)"
            )
        await session.delete(product)
        await session.flush()
        return product

    # ── IO universal ──

    async def list_io_universal(
        self,
        session: AsyncSession,
        search: str | None = None,
        category: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[IOUniversalModel], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                IOUniversalModel.io_name.ilike(pattern),
                IOUniversalModel.io_category.ilike(pattern),
                IOUniversalModel.description.ilike(pattern),
            ))
        if category:
            conditions.append(IOUniversalModel.io_category == category)
        query = select(IOUniversalModel).where(*conditions).order_by(IOUniversalModel.io_id)
        count_query = select(func.count(IOUniversalModel.io_id)).where(*conditions)
        return await _page(session, query, count_query, offset, limit)

    async def get_io_universal(self, session: AsyncSession, io_id: int) -> IOUniversalModel:
        entry = await session.get(IOUniversalModel, io_id)
        if entry is None:
            raise NotFoundError("IO Universal entry not found")
        return entry

    async def create_io_universal(self, session: AsyncSession, **fields: Any) -> IOUniversalModel:
        if await session.get(IOUniversalModel, fields["io_id"]) is not None:
            raise ConflictError("IOID already exists")
        entry = IOUniversalModel(**fields)
        session.add(entry)
        await session.flush()
        logger.info("io universal entry created: %d", entry.io_id)
        return entry

    async def update_io_universal(
        self, session: AsyncSession, io_id: int, changes: dict[str, Any],
    ) -> IOUniversalModel:
        entry = await self.get_io_universal(session, io_id)
        changes.pop("io_id", None)
        _apply(entry, changes)
        await session.flush()
        return entry

    async def delete_io_universal(self, session: AsyncSession, io_id: int) -> IOUniversalModel:
        entry = await self.get_io_universal(session, io_id)
        mappings = await self._count(session, IOMappingModel.io_id == io_id, IOMappingModel)
        if mappings:
            raise ConflictError(
                f"Cannot delete IO Universal entry: it is referenced by {mappings} IO mapping(s)"
            )
        await session.delete(entry)
        await session.flush()
        return entry

    # ── IO mappings ──

    def _mapping_conditions(
        self,
        search: str | None,
        vendor_id: int | None,
        product_id: int | None,
        io_id: int | None,
    ) -> list:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                IOMappingModel.io_name.ilike(pattern),
                IOMappingModel.io_code.ilike(pattern),
                IOMappingModel.parameter_group.ilike(pattern),
            ))
        if vendor_id is not None:
            conditions.append(IOMappingModel.vendor_id == vendor_id)
        if product_id is not None:
            conditions.append(IOMappingModel.product_id == product_id)
        if io_id is not None:
            conditions.append(IOMappingModel.io_id == io_id)
        return conditions

    async def list_mappings(
        self,
        session: AsyncSession,
        search: str | None = None,
        vendor_id: int | None = None,
        product_id: int | None = None,
        io_id: int | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[IOMappingModel], int]:
        conditions = self._mapping_conditions(search, vendor_id, product_id, io_id)
        query = select(IOMappingModel).where(*conditions).order_by(IOMappingModel.mapping_id)
        count_query = select(func.count(IOMappingModel.mapping_id)).where(*conditions)
        return await _page(session, query, count_query, offset, limit)

    async def mapping_tree(
        self,
        session: AsyncSession,
        search: str | None = None,
        vendor_id: int | None = None,
        product_id: int | None = None,
        io_id: int | None = None,
    ) -> list[dict[str, Any]]:
        """Group every matching mapping under its universal IO, ordered by IOID."""
        conditions = self._mapping_conditions(search, vendor_id, product_id, io_id)
        result = await session.execute(
            select(IOMappingModel)
            .where(*conditions)
            .order_by(IOMappingModel.io_id, IOMappingModel.mapping_id)
        )
        groups: dict[int, dict[str, Any]] = {}
        for mapping in result.scalars().all():
            group = groups.get(mapping.io_id)
            if group is None:
                universal = mapping.io_universal
                group = {
                    "io_id": mapping.io_id,
                    "io_name": (universal.io_name if universal else None) or f"IO {mapping.io_id}",
                    "io_category": universal.io_category if universal else None,
                    "data_type": universal.data_type if universal else None,
                    "mappings": [],
                }
                groups[mapping.io_id] = group
            group["mappings"].append(mapping)
        return [groups[key] for key in sorted(groups)]

    async def get_mapping(self, session: AsyncSession, mapping_id: int) -> IOMappingModel:
        mapping = await session.get(IOMappingModel, mapping_id)
        if mapping is None:
            raise NotFoundError("IO Mapping not found")
        return mapping

    async def create_mapping(self, session: AsyncSession, **fields: Any) -> IOMappingModel:
        await self._check_mapping_references(session, fields)
        mapping = IOMappingModel(**fields)
        session.add(mapping)
        await session.flush()
        await session.refresh(mapping, ["vendor", "product", "io_universal"])
        return mapping

    async def update_mapping(
        self, session: AsyncSession, mapping_id: int, changes: dict[str, Any],
    ) -> IOMappingModel:
        mapping = await self.get_mapping(session, mapping_id)
        await self._check_mapping_references(session, changes)
        _apply(mapping, changes)
        await session.flush()
        await session.refresh(mapping, ["vendor", "product", "io_universal"])
        return mapping

    async def delete_mapping(self, session: AsyncSession, mapping_id: int) -> IOMappingModel:
        mapping = await self.get_mapping(session, mapping_id)
        await session.delete(mapping)
        await session.flush()
        return mapping

    # ── Helpers ──

    async def count_all(self, session: AsyncSession) -> dict[str, int]:
        counts = {}
        for key, column in (
            ("vendors", VendorModel.vendor_id),
            ("products", ProductModel.product_id),
            ("io_universal", IOUniversalModel.io_id),
            ("io_mappings", IOMappingModel.mapping_id),
        ):
            counts[key] = (await session.execute(select(func.count(column)))).scalar_one()
        return counts

    async def _count(self, session: AsyncSession, condition: Any, model: Any) -> int:
        result = await session.execute(
            select(func.count()).select_from(model).where(condition)
        )
        return result.scalar_one()

    async def _require_vendor(self, session: AsyncSession, vendor_id: int | None) -> None:
        if vendor_id is None or await session.get(VendorModel, vendor_id) is None:
            raise ValidationError(f"Vendor {vendor_id} does not exist")

    async def _check_mapping_references(
        self, session: AsyncSession, fields: dict[str, Any],
    ) -> None:
        if fields.get("io_id") is not None:
            if await session.get(IOUniversalModel, fields["io_id"]) is None:
                raise ValidationError(f"IO Universal entry {fields['io_id']} does not exist")
        if fields.get("vendor_id") is not None:
            await self._require_vendor(session, fields["vendor_id"])
        if fields.get("product_id") is not None:
            if await session.get(ProductModel, fields["product_id"]) is None:
                raise ValidationError(f"Product {fields['product_id']} does not exist")
