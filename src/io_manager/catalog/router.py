"""Catalog API router: vendors, products, IO universal, IO mappings."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from io_manager.audit.service import AuditAction, AuditEntry, AuditModule
from io_manager.auth.gate import AuthIdentity, require_permission
from io_manager.auth.permissions import Permission
from io_manager.catalog.schemas import (
    IOMappingCreate,
    IOMappingGroup,
    IOMappingResponse,
    IOMappingUpdate,
    IOUniversalCreate,
    IOUniversalResponse,
    IOUniversalUpdate,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    VendorCreate,
    VendorResponse,
    VendorUpdate,
)
from io_manager.common.schemas import ApiResponse, PaginatedResponse, page_offset, paginated
from io_manager.deps import Container, get_container

router = APIRouter(tags=["catalog"])


def _snapshot(schema: Any, row: Any) -> dict:
    return schema.model_validate(row).model_dump(by_alias=True, mode="json")


def _body(body: Any, exclude_unset: bool = False) -> dict:
    return body.model_dump(by_alias=True, mode="json", exclude_unset=exclude_unset)


async def _audit(
    container: Container,
    request: Request,
    identity: AuthIdentity,
    action: AuditAction,
    module: AuditModule,
    record_id: Any,
    description: str,
    old_value: Any = None,
    new_value: Any = None,
) -> None:
    await container.audit.record(AuditEntry.from_request(
        request,
        action,
        module,
        actor=identity,
        record_id=record_id,
        description=description,
        old_value=old_value,
        new_value=new_value,
    ))


# ── Vendors ──

@router.get("/vendors", response_model=PaginatedResponse[VendorResponse])
async def list_vendors(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    _: AuthIdentity = Depends(require_permission(Permission.VENDORS_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size)
    async with container.db.get_session() as session:
        rows, total = await container.catalog.list_vendors(
            session, search=search, offset=page_offset(page, size), limit=size,
        )
        items = [VendorResponse.model_validate(r) for r in rows]
    return PaginatedResponse[VendorResponse](**paginated(items, total, page, size))


@router.get("/vendors/{vendor_id}", response_model=ApiResponse[VendorResponse])
async def get_vendor(
    vendor_id: int,
    _: AuthIdentity = Depends(require_permission(Permission.VENDORS_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        vendor = await container.catalog.get_vendor(session, vendor_id)
        return ApiResponse[VendorResponse](data=VendorResponse.model_validate(vendor))


@router.post("/vendors", response_model=ApiResponse[VendorResponse], status_code=201)
async def create_vendor(
    body: VendorCreate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.VENDORS_CREATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        vendor = await container.catalog.create_vendor(session, **body.model_dump())
        data = VendorResponse.model_validate(vendor)
    await _audit(
        container, request, identity, AuditAction.CREATE, AuditModule.VENDORS,
        data.vendor_id, f"Created vendor: {data.vendor_name}", new_value=_body(body),
    )
    return ApiResponse[VendorResponse](data=data, message="Vendor created successfully")


@router.put("/vendors/{vendor_id}", response_model=ApiResponse[VendorResponse])
async def update_vendor(
    vendor_id: int,
    body: VendorUpdate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.VENDORS_UPDATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        old = _snapshot(VendorResponse, await container.catalog.get_vendor(session, vendor_id))
        vendor = await container.catalog.update_vendor(
            session, vendor_id, body.model_dump(exclude_unset=True),
        )
        data = VendorResponse.model_validate(vendor)
    await _audit(
        container, request, identity, AuditAction.UPDATE, AuditModule.VENDORS,
        vendor_id, f"Updated vendor: {data.vendor_name}",
        old_value=old, new_value=_body(body, exclude_unset=True),
    )
    return ApiResponse[VendorResponse](data=data, message="Vendor updated successfully")


@router.delete("/vendors/{vendor_id}", response_model=ApiResponse[None])
async def delete_vendor(
    vendor_id: int,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.VENDORS_DELETE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        vendor = await container.catalog.delete_vendor(session, vendor_id)
        old = _snapshot(VendorResponse, vendor)
    await _audit(
        container, request, identity, AuditAction.DELETE, AuditModule.VENDORS,
        vendor_id, f"Deleted vendor: {old['VendorName']}", old_value=old,
    )
    return ApiResponse[None](message="Vendor deleted successfully")


# ── Products ──

@router.get("/products", response_model=PaginatedResponse[ProductResponse])
async def list_products(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    _: AuthIdentity = Depends(require_permission(Permission.PRODUCTS_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size)
    async with container.db.get_session() as session:
        rows, total = await container.catalog.list_products(
            session, search=search, vendor_id=vendor_id,
            offset=page_offset(page, size), limit=size,
        )
        items = [ProductResponse.model_validate(r) for r in rows]
    return PaginatedResponse[ProductResponse](**paginated(items, total, page, size))


@router.get("/products/{product_id}", response_model=ApiResponse[ProductResponse])
async def get_product(
    product_id: int,
    _: AuthIdentity = Depends(require_permission(Permission.PRODUCTS_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        product = await container.catalog.get_product(session, product_id)
        return ApiResponse[ProductResponse](data=ProductResponse.model_validate(product))


@router.post("/products", response_model=ApiResponse[ProductResponse], status_code=201)
async def create_product(
    body: ProductCreate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.PRODUCTS_CREATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        product = await container.catalog.create_product(session, **body.model_dump())
        data = ProductResponse.model_validate(product)
    await _audit(
        container, request, identity, AuditAction.CREATE, AuditModule.PRODUCTS,
        data.product_id, f"Created product: {data.product_name}", new_value=_body(body),
    )
    return ApiResponse[ProductResponse](data=data, message="Product created successfully")


@router.put("/products/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(
    product_id: int,
    body: ProductUpdate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.PRODUCTS_UPDATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        old = _snapshot(ProductResponse, await container.catalog.get_product(session, product_id))
        product = await container.catalog.update_product(
            session, product_id, body.model_dump(exclude_unset=True),
        )
        data = ProductResponse.model_validate(product)
    await _audit(
        container, request, identity, AuditAction.UPDATE, AuditModule.PRODUCTS,
        product_id, f"Updated product: {data.product_name}",
        old_value=old, new_value=_body(body, exclude_unset=True),
    )
    return ApiResponse[ProductResponse](data=data, message="Product updated successfully")


@router.delete("/products/{product_id}", response_model=ApiResponse[None])
async def delete_product(
    product_id: int,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.PRODUCTS_DELETE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        product = await container.catalog.delete_product(session, product_id)
        old = _snapshot(ProductResponse, product)
    await _audit(
        container, request, identity, AuditAction.DELETE, AuditModule.PRODUCTS,
        product_id, f"Deleted product: {old['ProductName']}", old_value=old,
    )
    return ApiResponse[None](message="Product deleted successfully")


# ── IO universal ──

@router.get("/io-universal", response_model=PaginatedResponse[IOUniversalResponse])
async def list_io_universal(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    _: AuthIdentity = Depends(require_permission(Permission.IO_UNIVERSAL_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size)
    async with container.db.get_session() as session:
        rows, total = await container.catalog.list_io_universal(
            session, search=search, category=category,
            offset=page_offset(page, size), limit=size,
        )
        items = [IOUniversalResponse.model_validate(r) for r in rows]
    return PaginatedResponse[IOUniversalResponse](**paginated(items, total, page, size))


@router.get("/io-universal/{io_id}", response_model=ApiResponse[IOUniversalResponse])
async def get_io_universal(
    io_id: int,
    _: AuthIdentity = Depends(require_permission(Permission.IO_UNIVERSAL_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        entry = await container.catalog.get_io_universal(session, io_id)
        return ApiResponse[IOUniversalResponse](data=IOUniversalResponse.model_validate(entry))


@router.post("/io-universal", response_model=ApiResponse[IOUniversalResponse], status_code=201)
async def create_io_universal(
    body: IOUniversalCreate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.IO_UNIVERSAL_CREATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        entry = await container.catalog.create_io_universal(session, **body.model_dump())
        data = IOUniversalResponse.model_validate(entry)
    await _audit(
        container, request, identity, AuditAction.CREATE, AuditModule.IO_UNIVERSAL,
        data.io_id, f"Created IO Universal: {data.io_name or data.io_id}", new_value=_body(body),
    )
    return ApiResponse[IOUniversalResponse](
        data=data, message="IO Universal entry created successfully",
    )


@router.put("/io-universal/{io_id}", response_model=ApiResponse[IOUniversalResponse])
async def update_io_universal(
    io_id: int,
    body: IOUniversalUpdate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.IO_UNIVERSAL_UPDATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        old = _snapshot(
            IOUniversalResponse, await container.catalog.get_io_universal(session, io_id)
        )
        entry = await container.catalog.update_io_universal(
            session, io_id, body.model_dump(exclude_unset=True),
        )
        data = IOUniversalResponse.model_validate(entry)
    await _audit(
        container, request, identity, AuditAction.UPDATE, AuditModule.IO_UNIVERSAL,
        io_id, f"Updated IO Universal: {data.io_name or io_id}",
        old_value=old, new_value=_body(body, exclude_unset=True),
    )
    return ApiResponse[IOUniversalResponse](
        data=data, message="IO Universal entry updated successfully",
    )


@router.delete("/io-universal/{io_id}", response_model=ApiResponse[None])
async def delete_io_universal(
    io_id: int,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.IO_UNIVERSAL_DELETE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        entry = await container.catalog.delete_io_universal(session, io_id)
        old = _snapshot(IOUniversalResponse, entry)
    await _audit(
        container, request, identity, AuditAction.DELETE, AuditModule.IO_UNIVERSAL,
        io_id, f"Deleted IO Universal: {old['IOName'] or io_id}", old_value=old,
    )
    return ApiResponse[None](message="IO Universal entry deleted successfully")


# ── IO mappings ──

@router.get("/io-mappings", response_model=PaginatedResponse[IOMappingResponse])
async def list_io_mappings(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    search: Optional[str] = Query(None),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    product_id: Optional[int] = Query(None, alias="productId"),
    io_id: Optional[int] = Query(None, alias="ioId"),
    _: AuthIdentity = Depends(require_permission(Permission.IO_MAPPINGS_READ)),
    container: Container = Depends(get_container),
):
    size = container.page_size(page_size)
    async with container.db.get_session() as session:
        rows, total = await container.catalog.list_mappings(
            session, search=search, vendor_id=vendor_id, product_id=product_id, io_id=io_id,
            offset=page_offset(page, size), limit=size,
        )
        items = [IOMappingResponse.model_validate(r) for r in rows]
    return PaginatedResponse[IOMappingResponse](**paginated(items, total, page, size))


@router.get("/io-mappings/tree", response_model=ApiResponse[list[IOMappingGroup]])
async def io_mapping_tree(
    search: Optional[str] = Query(None),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    product_id: Optional[int] = Query(None, alias="productId"),
    io_id: Optional[int] = Query(None, alias="ioId"),
    _: AuthIdentity = Depends(require_permission(Permission.IO_MAPPINGS_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        groups = await container.catalog.mapping_tree(
            session, search=search, vendor_id=vendor_id, product_id=product_id, io_id=io_id,
        )
        data = [
            IOMappingGroup(
                io_id=g["io_id"],
                io_name=g["io_name"],
                io_category=g["io_category"],
                data_type=g["data_type"],
                mappings=[IOMappingResponse.model_validate(m) for m in g["mappings"]],
            )
            for g in groups
        ]
    return ApiResponse[list[IOMappingGroup]](data=data)


@router.get("/io-mappings/{mapping_id}", response_model=ApiResponse[IOMappingResponse])
async def get_io_mapping(
    mapping_id: int,
    _: AuthIdentity = Depends(require_permission(Permission.IO_MAPPINGS_READ)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        mapping = await container.catalog.get_mapping(session, mapping_id)
        return ApiResponse[IOMappingResponse](data=IOMappingResponse.model_validate(mapping))


@router.post("/io-mappings", response_model=ApiResponse[IOMappingResponse], status_code=201)
async def create_io_mapping(
    body: IOMappingCreate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.IO_MAPPINGS_CREATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        mapping = await container.catalog.create_mapping(session, **body.model_dump())
        data = IOMappingResponse.model_validate(mapping)
    await _audit(
        container, request, identity, AuditAction.CREATE, AuditModule.IO_MAPPING,
        data.mapping_id, f"Created IO Mapping: {data.io_name or data.mapping_id}",
        new_value=_body(body),
    )
    return ApiResponse[IOMappingResponse](data=data, message="IO Mapping created successfully")


@router.put("/io-mappings/{mapping_id}", response_model=ApiResponse[IOMappingResponse])
async def update_io_mapping(
    mapping_id: int,
    body: IOMappingUpdate,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.IO_MAPPINGS_UPDATE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        old = _snapshot(
            IOMappingResponse, await container.catalog.get_mapping(session, mapping_id)
        )
        mapping = await container.catalog.update_mapping(
            session, mapping_id, body.model_dump(exclude_unset=True),
        )
        data = IOMappingResponse.model_validate(mapping)
    await _audit(
        container, request, identity, AuditAction.UPDATE, AuditModule.IO_MAPPING,
        mapping_id, f"Updated IO Mapping: {data.io_name or mapping_id}",
        old_value=old, new_value=_body(body, exclude_unset=True),
    )
    return ApiResponse[IOMappingResponse](data=data, message="IO Mapping updated successfully")


@router.delete("/io-mappings/{mapping_id}", response_model=ApiResponse[None])
async def delete_io_mapping(
    mapping_id: int,
    request: Request,
    identity: AuthIdentity = Depends(require_permission(Permission.IO_MAPPINGS_DELETE)),
    container: Container = Depends(get_container),
):
    async with container.db.get_session() as session:
        mapping = await container.catalog.delete_mapping(session, mapping_id)
        old = _snapshot(IOMappingResponse, mapping)
    await _audit(
        container, request, identity, AuditAction.DELETE, AuditModule.IO_MAPPING,
        mapping_id, f"Deleted IO Mapping: {old['IOName'] or mapping_id}", old_value=old,
    )
    return ApiResponse[None](message="IO Mapping deleted successfully")
