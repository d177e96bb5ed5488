"""CRUD, search and lifecycle endpoints for the product catalog.

Service errors propagate as ``ProductError`` and are turned into responses by
the handlers registered in ``catalog.api.errors``.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import APIRouter, Body, Depends, Query, status

from catalog.api.dependencies.db import get_product_service
from catalog.api.schemas.product import (
    InventorySummary,
    MessageResponse,
    NameAvailability,
    ProductCreate,
    ProductListResponse,
    ProductRead,
    ProductStatistics,
    ProductUpdate,
    ProductValidationReport,
)
from catalog.services.product_query import Page, PageRequest, ProductCriteria
from catalog.services.product_service import ProductChanges, ProductService

logger = logging.getLogger(__name__)

router = APIRouter()


def _page_response(page: Page) -> ProductListResponse:
    return ProductListResponse(
        items=[ProductRead.model_validate(p) for p in page.items],
        total=page.total,
        page=page.page,
        page_size=page.size,
        total_pages=page.total_pages,
        first=page.first,
        last=page.last,
        has_next=page.has_next,
        has_previous=page.has_previous,
        sort=page.sort,
        direction=page.direction,
    )


def _read_all(products) -> list[ProductRead]:
    return [ProductRead.model_validate(p) for p in products]


@router.get(
    "/",
    summary="List active products",
    response_model=ProductListResponse | list[ProductRead],
)
def list_products(
    page: int = Query(0, description="Page number (0-indexed)"),
    size: int = Query(20, description="Items per page"),
    sort: str = Query("id", description="Field to sort by"),
    direction: str = Query("asc", description="asc or desc"),
    unpaged: bool = Query(False, description="Return every active product"),
    service: ProductService = Depends(get_product_service),
) -> ProductListResponse | list[ProductRead]:
    """Return active products, paginated unless ``unpaged`` is set."""
    if unpaged:
        return _read_all(service.list_active())
    return _page_response(
        service.list_active_page(PageRequest(page=page, size=size, sort=sort, direction=direction))
    )


@router.get(
    "/search",
    summary="Search products by multiple criteria",
    response_model=ProductListResponse,
)
def search_products(
    name: str | None = Query(None, description="Name contains (case-insensitive)"),
    category: str | None = Query(None, description="Exact category (case-insensitive)"),
    min_price: Decimal | None = Query(None, alias="minPrice", description="Inclusive lower bound"),
    max_price: Decimal | None = Query(None, alias="maxPrice", description="Inclusive upper bound"),
    in_stock: bool | None = Query(None, alias="inStock", description="Only products with stock > 0"),
    page: int = Query(0, description="Page number (0-indexed)"),
    size: int = Query(20, description="Items per page"),
    sort: str = Query("id", description="Field to sort by"),
    direction: str = Query("asc", description="asc or desc"),
    service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    """Filters are combined with AND logic; absent filters are ignored."""
    criteria = ProductCriteria(
        name=name,
        category=category,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
    )
    page_request = PageRequest(page=page, size=size, sort=sort, direction=direction)
    return _page_response(service.search(criteria, page_request))


@router.get(
    "/price-range",
    summary="Active products within a price range",
    response_model=ProductListResponse,
)
def products_in_price_range(
    min_price: Decimal | None = Query(None, alias="minPrice"),
    max_price: Decimal | None = Query(None, alias="maxPrice"),
    page: int = Query(0),
    size: int = Query(20),
    sort: str = Query("id"),
    direction: str = Query("asc"),
    service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    criteria = ProductCriteria(min_price=min_price, max_price=max_price)
    page_request = PageRequest(page=page, size=size, sort=sort, direction=direction)
    return _page_response(service.search(criteria, page_request))


@router.get(
    "/categories",
    summary="Active products in any of the given categories",
    response_model=ProductListResponse,
)
def products_in_categories(
    categories: list[str] = Query(..., description="Repeat or comma-separate categories"),
    page: int = Query(0),
    size: int = Query(20),
    sort: str = Query("id"),
    direction: str = Query("asc"),
    service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    expanded = [part for value in categories for part in value.split(",")]
    page_request = PageRequest(page=page, size=size, sort=sort, direction=direction)
    return _page_response(service.products_by_categories(expanded, page_request))


@router.get(
    "/statistics",
    summary="Product counts",
    response_model=ProductStatistics,
)
def product_statistics(
    service: ProductService = Depends(get_product_service),
) -> ProductStatistics:
    return ProductStatistics(**service.statistics())


@router.get(
    "/inventory-summary",
    summary="Stock value and category breakdown",
    response_model=InventorySummary,
)
def inventory_summary(
    service: ProductService = Depends(get_product_service),
) -> InventorySummary:
    return InventorySummary(**service.inventory_summary())


@router.get(
    "/category/{category}",
    summary="Active products in a category",
    response_model=list[ProductRead],
)
def products_by_category(
    category: str,
    service: ProductService = Depends(get_product_service),
) -> list[ProductRead]:
    return _read_all(service.products_by_category(category))


@router.get(
    "/low-stock",
    summary="Active products with stock below a limit",
    response_model=list[ProductRead],
)
def low_stock_products(
    limit: int | None = Query(None, description="Stock threshold (exclusive)"),
    service: ProductService = Depends(get_product_service),
) -> list[ProductRead]:
    return _read_all(service.low_stock(limit))


@router.get(
    "/recent",
    summary="Most recently created active products",
    response_model=list[ProductRead],
)
def recent_products(
    limit: int = Query(10, le=100),
    service: ProductService = Depends(get_product_service),
) -> list[ProductRead]:
    return _read_all(service.recent(limit))


@router.get(
    "/validate-name",
    summary="Check whether a product name is free",
    response_model=NameAvailability,
)
def validate_name(
    name: str = Query(...),
    exclude_id: int | None = Query(None, alias="excludeId"),
    service: ProductService = Depends(get_product_service),
) -> NameAvailability:
    available = service.is_name_available(name, exclude_id)
    return NameAvailability(
        name=name.strip(),
        available=available,
        message="Name is available" if available else "Name is already in use",
    )


@router.get(
    "/name/{name}",
    summary="Active products with exactly this name",
    response_model=list[ProductRead],
)
def products_by_name(
    name: str,
    service: ProductService = Depends(get_product_service),
) -> list[ProductRead]:
    return _read_all(service.products_by_exact_name(name))


@router.post(
    "/batch",
    summary="Create several products at once",
    status_code=status.HTTP_201_CREATED,
    response_model=list[ProductRead],
)
def create_products_batch(
    payload: list[ProductCreate] = Body(...),
    service: ProductService = Depends(get_product_service),
) -> list[ProductRead]:
    """All-or-nothing: one invalid or duplicate item rejects the whole batch."""
    created = service.batch_create([item.model_dump() for item in payload])
    return _read_all(created)


@router.post(
    "/",
    summary="Create a product",
    status_code=status.HTTP_201_CREATED,
    response_model=ProductRead,
)
def create_product(
    payload: ProductCreate,
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    return ProductRead.model_validate(service.create(payload.model_dump()))


@router.get(
    "/{product_id}",
    summary="Get an active product",
    response_model=ProductRead,
)
def get_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    return ProductRead.model_validate(service.get_product(product_id))


@router.put(
    "/{product_id}",
    summary="Update existing product",
    response_model=ProductRead,
)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    """Only provided, non-null fields are updated (partial update)."""
    changes = ProductChanges.from_mapping(payload.model_dump(exclude_unset=True))
    return ProductRead.model_validate(service.partial_update(product_id, changes))


@router.delete(
    "/{product_id}",
    summary="Delete product (soft delete)",
    response_model=MessageResponse,
)
def delete_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> MessageResponse:
    """Mark the product inactive; it stays in the database."""
    service.deactivate(product_id)
    return MessageResponse(message="Product deleted", product_id=product_id)


@router.delete(
    "/{product_id}/permanent",
    summary="Delete product permanently",
    response_model=MessageResponse,
)
def delete_product_permanently(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> MessageResponse:
    """Remove the row for good. Cannot be undone."""
    service.hard_delete(product_id)
    return MessageResponse(message="Product permanently deleted", product_id=product_id)


@router.patch(
    "/{product_id}/stock",
    summary="Set the stock of a product",
    response_model=ProductRead,
)
def update_stock(
    product_id: int,
    new_stock: int = Query(..., alias="newStock"),
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    return ProductRead.model_validate(service.update_stock(product_id, new_stock))


@router.patch(
    "/{product_id}/activate",
    summary="Reactivate a product",
    response_model=ProductRead,
)
def activate_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    return ProductRead.model_validate(service.activate(product_id))


@router.patch(
    "/{product_id}/deactivate",
    summary="Deactivate a product",
    response_model=ProductRead,
)
def deactivate_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    return ProductRead.model_validate(service.deactivate(product_id))


@router.post(
    "/{product_id}/validate",
    summary="Run validation checks on a stored product",
    response_model=ProductValidationReport,
)
def validate_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> ProductValidationReport:
    return ProductValidationReport(**service.validate_product(product_id))


@router.get(
    "/{product_id}/related",
    summary="Other active products in the same category",
    response_model=list[ProductRead],
)
def related_products(
    product_id: int,
    limit: int = Query(5, le=50),
    service: ProductService = Depends(get_product_service),
) -> list[ProductRead]:
    return _read_all(service.related(product_id, limit))


@router.post(
    "/{product_id}/duplicate",
    summary="Copy a product under a new name",
    status_code=status.HTTP_201_CREATED,
    response_model=ProductRead,
)
def duplicate_product(
    product_id: int,
    new_name: str | None = Query(None, alias="newName"),
    service: ProductService = Depends(get_product_service),
) -> ProductRead:
    return ProductRead.model_validate(service.duplicate(product_id, new_name))
