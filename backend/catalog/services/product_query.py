"""Dynamic product filtering, ordering and pagination."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from catalog.core.errors import invalid_argument
from catalog.db.models.product import Product

logger = logging.getLogger(__name__)

T = TypeVar("T")

SORTABLE_FIELDS = {
    "id": Product.id,
    "name": Product.name,
    "description": Product.description,
    "price": Product.price,
    "category": Product.category,
    "stock": Product.stock,
    "active": Product.active,
    "createdAt": Product.created_at,
    "created_at": Product.created_at,
    "updatedAt": Product.updated_at,
    "updated_at": Product.updated_at,
}


@dataclass(frozen=True)
class ProductCriteria:
    """Optional filters; ``None`` drops the clause entirely.

    ``in_stock=False`` adds no constraint: only ``True`` narrows the result
    to rows with stock above zero.
    """

    name: str | None = None
    category: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    in_stock: bool | None = None
    categories: tuple[str, ...] | None = None


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = 20
    sort: str = "id"
    direction: str = "asc"


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    size: int
    sort: str = "id"
    direction: str = "asc"

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page >= self.total_pages - 1

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_categories(categories: Sequence[str] | None) -> tuple[str, ...]:
    """Lower-case the requested categories and drop blank entries."""
    if not categories:
        raise invalid_argument("The category list cannot be empty", "categories")
    cleaned = tuple(
        dict.fromkeys(c.strip().lower() for c in categories if c and c.strip())
    )
    if not cleaned:
        raise invalid_argument("At least one valid category is required", "categories")
    return cleaned


def validate_price_range(min_price: Decimal | None, max_price: Decimal | None) -> None:
    if min_price is not None and min_price < 0:
        raise invalid_argument("Minimum price cannot be negative", "minPrice")
    if max_price is not None and max_price < 0:
        raise invalid_argument("Maximum price cannot be negative", "maxPrice")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise invalid_argument(
            "Minimum price cannot be greater than maximum price", "minPrice"
        )


def validate_page_request(page_request: PageRequest, max_page_size: int) -> None:
    if page_request.page < 0:
        raise invalid_argument("Page index cannot be negative", "page")
    if page_request.size <= 0:
        raise invalid_argument("Page size must be greater than 0", "size")
    if page_request.size > max_page_size:
        raise invalid_argument(f"Page size cannot exceed {max_page_size}", "size")
    if page_request.sort not in SORTABLE_FIELDS:
        raise invalid_argument(
            f"Cannot sort by '{page_request.sort}'. Allowed: "
            + ", ".join(sorted(SORTABLE_FIELDS)),
            "sort",
        )
    if page_request.direction.lower() not in ("asc", "desc"):
        raise invalid_argument("Sort direction must be 'asc' or 'desc'", "direction")


def apply_criteria(stmt: Select, criteria: ProductCriteria) -> Select:
    """AND every present criterion onto ``stmt``; always scoped to active rows."""
    stmt = stmt.where(Product.active.is_(True))

    name = _clean(criteria.name)
    if name:
        stmt = stmt.where(func.lower(Product.name).contains(name.lower(), autoescape=True))

    category = _clean(criteria.category)
    if category:
        stmt = stmt.where(func.lower(Product.category) == category.lower())

    if criteria.categories:
        stmt = stmt.where(func.lower(Product.category).in_(criteria.categories))

    if criteria.min_price is not None:
        stmt = stmt.where(Product.price >= criteria.min_price)
    if criteria.max_price is not None:
        stmt = stmt.where(Product.price <= criteria.max_price)

    if criteria.in_stock:
        stmt = stmt.where(Product.stock > 0)

    return stmt


def order_clauses(page_request: PageRequest) -> list:
    column = SORTABLE_FIELDS[page_request.sort]
    primary = column.desc() if page_request.direction.lower() == "desc" else column.asc()
    if column is Product.id:
        return [primary]
    # id breaks ties so LIMIT/OFFSET pages never overlap.
    return [primary, Product.id.asc()]


class ProductQuery:
    """Runs filtered, paginated product searches against a session."""

    def __init__(self, session: Session, max_page_size: int = 100) -> None:
        self._session = session
        self.max_page_size = max_page_size

    def search(self, criteria: ProductCriteria, page_request: PageRequest) -> Page[Product]:
        validate_price_range(criteria.min_price, criteria.max_price)
        validate_page_request(page_request, self.max_page_size)

        count_stmt = apply_criteria(select(func.count(Product.id)), criteria)
        total = self._session.scalar(count_stmt) or 0

        stmt = (
            apply_criteria(select(Product), criteria)
            .order_by(*order_clauses(page_request))
            .offset(page_request.page * page_request.size)
            .limit(page_request.size)
        )
        items = list(self._session.scalars(stmt).all())

        logger.debug(
            f"Search {criteria} matched {total} product(s); "
            f"returning page {page_request.page} ({len(items)} items)"
        )
        return Page(
            items=items,
            total=total,
            page=page_request.page,
            size=page_request.size,
            sort=page_request.sort,
            direction=page_request.direction.lower(),
        )

    def find_all(self, criteria: ProductCriteria) -> list[Product]:
        """Unpaginated variant ordered by id."""
        validate_price_range(criteria.min_price, criteria.max_price)
        stmt = apply_criteria(select(Product), criteria).order_by(Product.id)
        return list(self._session.scalars(stmt).all())

    def search_by_categories(
        self,
        categories: Sequence[str],
        page_request: PageRequest,
        criteria: ProductCriteria | None = None,
    ) -> Page[Product]:
        base = criteria or ProductCriteria()
        combined = ProductCriteria(
            name=base.name,
            category=base.category,
            min_price=base.min_price,
            max_price=base.max_price,
            in_stock=base.in_stock,
            categories=normalize_categories(categories),
        )
        return self.search(combined, page_request)
