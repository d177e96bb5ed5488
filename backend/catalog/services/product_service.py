"""Business logic for product reads, writes and lifecycle transitions."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.core.config import Settings, get_settings
from catalog.core.errors import (
    ProductError,
    already_exists,
    internal,
    invalid_argument,
    not_found,
    validation_failed,
)
from catalog.db.models.product import Product
from catalog.db.repositories.product_repository import NO_EXCLUDED_ID, ProductRepository
from catalog.services.product_query import (
    Page,
    PageRequest,
    ProductCriteria,
    ProductQuery,
    validate_price_range,
)
from catalog.services.product_validator import ProductValidator

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class NewProduct:
    name: str
    price: Decimal
    category: str
    stock: int
    description: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ProductChanges:
    """Per-field optional update.

    A field left as ``UNSET`` (or explicitly ``None``) keeps the stored
    value; anything else overwrites it.
    """

    name: str | None | _Unset = UNSET
    description: str | None | _Unset = UNSET
    price: Decimal | None | _Unset = UNSET
    category: str | None | _Unset = UNSET
    stock: int | None | _Unset = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProductChanges":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def provided(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET and getattr(self, f.name) is not None
        }


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _require_id(product_id: int | None) -> int:
    if product_id is None:
        raise invalid_argument("Product id cannot be null", "id")
    if product_id <= 0:
        raise invalid_argument("Product id must be greater than 0", "id")
    return product_id


def _require_text(value: str | None, field: str, label: str) -> str:
    if value is None or not value.strip():
        raise invalid_argument(f"{label} cannot be null or empty", field)
    return value.strip()


class ProductService:
    """Coordinates validation, uniqueness checks and persistence.

    One instance wraps one session; every mutating call commits its own
    unit of work or rolls it back entirely.
    """

    def __init__(
        self,
        session: Session,
        validator: ProductValidator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session = session
        self._repo = ProductRepository(session)
        self._query = ProductQuery(session, max_page_size=self.settings.max_page_size)
        self._validator = validator or ProductValidator(self.settings.validation_rules())

    @property
    def repository(self) -> ProductRepository:
        return self._repo

    @property
    def validator(self) -> ProductValidator:
        return self._validator

    # -- transaction helpers -------------------------------------------

    @contextmanager
    def _write(self, action: str, name: str | None = None) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except ProductError:
            self._session.rollback()
            raise
        except IntegrityError as e:
            self._session.rollback()
            if name is not None:
                logger.warning(f"Integrity error while trying to {action}: {e}")
                raise already_exists(name) from e
            logger.error(f"Integrity error while trying to {action}: {e}", exc_info=True)
            raise internal(f"Failed to {action}") from e
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
            raise internal(f"Failed to {action}") from e

    @contextmanager
    def _read(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
            raise internal(f"Failed to {action}") from e

    def _ensure_name_available(self, name: str, exclude_id: int = NO_EXCLUDED_ID) -> None:
        if self._repo.exists_by_name_excluding_id(name, exclude_id):
            raise already_exists(name)

    def _load_active(self, product_id: int) -> Product:
        product = self._repo.find_active_by_id(product_id)
        if product is None:
            raise not_found(product_id)
        return product

    @staticmethod
    def _build(data: Mapping[str, Any]) -> Product:
        description = _strip(data.get("description"))
        return Product(
            name=_strip(data["name"]),
            description=description or None,
            price=Decimal(str(data["price"])),
            category=_strip(data["category"]),
            stock=data["stock"],
            active=True,
        )

    @staticmethod
    def _as_data(product: NewProduct | Mapping[str, Any]) -> dict[str, Any]:
        if product is None:
            raise invalid_argument("Product cannot be null", "product")
        if isinstance(product, NewProduct):
            return product.as_dict()
        return dict(product)

    # -- reads ----------------------------------------------------------

    def list_active(self) -> list[Product]:
        with self._read("list products"):
            products = self._repo.find_active()
        logger.info(f"Found {len(products)} active product(s)")
        return products

    def list_active_page(self, page_request: PageRequest) -> Page[Product]:
        return self.search(ProductCriteria(), page_request)

    def find_product(self, product_id: int | None) -> Product | None:
        """Active product by id, or ``None``."""
        _require_id(product_id)
        with self._read(f"load product {product_id}"):
            return self._repo.find_active_by_id(product_id)

    def get_product(self, product_id: int | None) -> Product:
        product = self.find_product(product_id)
        if product is None:
            raise not_found(product_id)
        return product

    def exists(self, product_id: int | None) -> bool:
        return self.find_product(product_id) is not None

    def search(self, criteria: ProductCriteria, page_request: PageRequest) -> Page[Product]:
        with self._read("search products"):
            page = self._query.search(criteria, page_request)
        logger.info(
            f"Search matched {page.total} product(s) across {page.total_pages} page(s)"
        )
        return page

    def products_by_categories(
        self, categories: Sequence[str] | None, page_request: PageRequest
    ) -> Page[Product]:
        with self._read("search products by categories"):
            return self._query.search_by_categories(categories or [], page_request)

    def products_by_category(self, category: str | None) -> list[Product]:
        category = _require_text(category, "category", "Category")
        with self._read("list products by category"):
            return self._query.find_all(ProductCriteria(category=category))

    def products_by_price_range(
        self, min_price: Decimal | None, max_price: Decimal | None
    ) -> list[Product]:
        if min_price is None or max_price is None:
            raise invalid_argument("Minimum and maximum price are both required", "price")
        validate_price_range(min_price, max_price)
        with self._read("list products by price range"):
            return self._query.find_all(
                ProductCriteria(min_price=min_price, max_price=max_price)
            )

    def search_by_name(self, name: str | None) -> list[Product]:
        name = _require_text(name, "name", "Name")
        with self._read("search products by name"):
            return self._query.find_all(ProductCriteria(name=name))

    def products_by_exact_name(self, name: str | None) -> list[Product]:
        """Active products whose name equals ``name`` ignoring case."""
        name = _require_text(name, "name", "Name")
        with self._read("search products by exact name"):
            return self._repo.find_active_by_name(name)

    def low_stock(self, limit: int | None = None) -> list[Product]:
        limit = self.settings.low_stock_threshold if limit is None else limit
        if limit < 0:
            raise invalid_argument("Stock limit cannot be negative", "limit")
        with self._read("list low stock products"):
            return self._repo.find_active_with_stock_below(limit)

    def recent(self, limit: int = 10) -> list[Product]:
        if limit <= 0:
            raise invalid_argument("Limit must be greater than 0", "limit")
        with self._read("list recent products"):
            return self._repo.find_recent_active(limit)

    def related(self, product_id: int | None, limit: int = 5) -> list[Product]:
        if limit <= 0:
            raise invalid_argument("Limit must be greater than 0", "limit")
        product = self.get_product(product_id)
        with self._read(f"list products related to {product_id}"):
            return self._repo.find_related(product, limit)

    def count_by_category(self, category: str | None) -> int:
        category = _require_text(category, "category", "Category")
        with self._read("count products by category"):
            return self._repo.count_by_category(category)

    def is_name_available(self, name: str | None, exclude_id: int | None = None) -> bool:
        name = _require_text(name, "name", "Name")
        excluded = NO_EXCLUDED_ID if exclude_id is None else exclude_id
        with self._read("check name availability"):
            return not self._repo.exists_by_name_excluding_id(name, excluded)

    def statistics(self) -> dict[str, int]:
        with self._read("compute product statistics"):
            total = self._repo.count_all()
            active = self._repo.count_active()
            categories = self._repo.count_active_by_category()
        return {
            "totalActiveProducts": active,
            "totalProducts": total,
            "inactiveProducts": total - active,
            "uniqueCategories": len(categories),
        }

    def inventory_summary(self) -> dict[str, Any]:
        with self._read("compute inventory summary"):
            products = self._repo.find_active()
            by_category = self._repo.count_active_by_category()
        total_value = sum(
            (Decimal(p.price) * p.stock for p in products), Decimal("0")
        ).quantize(Decimal("0.01"))
        if products:
            average = (
                sum((Decimal(p.price) for p in products), Decimal("0")) / len(products)
            ).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        else:
            average = Decimal("0.00")
        threshold = self.settings.low_stock_threshold
        return {
            "totalProducts": len(products),
            "totalValue": total_value,
            "categories": by_category,
            "lowStockProducts": sum(1 for p in products if p.stock < threshold),
            "averagePrice": average,
        }

    def validate_product(self, product_id: int | None) -> dict[str, Any]:
        """Report on a stored product, active or not."""
        _require_id(product_id)
        with self._read(f"load product {product_id}"):
            product = self._repo.find_by_id(product_id)
        if product is None:
            raise not_found(product_id)
        report = self._validator.check_product(product)
        logger.info(f"Product {product_id} passed validation")
        return report

    # -- writes ---------------------------------------------------------

    def create(self, product: NewProduct | Mapping[str, Any]) -> Product:
        data = self._as_data(product)
        self._validator.validate_for_creation(data)
        name = data["name"].strip()

        with self._write("create product", name=name):
            self._ensure_name_available(name)
            created = self._repo.insert(self._build(data))

        logger.info(f"Created product {created.id} ({created.name})")
        return created

    def partial_update(
        self, product_id: int | None, changes: ProductChanges | Mapping[str, Any]
    ) -> Product:
        _require_id(product_id)
        if changes is None:
            raise invalid_argument("Update payload cannot be null", "product")
        if not isinstance(changes, ProductChanges):
            changes = ProductChanges.from_mapping(changes)
        provided = {key: _strip(value) for key, value in changes.provided().items()}

        with self._write(f"update product {product_id}", name=provided.get("name")):
            existing = self._load_active(product_id)
            self._validator.validate_for_update(existing, provided)
            if "name" in provided:
                self._ensure_name_available(provided["name"], exclude_id=product_id)
            for key, value in provided.items():
                if key == "price":
                    value = Decimal(str(value))
                setattr(existing, key, value)
            updated = self._repo.save(existing)

        logger.info(f"Updated product {product_id} fields: {sorted(provided)}")
        return updated

    def update_stock(self, product_id: int | None, new_stock: int | None) -> Product:
        _require_id(product_id)
        if new_stock is None or new_stock < 0:
            raise invalid_argument("Stock cannot be null or negative", "newStock")
        if new_stock > self._validator.rules.max_stock:
            raise validation_failed(
                "Stock update failed validation",
                {"stock": f"Stock cannot exceed {self._validator.rules.max_stock} units"},
            )

        with self._write(f"update stock of product {product_id}"):
            product = self._load_active(product_id)
            self._validator.validate_stock_for_category(product.category, new_stock)
            product.stock = new_stock
            updated = self._repo.save(product)

        logger.info(f"Stock of product {product_id} set to {new_stock}")
        return updated

    def deactivate(self, product_id: int | None) -> Product:
        """Soft delete. Only active rows are found, so a second call is NotFound."""
        _require_id(product_id)
        with self._write(f"deactivate product {product_id}"):
            product = self._load_active(product_id)
            product.active = False
            updated = self._repo.save(product)

        logger.info(f"Deactivated product {product_id}")
        return updated

    def activate(self, product_id: int | None) -> Product:
        _require_id(product_id)
        with self._write(f"activate product {product_id}"):
            product = self._repo.find_by_id(product_id)
            if product is None:
                raise not_found(product_id)
            product.active = True
            updated = self._repo.save(product)

        logger.info(f"Activated product {product_id}")
        return updated

    def hard_delete(self, product_id: int | None) -> None:
        """Permanently remove an active product. Irreversible."""
        _require_id(product_id)
        with self._write(f"permanently delete product {product_id}"):
            self._load_active(product_id)
            self._repo.delete_by_id(product_id)

        logger.warning(f"Permanently deleted product {product_id}")

    def duplicate(self, product_id: int | None, new_name: str | None = None) -> Product:
        original = self.get_product(product_id)
        name = new_name.strip() if new_name and new_name.strip() else original.name + COPY_SUFFIX
        data = {
            "name": name,
            "description": original.description,
            "price": original.price,
            "category": original.category,
            "stock": original.stock,
        }
        self._validator.validate_for_creation(data)

        with self._write(f"duplicate product {product_id}", name=name):
            self._ensure_name_available(name)
            copy = self._repo.insert(self._build(data))

        logger.info(f"Duplicated product {product_id} as {copy.id} ({copy.name})")
        return copy

    def batch_create(
        self, products: Sequence[NewProduct | Mapping[str, Any]] | None
    ) -> list[Product]:
        """Create every product or none of them."""
        if not products:
            raise invalid_argument("The product list cannot be empty", "products")
        self._validator.validate_batch_size(len(products))

        items = [self._as_data(product) for product in products]
        errors: dict[str, str] = {}
        for position, data in enumerate(items, start=1):
            for field, message in self._validator.collect_creation_errors(data).items():
                errors[f"products[{position}].{field}"] = message
        if errors:
            raise validation_failed("Batch creation failed validation", errors)

        with self._write("create product batch"):
            for position, data in enumerate(items, start=1):
                name = data["name"].strip()
                if self._repo.exists_by_name_excluding_id(name):
                    raise already_exists(
                        name, f"The product at position {position} already exists: {name}"
                    )

            seen: set[str] = set()
            for position, data in enumerate(items, start=1):
                key = data["name"].strip().lower()
                if key in seen:
                    raise validation_failed(
                        f"Duplicate name in batch at position {position}: {data['name']}",
                        {f"products[{position}].name": "Duplicate name in batch"},
                    )
                seen.add(key)

            created = self._repo.insert_all(self._build(data) for data in items)

        logger.info(f"Created {len(created)} product(s) in batch")
        return created
