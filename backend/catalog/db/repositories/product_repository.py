"""Persistence operations for product rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catalog.db.models.product import Product, utcnow

logger = logging.getLogger(__name__)

# Passed as ``exclude_id`` when no row should be skipped by the name check.
NO_EXCLUDED_ID = -1


class ProductRepository:
    """Thin data-access layer over the ``products`` table.

    Writes are flushed, never committed: the service owning the session
    decides when the unit of work ends.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # -- writes ---------------------------------------------------------

    def insert(self, product: Product) -> Product:
        now = utcnow()
        product.id = None
        product.created_at = now
        product.updated_at = now
        if product.active is None:
            product.active = True
        self._session.add(product)
        self._session.flush()
        return product

    def insert_all(self, products: Iterable[Product]) -> list[Product]:
        now = utcnow()
        rows = list(products)
        for product in rows:
            product.id = None
            product.created_at = now
            product.updated_at = now
            if product.active is None:
                product.active = True
        self._session.add_all(rows)
        self._session.flush()
        return rows

    def save(self, product: Product) -> Product:
        product.updated_at = utcnow()
        if product.id is None:
            return self.insert(product)
        merged = self._session.merge(product)
        self._session.flush()
        return merged

    def delete_by_id(self, product_id: int) -> None:
        product = self._session.get(Product, product_id)
        if product is None:
            return
        self._session.delete(product)
        self._session.flush()
        logger.debug(f"Removed product row {product_id}")

    # -- single-row lookups ---------------------------------------------

    def find_by_id(self, product_id: int) -> Product | None:
        return self._session.get(Product, product_id)

    def find_active_by_id(self, product_id: int) -> Product | None:
        return self._session.scalar(
            select(Product).where(Product.id == product_id, Product.active.is_(True))
        )

    def exists_by_name_excluding_id(self, name: str, exclude_id: int = NO_EXCLUDED_ID) -> bool:
        """Case-insensitive name match across active and inactive rows."""
        stmt = (
            select(Product.id)
            .where(func.lower(Product.name) == name.strip().lower())
            .where(Product.id != exclude_id)
            .limit(1)
        )
        return self._session.scalar(stmt) is not None

    # -- list lookups ---------------------------------------------------

    def find_active(self) -> list[Product]:
        stmt = select(Product).where(Product.active.is_(True)).order_by(Product.id)
        return list(self._session.scalars(stmt).all())

    def find_active_by_name(self, name: str) -> list[Product]:
        stmt = (
            select(Product)
            .where(func.lower(Product.name) == name.strip().lower())
            .where(Product.active.is_(True))
            .order_by(Product.id)
        )
        return list(self._session.scalars(stmt).all())

    def find_active_with_stock_below(self, limit: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.stock < limit, Product.active.is_(True))
            .order_by(Product.stock, Product.id)
        )
        return list(self._session.scalars(stmt).all())

    def find_recent_active(self, limit: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.active.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())

    def find_related(self, product: Product, limit: int) -> list[Product]:
        """Other active products sharing the product's category."""
        stmt = (
            select(Product)
            .where(func.lower(Product.category) == product.category.lower())
            .where(Product.active.is_(True), Product.id != product.id)
            .order_by(Product.id)
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())

    # -- counts ---------------------------------------------------------

    def count_all(self) -> int:
        return self._session.scalar(select(func.count(Product.id))) or 0

    def count_active(self) -> int:
        stmt = select(func.count(Product.id)).where(Product.active.is_(True))
        return self._session.scalar(stmt) or 0

    def count_by_category(self, category: str) -> int:
        stmt = select(func.count(Product.id)).where(
            func.lower(Product.category) == category.strip().lower()
        )
        return self._session.scalar(stmt) or 0

    def count_active_by_category(self) -> dict[str, int]:
        stmt = (
            select(Product.category, func.count(Product.id))
            .where(Product.active.is_(True))
            .group_by(Product.category)
            .order_by(Product.category)
        )
        return {category: count for category, count in self._session.execute(stmt).all()}
