"""Structural and business-rule checks for product payloads.

Every check in a pass contributes to one field -> message map; the map is
raised as a single ``VALIDATION_FAILED`` error once the pass is complete.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from catalog.core.config import ValidationRules
from catalog.core.errors import (
    ErrorKind,
    ProductError,
    batch_limit_exceeded,
    validation_failed,
)
from catalog.db.models.product import Product

CATEGORY_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿñÑ\s]+$")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
CATEGORY_MIN_LENGTH = 2
CATEGORY_MAX_LENGTH = 50
PRICE_INTEGER_DIGITS = 8
PRICE_FRACTION_DIGITS = 2

# (category keywords, predicate on price, message); first matching group wins.
PRICE_CATEGORY_BANDS: tuple[tuple[tuple[str, ...], Any, str], ...] = (
    (
        ("libro", "book"),
        lambda price: price > Decimal("500"),
        "Books rarely exceed $500. Check the price.",
    ),
    (
        ("electronico", "electrónico", "electronic"),
        lambda price: price < Decimal("10"),
        "Electronic products usually cost more than $10",
    ),
    (
        ("ropa", "clothing"),
        lambda price: price > Decimal("5000"),
        "Clothing rarely exceeds $5000. Check the category.",
    ),
    (
        ("digital", "software"),
        lambda price: price > Decimal("2000"),
        "Digital products rarely exceed $2000",
    ),
)

STOCK_CATEGORY_BANDS: tuple[tuple[tuple[str, ...], int, str], ...] = (
    (
        ("digital", "software"),
        1000,
        "Digital products should not hold more than 1000 units in stock",
    ),
    (
        ("alimento", "comida", "perecedero", "food", "perishable", "grocery"),
        100,
        "Perishable products should not hold more than 100 units in stock",
    ),
    (
        ("mueble", "electrodomestico", "electrodoméstico", "furniture", "appliance"),
        50,
        "Bulky products should not hold more than 50 units in stock",
    ),
)


def _matches(category: str, keywords: tuple[str, ...]) -> bool:
    lowered = category.lower()
    return any(keyword in lowered for keyword in keywords)


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class ProductValidator:
    """Validation pipeline configured with immutable ``ValidationRules``."""

    def __init__(self, rules: ValidationRules | None = None) -> None:
        self.rules = rules or ValidationRules()

    # -- structural checks ---------------------------------------------

    def _check_name(self, name: Any, errors: dict[str, str]) -> None:
        if name is None or not str(name).strip():
            errors["name"] = "Product name is required"
            return
        length = len(str(name).strip())
        if length < NAME_MIN_LENGTH or length > NAME_MAX_LENGTH:
            errors["name"] = (
                f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            )

    def _check_description(self, description: Any, errors: dict[str, str]) -> None:
        if description is not None and len(str(description)) > DESCRIPTION_MAX_LENGTH:
            errors["description"] = (
                f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
            )

    def _check_price(self, price: Any, errors: dict[str, str]) -> None:
        if price is None:
            errors["price"] = "Price is required"
            return
        value = _to_decimal(price)
        if value is None or not value.is_finite():
            errors["price"] = "Price must be a decimal number"
            return
        if value <= 0:
            errors["price"] = "Price must be greater than 0"
            return
        _, digits, exponent = value.normalize().as_tuple()
        fraction_digits = max(0, -exponent)
        integer_digits = max(0, len(digits) + exponent)
        if integer_digits > PRICE_INTEGER_DIGITS or fraction_digits > PRICE_FRACTION_DIGITS:
            errors["price"] = (
                f"Price allows at most {PRICE_INTEGER_DIGITS} integer digits "
                f"and {PRICE_FRACTION_DIGITS} decimals"
            )
            return
        if value > self.rules.max_price:
            errors["price"] = f"Price cannot exceed {self.rules.max_price}"

    def _check_category(self, category: Any, errors: dict[str, str]) -> None:
        if category is None or not str(category).strip():
            errors["category"] = "Category is required"
            return
        text = str(category).strip()
        if len(text) < CATEGORY_MIN_LENGTH or len(text) > CATEGORY_MAX_LENGTH:
            errors["category"] = (
                f"Category must be between {CATEGORY_MIN_LENGTH} and "
                f"{CATEGORY_MAX_LENGTH} characters"
            )
        elif not CATEGORY_PATTERN.match(text):
            errors["category"] = "Category may only contain letters and spaces"

    def _check_stock(self, stock: Any, errors: dict[str, str]) -> None:
        if stock is None:
            errors["stock"] = "Stock is required"
            return
        if isinstance(stock, bool) or not isinstance(stock, int):
            errors["stock"] = "Stock must be a whole number"
            return
        if stock < 0:
            errors["stock"] = "Stock cannot be negative"
        elif stock > self.rules.max_stock:
            errors["stock"] = f"Stock cannot exceed {self.rules.max_stock} units"

    # -- business heuristics -------------------------------------------

    def contains_forbidden_word(self, name: str | None) -> bool:
        if not name:
            return False
        lowered = name.lower()
        return any(word in lowered for word in self.rules.forbidden_words)

    def _check_forbidden_words(self, name: Any, errors: dict[str, str]) -> None:
        if "name" not in errors and self.contains_forbidden_word(name):
            errors["name"] = "Name contains forbidden words: " + ", ".join(
                self.rules.forbidden_words
            )

    def _check_price_category(self, category: Any, price: Any, errors: dict[str, str]) -> None:
        if "price" in errors or "category" in errors:
            return
        value = _to_decimal(price)
        if category is None or value is None:
            return
        for keywords, out_of_band, message in PRICE_CATEGORY_BANDS:
            if _matches(str(category), keywords):
                if out_of_band(value):
                    errors["priceCategory"] = message
                return

    def stock_category_violation(self, category: str | None, stock: int | None) -> str | None:
        if category is None or stock is None:
            return None
        for keywords, ceiling, message in STOCK_CATEGORY_BANDS:
            if _matches(category, keywords):
                return message if stock > ceiling else None
        return None

    # -- entry points ---------------------------------------------------

    def collect_creation_errors(self, data: Mapping[str, Any]) -> dict[str, str]:
        errors: dict[str, str] = {}
        self._check_name(data.get("name"), errors)
        self._check_description(data.get("description"), errors)
        self._check_price(data.get("price"), errors)
        self._check_category(data.get("category"), errors)
        self._check_stock(data.get("stock"), errors)
        self._check_forbidden_words(data.get("name"), errors)
        self._check_price_category(data.get("category"), data.get("price"), errors)
        return errors

    def validate_for_creation(self, data: Mapping[str, Any]) -> None:
        errors = self.collect_creation_errors(data)
        if errors:
            raise validation_failed("Product creation failed validation", errors)

    def validate_for_update(self, existing: Product, changes: Mapping[str, Any]) -> None:
        """Check the provided fields, then the rules that span the merged row."""
        errors: dict[str, str] = {}
        if "name" in changes:
            self._check_name(changes["name"], errors)
            self._check_forbidden_words(changes["name"], errors)
        if "description" in changes:
            self._check_description(changes["description"], errors)
        if "price" in changes:
            self._check_price(changes["price"], errors)
        if "category" in changes:
            self._check_category(changes["category"], errors)
        if "stock" in changes:
            self._check_stock(changes["stock"], errors)
        if "price" in changes or "category" in changes:
            self._check_price_category(
                changes.get("category", existing.category),
                changes.get("price", existing.price),
                errors,
            )
        if errors:
            raise validation_failed("Product update failed validation", errors)

    def validate_stock_for_category(self, category: str | None, stock: int | None) -> None:
        message = self.stock_category_violation(category, stock)
        if message:
            raise validation_failed("Stock is inappropriate for the category", {"stock": message})

    def validate_batch_size(self, size: int) -> None:
        if size > self.rules.max_batch_size:
            raise batch_limit_exceeded(size, self.rules.max_batch_size)

    def check_product(self, product: Product) -> dict[str, Any]:
        """Build a pass/fail report for a stored product."""
        name = product.name or ""
        checks = {
            "exists": True,
            "isActive": bool(product.active),
            "hasValidName": NAME_MIN_LENGTH <= len(name.strip()) <= NAME_MAX_LENGTH,
            "hasValidPrice": product.price is not None and product.price > 0,
            "hasValidStock": product.stock is not None and product.stock >= 0,
            "hasValidCategory": bool(product.category and product.category.strip()),
        }
        is_valid = all(checks.values())
        report = {
            "productId": product.id,
            "name": product.name,
            "isValid": is_valid,
            "validationStatus": "PASSED" if is_valid else "FAILED",
            "checks": checks,
            "message": (
                "All validations passed"
                if is_valid
                else "The product did not pass all validations"
            ),
        }
        if not is_valid:
            failed = {key: "failed" for key, passed in checks.items() if not passed}
            raise ProductError(
                ErrorKind.VALIDATION_FAILED,
                "The product did not pass validation",
                errors=failed,
                product_id=product.id,
            )
        return report
