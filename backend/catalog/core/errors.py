"""Error taxonomy shared by the catalog services and the HTTP layer."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "PRODUCT_NOT_FOUND"
    ALREADY_EXISTS = "PRODUCT_ALREADY_EXISTS"
    BATCH_LIMIT_EXCEEDED = "BATCH_LIMIT_EXCEEDED"
    INTERNAL = "INTERNAL_ERROR"


class ProductError(Exception):
    """Single catalog failure type, tagged with an ``ErrorKind``.

    Callers branch on ``kind`` instead of on exception subclasses. The
    payload carries whatever structured detail the kind needs: a
    field -> message map for validation failures, the offending product id
    for lookups, the clashing name for uniqueness violations.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        errors: dict[str, str] | None = None,
        product_id: int | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errors = dict(errors or {})
        self.product_id = product_id
        self.name = name

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.kind.value, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        if self.product_id is not None:
            payload["product_id"] = self.product_id
        return payload

    def __repr__(self) -> str:
        return f"ProductError({self.kind.name}, {self.message!r})"


def invalid_argument(message: str, field: str | None = None) -> ProductError:
    errors = {field: message} if field else None
    return ProductError(ErrorKind.INVALID_ARGUMENT, message, errors=errors)


def validation_failed(message: str, errors: dict[str, str]) -> ProductError:
    return ProductError(ErrorKind.VALIDATION_FAILED, message, errors=errors)


def not_found(product_id: int) -> ProductError:
    return ProductError(
        ErrorKind.NOT_FOUND,
        f"Product not found with id: {product_id}",
        product_id=product_id,
    )


def already_exists(name: str, message: str | None = None) -> ProductError:
    return ProductError(
        ErrorKind.ALREADY_EXISTS,
        message or f"A product named '{name}' already exists",
        name=name,
    )


def batch_limit_exceeded(size: int, limit: int) -> ProductError:
    return ProductError(
        ErrorKind.BATCH_LIMIT_EXCEEDED,
        f"Cannot create more than {limit} products per batch (got {size})",
    )


def internal(message: str) -> ProductError:
    return ProductError(ErrorKind.INTERNAL, message)
