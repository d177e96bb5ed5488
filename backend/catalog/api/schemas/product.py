"""Pydantic models describing Product payloads.

Field limits are enforced by the service validator so every violation is
reported together; these schemas only fix the wire types.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ProductCreate(BaseModel):
    name: str | None = Field(None, description="Unique among active products, 2-100 chars")
    description: str | None = Field(None, description="Up to 500 chars")
    price: Decimal | None = Field(None, description="Greater than 0, two decimals")
    category: str | None = Field(None, description="Letters and spaces, 2-50 chars")
    stock: int | None = Field(None, description="Units available, 0 or more")


class ProductUpdate(BaseModel):
    """Partial update: omitted or null fields keep their stored value."""

    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    category: str | None = None
    stock: int | None = None


class ProductRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: Decimal
    category: str
    stock: int
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)


class ProductListResponse(BaseModel):
    items: list[ProductRead]
    total: int
    page: int
    page_size: int
    total_pages: int
    first: bool
    last: bool
    has_next: bool
    has_previous: bool
    sort: str
    direction: str


class ProductStatistics(BaseModel):
    totalActiveProducts: int
    totalProducts: int
    inactiveProducts: int
    uniqueCategories: int


class InventorySummary(BaseModel):
    totalProducts: int
    totalValue: Decimal
    categories: dict[str, int]
    lowStockProducts: int
    averagePrice: Decimal

    @field_serializer("totalValue", "averagePrice", when_used="json")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class NameAvailability(BaseModel):
    name: str
    available: bool
    message: str


class ProductValidationReport(BaseModel):
    productId: int
    name: str
    isValid: bool
    validationStatus: str
    checks: dict[str, bool]
    message: str


class MessageResponse(BaseModel):
    message: str
    product_id: int | None = None


class ErrorResponse(BaseModel):
    code: str
    message: str
    errors: dict[str, str] | None = None
    product_id: int | None = None

    def as_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
