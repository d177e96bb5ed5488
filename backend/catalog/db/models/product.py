"""SQLAlchemy model for catalog products."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Index, Integer, Numeric, String, func
from sqlalchemy.types import DateTime

from catalog.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_products_name", "name"),
        Index("ix_products_category", "category"),
        # Active names are unique case-insensitively; inactive rows keep theirs.
        Index(
            "ix_products_name_lower_active",
            func.lower(name),
            unique=True,
            postgresql_where=active == True,  # noqa: E712
            sqlite_where=active == True,  # noqa: E712
        ),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} active={self.active}>"
