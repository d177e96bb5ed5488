from __future__ import annotations

from collections.abc import Callable, Generator
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from catalog.api.dependencies.db import get_session
from catalog.core.config import Settings
from catalog.db.base import Base
from catalog.db import models  # noqa: F401
from catalog.db.models.product import Product
from catalog.main import create_app
from catalog.services.product_service import NewProduct, ProductService
from catalog.services.product_validator import ProductValidator


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    with factory() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite:///:memory:")


@pytest.fixture
def validator(settings: Settings) -> ProductValidator:
    return ProductValidator(settings.validation_rules())


@pytest.fixture
def service(session: Session, settings: Settings, validator: ProductValidator) -> ProductService:
    return ProductService(session, validator=validator, settings=settings)


@pytest.fixture
def make_product(service: ProductService) -> Callable[..., Product]:
    """Create a product through the service with sensible defaults."""

    def _make(**overrides: Any) -> Product:
        data = {
            "name": "Widget",
            "description": "A small widget",
            "price": Decimal("9.99"),
            "category": "Tools",
            "stock": 5,
        }
        data.update(overrides)
        return service.create(NewProduct(**data))

    return _make


@pytest.fixture
def client(session: Session) -> Generator[TestClient, None, None]:
    """Yield a TestClient wired to the shared in-memory session."""
    app = create_app(create_schema=False)

    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
