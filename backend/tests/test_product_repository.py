from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from catalog.db.models.product import Product
from catalog.db.repositories.product_repository import NO_EXCLUDED_ID, ProductRepository


def _product(name="Widget", category="Tools", price="9.99", stock=5, active=True):
    return Product(
        name=name, category=category, price=Decimal(price), stock=stock, active=active
    )


@pytest.fixture
def repo(session):
    return ProductRepository(session)


def test_insert_assigns_id_and_timestamps(repo, session):
    product = repo.insert(_product())
    session.commit()

    assert product.id is not None
    assert product.active is True
    assert product.created_at is not None
    assert product.updated_at >= product.created_at


def test_find_by_id_ignores_active_flag(repo, session):
    product = repo.insert(_product(active=False))
    session.commit()

    assert repo.find_by_id(product.id) is not None
    assert repo.find_active_by_id(product.id) is None


def test_exists_by_name_is_case_insensitive_and_includes_inactive(repo, session):
    active = repo.insert(_product(name="Widget"))
    repo.insert(_product(name="Gadget", active=False))
    session.commit()

    assert repo.exists_by_name_excluding_id("WIDGET", NO_EXCLUDED_ID)
    assert repo.exists_by_name_excluding_id("gadget")
    assert not repo.exists_by_name_excluding_id("widget", exclude_id=active.id)
    assert not repo.exists_by_name_excluding_id("Sprocket")


def test_find_active_by_name_is_exact_ignoring_case(repo, session):
    widget = repo.insert(_product(name="Widget"))
    repo.insert(_product(name="Blue Widget"))
    repo.insert(_product(name="Gadget", active=False))
    session.commit()

    assert [p.id for p in repo.find_active_by_name(" wIDGET ")] == [widget.id]
    assert repo.find_active_by_name("gadget") == []


def test_save_refreshes_updated_at(repo, session):
    product = repo.insert(_product())
    session.commit()
    created_at = product.created_at

    product.stock = 42
    saved = repo.save(product)
    session.commit()

    assert saved.stock == 42
    assert saved.created_at == created_at
    assert saved.updated_at >= saved.created_at


def test_counts(repo, session):
    repo.insert(_product(name="Widget", category="Tools"))
    repo.insert(_product(name="Hammer", category="tools"))
    repo.insert(_product(name="Novel", category="Books", active=False))
    session.commit()

    assert repo.count_all() == 3
    assert repo.count_active() == 2
    assert repo.count_by_category("TOOLS") == 2
    assert repo.count_by_category("Books") == 1
    assert repo.count_active_by_category() == {"Tools": 1, "tools": 1}


def test_delete_by_id_removes_row(repo, session):
    product = repo.insert(_product())
    session.commit()

    repo.delete_by_id(product.id)
    session.commit()

    assert repo.find_by_id(product.id) is None
    assert repo.count_all() == 0


def test_low_stock_and_related(repo, session):
    widget = repo.insert(_product(name="Widget", stock=2))
    repo.insert(_product(name="Hammer", stock=50))
    repo.insert(_product(name="Wrench", stock=0, active=False))
    repo.insert(_product(name="Novel", category="Books", stock=1))
    session.commit()

    assert [p.name for p in repo.find_active_with_stock_below(10)] == ["Novel", "Widget"]
    assert [p.name for p in repo.find_related(widget, 5)] == ["Hammer"]


def test_unique_index_rejects_duplicate_active_names(repo, session):
    repo.insert(_product(name="Widget"))
    session.commit()

    with pytest.raises(IntegrityError):
        repo.insert(_product(name="widget"))
    session.rollback()


def test_unique_index_allows_inactive_duplicates(repo, session):
    repo.insert(_product(name="Widget", active=False))
    repo.insert(_product(name="widget"))
    session.commit()

    assert repo.count_all() == 2
