from decimal import Decimal

import pytest

from catalog.core.errors import ErrorKind, ProductError
from catalog.services.product_query import (
    PageRequest,
    ProductCriteria,
    ProductQuery,
    normalize_categories,
)


@pytest.fixture
def query(session):
    return ProductQuery(session, max_page_size=100)


@pytest.fixture
def catalog(make_product, service):
    widget = make_product(name="Blue Widget", category="Tools", price=Decimal("9.99"), stock=5)
    hammer = make_product(name="Hammer", category="Tools", price=Decimal("25.00"), stock=0)
    novel = make_product(name="Widget Novel", category="Books", price=Decimal("15.00"), stock=3)
    laptop = make_product(name="Laptop Pro", category="Electronics", price=Decimal("1500.00"), stock=2)
    retired = make_product(name="Old Widget", category="Tools", price=Decimal("12.00"), stock=9)
    service.deactivate(retired.id)
    return {"widget": widget, "hammer": hammer, "novel": novel, "laptop": laptop, "retired": retired}


def _ids(page):
    return {p.id for p in page.items}


def test_no_criteria_returns_active_only(query, catalog):
    page = query.search(ProductCriteria(), PageRequest())
    assert page.total == 4
    assert catalog["retired"].id not in _ids(page)


def test_name_contains_case_insensitive(query, catalog):
    page = query.search(ProductCriteria(name="wIdGeT"), PageRequest())
    assert _ids(page) == {catalog["widget"].id, catalog["novel"].id}


def test_category_exact_case_insensitive(query, catalog):
    page = query.search(ProductCriteria(category="tools"), PageRequest())
    assert _ids(page) == {catalog["widget"].id, catalog["hammer"].id}

    assert query.search(ProductCriteria(category="Tool"), PageRequest()).total == 0


def test_filters_compose_as_intersection(query, catalog):
    by_name = _ids(query.search(ProductCriteria(name="widget"), PageRequest()))
    by_category = _ids(query.search(ProductCriteria(category="Tools"), PageRequest()))
    both = _ids(query.search(ProductCriteria(name="widget", category="Tools"), PageRequest()))

    assert both == by_name & by_category == {catalog["widget"].id}


def test_price_bounds_are_inclusive(query, catalog):
    page = query.search(
        ProductCriteria(min_price=Decimal("9.99"), max_price=Decimal("15.00")), PageRequest()
    )
    assert _ids(page) == {catalog["widget"].id, catalog["novel"].id}


def test_min_price_above_max_price_is_rejected(query, catalog):
    with pytest.raises(ProductError) as exc_info:
        query.search(ProductCriteria(min_price=Decimal("20"), max_price=Decimal("10")), PageRequest())
    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_in_stock_true_excludes_empty_stock(query, catalog):
    page = query.search(ProductCriteria(in_stock=True), PageRequest())
    assert catalog["hammer"].id not in _ids(page)
    assert page.total == 3


def test_in_stock_false_adds_no_constraint(query, catalog):
    # Pinned current behaviour: False does not mean "out of stock only".
    unfiltered = query.search(ProductCriteria(), PageRequest())
    page = query.search(ProductCriteria(in_stock=False), PageRequest())
    assert _ids(page) == _ids(unfiltered)


def test_pagination_and_sorting(query, catalog):
    first = query.search(ProductCriteria(), PageRequest(page=0, size=3, sort="price", direction="desc"))
    second = query.search(ProductCriteria(), PageRequest(page=1, size=3, sort="price", direction="desc"))

    assert [p.name for p in first.items] == ["Laptop Pro", "Hammer", "Widget Novel"]
    assert [p.name for p in second.items] == ["Blue Widget"]
    assert first.total_pages == 2
    assert first.first and not first.last and first.has_next
    assert second.last and second.has_previous and not second.has_next


def test_ties_are_broken_by_id(query, make_product):
    ids = [make_product(name=f"Gear {n}", category="Tools", price=Decimal("5.00")).id for n in range(5)]
    pages = [
        query.search(ProductCriteria(), PageRequest(page=n, size=2, sort="price")) for n in range(3)
    ]
    assert [p.id for page in pages for p in page.items] == sorted(ids)


@pytest.mark.parametrize(
    "page_request",
    [
        PageRequest(page=-1),
        PageRequest(size=0),
        PageRequest(size=101),
        PageRequest(sort="colour"),
        PageRequest(direction="sideways"),
    ],
)
def test_invalid_page_requests(query, page_request):
    with pytest.raises(ProductError) as exc_info:
        query.search(ProductCriteria(), page_request)
    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_multi_category_is_or_within_categories(query, catalog):
    page = query.search_by_categories(["BOOKS", " electronics ", ""], PageRequest())
    assert _ids(page) == {catalog["novel"].id, catalog["laptop"].id}


def test_multi_category_combines_with_other_filters(query, catalog):
    page = query.search_by_categories(
        ["Books", "Tools"], PageRequest(), ProductCriteria(name="widget")
    )
    assert _ids(page) == {catalog["widget"].id, catalog["novel"].id}


@pytest.mark.parametrize("categories", [[], ["", "  "]])
def test_multi_category_requires_a_category(categories):
    with pytest.raises(ProductError) as exc_info:
        normalize_categories(categories)
    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_name_filter_escapes_wildcards(query, make_product):
    make_product(name="Widget Plus", category="Tools")
    assert query.search(ProductCriteria(name="%"), PageRequest()).total == 0
    assert query.search(ProductCriteria(name="_idget"), PageRequest()).total == 0
