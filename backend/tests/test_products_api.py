from decimal import Decimal

BASE = "/api/v1/products"


def _create(client, **overrides):
    payload = {"name": "Widget", "price": 9.99, "category": "Tools", "stock": 5}
    payload.update(overrides)
    return client.post(f"{BASE}/", json=payload)


def test_health_endpoints(client):
    assert client.get("/health/live").json()["status"] == "ok"
    ready = client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json()["checks"]["database"]["status"] == "healthy"


def test_create_and_get(client):
    response = _create(client, description="Small blue widget")
    assert response.status_code == 201
    body = response.json()
    assert body["id"] > 0
    assert body["active"] is True
    assert body["price"] == 9.99

    fetched = client.get(f"{BASE}/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Widget"


def test_create_duplicate_name_is_400(client):
    _create(client)
    response = _create(client, name="WIDGET")
    assert response.status_code == 400
    assert response.json()["code"] == "PRODUCT_ALREADY_EXISTS"


def test_create_invalid_payload_reports_every_field(client):
    response = client.post(f"{BASE}/", json={"name": "A", "price": -1, "category": "T1"})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert set(body["errors"]) == {"name", "price", "category", "stock"}


def test_malformed_id_is_invalid_argument(client):
    response = client.get(f"{BASE}/not-a-number")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ARGUMENT"


def test_unknown_id_is_404(client):
    response = client.get(f"{BASE}/999")
    assert response.status_code == 404
    assert response.json() == {
        "code": "PRODUCT_NOT_FOUND",
        "message": "Product not found with id: 999",
        "product_id": 999,
    }


def test_put_is_partial(client, make_product):
    product = make_product(name="Widget", price=Decimal("9.99"), stock=5)
    response = client.put(f"{BASE}/{product.id}", json={"price": 19.99, "name": None})
    assert response.status_code == 200
    body = response.json()
    assert body["price"] == 19.99
    assert body["name"] == "Widget"
    assert body["stock"] == 5


def test_search_uses_camel_case_parameters(client, make_product):
    make_product(name="Widget", price=Decimal("15.00"), stock=0)
    make_product(name="Blue Widget", price=Decimal("12.00"), stock=4)
    make_product(name="Hammer", price=Decimal("30.00"))

    response = client.get(
        f"{BASE}/search",
        params={"name": "widget", "minPrice": "10", "maxPrice": "15", "inStock": "true"},
    )
    assert response.status_code == 200
    body = response.json()
    assert [item["name"] for item in body["items"]] == ["Blue Widget"]
    assert body["total"] == 1
    assert body["page"] == 0


def test_search_rejects_inverted_price_range(client):
    response = client.get(f"{BASE}/search", params={"minPrice": "20", "maxPrice": "10"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ARGUMENT"


def test_list_paginates(client, make_product):
    for name in ("Bolt", "Nut", "Washer"):
        make_product(name=name)

    page = client.get(f"{BASE}/", params={"size": 2, "sort": "name", "direction": "desc"}).json()
    assert [item["name"] for item in page["items"]] == ["Washer", "Nut"]
    assert page["total_pages"] == 2
    assert page["has_next"] is True

    everything = client.get(f"{BASE}/", params={"unpaged": "true"}).json()
    assert len(everything) == 3


def test_categories_accepts_comma_separated_values(client, make_product):
    make_product(name="Widget", category="Tools")
    make_product(name="Novel", category="Books")
    make_product(name="Lamp", category="Lighting")

    response = client.get(f"{BASE}/categories", params={"categories": "tools,BOOKS"})
    assert response.status_code == 200
    assert {item["name"] for item in response.json()["items"]} == {"Widget", "Novel"}


def test_soft_delete_then_activate(client, make_product):
    product = make_product()

    deleted = client.delete(f"{BASE}/{product.id}")
    assert deleted.status_code == 200
    assert deleted.json()["product_id"] == product.id
    assert client.get(f"{BASE}/{product.id}").status_code == 404
    assert client.patch(f"{BASE}/{product.id}/deactivate").status_code == 404

    activated = client.patch(f"{BASE}/{product.id}/activate")
    assert activated.status_code == 200
    assert activated.json()["active"] is True


def test_permanent_delete(client, make_product):
    product = make_product()
    assert client.delete(f"{BASE}/{product.id}/permanent").status_code == 200
    assert client.patch(f"{BASE}/{product.id}/activate").status_code == 404


def test_stock_update(client, make_product):
    product = make_product()
    ok = client.patch(f"{BASE}/{product.id}/stock", params={"newStock": 12})
    assert ok.status_code == 200
    assert ok.json()["stock"] == 12

    negative = client.patch(f"{BASE}/{product.id}/stock", params={"newStock": -1})
    assert negative.status_code == 400
    assert negative.json()["code"] == "INVALID_ARGUMENT"


def test_batch_create(client):
    items = [
        {"name": "Bolt", "price": 1.5, "category": "Tools", "stock": 10},
        {"name": "Nut", "price": 0.5, "category": "Tools", "stock": 10},
    ]
    response = client.post(f"{BASE}/batch", json=items)
    assert response.status_code == 201
    assert [item["name"] for item in response.json()] == ["Bolt", "Nut"]


def test_batch_over_limit(client):
    items = [
        {"name": f"Bolt {n}", "price": 1.5, "category": "Tools", "stock": 1} for n in range(51)
    ]
    response = client.post(f"{BASE}/batch", json=items)
    assert response.status_code == 400
    assert response.json()["code"] == "BATCH_LIMIT_EXCEEDED"


def test_duplicate_endpoint(client, make_product):
    product = make_product(name="Widget")
    response = client.post(f"{BASE}/{product.id}/duplicate")
    assert response.status_code == 201
    assert response.json()["name"] == "Widget (Copy)"


def test_reporting_endpoints(client, make_product):
    make_product(name="Widget", price=Decimal("10.00"), stock=2)
    make_product(name="Hammer", price=Decimal("20.00"), stock=30)

    stats = client.get(f"{BASE}/statistics").json()
    assert stats["totalActiveProducts"] == 2

    summary = client.get(f"{BASE}/inventory-summary").json()
    assert summary["totalValue"] == 620.0
    assert summary["averagePrice"] == 15.0
    assert summary["lowStockProducts"] == 1

    low = client.get(f"{BASE}/low-stock").json()
    assert [item["name"] for item in low] == ["Widget"]


def test_name_lookups(client, make_product):
    widget = make_product(name="Widget")
    make_product(name="Blue Widget")

    availability = client.get(f"{BASE}/validate-name", params={"name": "widget"}).json()
    assert availability["available"] is False

    own = client.get(
        f"{BASE}/validate-name", params={"name": "widget", "excludeId": widget.id}
    ).json()
    assert own["available"] is True

    exact = client.get(f"{BASE}/name/widget").json()
    assert [item["id"] for item in exact] == [widget.id]


def test_validate_endpoint(client, make_product):
    product = make_product()
    report = client.post(f"{BASE}/{product.id}/validate")
    assert report.status_code == 200
    assert report.json()["validationStatus"] == "PASSED"
