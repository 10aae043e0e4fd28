from decimal import Decimal

from storefront.common.models import Product

from conftest import login, make_product, make_user


def test_cart_lifecycle(client, session_factory):
    make_user(session_factory)
    coffee = make_product(session_factory, "Coffee", "10.00", quantity=5)
    tea = make_product(session_factory, "Tea", "4.50", quantity=5)
    headers = login(client, "user@example.com")

    assert client.get("/api/cart", headers=headers).get_json() == {"cart_id": None, "items": [], "total": 0.0}

    client.post("/api/cart/add", json={"product_id": coffee, "quantity": 2}, headers=headers)
    resp = client.post("/api/cart/add", json={"product_id": tea}, headers=headers)
    body = resp.get_json()
    assert resp.status_code == 200
    assert len(body["items"]) == 2
    assert body["total"] == 24.5

    resp = client.post("/api/cart/add", json={"product_id": coffee, "quantity": 1}, headers=headers)
    lines = {it["product_id"]: it["quantity"] for it in resp.get_json()["items"]}
    assert lines == {coffee: 3, tea: 1}

    resp = client.put("/api/cart/update", json={"product_id": tea, "quantity": 0}, headers=headers)
    assert [it["product_id"] for it in resp.get_json()["items"]] == [coffee]

    resp = client.delete(f"/api/cart/remove/{coffee}", headers=headers)
    assert resp.get_json()["items"] == []
    assert resp.get_json()["total"] == 0.0


def test_stock_check_includes_quantity_already_in_cart(client, session_factory):
    make_user(session_factory)
    coffee = make_product(session_factory, quantity=3)
    headers = login(client, "user@example.com")

    assert client.post("/api/cart/add", json={"product_id": coffee, "quantity": 2}, headers=headers).status_code == 200
    resp = client.post("/api/cart/add", json={"product_id": coffee, "quantity": 2}, headers=headers)
    assert resp.status_code == 400
    assert client.post("/api/cart/add", json={"product_id": coffee, "quantity": 0}, headers=headers).status_code == 400


def test_total_uses_price_at_addition(client, session_factory):
    make_user(session_factory)
    make_user(session_factory, email="admin@example.com", role="admin")
    coffee = make_product(session_factory, price="10.00")
    headers = login(client, "user@example.com")
    client.post("/api/cart/add", json={"product_id": coffee, "quantity": 2}, headers=headers)

    admin = login(client, "admin@example.com")
    client.put(f"/api/products/{coffee}", json={"price": 12}, headers=admin)

    body = client.get("/api/cart", headers=headers).get_json()
    assert body["total"] == 20.0
    assert body["items"][0]["current_price"] == 12.0


def test_missing_cart_and_product(client, session_factory):
    make_user(session_factory)
    headers = login(client, "user@example.com")

    assert client.delete("/api/cart/clear", headers=headers).status_code == 404
    assert client.post("/api/cart/add", json={"product_id": "nope"}, headers=headers).status_code == 404


def test_clear(client, session_factory):
    make_user(session_factory)
    coffee = make_product(session_factory)
    headers = login(client, "user@example.com")
    client.post("/api/cart/add", json={"product_id": coffee}, headers=headers)

    resp = client.delete("/api/cart/clear", headers=headers)

    assert resp.status_code == 200
    assert resp.get_json()["items"] == []


def test_fractional_quantity_is_rejected(client, session_factory):
    make_user(session_factory)
    coffee = make_product(session_factory)
    headers = login(client, "user@example.com")

    resp = client.post("/api/cart/add", json={"product_id": coffee, "quantity": 1.5}, headers=headers)

    assert resp.status_code == 400
    assert client.get("/api/cart", headers=headers).get_json()["items"] == []


def test_zero_captured_price_is_kept(client, session_factory):
    make_user(session_factory)
    freebie = make_product(session_factory, "Sample", price="0.00")
    headers = login(client, "user@example.com")
    client.post("/api/cart/add", json={"product_id": freebie, "quantity": 2}, headers=headers)

    with session_factory() as session:
        session.get(Product, freebie).price = Decimal("5.00")

    body = client.get("/api/cart", headers=headers).get_json()
    assert body["total"] == 0.0
    assert body["items"][0]["current_price"] == 5.0
