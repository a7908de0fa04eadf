from fastapi.testclient import TestClient

from storefront.models import Cart, Order
from storefront.tests.factories import (
    CUSTOMER_ID,
    MAIN_LOCATION_ID,
    SODA_BOTTLE,
    SODA_ID,
    UNPRICED_SODA,
    WATER_CAN,
    WATER_CASE,
    WATER_ID,
    get_balance,
    set_balance,
)


def _fill_cart(client: TestClient):
    assert client.post("/api/cart/items", json={"sku_id": WATER_CAN, "qty": 2}).status_code == 201
    response = client.post("/api/cart/items", json={"sku_id": SODA_BOTTLE, "qty": 1})
    assert response.status_code == 201
    return response.json()


def test_adding_same_presentation_merges_quantities(client, act_as):
    test_client, _ = client
    act_as(CUSTOMER_ID, "CUSTOMER")

    test_client.post("/api/cart/items", json={"sku_id": WATER_CAN, "qty": 2})
    response = test_client.post("/api/cart/items", json={"sku_id": WATER_CAN, "qty": 3})

    body = response.json()
    assert len(body["items"]) == 1
    assert body["items"][0]["qty_sale_units"] == 5
    assert body["items"][0]["unit_price"] == "5.00"
    assert body["items"][0]["line_subtotal"] == "25.00"
    assert body["subtotal"] == "25.00"


def test_cart_item_update_and_removal(client, act_as):
    test_client, _ = client
    act_as(CUSTOMER_ID, "CUSTOMER")
    cart = _fill_cart(test_client)
    water_item = next(item for item in cart["items"] if item["presentation_id"] == WATER_CAN)
    soda_item = next(item for item in cart["items"] if item["presentation_id"] == SODA_BOTTLE)

    updated = test_client.patch(f"/api/cart/items/{water_item['id']}", json={"qty": 4})
    assert updated.status_code == 200
    assert {item["presentation_id"]: item["qty_sale_units"] for item in updated.json()["items"]} == {
        WATER_CAN: 4,
        SODA_BOTTLE: 1,
    }

    removed = test_client.patch(f"/api/cart/items/{soda_item['id']}", json={"qty": 0})
    assert [item["presentation_id"] for item in removed.json()["items"]] == [WATER_CAN]

    missing = test_client.delete("/api/cart/items/999")
    assert missing.status_code == 404

    cleared = test_client.delete("/api/cart/items")
    assert cleared.json()["items"] == []


def test_cart_rejects_presentation_without_price(client, act_as):
    test_client, _ = client
    act_as(CUSTOMER_ID, "CUSTOMER")

    response = test_client.post("/api/cart/items", json={"sku_id": UNPRICED_SODA, "qty": 1})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_confirm_with_one_short_product_changes_nothing(client, act_as):
    test_client, SessionLocal = client
    with SessionLocal() as db:
        set_balance(db, WATER_ID, available=10)
        set_balance(db, SODA_ID, available=0)
        db.commit()
    act_as(CUSTOMER_ID, "CUSTOMER")
    _fill_cart(test_client)

    response = test_client.post("/api/cart/confirm", json={"location_id": MAIN_LOCATION_ID})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_STOCK"
    assert detail["product_id"] == SODA_ID
    assert detail["requested"] == 1
    assert detail["available"] == 0
    assert detail["shortfall"] == 1

    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (10, 0)
        assert get_balance(db, SODA_ID) == (0, 0)
        cart = db.query(Cart).filter(Cart.customer_id == CUSTOMER_ID).one()
        assert cart.status == "ACTIVE"
        assert len(cart.items) == 2
        assert db.query(Order).count() == 0


def test_confirm_reserves_stock_and_converts_cart(client, act_as):
    test_client, SessionLocal = client
    with SessionLocal() as db:
        set_balance(db, WATER_ID, available=60)
        set_balance(db, SODA_ID, available=5)
        db.commit()
    act_as(CUSTOMER_ID, "CUSTOMER")
    _fill_cart(test_client)
    test_client.post("/api/cart/items", json={"sku_id": WATER_CASE, "qty": 1})

    response = test_client.post(
        "/api/cart/confirm",
        json={"location_id": MAIN_LOCATION_ID, "shipping_fee": "15.00", "discount": "3.00"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["grand_total"] == "130.00"

    with SessionLocal() as db:
        # 2 singles plus one case of 24, aggregated into one reservation.
        assert get_balance(db, WATER_ID) == (60, 26)
        assert get_balance(db, SODA_ID) == (5, 1)
        order = db.get(Order, body["order_id"])
        assert order.source == "CART"
        assert order.status == "PENDING"
        assert {line.price_origin for line in order.lines} == {"CART"}
        assert order.subtotal == 118
        cart = db.query(Cart).filter(Cart.customer_id == CUSTOMER_ID).one()
        assert cart.status == "CONVERTED"
        assert cart.items == []

    fresh_cart = test_client.get("/api/cart").json()
    assert fresh_cart["status"] == "ACTIVE"
    assert fresh_cart["items"] == []


def test_confirm_empty_cart_is_rejected(client, act_as):
    test_client, _ = client
    act_as(CUSTOMER_ID, "CUSTOMER")

    response = test_client.post("/api/cart/confirm", json={"location_id": MAIN_LOCATION_ID})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Cart is empty."
