import pytest

from storefront.models import Order
from storefront.tests.factories import (
    ADMIN_ID,
    CUSTOMER_ID,
    MAIN_LOCATION_ID,
    OTHER_CUSTOMER_ID,
    SODA_BOTTLE,
    SODA_ID,
    UNPRICED_SODA,
    WATER_CAN,
    WATER_ID,
    get_balance,
    set_balance,
)


@pytest.fixture()
def stocked(client):
    test_client, SessionLocal = client
    with SessionLocal() as db:
        set_balance(db, WATER_ID, available=20)
        set_balance(db, SODA_ID, available=2)
        db.commit()
    return test_client, SessionLocal


def _order_payload(**overrides):
    payload = {
        "location_id": MAIN_LOCATION_ID,
        "delivery_type": "PICKUP",
        "lines": [{"sku_id": WATER_CAN, "qty": 4}],
    }
    payload.update(overrides)
    return payload


def test_customer_order_reserves_stock_with_system_price(stocked, act_as):
    test_client, SessionLocal = stocked
    act_as(CUSTOMER_ID, "CUSTOMER")

    response = test_client.post(
        "/api/orders",
        json=_order_payload(lines=[{"sku_id": WATER_CAN, "qty": 4, "unit_price": "0.01"}]),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["source"] == "ONLINE"
    assert body["customer_id"] == CUSTOMER_ID
    assert body["lines"][0]["price_origin"] == "SYSTEM"
    assert body["lines"][0]["unit_price"] == "5.00"
    assert body["grand_total"] == "20.00"
    assert body["invoice_nit"] == "1234567-8"
    assert body["invoice_name"] == "Ana Customer"

    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (20, 4)


def test_staff_manual_price_is_honored(stocked):
    test_client, _ = stocked

    response = test_client.post(
        "/api/orders",
        json=_order_payload(customer_id=CUSTOMER_ID, lines=[{"sku_id": WATER_CAN, "qty": 2, "unit_price": "4.25"}]),
    )

    assert response.status_code == 201
    line = response.json()["lines"][0]
    assert line["price_origin"] == "MANUAL"
    assert line["unit_price"] == "4.25"
    assert response.json()["source"] == "ADMIN"


def test_presentation_without_price_requires_manual_price(stocked):
    test_client, _ = stocked

    response = test_client.post("/api/orders", json=_order_payload(lines=[{"sku_id": UNPRICED_SODA, "qty": 1}]))

    assert response.status_code == 400
    assert "No price is defined" in response.json()["detail"]["message"]


def test_home_delivery_falls_back_to_profile_address(stocked, act_as):
    test_client, _ = stocked
    act_as(CUSTOMER_ID, "CUSTOMER")

    response = test_client.post("/api/orders", json=_order_payload(delivery_type="HOME_DELIVERY"))

    assert response.status_code == 201
    assert response.json()["delivery_address"] == "4a Avenida 10-20, Zona 1"


def test_home_delivery_without_any_address_is_rejected(stocked, act_as):
    test_client, SessionLocal = stocked
    act_as(OTHER_CUSTOMER_ID, "CUSTOMER")

    response = test_client.post("/api/orders", json=_order_payload(delivery_type="HOME_DELIVERY"))

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (20, 0)


def test_multi_line_order_is_all_or_nothing(stocked):
    test_client, SessionLocal = stocked

    response = test_client.post(
        "/api/orders",
        json=_order_payload(lines=[{"sku_id": WATER_CAN, "qty": 5}, {"sku_id": SODA_BOTTLE, "qty": 3}]),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["product_id"] == SODA_ID
    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (20, 0)
        assert get_balance(db, SODA_ID) == (2, 0)
        assert db.query(Order).count() == 0


def test_cancel_releases_reservation_and_rejects_second_cancel(stocked):
    test_client, SessionLocal = stocked
    order_id = test_client.post("/api/orders", json=_order_payload()).json()["id"]

    cancelled = test_client.patch(f"/api/orders/{order_id}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"
    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (20, 0)

    again = test_client.patch(f"/api/orders/{order_id}/cancel")
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "INVALID_TRANSITION"
    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (20, 0)


def test_customer_cannot_cancel_someone_elses_order(stocked, act_as):
    test_client, SessionLocal = stocked
    act_as(CUSTOMER_ID, "CUSTOMER")
    order_id = test_client.post("/api/orders", json=_order_payload()).json()["id"]

    act_as(OTHER_CUSTOMER_ID, "CUSTOMER")
    response = test_client.patch(f"/api/orders/{order_id}/cancel")

    assert response.status_code == 403
    with SessionLocal() as db:
        assert get_balance(db, WATER_ID) == (20, 4)


def test_customers_only_list_their_own_orders(stocked, act_as):
    test_client, _ = stocked
    test_client.post("/api/orders", json=_order_payload(lines=[{"sku_id": WATER_CAN, "qty": 1}]))
    act_as(CUSTOMER_ID, "CUSTOMER")
    own_id = test_client.post("/api/orders", json=_order_payload(lines=[{"sku_id": WATER_CAN, "qty": 1}])).json()["id"]

    response = test_client.get("/api/orders")

    assert [order["id"] for order in response.json()] == [own_id]

    act_as(ADMIN_ID, "ADMIN")
    assert len(test_client.get("/api/orders").json()) == 2
    assert len(test_client.get("/api/orders", params={"status": "CANCELLED"}).json()) == 0


def test_missing_order_and_bad_payloads(stocked):
    test_client, _ = stocked

    assert test_client.get("/api/orders/999").status_code == 404
    assert test_client.patch("/api/orders/999/cancel").status_code == 404
    assert test_client.post("/api/orders", json=_order_payload(lines=[{"sku_id": WATER_CAN, "qty": 0}])).status_code == 422
    assert test_client.post("/api/orders", json=_order_payload(lines=[{"sku_id": 999, "qty": 1}])).status_code == 404
    assert test_client.post("/api/orders", json=_order_payload(location_id=999)).status_code == 404
