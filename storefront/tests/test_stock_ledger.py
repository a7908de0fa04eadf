import logging
from datetime import date
from decimal import Decimal

import pytest

from storefront.exceptions import (
    InsufficientStock,
    PhysicalStockShortfall,
    ReservationShortfall,
    ValidationError,
)
from storefront.inventory import service as ledger
from storefront.inventory.service import (
    MovementType,
    ReferenceType,
    StockReference,
    adjust,
    aggregate_requirements,
    consume,
    dispatch_consignment,
    get_or_create_balance,
    list_movements,
    receive,
    reconcile_balance,
    release,
    reserve,
)
from storefront.models import InventoryMovement, Order, OrderLine, User
from storefront.orders.service import cancel_order, create_order
from storefront.purchasing.service import create_purchase
from storefront.sales.service import create_direct_sale, create_sale_from_order
from storefront.tests.factories import (
    ADMIN_ID,
    MAIN_LOCATION_ID,
    SODA_BOTTLE,
    SODA_ID,
    WATER_CAN,
    WATER_ID,
    get_balance,
    set_balance,
)


def _movements(db, product_id=WATER_ID):
    return (
        db.query(InventoryMovement)
        .filter(InventoryMovement.product_id == product_id, InventoryMovement.location_id == MAIN_LOCATION_ID)
        .order_by(InventoryMovement.id)
        .all()
    )


def test_reserve_then_release_restores_balance(db):
    set_balance(db, WATER_ID, available=10)

    reserve(db, WATER_ID, MAIN_LOCATION_ID, 4)
    assert get_balance(db, WATER_ID) == (10, 4)

    release(db, WATER_ID, MAIN_LOCATION_ID, 4)
    db.commit()

    assert get_balance(db, WATER_ID) == (10, 0)
    assert _movements(db) == []


def test_reserve_exact_free_stock_then_one_more_fails(db):
    set_balance(db, WATER_ID, available=5)

    reserve(db, WATER_ID, MAIN_LOCATION_ID, 5)
    assert get_balance(db, WATER_ID) == (5, 5)

    with pytest.raises(InsufficientStock) as exc_info:
        reserve(db, WATER_ID, MAIN_LOCATION_ID, 1)

    error = exc_info.value
    assert error.product_id == WATER_ID
    assert error.requested == 1
    assert error.available == 0
    assert error.shortfall == 1
    assert get_balance(db, WATER_ID) == (5, 5)


def test_sale_from_order_consumes_reservation(db):
    set_balance(db, WATER_ID, available=3, reserved=3)
    order = Order(location_id=MAIN_LOCATION_ID, source="ADMIN", status="PENDING", order_date=date.today())
    order.lines.append(
        OrderLine(
            presentation_id=WATER_CAN,
            product_id=WATER_ID,
            qty_sale_units=3,
            units_per_sale_unit=1,
            qty_base=3,
            unit_price=Decimal("5.00"),
            line_subtotal=Decimal("15.00"),
        )
    )
    db.add(order)
    db.commit()

    sale = create_sale_from_order(db, order.id)
    db.commit()

    assert get_balance(db, WATER_ID) == (0, 0)
    movements = _movements(db)
    assert [(m.movement_type, m.quantity) for m in movements] == [("SALE", -3)]
    assert movements[0].reference_type == "SALE"
    assert movements[0].reference_id == sale.id
    assert order.status == "COMPLETED"


def test_direct_sale_consumes_free_stock(db):
    set_balance(db, WATER_ID, available=8)

    create_direct_sale(
        db,
        payload={"location_id": MAIN_LOCATION_ID, "lines": [{"sku_id": WATER_CAN, "qty": 2}]},
    )
    db.commit()

    assert get_balance(db, WATER_ID) == (6, 0)
    assert [(m.movement_type, m.quantity) for m in _movements(db)] == [("SALE", -2)]


def test_purchase_receiving_creates_balance_and_movement(db):
    set_balance(db, WATER_ID, available=0)

    purchase = create_purchase(
        db,
        payload={
            "supplier_id": 1,
            "location_id": MAIN_LOCATION_ID,
            "lines": [{"sku_id": WATER_CAN, "qty": 20, "unit_cost": Decimal("2.50")}],
        },
    )
    db.commit()

    assert get_balance(db, WATER_ID) == (20, 0)
    movements = _movements(db)
    assert [(m.movement_type, m.quantity) for m in movements] == [("PURCHASE", 20)]
    assert movements[0].reference_id == purchase.id


def test_manual_shrinkage_is_not_blocked_by_reservations(db):
    set_balance(db, WATER_ID, available=10, reserved=2)

    balance, movement = adjust(db, WATER_ID, MAIN_LOCATION_ID, -3, reason="Broken bottles")
    db.commit()

    assert (balance.available, balance.reserved) == (7, 2)
    assert movement.movement_type == "ADJUSTMENT"
    assert movement.quantity == -3
    assert movement.reference_type == "ADJUSTMENT"
    assert movement.notes == "Broken bottles"


def test_adjust_rejects_zero_and_negative_results(db):
    set_balance(db, WATER_ID, available=2)

    with pytest.raises(ValidationError):
        adjust(db, WATER_ID, MAIN_LOCATION_ID, 0)
    with pytest.raises(ValidationError, match="cannot go below zero"):
        adjust(db, WATER_ID, MAIN_LOCATION_ID, -3)

    assert get_balance(db, WATER_ID) == (2, 0)


def test_release_clamps_to_reserved_and_warns(db, caplog):
    set_balance(db, WATER_ID, available=3, reserved=2)

    with caplog.at_level(logging.WARNING, logger="storefront.inventory.service"):
        release(db, WATER_ID, MAIN_LOCATION_ID, 5)

    assert get_balance(db, WATER_ID) == (3, 0)
    assert "Release clamped" in caplog.text


def test_consume_from_reservation_reports_reserved_shortfall(db):
    set_balance(db, WATER_ID, available=10, reserved=1)

    with pytest.raises(ReservationShortfall) as exc_info:
        consume(db, WATER_ID, MAIN_LOCATION_ID, 2, from_reservation=True, reference=StockReference.sale(1))

    assert exc_info.value.shortfall == 1
    assert get_balance(db, WATER_ID) == (10, 1)


def test_consume_from_reservation_reports_physical_shortfall(db):
    set_balance(db, WATER_ID, available=1, reserved=4)

    with pytest.raises(PhysicalStockShortfall):
        consume(db, WATER_ID, MAIN_LOCATION_ID, 3, from_reservation=True, reference=StockReference.sale(1))


def test_direct_consume_respects_pending_reservations(db):
    set_balance(db, WATER_ID, available=5, reserved=3)

    with pytest.raises(InsufficientStock):
        consume(db, WATER_ID, MAIN_LOCATION_ID, 3, from_reservation=False, reference=StockReference.sale(1))

    consume(db, WATER_ID, MAIN_LOCATION_ID, 2, from_reservation=False, reference=StockReference.sale(1))
    assert get_balance(db, WATER_ID) == (3, 3)


def test_dispatch_consignment_writes_outbound_movement(db):
    set_balance(db, WATER_ID, available=6)

    movement = dispatch_consignment(db, WATER_ID, MAIN_LOCATION_ID, 4, reference=StockReference.consignment(7))
    db.commit()

    assert get_balance(db, WATER_ID) == (2, 0)
    assert movement.movement_type == MovementType.CONSIGNMENT_OUT.value
    assert movement.quantity == -4
    assert (movement.reference_type, movement.reference_id) == ("CONSIGNMENT", 7)


def test_dispatch_clamps_at_zero_when_free_stock_check_is_skipped(db, caplog, monkeypatch):
    set_balance(db, WATER_ID, available=2)
    monkeypatch.setattr(ledger, "ensure_free_stock", lambda balance, qty: None)

    with caplog.at_level(logging.WARNING, logger="storefront.inventory.service"):
        movement = dispatch_consignment(db, WATER_ID, MAIN_LOCATION_ID, 5, reference=StockReference.consignment(8))

    assert get_balance(db, WATER_ID) == (0, 0)
    assert movement.quantity == -5
    assert "Consignment dispatch clamped" in caplog.text


@pytest.mark.parametrize("qty", [0, -1])
def test_primitives_reject_non_positive_quantities(db, qty):
    set_balance(db, WATER_ID, available=10)

    with pytest.raises(ValidationError):
        reserve(db, WATER_ID, MAIN_LOCATION_ID, qty)
    with pytest.raises(ValidationError):
        receive(db, WATER_ID, MAIN_LOCATION_ID, qty, reference=StockReference.purchase(1))


def test_balance_rows_are_created_lazily(db):
    assert get_balance(db, SODA_ID) is None

    balance = get_or_create_balance(db, SODA_ID, MAIN_LOCATION_ID)
    again = get_or_create_balance(db, SODA_ID, MAIN_LOCATION_ID)
    db.commit()

    assert balance is again
    assert get_balance(db, SODA_ID) == (0, 0)


def test_aggregate_requirements_merges_and_orders_by_product():
    totals = aggregate_requirements([(9, 2), (3, 1), (9, 5), (1, 4)])

    assert totals == {1: 4, 3: 1, 9: 7}
    assert list(totals) == [1, 3, 9]


def test_stock_reference_constructors():
    assert StockReference.order(5) == StockReference(ReferenceType.ORDER, 5)
    assert StockReference.adjustment().reference_id is None
    with pytest.raises(AttributeError):
        StockReference.sale(1).reference_id = 2


def test_movement_log_reconciles_with_available(db):
    receive(db, SODA_ID, MAIN_LOCATION_ID, 12, reference=StockReference.purchase(1))
    consume(db, SODA_ID, MAIN_LOCATION_ID, 2, from_reservation=False, reference=StockReference.sale(1))
    dispatch_consignment(db, SODA_ID, MAIN_LOCATION_ID, 3, reference=StockReference.consignment(1))
    adjust(db, SODA_ID, MAIN_LOCATION_ID, -1)
    db.commit()

    reconciliation = reconcile_balance(db, SODA_ID, MAIN_LOCATION_ID)

    assert reconciliation.available == 6
    assert reconciliation.movement_total == 6
    assert reconciliation.is_consistent
    assert [m.quantity for m in list_movements(db, product_id=SODA_ID)] == [-1, -3, -2, 12]


def test_insufficient_stock_message_names_product_and_quantities(db):
    set_balance(db, SODA_ID, available=3)

    with pytest.raises(InsufficientStock) as exc_info:
        create_direct_sale(
            db,
            payload={"location_id": MAIN_LOCATION_ID, "lines": [{"sku_id": SODA_BOTTLE, "qty": 10}]},
        )

    assert str(exc_info.value) == (
        f"Insufficient free stock for product {SODA_ID} at location {MAIN_LOCATION_ID}: available 3, requested 10."
    )


def test_repeated_changes_to_one_balance_in_a_transaction_all_land(db):
    set_balance(db, WATER_ID, available=0)

    receive(db, WATER_ID, MAIN_LOCATION_ID, 24, reference=StockReference.purchase(1))
    receive(db, WATER_ID, MAIN_LOCATION_ID, 6, reference=StockReference.purchase(1))
    reserve(db, WATER_ID, MAIN_LOCATION_ID, 10)
    reserve(db, WATER_ID, MAIN_LOCATION_ID, 20)
    db.commit()

    assert get_balance(db, WATER_ID) == (30, 30)
    assert reconcile_balance(db, WATER_ID, MAIN_LOCATION_ID).is_consistent


def _order(db, qty):
    admin = db.get(User, ADMIN_ID)
    order = create_order(
        db,
        user=admin,
        payload={"location_id": MAIN_LOCATION_ID, "lines": [{"sku_id": WATER_CAN, "qty": qty}]},
    )
    db.commit()
    return order


def test_movement_log_reconciles_after_order_then_sale(db):
    receive(db, WATER_ID, MAIN_LOCATION_ID, 20, reference=StockReference.purchase(1))
    db.commit()

    first = _order(db, 3)
    assert get_balance(db, WATER_ID) == (20, 3)
    second = _order(db, 16)
    assert get_balance(db, WATER_ID) == (20, 19)

    create_sale_from_order(db, first.id)
    db.commit()

    assert get_balance(db, WATER_ID) == (17, 16)
    reconciliation = reconcile_balance(db, WATER_ID, MAIN_LOCATION_ID)
    assert (reconciliation.available, reconciliation.movement_total) == (17, 17)
    assert reconciliation.is_consistent
    assert second.status == "PENDING"


def test_movement_log_reconciles_after_order_then_cancel(db):
    receive(db, WATER_ID, MAIN_LOCATION_ID, 20, reference=StockReference.purchase(1))
    db.commit()
    order = _order(db, 5)

    cancel_order(db, order.id, user=db.get(User, ADMIN_ID))
    db.commit()

    assert get_balance(db, WATER_ID) == (20, 0)
    assert reconcile_balance(db, WATER_ID, MAIN_LOCATION_ID).is_consistent
    assert [m.quantity for m in _movements(db)] == [20]
