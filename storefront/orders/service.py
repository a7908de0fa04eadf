from datetime import date
from decimal import Decimal
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from storefront.catalog.service import get_customer, get_location, load_presentations
from storefront.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from storefront.inventory.service import aggregate_requirements, base_quantity, check_free_stock, release, reserve
from storefront.models import Order, OrderLine, User
from storefront.utils import quantize_money
from storefront.utils.money import to_decimal


logger = logging.getLogger(__name__)


def order_grand_total(subtotal, shipping_fee, discount) -> Decimal:
    total = quantize_money(to_decimal(subtotal) + to_decimal(shipping_fee) - to_decimal(discount))
    if total < 0:
        raise ValidationError("Discount cannot exceed the order subtotal plus shipping.")
    return total


def reserve_order_lines(db: Session, location_id: int, lines: Iterable[OrderLine]) -> dict[int, int]:
    """Reserve stock for every line, all or nothing.

    Every balance is locked and checked before the first reservation is made.
    """
    requirements = aggregate_requirements((line.product_id, line.qty_base) for line in lines)
    check_free_stock(db, location_id, requirements)
    for product_id, qty in requirements.items():
        reserve(db, product_id, location_id, qty)
    return requirements


def _resolve_customer(db: Session, user: User, customer_id: Optional[int]) -> Optional[User]:
    if user.role == "CUSTOMER":
        return user
    if customer_id is None:
        return None
    return get_customer(db, customer_id)


def _apply_delivery_defaults(order: Order, customer: Optional[User], payload: dict) -> None:
    order.delivery_type = payload.get("delivery_type") or "PICKUP"
    if order.delivery_type == "HOME_DELIVERY":
        address = payload.get("address") or (customer.address if customer else None)
        if not address:
            raise ValidationError("A delivery address is required for home delivery.")
        order.delivery_address = address
    else:
        order.delivery_address = None

    order.invoice_required = bool(payload.get("invoice_required"))
    order.invoice_nit = payload.get("invoice_nit") or (customer.nit if customer and customer.nit else "CF")
    order.invoice_name = payload.get("invoice_name") or (customer.name if customer else None)


def _build_order_line(presentation, qty_sale_units: int, unit_price, price_origin: str) -> OrderLine:
    if qty_sale_units is None or qty_sale_units <= 0:
        raise ValidationError(f"Quantity for presentation {presentation.id} must be greater than zero.")
    if unit_price is None:
        raise ValidationError(
            f"No price is defined for presentation {presentation.id}.",
            presentation_id=presentation.id,
        )
    unit_price = quantize_money(unit_price)
    return OrderLine(
        presentation_id=presentation.id,
        product_id=presentation.product_id,
        qty_sale_units=qty_sale_units,
        units_per_sale_unit=presentation.units_per_sale_unit,
        qty_base=base_quantity(qty_sale_units, presentation.units_per_sale_unit),
        unit_price=unit_price,
        price_origin=price_origin,
        line_subtotal=quantize_money(unit_price * qty_sale_units),
    )


def create_order(db: Session, *, user: User, payload: dict) -> Order:
    location = get_location(db, payload["location_id"])
    customer = _resolve_customer(db, user, payload.get("customer_id"))

    order = Order(
        customer_id=customer.id if customer else None,
        location_id=location.id,
        source=payload.get("source") or ("ONLINE" if user.role == "CUSTOMER" else "ADMIN"),
        status="PENDING",
        order_date=date.today(),
        customer_notes=payload.get("customer_notes"),
        internal_notes=payload.get("internal_notes") if user.is_staff else None,
    )
    _apply_delivery_defaults(order, customer, payload)

    line_payloads = payload.get("lines") or []
    presentations = load_presentations(db, [line["sku_id"] for line in line_payloads])
    for line_payload in line_payloads:
        presentation = presentations[line_payload["sku_id"]]
        manual_price = line_payload.get("unit_price")
        if manual_price is not None and user.is_staff:
            unit_price, origin = manual_price, "MANUAL"
        else:
            unit_price, origin = presentation.default_sale_price, "SYSTEM"
        order.lines.append(_build_order_line(presentation, line_payload["qty"], unit_price, origin))

    order.subtotal = quantize_money(sum((line.line_subtotal for line in order.lines), Decimal("0")))
    order.shipping_fee = quantize_money(payload.get("shipping_fee") or 0)
    order.discount = quantize_money(payload.get("discount") or 0)
    order.grand_total = order_grand_total(order.subtotal, order.shipping_fee, order.discount)

    reserve_order_lines(db, location.id, order.lines)
    db.add(order)
    db.flush()
    logger.info("Order %s created for location %s with %s line(s)", order.id, location.id, len(order.lines))
    return order


def _lock_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).populate_existing().with_for_update().first()
    if not order:
        raise NotFound("Order not found.", order_id=order_id)
    return order


def cancel_order(db: Session, order_id: int, *, user: User) -> Order:
    order = _lock_order(db, order_id)
    if user.role == "CUSTOMER" and order.customer_id != user.id:
        raise Forbidden("You can only cancel your own orders.", order_id=order_id)
    if order.status != "PENDING":
        raise InvalidTransition(
            f"Only PENDING orders can be cancelled; order {order.id} is {order.status}.",
            order_id=order.id,
            status=order.status,
        )

    requirements = aggregate_requirements((line.product_id, line.qty_base) for line in order.lines)
    for product_id, qty in requirements.items():
        release(db, product_id, order.location_id, qty)
    order.status = "CANCELLED"
    db.flush()
    logger.info("Order %s cancelled", order.id)
    return order


def list_orders(db: Session, *, user: User, status: Optional[str] = None) -> list[Order]:
    query = db.query(Order).options(selectinload(Order.lines))
    if user.role == "CUSTOMER":
        query = query.filter(Order.customer_id == user.id)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order(db: Session, order_id: int, *, user: User) -> Order:
    order = db.query(Order).options(selectinload(Order.lines)).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found.", order_id=order_id)
    if user.role == "CUSTOMER" and order.customer_id != user.id:
        raise Forbidden("You can only view your own orders.", order_id=order_id)
    return order
