from datetime import date
from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from storefront.catalog.service import catalog_price, get_customer, get_location, load_presentations
from storefront.exceptions import Conflict, InvalidTransition, NotFound, ValidationError
from storefront.inventory.service import (
    StockReference,
    aggregate_requirements,
    base_quantity,
    check_free_stock,
    check_reserved_stock,
    consume,
)
from storefront.models import Order, Sale, SaleLine, User
from storefront.utils import quantize_money
from storefront.utils.money import to_decimal


logger = logging.getLogger(__name__)


def _base_unit_price(unit_price: Decimal, units_per_sale_unit: int) -> Decimal:
    return (to_decimal(unit_price) / Decimal(units_per_sale_unit or 1)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def _payment_status(payment_terms: str) -> str:
    return "PAID" if payment_terms == "CASH" else "PENDING"


def _apply_totals(sale: Sale, *, tax=None, shipping_fee=None, discount=None) -> None:
    sale.subtotal = quantize_money(sum((line.line_subtotal for line in sale.lines), Decimal("0")))
    sale.tax = quantize_money(tax or 0)
    sale.shipping_fee = quantize_money(shipping_fee or 0)
    sale.discount = quantize_money(discount or 0)
    sale.grand_total = quantize_money(sale.subtotal + sale.tax + sale.shipping_fee - sale.discount)
    if sale.grand_total < 0:
        raise ValidationError("Discount cannot exceed the sale total.")


def create_sale_from_order(
    db: Session,
    order_id: int,
    *,
    payment_terms: str = "CASH",
    shipping_fee=None,
    discount=None,
    tax=None,
    notes: Optional[str] = None,
    user: Optional[User] = None,
) -> Sale:
    """Settle a PENDING order: its reservations become SALE movements."""
    order = db.query(Order).filter(Order.id == order_id).populate_existing().with_for_update().first()
    if not order:
        raise NotFound("Order not found.", order_id=order_id)
    if db.query(Sale.id).filter(Sale.order_id == order.id).first():
        raise Conflict(f"A sale already exists for order {order.id}.", order_id=order.id)
    if order.status != "PENDING":
        raise InvalidTransition(
            f"Only PENDING orders can be sold; order {order.id} is {order.status}.",
            order_id=order.id,
            status=order.status,
        )

    sale = Sale(
        order_id=order.id,
        customer_id=order.customer_id,
        location_id=order.location_id,
        customer_name=order.invoice_name,
        sale_date=date.today(),
        payment_terms=payment_terms,
        payment_status=_payment_status(payment_terms),
        status="REGISTERED",
        notes=notes,
    )
    for order_line in order.lines:
        sale.lines.append(
            SaleLine(
                presentation_id=order_line.presentation_id,
                product_id=order_line.product_id,
                qty_sale_units=order_line.qty_sale_units,
                qty_base=order_line.qty_base,
                unit_price=order_line.unit_price,
                base_unit_price=_base_unit_price(order_line.unit_price, order_line.units_per_sale_unit),
                is_manual_price=order_line.price_origin == "MANUAL",
                line_subtotal=order_line.line_subtotal,
            )
        )
    _apply_totals(
        sale,
        tax=tax,
        shipping_fee=order.shipping_fee if shipping_fee is None else shipping_fee,
        discount=order.discount if discount is None else discount,
    )

    requirements = aggregate_requirements((line.product_id, line.qty_base) for line in order.lines)
    check_reserved_stock(db, order.location_id, requirements)
    db.add(sale)
    db.flush()
    reference = StockReference.sale(sale.id)
    for product_id, qty in requirements.items():
        consume(
            db,
            product_id,
            order.location_id,
            qty,
            from_reservation=True,
            reference=reference,
            user_id=user.id if user else None,
        )

    order.status = "COMPLETED"
    db.flush()
    logger.info("Sale %s registered from order %s", sale.id, order.id)
    return sale


def create_direct_sale(db: Session, *, payload: dict, user: Optional[User] = None) -> Sale:
    location = get_location(db, payload["location_id"])
    customer = get_customer(db, payload["customer_id"]) if payload.get("customer_id") else None
    line_payloads = payload.get("lines") or []
    presentations = load_presentations(db, [line["sku_id"] for line in line_payloads])

    payment_terms = payload.get("payment_terms") or "CASH"
    sale = Sale(
        customer_id=customer.id if customer else None,
        location_id=location.id,
        customer_name=payload.get("customer_name") or (customer.name if customer else None),
        sale_date=payload.get("sale_date") or date.today(),
        payment_terms=payment_terms,
        payment_status=_payment_status(payment_terms),
        status="REGISTERED",
        notes=payload.get("notes"),
    )
    for line_payload in line_payloads:
        presentation = presentations[line_payload["sku_id"]]
        qty = line_payload["qty"]
        if qty is None or qty <= 0:
            raise ValidationError(f"Quantity for presentation {presentation.id} must be greater than zero.")
        manual_price = line_payload.get("unit_price")
        unit_price = manual_price if manual_price is not None else catalog_price(presentation)
        if unit_price is None:
            raise ValidationError(
                f"No price is defined for presentation {presentation.id}.",
                presentation_id=presentation.id,
            )
        unit_price = quantize_money(unit_price)
        sale.lines.append(
            SaleLine(
                presentation_id=presentation.id,
                product_id=presentation.product_id,
                qty_sale_units=qty,
                qty_base=base_quantity(qty, presentation.units_per_sale_unit),
                unit_price=unit_price,
                base_unit_price=_base_unit_price(unit_price, presentation.units_per_sale_unit),
                is_manual_price=manual_price is not None,
                line_subtotal=quantize_money(unit_price * qty),
            )
        )
    _apply_totals(
        sale,
        tax=payload.get("tax"),
        shipping_fee=payload.get("shipping_fee"),
        discount=payload.get("discount"),
    )

    requirements = aggregate_requirements((line.product_id, line.qty_base) for line in sale.lines)
    check_free_stock(db, location.id, requirements)
    db.add(sale)
    db.flush()
    reference = StockReference.sale(sale.id)
    for product_id, qty in requirements.items():
        consume(
            db,
            product_id,
            location.id,
            qty,
            from_reservation=False,
            reference=reference,
            user_id=user.id if user else None,
        )
    db.flush()
    logger.info("Direct sale %s registered at location %s", sale.id, location.id)
    return sale


def list_sales(
    db: Session,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    location_id: Optional[int] = None,
) -> list[Sale]:
    query = db.query(Sale).options(selectinload(Sale.lines))
    if start_date:
        query = query.filter(Sale.sale_date >= start_date)
    if end_date:
        query = query.filter(Sale.sale_date <= end_date)
    if location_id is not None:
        query = query.filter(Sale.location_id == location_id)
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = db.query(Sale).options(selectinload(Sale.lines)).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFound("Sale not found.", sale_id=sale_id)
    return sale
