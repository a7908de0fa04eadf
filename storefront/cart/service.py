from datetime import date
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from storefront.catalog.service import catalog_price, get_location, load_presentations
from storefront.exceptions import NotFound, ValidationError
from storefront.inventory.service import base_quantity
from storefront.models import Cart, CartItem, Order, OrderLine, User
from storefront.orders.service import order_grand_total, reserve_order_lines
from storefront.utils import quantize_money


logger = logging.getLogger(__name__)


def _active_cart_query(db: Session, customer_id: int):
    return (
        db.query(Cart)
        .options(selectinload(Cart.items))
        .filter(Cart.customer_id == customer_id, Cart.status == "ACTIVE")
        .order_by(Cart.id.desc())
    )


def get_or_create_active_cart(db: Session, customer_id: int) -> Cart:
    cart = _active_cart_query(db, customer_id).first()
    if cart:
        return cart
    cart = Cart(customer_id=customer_id, status="ACTIVE")
    db.add(cart)
    db.flush()
    return cart


def _price_snapshot(item: CartItem) -> None:
    price = catalog_price(item.presentation)
    if price is None:
        raise ValidationError(
            f"No price is defined for presentation {item.presentation_id}.",
            presentation_id=item.presentation_id,
        )
    item.unit_price = quantize_money(price)
    item.line_subtotal = quantize_money(item.unit_price * item.qty_sale_units)


def add_cart_item(
    db: Session,
    customer_id: int,
    *,
    presentation_id: int,
    qty_sale_units: int,
    notes: Optional[str] = None,
) -> Cart:
    if qty_sale_units <= 0:
        raise ValidationError("Quantity must be greater than zero.")
    presentation = load_presentations(db, [presentation_id])[presentation_id]
    cart = get_or_create_active_cart(db, customer_id)

    item = next((existing for existing in cart.items if existing.presentation_id == presentation_id), None)
    if item is None:
        item = CartItem(presentation_id=presentation_id, qty_sale_units=qty_sale_units, notes=notes)
        cart.items.append(item)
    else:
        item.qty_sale_units += qty_sale_units
        if notes is not None:
            item.notes = notes
    item.presentation = presentation
    _price_snapshot(item)
    db.flush()
    return cart


def _find_item(cart: Cart, item_id: int) -> CartItem:
    for item in cart.items:
        if item.id == item_id:
            return item
    raise NotFound("Cart item not found.", item_id=item_id)


def update_cart_item(db: Session, customer_id: int, item_id: int, *, qty_sale_units: int) -> Cart:
    cart = get_or_create_active_cart(db, customer_id)
    item = _find_item(cart, item_id)
    if qty_sale_units <= 0:
        cart.items.remove(item)
    else:
        item.qty_sale_units = qty_sale_units
        _price_snapshot(item)
    db.flush()
    return cart


def remove_cart_item(db: Session, customer_id: int, item_id: int) -> Cart:
    cart = get_or_create_active_cart(db, customer_id)
    cart.items.remove(_find_item(cart, item_id))
    db.flush()
    return cart


def clear_cart(db: Session, customer_id: int) -> Cart:
    cart = get_or_create_active_cart(db, customer_id)
    cart.items.clear()
    db.flush()
    return cart


def cart_subtotal(cart: Cart) -> Decimal:
    return quantize_money(sum((item.line_subtotal for item in cart.items), Decimal("0")))


def confirm_cart(
    db: Session,
    *,
    customer: User,
    location_id: int,
    shipping_fee=None,
    discount=None,
    notes: Optional[str] = None,
) -> Order:
    """Turn the customer's active cart into a PENDING order holding reservations."""
    cart = (
        db.query(Cart)
        .filter(Cart.customer_id == customer.id, Cart.status == "ACTIVE")
        .order_by(Cart.id.desc())
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not cart or not cart.items:
        raise ValidationError("Cart is empty.")

    location = get_location(db, location_id)
    presentations = load_presentations(db, [item.presentation_id for item in cart.items])

    order = Order(
        customer_id=customer.id,
        location_id=location.id,
        source="CART",
        status="PENDING",
        order_date=date.today(),
        delivery_type="PICKUP",
        invoice_required=False,
        invoice_nit=customer.nit or "CF",
        invoice_name=customer.name,
        customer_notes=notes,
    )
    for item in cart.items:
        presentation = presentations[item.presentation_id]
        order.lines.append(
            OrderLine(
                presentation_id=presentation.id,
                product_id=presentation.product_id,
                qty_sale_units=item.qty_sale_units,
                units_per_sale_unit=presentation.units_per_sale_unit,
                qty_base=base_quantity(item.qty_sale_units, presentation.units_per_sale_unit),
                unit_price=item.unit_price,
                price_origin="CART",
                line_subtotal=item.line_subtotal,
            )
        )
    order.subtotal = cart_subtotal(cart)
    order.shipping_fee = quantize_money(shipping_fee or 0)
    order.discount = quantize_money(discount or 0)
    order.grand_total = order_grand_total(order.subtotal, order.shipping_fee, order.discount)

    reserve_order_lines(db, location.id, order.lines)
    db.add(order)
    cart.status = "CONVERTED"
    cart.items.clear()
    db.flush()
    logger.info("Cart %s converted into order %s", cart.id, order.id)
    return order
