from datetime import date
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from storefront.catalog.service import catalog_price, get_customer, get_location, load_presentations
from storefront.exceptions import InvalidTransition, NotFound, ValidationError
from storefront.inventory.service import (
    StockReference,
    aggregate_requirements,
    base_quantity,
    check_free_stock,
    dispatch_consignment,
)
from storefront.models import Consignment, ConsignmentLine, User
from storefront.utils import quantize_money


logger = logging.getLogger(__name__)


def create_consignment(db: Session, *, payload: dict, user: Optional[User] = None) -> Consignment:
    """Ship goods on consignment. Stock leaves the location immediately."""
    location = get_location(db, payload["location_id"])
    customer = get_customer(db, payload["customer_id"]) if payload.get("customer_id") else None
    line_payloads = payload.get("lines") or []
    presentations = load_presentations(db, [line["sku_id"] for line in line_payloads])

    consignment = Consignment(
        customer_id=customer.id if customer else None,
        location_id=location.id,
        ship_date=payload.get("ship_date") or date.today(),
        status="OPEN",
        notes=payload.get("notes"),
    )
    for line_payload in line_payloads:
        presentation = presentations[line_payload["sku_id"]]
        qty = line_payload["qty"]
        if qty is None or qty <= 0:
            raise ValidationError(f"Quantity for presentation {presentation.id} must be greater than zero.")
        price = line_payload.get("unit_price")
        if price is None:
            price = catalog_price(presentation)
        price = quantize_money(price or 0)
        consignment.lines.append(
            ConsignmentLine(
                presentation_id=presentation.id,
                product_id=presentation.product_id,
                qty_sale_units=qty,
                qty_base=base_quantity(qty, presentation.units_per_sale_unit),
                estimated_unit_price=price,
                estimated_subtotal=quantize_money(price * qty),
            )
        )
    consignment.estimated_subtotal = quantize_money(
        sum((line.estimated_subtotal for line in consignment.lines), Decimal("0"))
    )

    requirements = aggregate_requirements((line.product_id, line.qty_base) for line in consignment.lines)
    check_free_stock(db, location.id, requirements)
    db.add(consignment)
    db.flush()
    reference = StockReference.consignment(consignment.id)
    for product_id, qty in requirements.items():
        dispatch_consignment(
            db,
            product_id,
            location.id,
            qty,
            reference=reference,
            user_id=user.id if user else None,
        )
    db.flush()
    logger.info("Consignment %s dispatched from location %s", consignment.id, location.id)
    return consignment


def close_consignment(db: Session, consignment_id: int, *, notes: Optional[str] = None) -> Consignment:
    consignment = (
        db.query(Consignment)
        .filter(Consignment.id == consignment_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not consignment:
        raise NotFound("Consignment not found.", consignment_id=consignment_id)
    if consignment.status != "OPEN":
        raise InvalidTransition(
            f"Only OPEN consignments can be closed; consignment {consignment.id} is {consignment.status}.",
            consignment_id=consignment.id,
            status=consignment.status,
        )
    consignment.status = "CLOSED"
    if notes:
        consignment.notes = notes
    db.flush()
    logger.info("Consignment %s closed", consignment.id)
    return consignment


def list_consignments(
    db: Session,
    *,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[Consignment]:
    query = db.query(Consignment).options(selectinload(Consignment.lines))
    if status:
        query = query.filter(Consignment.status == status)
    if customer_id is not None:
        query = query.filter(Consignment.customer_id == customer_id)
    if start_date:
        query = query.filter(Consignment.ship_date >= start_date)
    if end_date:
        query = query.filter(Consignment.ship_date <= end_date)
    return query.order_by(Consignment.ship_date.desc(), Consignment.id.desc()).all()


def get_consignment(db: Session, consignment_id: int) -> Consignment:
    consignment = (
        db.query(Consignment)
        .options(selectinload(Consignment.lines))
        .filter(Consignment.id == consignment_id)
        .first()
    )
    if not consignment:
        raise NotFound("Consignment not found.", consignment_id=consignment_id)
    return consignment
