from datetime import date
from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from storefront.catalog.service import get_location, get_supplier, load_presentations
from storefront.exceptions import NotFound, ValidationError
from storefront.inventory.service import StockReference, base_quantity, receive
from storefront.models import Purchase, PurchaseLine, User
from storefront.utils import quantize_money
from storefront.utils.money import to_decimal


logger = logging.getLogger(__name__)


def purchase_subtotal(purchase: Purchase) -> Decimal:
    return quantize_money(sum((to_decimal(line.line_subtotal) for line in purchase.lines), Decimal("0")))


def purchase_total(purchase: Purchase) -> Decimal:
    return quantize_money(purchase_subtotal(purchase) + to_decimal(purchase.tax) + to_decimal(purchase.extra_costs))


def _build_purchase_line(presentation, payload: dict) -> PurchaseLine:
    qty = payload["qty"]
    if qty is None or qty <= 0:
        raise ValidationError(f"Quantity for presentation {presentation.id} must be greater than zero.")
    unit_cost = quantize_money(payload["unit_cost"])
    if unit_cost < 0:
        raise ValidationError(f"Unit cost for presentation {presentation.id} cannot be negative.")
    units = presentation.units_per_sale_unit or 1
    return PurchaseLine(
        presentation_id=presentation.id,
        product_id=presentation.product_id,
        qty_sale_units=qty,
        qty_base=base_quantity(qty, units),
        unit_cost=unit_cost,
        base_unit_cost=(unit_cost / Decimal(units)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP),
        line_subtotal=quantize_money(unit_cost * qty),
        reference_price=payload.get("reference_price"),
        expiry_date=payload.get("expiry_date"),
    )


def create_purchase(db: Session, *, payload: dict, user: Optional[User] = None) -> Purchase:
    """Register inbound goods. Totals are recomputed from the lines."""
    supplier = get_supplier(db, payload["supplier_id"])
    location = get_location(db, payload["location_id"])
    line_payloads = payload.get("lines") or []
    presentations = load_presentations(db, [line["sku_id"] for line in line_payloads])

    purchase = Purchase(
        supplier_id=supplier.id,
        location_id=location.id,
        purchase_date=payload.get("purchase_date") or date.today(),
        document_number=payload.get("document_number"),
        tax=quantize_money(payload.get("tax") or 0),
        extra_costs=quantize_money(payload.get("extra_costs") or 0),
        notes=payload.get("notes"),
    )
    for line_payload in line_payloads:
        purchase.lines.append(_build_purchase_line(presentations[line_payload["sku_id"]], line_payload))
    purchase.subtotal = purchase_subtotal(purchase)
    purchase.total = purchase_total(purchase)

    db.add(purchase)
    db.flush()
    reference = StockReference.purchase(purchase.id)
    for line in sorted(purchase.lines, key=lambda line: (line.product_id, line.id)):
        receive(
            db,
            line.product_id,
            location.id,
            line.qty_base,
            reference=reference,
            user_id=user.id if user else None,
        )
    db.flush()
    logger.info("Purchase %s received at location %s (total %s)", purchase.id, location.id, purchase.total)
    return purchase


def list_purchases(
    db: Session,
    *,
    supplier_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[Purchase]:
    query = db.query(Purchase).options(selectinload(Purchase.lines))
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if start_date:
        query = query.filter(Purchase.purchase_date >= start_date)
    if end_date:
        query = query.filter(Purchase.purchase_date <= end_date)
    return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()


def get_purchase(db: Session, purchase_id: int) -> Purchase:
    purchase = db.query(Purchase).options(selectinload(Purchase.lines)).filter(Purchase.id == purchase_id).first()
    if not purchase:
        raise NotFound("Purchase not found.", purchase_id=purchase_id)
    return purchase
