from decimal import Decimal
import logging
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.exceptions import NotFound, ValidationError
from storefront.models import Location, Presentation, Product, Supplier, User


logger = logging.getLogger(__name__)

REQUIRED_PRODUCT_FIELDS = ("name", "min_stock", "is_active")
REQUIRED_PRESENTATION_FIELDS = ("name", "units_per_sale_unit", "is_active")


def get_location(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise NotFound("Location not found.", location_id=location_id)
    if not location.is_active:
        raise ValidationError("Location is inactive.", location_id=location_id)
    return location


def get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise NotFound("Supplier not found.", supplier_id=supplier_id)
    return supplier


def get_customer(db: Session, customer_id: int) -> User:
    customer = db.query(User).filter(User.id == customer_id).first()
    if not customer:
        raise NotFound("Customer not found.", customer_id=customer_id)
    return customer


def load_presentations(db: Session, presentation_ids: Iterable[int]) -> dict[int, Presentation]:
    """Fetch every requested presentation or fail on the first missing one."""
    wanted = sorted(set(presentation_ids))
    if not wanted:
        raise ValidationError("At least one line is required.")
    found = {p.id: p for p in db.query(Presentation).filter(Presentation.id.in_(wanted)).all()}
    for presentation_id in wanted:
        presentation = found.get(presentation_id)
        if presentation is None:
            raise NotFound(f"Presentation {presentation_id} not found.", presentation_id=presentation_id)
        if not presentation.is_active:
            raise ValidationError(f"Presentation {presentation_id} is inactive.", presentation_id=presentation_id)
    return found


def catalog_price(presentation: Presentation) -> Decimal | None:
    price = presentation.default_sale_price
    if price is None:
        price = presentation.min_price
    return price


def active_presentations(product: Product) -> list[Presentation]:
    return sorted((p for p in product.presentations if p.is_active), key=lambda p: p.id)


def price_range(presentations: Iterable[Presentation]) -> tuple[Decimal | None, Decimal | None]:
    prices = [price for price in (catalog_price(p) for p in presentations) if price is not None]
    if not prices:
        return None, None
    return min(prices), max(prices)


def list_catalog_products(
    db: Session,
    *,
    search: Optional[str] = None,
    brand: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Product]:
    """Active products that can be bought, i.e. with at least one active presentation."""
    query = db.query(Product).filter(
        Product.is_active.is_(True),
        Product.presentations.any(Presentation.is_active.is_(True)),
    )
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern), Product.brand.ilike(pattern))
        )
    if brand and brand.strip():
        query = query.filter(Product.brand.ilike(f"%{brand.strip()}%"))
    return query.order_by(Product.name.asc(), Product.id.asc()).offset(offset).limit(limit).all()


def get_catalog_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product or not product.is_active or not active_presentations(product):
        raise NotFound("Product not found.", product_id=product_id)
    return product


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found.", product_id=product_id)
    return product


def get_presentation(db: Session, presentation_id: int) -> Presentation:
    presentation = db.query(Presentation).filter(Presentation.id == presentation_id).first()
    if not presentation:
        raise NotFound(f"Presentation {presentation_id} not found.", presentation_id=presentation_id)
    return presentation


def _reject_nulls(changes: dict, fields: Iterable[str]) -> None:
    for field in fields:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null.", field=field)


def _check_prices(default_sale_price, min_price) -> None:
    if default_sale_price is not None and min_price is not None and min_price > default_sale_price:
        raise ValidationError(
            "Minimum price cannot be higher than the default sale price.",
            default_sale_price=str(default_sale_price),
            min_price=str(min_price),
        )


def create_product(db: Session, *, payload: dict) -> Product:
    product = Product(**payload)
    db.add(product)
    db.flush()
    logger.info("Product %s created: %s", product.id, product.name)
    return product


def update_product(db: Session, product_id: int, *, changes: dict) -> Product:
    product = get_product(db, product_id)
    _reject_nulls(changes, REQUIRED_PRODUCT_FIELDS)
    for key, value in changes.items():
        setattr(product, key, value)
    db.flush()
    return product


def create_presentation(db: Session, product_id: int, *, payload: dict) -> Presentation:
    product = get_product(db, product_id)
    _check_prices(payload.get("default_sale_price"), payload.get("min_price"))
    presentation = Presentation(product_id=product.id, **payload)
    db.add(presentation)
    db.flush()
    logger.info("Presentation %s created for product %s", presentation.id, product.id)
    return presentation


def update_presentation(db: Session, presentation_id: int, *, changes: dict) -> Presentation:
    """Edit a presentation.

    Changing ``units_per_sale_unit`` only affects new documents; existing
    lines keep the conversion they were created with.
    """
    presentation = get_presentation(db, presentation_id)
    _reject_nulls(changes, REQUIRED_PRESENTATION_FIELDS)
    for key, value in changes.items():
        setattr(presentation, key, value)
    _check_prices(presentation.default_sale_price, presentation.min_price)
    db.flush()
    return presentation
