import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from .auth import hash_password
from .db import SessionLocal, transaction_scope
from .logging_config import configure_logging
from .models import Location, Presentation, Product, Purchase, Supplier, User
from .purchasing.service import create_purchase

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("Store Admin", "admin@storefront.local", "ADMIN"),
    ("Counter Seller", "seller@storefront.local", "SELLER"),
    ("Demo Customer", "customer@storefront.local", "CUSTOMER"),
]


def _get_or_create_user(db: Session, name: str, email: str, role: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        if not user.is_active:
            user.is_active = True
        user.role = role
        return user

    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(DEMO_PASSWORD),
        role=role,
        is_active=True,
        nit="CF",
    )
    db.add(user)
    db.flush()
    return user


def _get_or_create_location(db: Session) -> Location:
    location = db.query(Location).filter(Location.name == "Main Warehouse").first()
    if location:
        return location
    location = Location(name="Main Warehouse", kind="WAREHOUSE", is_active=True)
    db.add(location)
    db.flush()
    return location


def _get_or_create_product(db: Session) -> tuple[Product, list[Presentation]]:
    product = db.query(Product).filter(Product.name == "Sparkling Water 355ml").first()
    if product:
        return product, list(product.presentations)

    product = Product(name="Sparkling Water 355ml", brand="Demo", min_stock=24, is_active=True)
    db.add(product)
    db.flush()
    presentations = [
        Presentation(
            product_id=product.id,
            name="Single can",
            units_per_sale_unit=1,
            default_sale_price=Decimal("5.00"),
            min_price=Decimal("4.50"),
        ),
        Presentation(
            product_id=product.id,
            name="Case of 24",
            units_per_sale_unit=24,
            default_sale_price=Decimal("100.00"),
            min_price=Decimal("95.00"),
        ),
    ]
    db.add_all(presentations)
    db.flush()
    return product, presentations


def _get_or_create_supplier(db: Session) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.name == "Demo Beverages").first()
    if supplier:
        return supplier
    supplier = Supplier(name="Demo Beverages", nit="CF", is_active=True)
    db.add(supplier)
    db.flush()
    return supplier


def seed_demo(db: Session) -> None:
    """Create demo data. Safe to run repeatedly."""
    admin = None
    for name, email, role in DEMO_USERS:
        user = _get_or_create_user(db, name, email, role)
        if role == "ADMIN":
            admin = user
    location = _get_or_create_location(db)
    _, presentations = _get_or_create_product(db)
    supplier = _get_or_create_supplier(db)

    if db.query(Purchase.id).filter(Purchase.document_number == "OPENING-STOCK").first():
        return
    case = next(p for p in presentations if p.units_per_sale_unit == 24)
    create_purchase(
        db,
        payload={
            "supplier_id": supplier.id,
            "location_id": location.id,
            "purchase_date": date.today(),
            "document_number": "OPENING-STOCK",
            "notes": "Opening stock",
            "lines": [{"sku_id": case.id, "qty": 10, "unit_cost": Decimal("60.00")}],
        },
        user=admin,
    )
    logger.info("Seeded opening stock at location %s", location.id)


def run_seed():
    configure_logging()
    db: Session = SessionLocal()
    try:
        with transaction_scope(db):
            seed_demo(db)
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
