from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.models import InventoryBalance, Location, Presentation, Product, Supplier, User

ADMIN_ID = 1
SELLER_ID = 2
CUSTOMER_ID = 3
OTHER_CUSTOMER_ID = 4

MAIN_LOCATION_ID = 1
STORE_LOCATION_ID = 2

WATER_ID = 1
SODA_ID = 2

WATER_CAN = 1
WATER_CASE = 2
SODA_BOTTLE = 3
UNPRICED_SODA = 4

USERS = {
    ADMIN_ID: ("Test Admin", "admin@storefront.test", "ADMIN", None),
    SELLER_ID: ("Test Seller", "seller@storefront.test", "SELLER", None),
    CUSTOMER_ID: ("Ana Customer", "ana@storefront.test", "CUSTOMER", "4a Avenida 10-20, Zona 1"),
    OTHER_CUSTOMER_ID: ("Luis Customer", "luis@storefront.test", "CUSTOMER", None),
}


def make_user(user_id: int, role: str) -> User:
    name, email, _, address = USERS.get(user_id, (f"User {user_id}", f"user{user_id}@storefront.test", role, None))
    return User(
        id=user_id,
        name=name,
        email=email,
        hashed_password="x",
        role=role,
        is_active=True,
        nit="1234567-8" if role == "CUSTOMER" else "CF",
        address=address,
    )


def seed_catalog(db: Session) -> None:
    for user_id, (_, _, role, _) in USERS.items():
        db.add(make_user(user_id, role))
    db.add_all(
        [
            Location(id=MAIN_LOCATION_ID, name="Main Warehouse", kind="WAREHOUSE", is_active=True),
            Location(id=STORE_LOCATION_ID, name="Downtown Store", kind="STORE", is_active=True),
            Supplier(id=1, name="Acme Beverages", is_active=True),
            Product(id=WATER_ID, name="Water 600ml", is_active=True),
            Product(id=SODA_ID, name="Soda 355ml", is_active=True),
        ]
    )
    db.flush()
    db.add_all(
        [
            Presentation(
                id=WATER_CAN,
                product_id=WATER_ID,
                name="Single",
                units_per_sale_unit=1,
                default_sale_price=Decimal("5.00"),
                is_active=True,
            ),
            Presentation(
                id=WATER_CASE,
                product_id=WATER_ID,
                name="Case of 24",
                units_per_sale_unit=24,
                default_sale_price=Decimal("100.00"),
                is_active=True,
            ),
            Presentation(
                id=SODA_BOTTLE,
                product_id=SODA_ID,
                name="Bottle",
                units_per_sale_unit=1,
                default_sale_price=Decimal("8.00"),
                is_active=True,
            ),
            Presentation(
                id=UNPRICED_SODA,
                product_id=SODA_ID,
                name="Promo bottle",
                units_per_sale_unit=1,
                default_sale_price=None,
                is_active=True,
            ),
        ]
    )
    db.flush()


def set_balance(db: Session, product_id: int, *, available: int, reserved: int = 0, location_id: int = MAIN_LOCATION_ID):
    balance = (
        db.query(InventoryBalance)
        .filter(InventoryBalance.product_id == product_id, InventoryBalance.location_id == location_id)
        .first()
    )
    if balance is None:
        balance = InventoryBalance(product_id=product_id, location_id=location_id)
        db.add(balance)
    balance.available = available
    balance.reserved = reserved
    db.flush()
    return balance


def get_balance(db: Session, product_id: int, location_id: int = MAIN_LOCATION_ID) -> tuple[int, int] | None:
    balance = (
        db.query(InventoryBalance)
        .filter(InventoryBalance.product_id == product_id, InventoryBalance.location_id == location_id)
        .first()
    )
    if balance is None:
        return None
    return balance.available, balance.reserved
