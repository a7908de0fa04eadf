from datetime import datetime
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


MOVEMENT_TYPES = ("PURCHASE", "SALE", "ADJUSTMENT", "CONSIGNMENT_OUT", "CONSIGNMENT_RETURN", "OTHER")
REFERENCE_TYPES = ("ORDER", "SALE", "PURCHASE", "CONSIGNMENT", "ADJUSTMENT")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    email = Column(String(150), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        Enum("ADMIN", "SELLER", "CUSTOMER", name="user_role"),
        nullable=False,
        default="CUSTOMER",
    )
    is_active = Column(Boolean, default=True, nullable=False)
    phone = Column(String(30), nullable=True)
    nit = Column(String(30), nullable=False, default="CF")
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def is_staff(self) -> bool:
        return self.role in {"ADMIN", "SELLER"}


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    kind = Column(
        Enum("WAREHOUSE", "STORE", "OTHER", name="location_kind"),
        nullable=False,
        default="WAREHOUSE",
    )
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    brand = Column(String(100), nullable=True)
    min_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    presentations = relationship("Presentation", back_populates="product")


class Presentation(Base):
    """A sellable packaging of a product (SKU) with its base-unit conversion."""

    __tablename__ = "presentations"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    name = Column(String(150), nullable=False)
    barcode = Column(String(100), nullable=True)
    units_per_sale_unit = Column(Integer, nullable=False, default=1)
    default_sale_price = Column(Numeric(14, 2), nullable=True)
    min_price = Column(Numeric(14, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    product = relationship("Product", back_populates="presentations")

    __table_args__ = (
        CheckConstraint("units_per_sale_unit >= 1", name="ck_presentation_units_positive"),
    )


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    nit = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class InventoryBalance(Base):
    __tablename__ = "inventory_balances"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    available = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = relationship("Product")
    location = relationship("Location")

    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_inventory_balance_product_location"),
        CheckConstraint("available >= 0", name="ck_inventory_balance_available_nonnegative"),
        CheckConstraint("reserved >= 0", name="ck_inventory_balance_reserved_nonnegative"),
    )

    @property
    def free(self) -> int:
        return int(self.available or 0) - int(self.reserved or 0)


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    movement_type = Column(Enum(*MOVEMENT_TYPES, name="inventory_movement_type"), nullable=False)
    quantity = Column(Integer, nullable=False)
    reference_type = Column(Enum(*REFERENCE_TYPES, name="inventory_reference_type"), nullable=True)
    reference_id = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_inventory_movements_product_location_created", "product_id", "location_id", "created_at"),
    )


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(
        Enum("ACTIVE", "CONVERTED", "CANCELLED", name="cart_status"),
        nullable=False,
        default="ACTIVE",
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer = relationship("User")
    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id")


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False)
    presentation_id = Column(Integer, ForeignKey("presentations.id"), nullable=False)
    qty_sale_units = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    line_subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    cart = relationship("Cart", back_populates="items")
    presentation = relationship("Presentation")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    source = Column(
        Enum("ONLINE", "ADMIN", "CART", "OTHER", name="order_source"),
        nullable=False,
        default="ONLINE",
    )
    status = Column(
        Enum("PENDING", "CANCELLED", "COMPLETED", name="order_status"),
        nullable=False,
        default="PENDING",
    )
    order_date = Column(Date, nullable=False)
    delivery_type = Column(
        Enum("PICKUP", "HOME_DELIVERY", name="order_delivery_type"),
        nullable=False,
        default="PICKUP",
    )
    delivery_address = Column(Text, nullable=True)
    invoice_required = Column(Boolean, nullable=False, default=False)
    invoice_nit = Column(String(30), nullable=False, default="CF")
    invoice_name = Column(String(150), nullable=True)
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)
    grand_total = Column(Numeric(14, 2), nullable=False, default=0)
    customer_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer = relationship("User")
    location = relationship("Location")
    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.id")
    sale = relationship("Sale", back_populates="order", uselist=False)


class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    presentation_id = Column(Integer, ForeignKey("presentations.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    qty_sale_units = Column(Integer, nullable=False)
    units_per_sale_unit = Column(Integer, nullable=False, default=1)
    qty_base = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    price_origin = Column(
        Enum("SYSTEM", "MANUAL", "CART", name="order_line_price_origin"),
        nullable=False,
        default="SYSTEM",
    )
    line_subtotal = Column(Numeric(14, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="lines")
    presentation = relationship("Presentation")


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, unique=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    customer_name = Column(String(150), nullable=True)
    sale_date = Column(Date, nullable=False)
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax = Column(Numeric(14, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)
    grand_total = Column(Numeric(14, 2), nullable=False, default=0)
    payment_terms = Column(String(50), nullable=False, default="CASH")
    payment_status = Column(
        Enum("PAID", "PENDING", name="sale_payment_status"),
        nullable=False,
        default="PAID",
    )
    status = Column(
        Enum("REGISTERED", "VOID", name="sale_status"),
        nullable=False,
        default="REGISTERED",
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="sale")
    customer = relationship("User")
    location = relationship("Location")
    lines = relationship("SaleLine", back_populates="sale", cascade="all, delete-orphan", order_by="SaleLine.id")


class SaleLine(Base):
    __tablename__ = "sale_lines"

    id = Column(Integer, primary_key=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False)
    presentation_id = Column(Integer, ForeignKey("presentations.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    qty_sale_units = Column(Integer, nullable=False)
    qty_base = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    base_unit_price = Column(Numeric(14, 4), nullable=False)
    is_manual_price = Column(Boolean, nullable=False, default=False)
    line_subtotal = Column(Numeric(14, 2), nullable=False, default=0)

    sale = relationship("Sale", back_populates="lines")
    presentation = relationship("Presentation")


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    purchase_date = Column(Date, nullable=False)
    document_number = Column(String(100), nullable=True)
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax = Column(Numeric(14, 2), nullable=False, default=0)
    extra_costs = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    supplier = relationship("Supplier")
    location = relationship("Location")
    lines = relationship("PurchaseLine", back_populates="purchase", cascade="all, delete-orphan", order_by="PurchaseLine.id")


class PurchaseLine(Base):
    __tablename__ = "purchase_lines"

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=False)
    presentation_id = Column(Integer, ForeignKey("presentations.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    qty_sale_units = Column(Integer, nullable=False)
    qty_base = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(14, 2), nullable=False)
    base_unit_cost = Column(Numeric(14, 4), nullable=False)
    line_subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    reference_price = Column(Numeric(14, 2), nullable=True)
    expiry_date = Column(Date, nullable=True)

    purchase = relationship("Purchase", back_populates="lines")
    presentation = relationship("Presentation")


class Consignment(Base):
    __tablename__ = "consignments"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    ship_date = Column(Date, nullable=False)
    status = Column(
        Enum("OPEN", "CLOSED", "CANCELLED", name="consignment_status"),
        nullable=False,
        default="OPEN",
    )
    estimated_subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer = relationship("User")
    location = relationship("Location")
    lines = relationship("ConsignmentLine", back_populates="consignment", cascade="all, delete-orphan", order_by="ConsignmentLine.id")


class ConsignmentLine(Base):
    __tablename__ = "consignment_lines"

    id = Column(Integer, primary_key=True)
    consignment_id = Column(Integer, ForeignKey("consignments.id"), nullable=False)
    presentation_id = Column(Integer, ForeignKey("presentations.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    qty_sale_units = Column(Integer, nullable=False)
    qty_base = Column(Integer, nullable=False)
    estimated_unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    estimated_subtotal = Column(Numeric(14, 2), nullable=False, default=0)

    consignment = relationship("Consignment", back_populates="lines")
    presentation = relationship("Presentation")
