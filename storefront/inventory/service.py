"""
Stock ledger primitives.

Every primitive runs inside the caller's transaction and locks the balance row
it mutates (``SELECT ... FOR UPDATE``). Multi-product callers lock in
ascending product id order, which is the single lock order used across the
application.

Balances hold two buckets per (product, location):

- ``available``: physical stock on hand. Only movements change it, so the sum
  of the movement log always equals it.
- ``reserved``: the part of ``available`` earmarked by pending orders.
  Reserving and releasing touch this bucket alone.

Free stock, the ceiling for anything competing with pending reservations, is
``available - reserved``.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.exceptions import (
    InsufficientStock,
    NotFound,
    PhysicalStockShortfall,
    ReservationShortfall,
    ValidationError,
)
from storefront.models import InventoryBalance, InventoryMovement, Location, Product


logger = logging.getLogger(__name__)


class MovementType(str, Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    CONSIGNMENT_OUT = "CONSIGNMENT_OUT"
    CONSIGNMENT_RETURN = "CONSIGNMENT_RETURN"
    OTHER = "OTHER"


class ReferenceType(str, Enum):
    ORDER = "ORDER"
    SALE = "SALE"
    PURCHASE = "PURCHASE"
    CONSIGNMENT = "CONSIGNMENT"
    ADJUSTMENT = "ADJUSTMENT"


@dataclass(frozen=True)
class StockReference:
    """What caused a movement. Build through the named constructors."""

    reference_type: ReferenceType
    reference_id: Optional[int] = None

    @classmethod
    def order(cls, order_id: int) -> "StockReference":
        return cls(ReferenceType.ORDER, order_id)

    @classmethod
    def sale(cls, sale_id: int) -> "StockReference":
        return cls(ReferenceType.SALE, sale_id)

    @classmethod
    def purchase(cls, purchase_id: int) -> "StockReference":
        return cls(ReferenceType.PURCHASE, purchase_id)

    @classmethod
    def consignment(cls, consignment_id: int) -> "StockReference":
        return cls(ReferenceType.CONSIGNMENT, consignment_id)

    @classmethod
    def adjustment(cls) -> "StockReference":
        return cls(ReferenceType.ADJUSTMENT, None)


@dataclass(frozen=True)
class BalanceReconciliation:
    product_id: int
    location_id: int
    available: int
    reserved: int
    movement_total: int

    @property
    def difference(self) -> int:
        return self.available - self.movement_total

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


def base_quantity(qty_sale_units: int, units_per_sale_unit: int | None) -> int:
    return int(qty_sale_units) * int(units_per_sale_unit or 1)


def aggregate_requirements(lines: Iterable[tuple[int, int]]) -> dict[int, int]:
    """Fold (product_id, base_qty) pairs into one total per product.

    The result is ordered by ascending product id, the lock order.
    """
    totals: dict[int, int] = {}
    for product_id, qty in lines:
        totals[product_id] = totals.get(product_id, 0) + int(qty)
    return {product_id: totals[product_id] for product_id in sorted(totals)}


def _require_positive(qty: int, *, product_id: int) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValidationError(f"Quantity for product {product_id} must be a positive whole number of base units.")
    return qty


def lock_balance(db: Session, product_id: int, location_id: int) -> InventoryBalance | None:
    # populate_existing() overwrites the identity map; pending changes must hit the row first.
    db.flush()
    return (
        db.query(InventoryBalance)
        .filter(InventoryBalance.product_id == product_id, InventoryBalance.location_id == location_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def get_or_create_balance(db: Session, product_id: int, location_id: int) -> InventoryBalance:
    balance = lock_balance(db, product_id, location_id)
    if balance is not None:
        return balance

    balance = InventoryBalance(product_id=product_id, location_id=location_id, available=0, reserved=0)
    try:
        with db.begin_nested():
            db.add(balance)
    except IntegrityError:
        # Another transaction created the row first; take its lock instead.
        balance = lock_balance(db, product_id, location_id)
        if balance is None:
            raise
    logger.debug("Created balance row product_id=%s location_id=%s", product_id, location_id)
    return balance


def lock_balances(db: Session, location_id: int, product_ids: Iterable[int]) -> dict[int, InventoryBalance]:
    return {product_id: get_or_create_balance(db, product_id, location_id) for product_id in sorted(set(product_ids))}


def ensure_free_stock(balance: InventoryBalance, qty: int) -> None:
    if balance.free < qty:
        raise InsufficientStock(
            product_id=balance.product_id,
            location_id=balance.location_id,
            requested=qty,
            available=max(balance.free, 0),
        )


def ensure_reserved_stock(balance: InventoryBalance, qty: int) -> None:
    if balance.reserved < qty:
        raise ReservationShortfall(
            product_id=balance.product_id,
            location_id=balance.location_id,
            requested=qty,
            available=balance.reserved,
        )
    if balance.available < qty:
        raise PhysicalStockShortfall(
            product_id=balance.product_id,
            location_id=balance.location_id,
            requested=qty,
            available=balance.available,
        )


def check_free_stock(db: Session, location_id: int, requirements: dict[int, int]) -> dict[int, InventoryBalance]:
    """Validate pass of a multi-product operation: lock every balance, mutate nothing."""
    balances = lock_balances(db, location_id, requirements)
    for product_id in sorted(requirements):
        ensure_free_stock(balances[product_id], requirements[product_id])
    return balances


def check_reserved_stock(db: Session, location_id: int, requirements: dict[int, int]) -> dict[int, InventoryBalance]:
    balances = lock_balances(db, location_id, requirements)
    for product_id in sorted(requirements):
        ensure_reserved_stock(balances[product_id], requirements[product_id])
    return balances


def record_movement(
    db: Session,
    *,
    product_id: int,
    location_id: int,
    movement_type: MovementType,
    quantity: int,
    reference: StockReference | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        product_id=product_id,
        location_id=location_id,
        movement_type=movement_type.value,
        quantity=quantity,
        reference_type=reference.reference_type.value if reference else None,
        reference_id=reference.reference_id if reference else None,
        notes=notes,
        created_by_user_id=user_id,
    )
    db.add(movement)
    return movement


def reserve(db: Session, product_id: int, location_id: int, qty: int) -> InventoryBalance:
    _require_positive(qty, product_id=product_id)
    balance = get_or_create_balance(db, product_id, location_id)
    ensure_free_stock(balance, qty)
    balance.reserved += qty
    logger.debug(
        "Reserved product_id=%s location_id=%s qty=%s -> available=%s reserved=%s",
        product_id,
        location_id,
        qty,
        balance.available,
        balance.reserved,
    )
    return balance


def release(db: Session, product_id: int, location_id: int, qty: int) -> InventoryBalance:
    _require_positive(qty, product_id=product_id)
    balance = get_or_create_balance(db, product_id, location_id)
    released = min(qty, balance.reserved)
    if released != qty:
        logger.warning(
            "Release clamped for product_id=%s location_id=%s: requested=%s reserved=%s",
            product_id,
            location_id,
            qty,
            balance.reserved,
        )
    balance.reserved -= released
    logger.debug(
        "Released product_id=%s location_id=%s qty=%s -> available=%s reserved=%s",
        product_id,
        location_id,
        released,
        balance.available,
        balance.reserved,
    )
    return balance


def consume(
    db: Session,
    product_id: int,
    location_id: int,
    qty: int,
    *,
    from_reservation: bool,
    reference: StockReference,
    notes: str | None = None,
    user_id: int | None = None,
) -> InventoryMovement:
    _require_positive(qty, product_id=product_id)
    balance = get_or_create_balance(db, product_id, location_id)
    if from_reservation:
        ensure_reserved_stock(balance, qty)
        balance.reserved -= qty
        balance.available -= qty
    else:
        ensure_free_stock(balance, qty)
        balance.available -= qty
    logger.debug(
        "Consumed product_id=%s location_id=%s qty=%s from_reservation=%s -> available=%s reserved=%s",
        product_id,
        location_id,
        qty,
        from_reservation,
        balance.available,
        balance.reserved,
    )
    return record_movement(
        db,
        product_id=product_id,
        location_id=location_id,
        movement_type=MovementType.SALE,
        quantity=-qty,
        reference=reference,
        notes=notes,
        user_id=user_id,
    )


def receive(
    db: Session,
    product_id: int,
    location_id: int,
    qty: int,
    *,
    reference: StockReference,
    notes: str | None = None,
    user_id: int | None = None,
) -> InventoryMovement:
    _require_positive(qty, product_id=product_id)
    balance = get_or_create_balance(db, product_id, location_id)
    balance.available += qty
    logger.debug(
        "Received product_id=%s location_id=%s qty=%s -> available=%s",
        product_id,
        location_id,
        qty,
        balance.available,
    )
    return record_movement(
        db,
        product_id=product_id,
        location_id=location_id,
        movement_type=MovementType.PURCHASE,
        quantity=qty,
        reference=reference,
        notes=notes,
        user_id=user_id,
    )


def dispatch_consignment(
    db: Session,
    product_id: int,
    location_id: int,
    qty: int,
    *,
    reference: StockReference,
    notes: str | None = None,
    user_id: int | None = None,
) -> InventoryMovement:
    _require_positive(qty, product_id=product_id)
    balance = get_or_create_balance(db, product_id, location_id)
    ensure_free_stock(balance, qty)
    # Unreachable while reserved >= 0 holds; kept as the last guard on available >= 0.
    if balance.available < qty:
        logger.warning(
            "Consignment dispatch clamped for product_id=%s location_id=%s: requested=%s available=%s",
            product_id,
            location_id,
            qty,
            balance.available,
        )
    balance.available = max(0, balance.available - qty)
    return record_movement(
        db,
        product_id=product_id,
        location_id=location_id,
        movement_type=MovementType.CONSIGNMENT_OUT,
        quantity=-qty,
        reference=reference,
        notes=notes,
        user_id=user_id,
    )


def adjust(
    db: Session,
    product_id: int,
    location_id: int,
    delta: int,
    *,
    reason: str | None = None,
    user_id: int | None = None,
) -> tuple[InventoryBalance, InventoryMovement]:
    """Apply a signed manual correction to ``available``.

    Reservations do not block an adjustment, so shrinkage can leave
    ``reserved`` above ``available``. The one check applied is that
    ``available`` never goes below zero: a delta larger than the stock on
    hand is rejected instead of being stored.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError("Adjustment quantity must be a non-zero whole number of base units.")
    balance = get_or_create_balance(db, product_id, location_id)
    if balance.available + delta < 0:
        raise ValidationError(
            f"Adjustment rejected: available stock for product {product_id} cannot go below zero "
            f"(available {balance.available}, delta {delta}). Adjustments skip the reservation check "
            f"but never the non-negative stock rule.",
            product_id=product_id,
            location_id=location_id,
            available=balance.available,
            delta=delta,
        )
    balance.available += delta
    movement = record_movement(
        db,
        product_id=product_id,
        location_id=location_id,
        movement_type=MovementType.ADJUSTMENT,
        quantity=delta,
        reference=StockReference.adjustment(),
        notes=reason,
        user_id=user_id,
    )
    logger.info(
        "Manual adjustment product_id=%s location_id=%s delta=%s -> available=%s",
        product_id,
        location_id,
        delta,
        balance.available,
    )
    return balance, movement


def apply_manual_adjustment(
    db: Session,
    *,
    product_id: int,
    location_id: int,
    delta: int,
    reason: str | None = None,
    user_id: int | None = None,
) -> tuple[InventoryBalance, InventoryMovement]:
    if not db.query(Product.id).filter(Product.id == product_id).scalar():
        raise NotFound("Product not found.", product_id=product_id)
    if not db.query(Location.id).filter(Location.id == location_id).scalar():
        raise NotFound("Location not found.", location_id=location_id)
    balance, movement = adjust(db, product_id, location_id, delta, reason=reason, user_id=user_id)
    db.flush()
    return balance, movement


def list_balances(
    db: Session,
    product_id: int | None = None,
    location_id: int | None = None,
) -> list[InventoryBalance]:
    query = db.query(InventoryBalance)
    if product_id is not None:
        query = query.filter(InventoryBalance.product_id == product_id)
    if location_id is not None:
        query = query.filter(InventoryBalance.location_id == location_id)
    return query.order_by(InventoryBalance.product_id.asc(), InventoryBalance.location_id.asc()).all()


def list_movements(
    db: Session,
    product_id: int | None = None,
    location_id: int | None = None,
    movement_type: str | None = None,
    limit: int = 200,
) -> list[InventoryMovement]:
    query = db.query(InventoryMovement)
    if product_id is not None:
        query = query.filter(InventoryMovement.product_id == product_id)
    if location_id is not None:
        query = query.filter(InventoryMovement.location_id == location_id)
    if movement_type is not None:
        query = query.filter(InventoryMovement.movement_type == movement_type)
    return query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc()).limit(limit).all()


def reconcile_balance(db: Session, product_id: int, location_id: int) -> BalanceReconciliation:
    movement_total = (
        db.query(func.coalesce(func.sum(InventoryMovement.quantity), 0))
        .filter(InventoryMovement.product_id == product_id, InventoryMovement.location_id == location_id)
        .scalar()
    )
    balance = (
        db.query(InventoryBalance)
        .filter(InventoryBalance.product_id == product_id, InventoryBalance.location_id == location_id)
        .first()
    )
    reconciliation = BalanceReconciliation(
        product_id=product_id,
        location_id=location_id,
        available=balance.available if balance else 0,
        reserved=balance.reserved if balance else 0,
        movement_total=int(movement_total or 0),
    )
    if not reconciliation.is_consistent:
        logger.debug(
            "Balance differs from movement log: product_id=%s location_id=%s available=%s movement_total=%s",
            product_id,
            location_id,
            reconciliation.available,
            reconciliation.movement_total,
        )
    return reconciliation
