from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.auth import require_admin, require_staff
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.inventory import schemas
from storefront.inventory.service import (
    MovementType,
    apply_manual_adjustment,
    list_balances,
    list_movements,
    reconcile_balance,
)
from storefront.models import User


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/balances", response_model=List[schemas.BalanceResponse], dependencies=[Depends(require_staff)])
def get_balances(
    product_id: Optional[int] = None,
    location_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return list_balances(db, product_id=product_id, location_id=location_id)


@router.get("/movements", response_model=List[schemas.MovementResponse], dependencies=[Depends(require_staff)])
def get_movements(
    product_id: Optional[int] = None,
    location_id: Optional[int] = None,
    movement_type: Optional[MovementType] = None,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return list_movements(
        db,
        product_id=product_id,
        location_id=location_id,
        movement_type=movement_type.value if movement_type else None,
        limit=limit,
    )


@router.get("/reconcile", response_model=schemas.ReconciliationResponse, dependencies=[Depends(require_staff)])
def get_reconciliation(product_id: int, location_id: int, db: Session = Depends(get_db)):
    return reconcile_balance(db, product_id, location_id)


@router.post("/adjustments", response_model=schemas.AdjustmentResponse, status_code=status.HTTP_201_CREATED)
def create_adjustment(
    payload: schemas.AdjustmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    try:
        with transaction_scope(db):
            balance, movement = apply_manual_adjustment(
                db,
                product_id=payload.product_id,
                location_id=payload.location_id,
                delta=payload.delta_qty,
                reason=payload.reason,
                user_id=current_user.id,
            )
    except StoreError as exc:
        raise exc.to_http_exception()
    db.refresh(balance)
    db.refresh(movement)
    return {
        "balance": schemas.BalanceResponse.model_validate(balance),
        "movement": schemas.MovementResponse.model_validate(movement),
    }
