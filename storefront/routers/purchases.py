from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth import require_staff
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.models import User
from storefront.purchasing import schemas
from storefront.purchasing.service import create_purchase, get_purchase, list_purchases


router = APIRouter(prefix="/api/purchases", tags=["purchases"], dependencies=[Depends(require_staff)])


@router.get("", response_model=List[schemas.PurchaseResponse])
def get_purchases(
    supplier_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return list_purchases(db, supplier_id=supplier_id, start_date=start_date, end_date=end_date)


@router.get("/{purchase_id}", response_model=schemas.PurchaseResponse)
def get_purchase_detail(purchase_id: int, db: Session = Depends(get_db)):
    try:
        return get_purchase(db, purchase_id)
    except StoreError as exc:
        raise exc.to_http_exception()


@router.post("", response_model=schemas.PurchaseResponse, status_code=status.HTTP_201_CREATED)
def create_purchase_endpoint(
    payload: schemas.PurchaseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    try:
        with transaction_scope(db):
            purchase = create_purchase(db, payload=payload.model_dump(), user=current_user)
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_purchase(db, purchase.id)
