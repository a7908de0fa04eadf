from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth import require_staff
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.models import User
from storefront.sales import schemas
from storefront.sales.service import create_direct_sale, create_sale_from_order, get_sale, list_sales


router = APIRouter(prefix="/api/sales", tags=["sales"], dependencies=[Depends(require_staff)])


@router.get("", response_model=List[schemas.SaleResponse])
def get_sales(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    location_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return list_sales(db, start_date=start_date, end_date=end_date, location_id=location_id)


@router.get("/{sale_id}", response_model=schemas.SaleResponse)
def get_sale_detail(sale_id: int, db: Session = Depends(get_db)):
    try:
        return get_sale(db, sale_id)
    except StoreError as exc:
        raise exc.to_http_exception()


@router.post("", response_model=schemas.SaleResponse, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: schemas.SaleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    try:
        with transaction_scope(db):
            if payload.order_id is not None:
                sale = create_sale_from_order(
                    db,
                    payload.order_id,
                    payment_terms=payload.payment_terms,
                    shipping_fee=payload.shipping_fee,
                    discount=payload.discount,
                    tax=payload.tax,
                    notes=payload.notes,
                    user=current_user,
                )
            else:
                sale = create_direct_sale(db, payload=payload.model_dump(), user=current_user)
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_sale(db, sale.id)
