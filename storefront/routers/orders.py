from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth import get_current_user
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.models import User
from storefront.orders import schemas
from storefront.orders.service import cancel_order, create_order, get_order, list_orders


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[schemas.OrderResponse])
def get_orders(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return list_orders(db, user=current_user, status=status)


@router.get("/{order_id}", response_model=schemas.OrderResponse)
def get_order_detail(order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        return get_order(db, order_id, user=current_user)
    except StoreError as exc:
        raise exc.to_http_exception()


@router.post("", response_model=schemas.OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order_endpoint(
    payload: schemas.OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with transaction_scope(db):
            order = create_order(db, user=current_user, payload=payload.model_dump())
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_order(db, order.id, user=current_user)


@router.patch("/{order_id}/cancel", response_model=schemas.OrderResponse)
def cancel_order_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with transaction_scope(db):
            order = cancel_order(db, order_id, user=current_user)
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_order(db, order.id, user=current_user)
