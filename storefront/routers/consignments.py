from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth import require_staff
from storefront.consignments import schemas
from storefront.consignments.service import (
    close_consignment,
    create_consignment,
    get_consignment,
    list_consignments,
)
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.models import User


router = APIRouter(prefix="/api/consignments", tags=["consignments"], dependencies=[Depends(require_staff)])


@router.get("", response_model=List[schemas.ConsignmentResponse])
def get_consignments(
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return list_consignments(
        db,
        status=status,
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{consignment_id}", response_model=schemas.ConsignmentResponse)
def get_consignment_detail(consignment_id: int, db: Session = Depends(get_db)):
    try:
        return get_consignment(db, consignment_id)
    except StoreError as exc:
        raise exc.to_http_exception()


@router.post("", response_model=schemas.ConsignmentResponse, status_code=status.HTTP_201_CREATED)
def create_consignment_endpoint(
    payload: schemas.ConsignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    try:
        with transaction_scope(db):
            consignment = create_consignment(db, payload=payload.model_dump(), user=current_user)
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_consignment(db, consignment.id)


@router.patch("/{consignment_id}/close", response_model=schemas.ConsignmentResponse)
def close_consignment_endpoint(
    consignment_id: int,
    payload: Optional[schemas.ConsignmentClose] = None,
    db: Session = Depends(get_db),
):
    try:
        with transaction_scope(db):
            consignment = close_consignment(db, consignment_id, notes=payload.notes if payload else None)
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_consignment(db, consignment.id)
