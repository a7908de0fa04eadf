from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.auth import require_staff
from storefront.catalog import schemas
from storefront.catalog.service import (
    active_presentations,
    create_presentation,
    create_product,
    get_catalog_product,
    get_presentation,
    get_product,
    list_catalog_products,
    price_range,
    update_presentation,
    update_product,
)
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.models import Product


router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def _catalog_view(product: Product) -> schemas.CatalogProductResponse:
    presentations = active_presentations(product)
    price_from, price_to = price_range(presentations)
    return schemas.CatalogProductResponse(
        id=product.id,
        name=product.name,
        description=product.description,
        brand=product.brand,
        price_from=price_from,
        price_to=price_to,
        presentations=[schemas.PresentationResponse.model_validate(p) for p in presentations],
    )


@router.get("/products", response_model=List[schemas.CatalogProductResponse])
def get_catalog(
    search: Optional[str] = None,
    brand: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    products = list_catalog_products(db, search=search, brand=brand, limit=limit, offset=offset)
    return [_catalog_view(product) for product in products]


@router.get("/products/{product_id}", response_model=schemas.CatalogProductResponse)
def get_catalog_detail(product_id: int, db: Session = Depends(get_db)):
    try:
        return _catalog_view(get_catalog_product(db, product_id))
    except StoreError as exc:
        raise exc.to_http_exception()


@router.post(
    "/products",
    response_model=schemas.ProductResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)],
)
def create_product_endpoint(payload: schemas.ProductCreate, db: Session = Depends(get_db)):
    with transaction_scope(db):
        product = create_product(db, payload=payload.model_dump())
    return get_product(db, product.id)


@router.patch(
    "/products/{product_id}",
    response_model=schemas.ProductResponse,
    dependencies=[Depends(require_staff)],
)
def update_product_endpoint(product_id: int, payload: schemas.ProductUpdate, db: Session = Depends(get_db)):
    try:
        with transaction_scope(db):
            update_product(db, product_id, changes=payload.model_dump(exclude_unset=True))
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_product(db, product_id)


@router.post(
    "/products/{product_id}/presentations",
    response_model=schemas.PresentationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)],
)
def create_presentation_endpoint(
    product_id: int,
    payload: schemas.PresentationCreate,
    db: Session = Depends(get_db),
):
    try:
        with transaction_scope(db):
            presentation = create_presentation(db, product_id, payload=payload.model_dump())
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_presentation(db, presentation.id)


@router.patch(
    "/presentations/{presentation_id}",
    response_model=schemas.PresentationResponse,
    dependencies=[Depends(require_staff)],
)
def update_presentation_endpoint(
    presentation_id: int,
    payload: schemas.PresentationUpdate,
    db: Session = Depends(get_db),
):
    try:
        with transaction_scope(db):
            update_presentation(db, presentation_id, changes=payload.model_dump(exclude_unset=True))
    except StoreError as exc:
        raise exc.to_http_exception()
    return get_presentation(db, presentation_id)
