from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth import get_current_user
from storefront.cart import schemas
from storefront.cart.service import (
    add_cart_item,
    cart_subtotal,
    clear_cart,
    confirm_cart,
    get_or_create_active_cart,
    remove_cart_item,
    update_cart_item,
)
from storefront.db import get_db, transaction_scope
from storefront.exceptions import StoreError
from storefront.models import Cart, User


router = APIRouter(prefix="/api/cart", tags=["cart"])


def _serialize_cart(cart: Cart) -> schemas.CartResponse:
    return schemas.CartResponse(
        id=cart.id,
        customer_id=cart.customer_id,
        status=cart.status,
        items=[schemas.CartItemResponse.model_validate(item) for item in cart.items],
        subtotal=cart_subtotal(cart),
    )


@router.get("", response_model=schemas.CartResponse)
def get_cart(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with transaction_scope(db):
        cart = get_or_create_active_cart(db, current_user.id)
    return _serialize_cart(cart)


@router.post("/items", response_model=schemas.CartResponse, status_code=status.HTTP_201_CREATED)
def add_item(
    payload: schemas.CartItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with transaction_scope(db):
            cart = add_cart_item(
                db,
                current_user.id,
                presentation_id=payload.sku_id,
                qty_sale_units=payload.qty,
                notes=payload.notes,
            )
    except StoreError as exc:
        raise exc.to_http_exception()
    return _serialize_cart(cart)


@router.patch("/items/{item_id}", response_model=schemas.CartResponse)
def update_item(
    item_id: int,
    payload: schemas.CartItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with transaction_scope(db):
            cart = update_cart_item(db, current_user.id, item_id, qty_sale_units=payload.qty)
    except StoreError as exc:
        raise exc.to_http_exception()
    return _serialize_cart(cart)


@router.delete("/items/{item_id}", response_model=schemas.CartResponse)
def delete_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        with transaction_scope(db):
            cart = remove_cart_item(db, current_user.id, item_id)
    except StoreError as exc:
        raise exc.to_http_exception()
    return _serialize_cart(cart)


@router.delete("/items", response_model=schemas.CartResponse)
def delete_all_items(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with transaction_scope(db):
        cart = clear_cart(db, current_user.id)
    return _serialize_cart(cart)


@router.post("/confirm", response_model=schemas.CartConfirmResponse, status_code=status.HTTP_201_CREATED)
def confirm(
    payload: schemas.CartConfirm,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with transaction_scope(db):
            order = confirm_cart(
                db,
                customer=current_user,
                location_id=payload.location_id,
                shipping_fee=payload.shipping_fee,
                discount=payload.discount,
                notes=payload.notes,
            )
            response = schemas.CartConfirmResponse(order_id=order.id, grand_total=order.grand_total)
    except StoreError as exc:
        raise exc.to_http_exception()
    return response
