# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from services.cart import CartService
from services.session import Identity
from utils.audit import write_log, client_ip
from utils.dependencies import get_cart_service, get_current_identity
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_to_out(cart: CartService) -> CartOut:
    items_out = [
        CartItemOut(
            id=line.id,
            product_id=line.product_id,
            name=line.name,
            quantity=line.quantity,
            price=line.price,
            image_url=line.image_url,
            stock_quantity=line.stock_quantity,
            line_total=line.line_total,
        )
        for line in cart.items
    ]
    return CartOut(items=items_out, **cart.summary())


@router.get("", response_model=CartOut)
def get_cart(
    identity: Identity = Depends(get_current_identity),
    cart: CartService = Depends(get_cart_service),
):
    return _cart_to_out(cart)


@router.post("/add", response_model=CartOut, status_code=status.HTTP_200_OK)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
):
    cart.add(payload.product_id, payload.quantity)

    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=cart.user_id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"product_id": payload.product_id, "quantity": payload.quantity, "cart_items": len(out.items)},
    )
    return out


@router.put("/items/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    cart: CartService = Depends(get_cart_service),
):
    cart.update_quantity(item_id, payload.quantity)

    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=identity.user_id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "quantity": payload.quantity, "subtotal": out.subtotal},
    )
    return out


@router.delete("/items/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    cart: CartService = Depends(get_cart_service),
):
    cart.remove(item_id)

    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=identity.user_id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "cart_items": len(out.items)},
    )
    return out


@router.delete("", response_model=CartOut)
def clear_cart(
    identity: Identity = Depends(get_current_identity),
    cart: CartService = Depends(get_cart_service),
):
    cart.clear()
    return _cart_to_out(cart)
