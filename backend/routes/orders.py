# backend/routes/orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session, selectinload

from database import get_db
from models.order import Order
from schemas.order import OrderResponse
from services.cart import CartService
from services.checkout import CheckoutForm, CheckoutOrchestrator, UploadedFile
from services.errors import CheckoutError, CheckoutValidationError
from services.session import Identity
from utils.audit import write_log, client_ip
from utils.dependencies import get_cart_service, get_current_identity, get_storage
from utils.storage import ObjectStorage

router = APIRouter(prefix="/orders", tags=["Orders"])


def _read_upload(file: Optional[UploadFile]) -> Optional[UploadedFile]:
    if file is None or not file.filename:
        return None
    try:
        data = file.file.read()
    finally:
        file.file.close()
    return UploadedFile(filename=file.filename, content_type=file.content_type or "", data=data)


# Place an order from the current cart, paid by bank transfer
@router.post("/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def checkout(
    request: Request,
    phone: str = Form(""),
    address: str = Form(""),
    payment_screenshot: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    cart: CartService = Depends(get_cart_service),
    storage: ObjectStorage = Depends(get_storage),
):
    form = CheckoutForm(phone=phone, address=address, payment_screenshot=_read_upload(payment_screenshot))
    orchestrator = CheckoutOrchestrator(db, cart, storage)
    user_id = cart.user_id

    try:
        order = orchestrator.place_order(form)
    except (CheckoutError, CheckoutValidationError) as e:
        write_log(db, user_id=user_id, action="ORDER_CREATE", resource="orders", status="FAIL",
                  ip=client_ip(request), meta={"reason": e.message, **getattr(e, "errors", {})})
        raise

    write_log(db, user_id=user_id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "total": order.total_amount,
                                           "items": len(order.items)})
    return order


# List the current user's orders, newest first
@router.get("", response_model=List[OrderResponse])
def list_my_orders(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == identity.user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
