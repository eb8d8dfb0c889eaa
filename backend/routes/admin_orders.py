# backend/routes/admin_orders.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session, joinedload, selectinload

from database import get_db
from models.order import Order
from schemas.order import AdminOrderResponse, OrderStatusPatch, PaymentStatusPatch
from services.session import Identity
from utils.audit import write_log, client_ip
from utils.dependencies import admin_required
from utils.pdf import generate_order_receipt_pdf, generate_orders_report_pdf

router = APIRouter(prefix="/admin/orders", tags=["Admin Orders"])


def _load_order(db: Session, order_id: int) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items), joinedload(Order.profile))
        .filter(Order.id == order_id)
        .first()
    )
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# All orders with customer profile and items, newest first
@router.get("", response_model=List[AdminOrderResponse])
def list_orders(db: Session = Depends(get_db), admin: Identity = Depends(admin_required)):
    return (
        db.query(Order)
        .options(selectinload(Order.items), joinedload(Order.profile))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


# Summary PDF of every order for printing
@router.get("/export")
def export_orders(request: Request, db: Session = Depends(get_db), admin: Identity = Depends(admin_required)):
    orders = (
        db.query(Order)
        .options(joinedload(Order.profile))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    generated_at = datetime.now()
    pdf = generate_orders_report_pdf(orders, generated_at)

    write_log(db, user_id=admin.user_id, action="ORDERS_EXPORT", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"count": len(orders)})
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="all-orders-{generated_at.strftime("%Y%m%d-%H%M%S")}.pdf"'
        },
    )


@router.patch("/{order_id}/status", response_model=AdminOrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    order = _load_order(db, order_id)
    old_status = order.order_status
    order.order_status = payload.status
    db.commit()

    write_log(db, user_id=admin.user_id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "old": old_status, "new": payload.status})
    return _load_order(db, order_id)


@router.patch("/{order_id}/payment-status", response_model=AdminOrderResponse)
def update_payment_status(
    order_id: int,
    payload: PaymentStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    order = _load_order(db, order_id)
    old_status = order.payment_status
    order.payment_status = payload.status
    db.commit()

    write_log(db, user_id=admin.user_id, action="PAYMENT_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "old": old_status, "new": payload.status})
    return _load_order(db, order_id)


# Printable receipt for one order
@router.get("/{order_id}/receipt")
def download_receipt(order_id: int, db: Session = Depends(get_db), admin: Identity = Depends(admin_required)):
    order = _load_order(db, order_id)
    pdf = generate_order_receipt_pdf(order)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="order-{order.id}.pdf"'},
    )
