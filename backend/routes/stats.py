# backend/routes/stats.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from pydantic import BaseModel

from database import get_db
from models.order import Order
from models.product import Product
from services.session import Identity
from utils.dependencies import admin_required

router = APIRouter(
    prefix="/admin/stats",
    tags=["Stats"]
)
logger = logging.getLogger(__name__)

# Threshold for low stock alert
LOW_STOCK_THRESHOLD = 10

# === Pydantic Response Schemas ===

class StatsSummary(BaseModel):
    total_products: int
    low_stock: int
    total_orders: int
    pending_orders: int
    revenue: float


def collect_stats(db: Session) -> StatsSummary:
    # Count all catalog products and those below the stock threshold
    total_products = db.query(func.count(Product.id)).scalar() or 0
    low_stock = db.query(func.count(Product.id)).filter(
        Product.stock_quantity < LOW_STOCK_THRESHOLD
    ).scalar() or 0

    total_orders = db.query(func.count(Order.id)).scalar() or 0
    pending_orders = db.query(func.count(Order.id)).filter(
        Order.order_status == "pending"
    ).scalar() or 0

    # Revenue only counts orders whose payment was confirmed
    revenue = db.query(func.sum(Order.total_amount)).filter(
        Order.payment_status == "confirmed"
    ).scalar() or 0.0

    return StatsSummary(
        total_products=total_products,
        low_stock=low_stock,
        total_orders=total_orders,
        pending_orders=pending_orders,
        revenue=round(float(revenue), 2),
    )


# === Endpoint: Dashboard Summary ===

@router.get("", response_model=StatsSummary)
def get_stats_summary(
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required)
):
    try:
        return collect_stats(db)
    except SQLAlchemyError:
        # The dashboard renders zeros rather than failing
        db.rollback()
        logger.exception("Failed to load dashboard stats")
        return StatsSummary(total_products=0, low_stock=0, total_orders=0, pending_orders=0, revenue=0.0)
