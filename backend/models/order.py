# backend/models/order.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("auth_users.id"), nullable=False, index=True)
    total_amount = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Manual bank transfer, confirmed by an admin looking at the screenshot
    payment_method = Column(String, nullable=False, default="bank_transfer")
    payment_status = Column(String, nullable=False, default="pending", index=True)
    order_status = Column(String, nullable=False, default="pending", index=True)
    transaction_screenshot_url = Column(String, nullable=True)

    # Shipping details
    shipping_address = Column(String, nullable=False)
    phone = Column(String, nullable=False)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    profile = relationship(
        "Profile",
        primaryjoin="foreign(Order.user_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )

# Line snapshot: name and price are copied, never read back from products
class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    subtotal = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
