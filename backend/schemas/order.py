from pydantic import BaseModel, ConfigDict
from typing import List, Literal, Optional
from datetime import datetime

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "confirmed", "failed")


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[int] = None
    product_name: str
    quantity: int
    unit_price: float
    subtotal: float


# Output schema representing the full order details
class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    total_amount: float
    payment_method: str
    payment_status: str
    order_status: str
    shipping_address: str
    phone: str
    transaction_screenshot_url: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]


class OrderCustomer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    full_name: str
    email: str


# Admin view adds the customer's profile (None once the profile is deleted)
class AdminOrderResponse(OrderResponse):
    user_id: str
    profile: Optional[OrderCustomer] = None


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]


class PaymentStatusPatch(BaseModel):
    status: Literal["pending", "confirmed", "failed"]
