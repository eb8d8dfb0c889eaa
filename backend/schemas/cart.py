from pydantic import BaseModel, Field
from typing import List, Optional

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)

# Request schema for updating cart item quantity; values below 1 remove the line
class CartUpdateItem(BaseModel):
    quantity: int

# Response schema for a single cart line item
class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    price: float
    image_url: Optional[str] = None
    stock_quantity: int
    line_total: float

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartItemOut]
    subtotal: float
    delivery_charge: float
    total: float
