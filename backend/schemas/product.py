# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CategoryOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: int = 0


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: int = 0


# Shared base attributes for product entities
class ProductBase(ORMBase):
    name: str
    description: Optional[str] = None
    price: float = Field(ge=0)
    stock_quantity: int = Field(ge=0)
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    is_featured: bool = False


# Full product representation including ID
class ProductOut(ProductBase):
    id: int
    created_at: Optional[datetime] = None


# Storefront view: live price plus the active offer, if any
class ProductShopOut(ProductOut):
    discount_percentage: Optional[float] = None
    discounted_price: float


class ProductDetailOut(ProductShopOut):
    category_name: Optional[str] = None


class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int


class OfferUpdate(BaseModel):
    # None clears the active offer
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)


class OfferOut(ORMBase):
    id: int
    product_id: int
    discount_percentage: float
    is_active: bool
