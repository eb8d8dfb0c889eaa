from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from models.banner import Banner
from models.product import Category, Offer, Product
from schemas.banner import BannerOut
from schemas.product import CategoryOut, ProductOut, ProductShopOut, ProductDetailOut
from services.pricing import discounted_price

router = APIRouter(
    prefix="/shop",
    tags=["Shop"]
)

FEATURED_LIMIT = 8
HOME_BANNER_LIMIT = 3


# First active offer per product (first match wins)
def _active_discounts(db: Session, product_ids: List[int]) -> Dict[int, float]:
    if not product_ids:
        return {}
    offers = (
        db.query(Offer)
        .filter(Offer.product_id.in_(product_ids), Offer.is_active.is_(True))
        .order_by(Offer.id.asc())
        .all()
    )
    discounts: Dict[int, float] = {}
    for offer in offers:
        discounts.setdefault(offer.product_id, offer.discount_percentage)
    return discounts


def _shop_item(product: Product, discount: Optional[float], schema=ProductShopOut, **extra):
    fields = list(ProductOut.model_fields.keys())
    data = {f: getattr(product, f) for f in fields if hasattr(product, f)}
    data.update(
        discount_percentage=discount,
        discounted_price=discounted_price(product.price, discount),
        **extra,
    )
    return schema.model_validate(data)


# Retrieve product categories in display order
@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return db.query(Category).order_by(Category.display_order.asc(), Category.id.asc()).all()


@router.get("/products", response_model=List[ProductShopOut])
def list_products_for_shop(
    search: Optional[str] = Query(None, description="Search by product name"),
    category: Optional[int] = Query(None, description="Filter by category id"),
    db: Session = Depends(get_db),
):
    query = db.query(Product)

    if category is not None:
        query = query.filter(Product.category_id == category)
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))

    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    discounts = _active_discounts(db, [p.id for p in products])
    return [_shop_item(p, discounts.get(p.id)) for p in products]


@router.get("/featured", response_model=List[ProductShopOut])
def list_featured_products(db: Session = Depends(get_db)):
    products = (
        db.query(Product)
        .filter(Product.is_featured.is_(True))
        .order_by(Product.id.asc())
        .limit(FEATURED_LIMIT)
        .all()
    )
    discounts = _active_discounts(db, [p.id for p in products])
    return [_shop_item(p, discounts.get(p.id)) for p in products]


@router.get("/products/{product_id}", response_model=ProductDetailOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    discount = _active_discounts(db, [product.id]).get(product.id)
    category_name = product.category.name if product.category else None
    return _shop_item(product, discount, schema=ProductDetailOut, category_name=category_name)


# Active banners for the home page carousel
@router.get("/banners", response_model=List[BannerOut])
def list_active_banners(db: Session = Depends(get_db)):
    return (
        db.query(Banner)
        .filter(Banner.is_active.is_(True))
        .order_by(Banner.display_order.asc(), Banner.id.asc())
        .limit(HOME_BANNER_LIMIT)
        .all()
    )
