# backend/routes/products.py
import logging
import uuid
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File, Form, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from models.product import Category, Offer, Product
from services.errors import MutationError, StorageError
from services.session import Identity
from utils.audit import write_log, client_ip
from utils.dependencies import admin_required, get_storage
from utils.storage import ALLOWED_IMAGE_TYPES, PRODUCT_IMAGES_BUCKET, ObjectStorage, image_extension
from config import settings
import schemas.product as product_schemas

router = APIRouter(prefix="/admin", tags=["Admin Products"])
logger = logging.getLogger(__name__)


# ---- HELPERS ----
def _get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

def _check_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None and not db.query(Category).filter(Category.id == category_id).first():
        raise HTTPException(status_code=400, detail="Unknown category")

def _store_image(storage: ObjectStorage, file: UploadFile) -> str:
    """Validate and upload a product image, returning its public URL."""
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Please select an image file")
    try:
        data = file.file.read()
    finally:
        file.file.close()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="Image size must be less than 5MB")

    key = f"{uuid.uuid4().hex}.{image_extension(file.content_type)}"
    try:
        storage.upload(PRODUCT_IMAGES_BUCKET, key, data)
    except StorageError as e:
        logger.error("Product image upload failed: %s", e.message)
        raise MutationError("Failed to upload image")
    return storage.get_public_url(PRODUCT_IMAGES_BUCKET, key)

def _commit(db: Session, action: str):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise MutationError(f"Failed to {action}: constraint violated")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to %s", action)
        raise MutationError(f"Failed to {action}")


# =========================
# CATEGORIES
# =========================
@router.post("/categories", response_model=product_schemas.CategoryOut, status_code=status.HTTP_201_CREATED)
def add_category(
    payload: product_schemas.CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    category = Category(**payload.model_dump())
    db.add(category)
    _commit(db, "create category")
    db.refresh(category)
    write_log(db, user_id=admin.user_id, action="CATEGORY_CREATE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category.id, "name": category.name})
    return category


# =========================
# PRODUCT LIST
# =========================
@router.get("/products", response_model=List[product_schemas.ProductOut])
def list_products(db: Session = Depends(get_db), admin: Identity = Depends(admin_required)):
    return db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()


# =========================
# ADD PRODUCT
# =========================
@router.post("/products", response_model=product_schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def add_product(
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
    storage: ObjectStorage = Depends(get_storage),
    file: Optional[UploadFile] = File(None),
    name: str = Form(...),
    price: float = Form(..., ge=0),
    stock_quantity: int = Form(..., ge=0),
    description: Optional[str] = Form(None),
    category_id: Optional[int] = Form(None),
    image_url: Optional[str] = Form(None),
    is_featured: bool = Form(False),
):
    _check_category(db, category_id)
    if file is not None and file.filename:
        image_url = _store_image(storage, file)

    new_product = Product(
        name=name, price=price, stock_quantity=stock_quantity,
        description=description or None, category_id=category_id,
        image_url=image_url or None, is_featured=is_featured,
    )
    db.add(new_product)
    _commit(db, "create product")
    db.refresh(new_product)

    write_log(
        db, user_id=admin.user_id, action="PRODUCT_CREATE", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"id": new_product.id, "name": new_product.name}
    )
    return new_product


# =========================
# PARTIAL EDIT (Form + File)
# =========================
@router.patch("/products/{product_id}", response_model=product_schemas.ProductOut)
def edit_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
    storage: ObjectStorage = Depends(get_storage),
    file: Optional[UploadFile] = File(None),
    name: Optional[str] = Form(None),
    price: Optional[float] = Form(None, ge=0),
    stock_quantity: Optional[int] = Form(None, ge=0),
    description: Optional[str] = Form(None),
    category_id: Optional[int] = Form(None),
    image_url: Optional[str] = Form(None),
    is_featured: Optional[bool] = Form(None),
):
    p = _get_product_or_404(db, product_id)

    if file is not None and file.filename:
        p.image_url = _store_image(storage, file)
    elif image_url is not None:
        # Empty string removes the image
        p.image_url = image_url or None

    # Apply provided fields only
    if name is not None: p.name = name
    if price is not None: p.price = price
    if stock_quantity is not None: p.stock_quantity = stock_quantity
    if description is not None: p.description = description or None
    if category_id is not None:
        _check_category(db, category_id)
        p.category_id = category_id
    if is_featured is not None: p.is_featured = is_featured

    _commit(db, "update product")
    db.refresh(p)

    write_log(
        db, user_id=admin.user_id, action="PRODUCT_EDIT", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": p.id}
    )
    return p


# =========================
# DELETE PRODUCT
# =========================
@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    p = _get_product_or_404(db, product_id)
    db.delete(p)
    _commit(db, "delete product")

    write_log(
        db, user_id=admin.user_id, action="PRODUCT_DELETE", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": product_id}
    )
    return {"message": "Product deleted successfully"}


# =========================
# OFFER (DISCOUNT)
# =========================
@router.put("/products/{product_id}/offer", response_model=Optional[product_schemas.OfferOut])
def set_product_offer(
    product_id: int,
    payload: product_schemas.OfferUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    """Replace the product's active offer; a null percentage just deactivates it."""
    _get_product_or_404(db, product_id)

    db.query(Offer).filter(Offer.product_id == product_id, Offer.is_active.is_(True)).update(
        {Offer.is_active: False}, synchronize_session=False
    )
    offer = None
    if payload.discount_percentage is not None:
        offer = Offer(product_id=product_id, discount_percentage=payload.discount_percentage, is_active=True)
        db.add(offer)
    _commit(db, "update offer")
    if offer is not None:
        db.refresh(offer)

    write_log(
        db, user_id=admin.user_id, action="OFFER_SET", resource="products",
        status="SUCCESS", ip=client_ip(request),
        meta={"product_id": product_id, "discount_percentage": payload.discount_percentage},
    )
    return offer
