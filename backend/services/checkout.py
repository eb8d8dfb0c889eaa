# backend/services/checkout.py
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.cart import CartItem
from models.order import Order, OrderItem
from services import pricing
from services.errors import (
    CheckoutError, CheckoutValidationError, EmptyCartError, StorageError, Unauthenticated,
)
from utils.storage import ALLOWED_IMAGE_TYPES, PAYMENT_SCREENSHOTS_BUCKET, ObjectStorage, image_extension

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^[+]?[1-9]\d{9,14}$")
MIN_ADDRESS_LENGTH = 10

PAYMENT_METHOD = "bank_transfer"
INITIAL_STATUS = "pending"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes


@dataclass
class CheckoutForm:
    phone: str
    address: str
    payment_screenshot: Optional[UploadedFile] = None


def validate_checkout_form(form: CheckoutForm, max_upload_bytes: int = None) -> Dict[str, str]:
    """Return field -> message for every invalid field (empty when valid)."""
    max_upload_bytes = max_upload_bytes or settings.MAX_UPLOAD_BYTES
    errors: Dict[str, str] = {}

    phone = (form.phone or "").strip()
    if len(phone) < 10:
        errors["phone"] = "Phone number required"
    elif not PHONE_RE.match(phone):
        errors["phone"] = "Please enter a valid phone number"

    address = (form.address or "").strip()
    if len(address) < MIN_ADDRESS_LENGTH:
        errors["address"] = "Address is required"
    elif len(re.sub(r"\s", "", address)) < MIN_ADDRESS_LENGTH:
        errors["address"] = "Address must contain meaningful content"

    screenshot = form.payment_screenshot
    if screenshot is None or not screenshot.data:
        errors["payment_screenshot"] = "Payment screenshot is required"
    elif screenshot.content_type not in ALLOWED_IMAGE_TYPES:
        errors["payment_screenshot"] = "Payment screenshot must be an image"
    elif len(screenshot.data) > max_upload_bytes:
        errors["payment_screenshot"] = f"Image size must be less than {max_upload_bytes // (1024 * 1024)}MB"

    return errors


class CheckoutOrchestrator:
    """Turns the current cart into an order paid by bank transfer."""

    def __init__(self, db: Session, cart, storage: ObjectStorage, clock: Callable[[], float] = time.time):
        self.db = db
        self.cart = cart
        self.storage = storage
        self.clock = clock

    def _upload_screenshot(self, user_id: str, screenshot: UploadedFile) -> str:
        key = f"{user_id}-{int(self.clock() * 1000)}.{image_extension(screenshot.content_type)}"
        try:
            self.storage.upload(PAYMENT_SCREENSHOTS_BUCKET, key, screenshot.data)
        except StorageError as e:
            logger.error("Payment screenshot upload failed for %s: %s", user_id, e.message)
            raise CheckoutError("Failed to upload payment screenshot")
        return key

    def place_order(self, form: CheckoutForm) -> Order:
        user_id = self.cart.user_id
        if user_id is None:
            raise Unauthenticated("Please login to place an order")
        lines = list(self.cart.items)
        if not lines:
            raise EmptyCartError()

        errors = validate_checkout_form(form)
        if errors:
            raise CheckoutValidationError(errors)

        totals = pricing.cart_summary(lines)

        # 1. Upload first; nothing is persisted if this fails
        screenshot_key = None
        screenshot_url = None
        if form.payment_screenshot is not None:
            screenshot_key = self._upload_screenshot(user_id, form.payment_screenshot)
            screenshot_url = self.storage.get_public_url(PAYMENT_SCREENSHOTS_BUCKET, screenshot_key)

        # 2-4. Order, snapshotted items and cart clear commit together
        try:
            order = Order(
                user_id=user_id,
                total_amount=totals["total"],
                payment_method=PAYMENT_METHOD,
                payment_status=INITIAL_STATUS,
                order_status=INITIAL_STATUS,
                shipping_address=form.address.strip(),
                phone=form.phone.strip(),
                transaction_screenshot_url=screenshot_url,
            )
            self.db.add(order)
            self.db.flush()

            self.db.add_all([
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    product_name=line.name,
                    quantity=line.quantity,
                    unit_price=line.price,
                    subtotal=line.line_total,
                )
                for line in lines
            ])
            self.db.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Order creation failed for %s; screenshot %s/%s left unreferenced",
                user_id, PAYMENT_SCREENSHOTS_BUCKET, screenshot_key,
            )
            raise CheckoutError()

        self.db.refresh(order)
        self.cart.reload()
        logger.info("Order %s placed by %s, total %.2f", order.id, user_id, order.total_amount)
        return order
