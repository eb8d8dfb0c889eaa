# backend/services/cart.py
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from models.cart import CartItem
from models.product import Product
from services import pricing
from services.errors import CartMutationError, NotFound, OutOfStockError, Unauthenticated, ValidationFailed

logger = logging.getLogger(__name__)


# Cart row joined with the live product fields the UI shows
@dataclass(frozen=True)
class CartLine:
    id: int
    product_id: int
    quantity: int
    name: str
    price: float
    image_url: Optional[str]
    stock_quantity: int

    @property
    def line_total(self) -> float:
        return pricing.line_total(self.price, self.quantity)


class CartService:
    """Cart of the reconciler's current identity.

    ``items`` is only ever replaced wholesale by ``reload()``; every mutation
    writes to the database and then reloads.
    """

    def __init__(self, db: Session, reconciler):
        self.db = db
        self.reconciler = reconciler
        self.items: List[CartLine] = []
        self._unsubscribe = reconciler.subscribe(self._on_identity_change)
        self.reload()

    def close(self):
        self._unsubscribe()

    @property
    def user_id(self) -> Optional[str]:
        identity = self.reconciler.identity
        return identity.user_id if identity is not None else None

    def _on_identity_change(self, reconciler):
        self.reload()

    def _require_user(self, message: str = None) -> str:
        user_id = self.user_id
        if user_id is None:
            raise Unauthenticated(message)
        return user_id

    def summary(self) -> dict:
        return pricing.cart_summary(self.items)

    def reload(self) -> List[CartLine]:
        user_id = self.user_id
        if user_id is None:
            self.items = []
            return self.items

        try:
            rows = (
                self.db.query(CartItem)
                .options(joinedload(CartItem.product))
                .filter(CartItem.user_id == user_id)
                .order_by(CartItem.created_at.asc(), CartItem.id.asc())
                .all()
            )
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error fetching cart for %s", user_id)
            return self.items

        self.items = [
            CartLine(
                id=row.id,
                product_id=row.product_id,
                quantity=row.quantity,
                name=row.product.name,
                price=row.product.price,
                image_url=row.product.image_url,
                stock_quantity=row.product.stock_quantity,
            )
            for row in rows
            if row.product is not None
        ]
        return self.items

    def _find_line(self, product_id: int) -> Optional[CartLine]:
        return next((line for line in self.items if line.product_id == product_id), None)

    def add(self, product_id: int, quantity: int = 1) -> List[CartLine]:
        user_id = self._require_user("Please login to add items to cart")
        if quantity < 1:
            raise ValidationFailed({"quantity": "Quantity must be at least 1"})

        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise NotFound("Product not found")
        if product.stock_quantity == 0:
            raise OutOfStockError()
        if quantity > product.stock_quantity:
            raise OutOfStockError(f"Only {product.stock_quantity} items available")

        existing = self._find_line(product_id)
        if existing is not None:
            return self.update_quantity(existing.id, existing.quantity + quantity)

        try:
            self.db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
            self.db.commit()
        except IntegrityError:
            # Another session inserted the same line first; merge into it
            self.db.rollback()
            self.reload()
            existing = self._find_line(product_id)
            if existing is None:
                logger.exception("Error adding product %s to cart of %s", product_id, user_id)
                raise CartMutationError("Failed to add item to cart")
            return self.update_quantity(existing.id, existing.quantity + quantity)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error adding product %s to cart of %s", product_id, user_id)
            raise CartMutationError("Failed to add item to cart")

        return self.reload()

    def update_quantity(self, item_id: int, quantity: int) -> List[CartLine]:
        if quantity < 1:
            return self.remove(item_id)
        user_id = self._require_user()

        try:
            item = (
                self.db.query(CartItem)
                .options(joinedload(CartItem.product))
                .filter(CartItem.id == item_id, CartItem.user_id == user_id)
                .first()
            )
            if item is None:
                raise NotFound("Cart item not found")
            # A line never holds more than the product has in stock
            stock = item.product.stock_quantity
            if quantity > stock:
                raise OutOfStockError(f"Only {stock} items available" if stock else None)
            item.quantity = quantity
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error updating cart item %s", item_id)
            raise CartMutationError("Failed to update cart")

        return self.reload()

    def remove(self, item_id: int) -> List[CartLine]:
        user_id = self._require_user()

        try:
            self.db.query(CartItem).filter(
                CartItem.id == item_id, CartItem.user_id == user_id
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error removing cart item %s", item_id)
            raise CartMutationError("Failed to remove item")

        return self.reload()

    def clear(self) -> List[CartLine]:
        user_id = self.user_id
        if user_id is None:
            return self.items

        try:
            self.db.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error clearing cart of %s", user_id)
            raise CartMutationError("Failed to clear cart")

        return self.reload()
