# backend/services/pricing.py
"""Pure pricing functions shared by the cart, the storefront and checkout."""
from typing import Iterable, Optional

# (upper bound inclusive, charge); anything above the last bound pays the top rate
DELIVERY_TIERS = ((1000, 150), (5000, 200))
TOP_DELIVERY_CHARGE = 300


def _money(amount: float) -> float:
    return round(float(amount), 2)


def delivery_charge(subtotal: float) -> float:
    for upper, charge in DELIVERY_TIERS:
        if subtotal <= upper:
            return charge
    return TOP_DELIVERY_CHARGE


def discounted_price(price: float, discount_percent: Optional[float] = None) -> float:
    if discount_percent is None:
        return price
    if not 0 <= discount_percent <= 100:
        raise ValueError(f"discount_percent must be within [0, 100], got {discount_percent}")
    return _money(price * (100 - discount_percent) / 100)


def line_total(price: float, quantity: int) -> float:
    return _money(price * quantity)


def subtotal(items: Iterable) -> float:
    # Live list price; active offers are not applied to cart totals.
    # Summing rounded lines keeps the total equal to the order items it snapshots.
    return _money(sum(line_total(item.price, item.quantity) for item in items))


def total(cart_subtotal: float) -> float:
    return _money(cart_subtotal + delivery_charge(cart_subtotal))


def cart_summary(items) -> dict:
    items = list(items)
    sub = subtotal(items)
    return {
        "subtotal": sub,
        "delivery_charge": _money(delivery_charge(sub)),
        "total": total(sub),
    }
