"""Discount computations over a product's stored price/discount fields.

Everything here is pure: functions read attributes off any product-like
object and return values, they never touch the session. The product model
and the product service call ``expiry_changes`` at their save and load
boundaries; there is no background sweep, so an expired product that is
neither loaded through the service nor saved keeps its stored sale price.

For ``fixed`` discounts the absolute amount lives in ``discount_percentage``.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from storefront.utils.datetime_utils import as_utc, utcnow

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)


def _base_price(product) -> float:
    return product.original_price or product.price


def has_active_discount(product, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    end_date = as_utc(product.discount_end_date)
    return bool(
        (product.discount_percentage or 0) > 0
        and end_date is not None
        and now < end_date
    )


def current_price(product, now: Optional[datetime] = None) -> float:
    if has_active_discount(product, now):
        if product.discount_type == FIXED:
            return max(0.0, _base_price(product) - product.discount_percentage)
        # percentage discounts are baked into price when applied
        return product.price
    return _base_price(product)


def discount_amount(product, now: Optional[datetime] = None) -> float:
    if not has_active_discount(product, now):
        return 0.0
    if product.discount_type == FIXED:
        return product.discount_percentage
    return _base_price(product) * (product.discount_percentage / 100)


def discounted_price(base_price: float, value: float, discount_type: str) -> float:
    if discount_type == FIXED:
        return round(max(0.0, base_price - value), 2)
    return round(base_price * (1 - value / 100), 2)


def is_expired(product, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    end_date = as_utc(product.discount_end_date)
    return end_date is not None and now > end_date


def expiry_changes(product, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Field resets for a product whose discount end date has passed.

    Returns an empty dict when nothing is due; callers apply the result with
    ``setattr`` so the function itself stays side-effect free.
    """
    if not is_expired(product, now):
        return {}

    changes: Dict[str, Any] = {
        "discount_percentage": 0,
        "discount_type": PERCENTAGE,
        "discount_end_date": None,
        "is_black_friday_deal": False,
    }
    if product.original_price:
        changes["price"] = product.original_price
        changes["original_price"] = None
    return changes


def apply_expiry_policy(product, now: Optional[datetime] = None) -> bool:
    """Apply ``expiry_changes`` in place; True when anything changed."""
    changes = expiry_changes(product, now)
    for key, value in changes.items():
        setattr(product, key, value)
    return bool(changes)


def reset_changes(product) -> Dict[str, Any]:
    """Field values that undo any applied discount."""
    return {
        "price": product.original_price if product.original_price is not None else product.price,
        "original_price": None,
        "discount_percentage": 0,
        "discount_type": PERCENTAGE,
        "discount_end_date": None,
        "is_black_friday_deal": False,
    }
