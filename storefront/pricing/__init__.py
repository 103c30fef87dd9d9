"""
Pricing — time-bounded percentage discounts.

    from storefront import pricing as P

    if P.is_discount_active(line.discount, now):
        was = P.original_price(line.price, line.discount, now)

    savings = sum(P.per_item_savings(line, now) for line in cart.cart_items)
"""

from storefront.pricing._types import PricingError
from storefront.pricing._discount import (
    is_discount_active,
    original_price,
    effective_price,
    per_item_savings,
    validate_discount,
)

__all__ = (
    "PricingError",
    "is_discount_active",
    "original_price",
    "effective_price",
    "per_item_savings",
    "validate_discount",
)
