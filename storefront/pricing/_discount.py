"""
Discount evaluator — pure functions over a discount and a moment in time.

Line prices coming from the server are already discounted. The evaluator
never applies a discount twice: it only reconstructs the "was" price and
the per-line savings for display and for the order's total_savings.
"""

from __future__ import annotations

from datetime import datetime

from kungfu import Result, Ok, Error

from storefront._types import as_utc
from storefront.pricing._types import PricingError
from storefront.schema import CartLineItem, Discount, OrderItem


# ═══════════════════════════════════════════════════════════════════════════════
# Activity
# ═══════════════════════════════════════════════════════════════════════════════


def is_discount_active(
    discount: Discount | None,
    now: datetime,
    *,
    enforce_start: bool = True,
) -> bool:
    """
    True when the discount applies at `now`.

    Requires the active flag, a positive percentage and a parsable end date.
    With enforce_start, a present start date in the future also disables it.
    The end bound is inclusive.
    """
    if discount is None or not discount.active or discount.percentage <= 0:
        return False
    if discount.end_date is None:
        return False

    moment = as_utc(now)
    if enforce_start and discount.start_date is not None:
        if moment < as_utc(discount.start_date):
            return False
    return moment <= as_utc(discount.end_date)


# ═══════════════════════════════════════════════════════════════════════════════
# Prices
# ═══════════════════════════════════════════════════════════════════════════════


def original_price(
    current_price: float,
    discount: Discount | None,
    now: datetime,
    *,
    enforce_start: bool = True,
) -> float:
    """
    Reconstruct the undiscounted unit price from a discounted one.

    Note: at 100% the inversion divides by zero; the current price is
    returned, so a free line shows no "was" price and no savings.
    """
    if not is_discount_active(discount, now, enforce_start=enforce_start):
        return current_price
    assert discount is not None
    if discount.percentage >= 100:
        return current_price
    return current_price / (1 - discount.percentage / 100)


def effective_price(
    base_price: float,
    discount: Discount | None,
    now: datetime,
    *,
    enforce_start: bool = True,
) -> float:
    """Forward direction: the price a customer pays for `base_price`."""
    if not is_discount_active(discount, now, enforce_start=enforce_start):
        return base_price
    assert discount is not None
    return base_price * (1 - discount.percentage / 100)


def per_item_savings(
    item: CartLineItem | OrderItem,
    now: datetime,
    *,
    enforce_start: bool = True,
) -> float:
    """(original - current) * qty for an active discount, else 0."""
    if not is_discount_active(item.discount, now, enforce_start=enforce_start):
        return 0.0
    was = original_price(item.price, item.discount, now, enforce_start=enforce_start)
    return (was - item.price) * item.qty


# ═══════════════════════════════════════════════════════════════════════════════
# Admin validation
# ═══════════════════════════════════════════════════════════════════════════════


def validate_discount(
    percentage: int,
    start_date: datetime | None,
    end_date: datetime | None,
) -> Result[None, PricingError]:
    """
    Check a discount about to be attached to a product.

    Example:
        match validate_discount(15, start, end):
            case Ok(_):
                ...
            case Error(e):
                show(e.message)
    """
    if not 1 <= percentage <= 100:
        return Error(
            PricingError("Discount percentage must be between 1 and 100", "percentage")
        )
    if start_date is None or end_date is None:
        return Error(PricingError("Discount needs a start and an end date", "end_date"))
    if as_utc(start_date) >= as_utc(end_date):
        return Error(PricingError("End date must be after start date", "end_date"))
    return Ok(None)


__all__ = (
    "is_discount_active",
    "original_price",
    "effective_price",
    "per_item_savings",
    "validate_discount",
)
