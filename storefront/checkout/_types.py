"""
Checkout types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto

from storefront.api import ApiError


class CheckoutStep(Enum):
    """
    Linear wizard steps.

        SHIPPING → PLACE_ORDER → CONFIRMATION
    """

    SHIPPING = auto()
    PLACE_ORDER = auto()
    CONFIRMATION = auto()


class CheckoutErrorKind(Enum):
    VALIDATION = auto()  # Form input rejected locally; nothing sent
    PRECONDITION = auto()  # Step reached out of order
    EMPTY_CART = auto()  # Nothing to order
    REMOTE = auto()  # Service rejected a call


@dataclass(frozen=True, slots=True)
class CheckoutError:
    kind: CheckoutErrorKind
    message: str
    original_error: ApiError | None = None


@dataclass(frozen=True, slots=True)
class PricingContext:
    """Moment and rules the order's savings are computed under."""

    now: datetime
    enforce_start: bool = True


__all__ = (
    "CheckoutStep",
    "CheckoutErrorKind",
    "CheckoutError",
    "PricingContext",
)
