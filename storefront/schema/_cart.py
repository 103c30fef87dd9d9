"""
Cart shapes — discount, line item, shipping address, cart aggregate.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from storefront.schema._base import WireModel, LenientDatetime


# ═══════════════════════════════════════════════════════════════════════════════
# Discount
# ═══════════════════════════════════════════════════════════════════════════════


class Discount(WireModel):
    """
    Time-bounded percentage discount embedded in a product or line.

    Note: percentage 0 is only legal for the zeroed snapshot sent with
    undiscounted order lines. Admin input is validated to [1, 100] separately.
    """

    percentage: int = Field(0, ge=0, le=100)
    active: bool = False
    start_date: LenientDatetime = None
    end_date: LenientDatetime = None
    name: str = ""

    @classmethod
    def zeroed(cls) -> Discount:
        return cls(percentage=0, active=False, name="")


# ═══════════════════════════════════════════════════════════════════════════════
# Product reference
# ═══════════════════════════════════════════════════════════════════════════════


class ProductRef(WireModel):
    """Populated product embedded in a line instead of a bare id."""

    id: str = Field(alias="_id")
    name: str = ""
    image: str = ""
    price: float | None = None
    quantity: int | None = None
    discount: Discount | None = None


def product_key(product: str | ProductRef | None) -> str | None:
    match product:
        case ProductRef(id=pid):
            return pid
        case str() if product:
            return product
        case _:
            return None


# ═══════════════════════════════════════════════════════════════════════════════
# Line item
# ═══════════════════════════════════════════════════════════════════════════════


class CartLineItem(WireModel):
    """
    One product-quantity-price entry of the server cart.

    price is the effective unit price: already discounted when the
    discount is active. quantity is the stock ceiling at last fetch.
    """

    id: str = Field(alias="_id")
    product: str | ProductRef | None = None
    name: str = ""
    image: str = ""
    price: float = 0.0
    qty: int = Field(1, ge=1)
    discount: Discount | None = None
    quantity: int = 20

    @property
    def product_id(self) -> str | None:
        return product_key(self.product)

    @property
    def key(self) -> str:
        """Logical identity: product id, falling back to the entry id."""
        return self.product_id or self.id


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping & payment
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethod(StrEnum):
    CASH_ON_DELIVERY = "CashOnDelivery"
    QR_PAYMENT = "QRPayment"
    KHALTI = "Khalti"


def known_method(value: Any) -> Any:
    """Empty or unknown methods read as "not chosen yet"."""
    if isinstance(value, PaymentMethod):
        return value
    if isinstance(value, str) and value in PaymentMethod._value2member_map_:
        return value
    return None


class ShippingAddress(WireModel):
    address: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""

    @property
    def missing_fields(self) -> tuple[str, ...]:
        return tuple(
            name
            for name in ("address", "city", "postal_code", "country")
            if not getattr(self, name).strip()
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Cart aggregate
# ═══════════════════════════════════════════════════════════════════════════════


class Cart(WireModel):
    """
    Server-owned cart, mirrored client-side.

    The four price aggregates are computed by the server and trusted
    verbatim; they serialize back as the decimal strings they came in as.
    """

    cart_items: list[CartLineItem] = Field(default_factory=list)
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)
    payment_method: PaymentMethod | None = None
    items_price: Decimal = Decimal("0.00")
    shipping_price: Decimal = Decimal("0.00")
    tax_price: Decimal = Decimal("0.00")
    total_price: Decimal = Decimal("0.00")

    @field_validator("payment_method", mode="before")
    @classmethod
    def check_payment_method(cls, value: Any) -> Any:
        return known_method(value)

    @field_validator("shipping_address", mode="before")
    @classmethod
    def check_shipping_address(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def is_empty(self) -> bool:
        return not self.cart_items


__all__ = (
    "Discount",
    "ProductRef",
    "product_key",
    "CartLineItem",
    "PaymentMethod",
    "known_method",
    "ShippingAddress",
    "Cart",
)
