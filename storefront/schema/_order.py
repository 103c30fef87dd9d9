"""
Order shapes — placed order, its frozen line snapshots, and request bodies.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import Field, field_validator

from storefront.schema._base import WireModel, LenientDatetime
from storefront.schema._cart import (
    Discount,
    PaymentMethod,
    ProductRef,
    ShippingAddress,
    known_method,
    product_key,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


class OrderItem(WireModel):
    """Line snapshot. price and discount are what was paid, never live."""

    name: str = ""
    qty: int = 1
    image: str = ""
    price: float = 0.0
    product: str | ProductRef | None = None
    discount: Discount | None = None

    @property
    def product_id(self) -> str | None:
        return product_key(self.product)


class UserRef(WireModel):
    id: str = Field(alias="_id")
    username: str = ""
    email: str = ""


class PaymentResult(WireModel):
    id: str | None = None
    status: str | None = None
    update_time: str | None = Field(None, alias="update_time")
    email_address: str | None = Field(None, alias="email_address")


class Order(WireModel):
    """
    Server-authoritative order.

    Status flags are mutually constrained: once is_cancelled is set,
    is_paid and is_delivered never flip to true afterwards.
    """

    id: str = Field(alias="_id")
    user: str | UserRef | None = None
    order_items: list[OrderItem] = Field(default_factory=list)
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)
    payment_method: PaymentMethod | None = None
    items_price: Decimal = Decimal("0.00")
    shipping_price: Decimal = Decimal("0.00")
    tax_price: Decimal = Decimal("0.00")
    total_price: Decimal = Decimal("0.00")
    total_savings: Decimal = Decimal("0.00")
    is_paid: bool = False
    paid_at: LenientDatetime = None
    is_delivered: bool = False
    delivered_at: LenientDatetime = None
    is_cancelled: bool = False
    cancelled_at: LenientDatetime = None
    cancellation_reason: str = ""
    payment_proof_image: str = ""
    payment_result: PaymentResult | None = None
    created_at: LenientDatetime = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def check_payment_method(cls, value: Any) -> Any:
        return known_method(value)

    @field_validator("cancellation_reason", "payment_proof_image", mode="before")
    @classmethod
    def check_optional_text(cls, value: Any) -> Any:
        return "" if value is None else value


# ═══════════════════════════════════════════════════════════════════════════════
# Request bodies
# ═══════════════════════════════════════════════════════════════════════════════


class OrderItemPayload(WireModel):
    """Snapshot of one cart line, product reduced to its id."""

    name: str
    qty: int = Field(ge=1)
    image: str
    price: float
    product: str
    discount: Discount


class OrderPayload(WireModel):
    order_items: list[OrderItemPayload]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal
    total_savings: float


class ShippingUpdate(ShippingAddress):
    """PUT /cart/shipping body."""


class PaymentMethodUpdate(WireModel):
    payment_method: PaymentMethod


class CancelRequest(WireModel):
    reason: str


class PaymentProofRequest(WireModel):
    image_url: str


class PaymentInitRequest(WireModel):
    website_url: str = Field(alias="website_url")


class PaymentRedirect(WireModel):
    payment_url: str = Field(alias="payment_url")
    pidx: str | None = None


class PaymentInitResponse(WireModel):
    payment: PaymentRedirect


class ErrorBody(WireModel):
    """Structured error from the service: {message} or {error}."""

    message: str | None = None
    error: str | None = None

    @property
    def text(self) -> str | None:
        return self.message or self.error


__all__ = (
    "OrderItem",
    "UserRef",
    "PaymentResult",
    "Order",
    "OrderItemPayload",
    "OrderPayload",
    "ShippingUpdate",
    "PaymentMethodUpdate",
    "CancelRequest",
    "PaymentProofRequest",
    "PaymentInitRequest",
    "PaymentRedirect",
    "PaymentInitResponse",
    "ErrorBody",
)
