"""
Store API types — remote collaborator contract.

Every operation returns Result; transport, HTTP and decoding failures
are values, never exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from kungfu import Result

from storefront.schema import (
    Cart,
    CartLineItem,
    Order,
    OrderPayload,
    PaymentMethod,
    PaymentRedirect,
    ShippingAddress,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Api Error
# ═══════════════════════════════════════════════════════════════════════════════


class ApiErrorKind(Enum):
    """Kinds of remote call failures."""

    REMOTE = auto()  # Service answered with 4xx/5xx
    NETWORK = auto()  # Transport failed or timed out
    DECODE = auto()  # Response body did not match the expected shape


@dataclass(frozen=True, slots=True)
class ApiError:
    """
    Remote call failure.

    Note: message is the most specific text available: the service's
    `message` field, else its `error` field, else a generic fallback.
    """

    kind: ApiErrorKind
    message: str
    status: int | None = None
    original_error: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# StoreApi Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class StoreApi(Protocol):
    """
    Cart and order endpoints of the store service.

    Implementations:
        HttpStoreApi    — httpx client against a live service
        MemoryStoreApi  — in-process reference backend (tests, previews)
    """

    # Cart

    async def get_cart(self) -> Result[Cart, ApiError]:
        """GET /cart. Created implicitly on first fetch."""
        ...

    async def upsert_item(self, item: CartLineItem) -> Result[Cart, ApiError]:
        """POST /cart. Replaces the line with the same product id or appends."""
        ...

    async def remove_item(self, entry_id: str) -> Result[Cart, ApiError]:
        """DELETE /cart/item/:id. Unknown ids leave the cart unchanged."""
        ...

    async def update_shipping(
        self, address: ShippingAddress
    ) -> Result[Cart, ApiError]: ...

    async def update_payment_method(
        self, method: PaymentMethod
    ) -> Result[Cart, ApiError]: ...

    async def clear_cart(self) -> Result[Cart, ApiError]: ...

    # Orders

    async def create_order(self, payload: OrderPayload) -> Result[Order, ApiError]: ...

    async def get_order(self, order_id: str) -> Result[Order, ApiError]: ...

    async def my_orders(self) -> Result[list[Order], ApiError]: ...

    async def all_orders(self) -> Result[list[Order], ApiError]:
        """GET /orders. Admin only on the live service."""
        ...

    async def pay_order(self, order_id: str) -> Result[Order, ApiError]: ...

    async def deliver_order(self, order_id: str) -> Result[Order, ApiError]: ...

    async def cancel_order(
        self, order_id: str, reason: str
    ) -> Result[Order, ApiError]: ...

    async def upload_payment_proof(
        self, order_id: str, image_url: str
    ) -> Result[Order, ApiError]: ...

    async def initialize_payment(
        self, order_id: str, website_url: str
    ) -> Result[PaymentRedirect, ApiError]:
        """POST /orders/:id/khalti/initialize. Redirect URL is opaque."""
        ...


__all__ = ("ApiErrorKind", "ApiError", "StoreApi")
