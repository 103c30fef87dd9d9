"""
Schema — request/response shapes of the remote store service.

    from storefront import schema as S

    cart = S.Cart.model_validate(payload)
    body = S.CancelRequest(reason="changed my mind").to_wire()

All shapes validate at the boundary; nothing downstream trusts raw dicts.
"""

from storefront.schema._base import WireModel, LenientDatetime
from storefront.schema._cart import (
    Discount,
    ProductRef,
    product_key,
    CartLineItem,
    PaymentMethod,
    known_method,
    ShippingAddress,
    Cart,
)
from storefront.schema._order import (
    OrderItem,
    UserRef,
    PaymentResult,
    Order,
    OrderItemPayload,
    OrderPayload,
    ShippingUpdate,
    PaymentMethodUpdate,
    CancelRequest,
    PaymentProofRequest,
    PaymentInitRequest,
    PaymentRedirect,
    PaymentInitResponse,
    ErrorBody,
)

__all__ = (
    # Base
    "WireModel",
    "LenientDatetime",
    # Cart
    "Discount",
    "ProductRef",
    "product_key",
    "CartLineItem",
    "PaymentMethod",
    "known_method",
    "ShippingAddress",
    "Cart",
    # Order
    "OrderItem",
    "UserRef",
    "PaymentResult",
    "Order",
    # Requests
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
