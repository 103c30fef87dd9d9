"""
Checkout — three-step wizard from cart to placed order.

    from storefront import checkout as K

    flow = K.CheckoutController(session)
    await flow.submit_shipping(address, "Khalti")
    flow.enter_place_order()          # K.CheckoutStep.PLACE_ORDER
    order = await flow.place_order()
"""

from storefront.checkout._types import (
    CheckoutStep,
    CheckoutErrorKind,
    CheckoutError,
    PricingContext,
)
from storefront.checkout._nodes import CartNode, LinesNode, SavingsNode, PayloadNode
from storefront.checkout._controller import CheckoutController

__all__ = (
    # Types
    "CheckoutStep",
    "CheckoutErrorKind",
    "CheckoutError",
    "PricingContext",
    # Graph nodes
    "CartNode",
    "LinesNode",
    "SavingsNode",
    "PayloadNode",
    # Controller
    "CheckoutController",
)
