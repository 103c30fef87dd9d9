"""
storefront — cart, pricing and order lifecycle core of a web shop.

    from storefront import pricing as P    # Discount evaluation
    from storefront import cart as C       # Reconcile, guard, mirror
    from storefront import checkout as K   # Shipping → order wizard
    from storefront import orders as O     # Order state machine
    from storefront import api as A        # Remote store service
"""

from storefront import schema
from storefront import pricing
from storefront import api
from storefront import cart
from storefront import checkout
from storefront import orders
from storefront import notify
from storefront.policy import Policy
from storefront._types import (
    Lazy,
    ItemKey,
    OrderId,
    Clock,
)

__version__ = "0.1.0"

__all__ = (
    "schema",
    "pricing",
    "api",
    "cart",
    "checkout",
    "orders",
    "notify",
    "Policy",
    "Lazy",
    "ItemKey",
    "OrderId",
    "Clock",
)
