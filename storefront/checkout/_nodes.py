"""
Order payload graph.

    Cart ──── CartNode ──┬── LinesNode ───┬── PayloadNode
    PricingContext ──────┴── SavingsNode ─┘

Inputs: the mirrored Cart and a PricingContext.
"""

from decimal import ROUND_HALF_UP, Decimal

from storefront import _graph as G
from storefront.cart import reconcile
from storefront.checkout._types import PricingContext
from storefront.pricing import is_discount_active, per_item_savings
from storefront.schema import (
    Cart,
    Discount,
    OrderItemPayload,
    OrderPayload,
)


@G.node
class CartNode:
    """Entry point: wraps the Cart input."""

    def __init__(self, data: Cart) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, cart: Cart) -> "CartNode":
        return cls(cart)


@G.node
class LinesNode:
    """
    Frozen line snapshots.

    Duplicates are merged; product refs collapse to ids; a line without
    an active discount carries an explicit zeroed one. Every line must
    reference a product.
    """

    def __init__(self, items: list[OrderItemPayload]) -> None:
        self.items = items

    @classmethod
    async def __compose__(cls, cart: CartNode, pricing: PricingContext) -> "LinesNode":
        items = []
        for line in reconcile(cart.data.cart_items):
            item = line.item
            product_id = item.product_id
            if product_id is None:
                raise ValueError(f"cart line {item.id} has no product")
            active = is_discount_active(
                item.discount, pricing.now, enforce_start=pricing.enforce_start
            )
            items.append(
                OrderItemPayload(
                    name=item.name,
                    qty=item.qty,
                    image=item.image,
                    price=item.price,
                    product=product_id,
                    discount=(
                        item.discount.model_copy()
                        if active and item.discount is not None
                        else Discount.zeroed()
                    ),
                )
            )
        return cls(items)


@G.node
class SavingsNode:
    """Sum of per-line savings at checkout time, to the cent."""

    def __init__(self, total: float) -> None:
        self.total = total

    @classmethod
    async def __compose__(cls, cart: CartNode, pricing: PricingContext) -> "SavingsNode":
        raw = sum(
            per_item_savings(item, pricing.now, enforce_start=pricing.enforce_start)
            for item in cart.data.cart_items
        )
        cents = Decimal(str(raw)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return cls(float(cents))


@G.node
class PayloadNode:
    """POST /orders body. Aggregates pass through verbatim."""

    def __init__(self, data: OrderPayload) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls,
        cart: CartNode,
        lines: LinesNode,
        savings: SavingsNode,
    ) -> "PayloadNode":
        source = cart.data
        return cls(
            OrderPayload(
                order_items=lines.items,
                shipping_address=source.shipping_address,
                payment_method=source.payment_method,
                items_price=source.items_price,
                shipping_price=source.shipping_price,
                tax_price=source.tax_price,
                total_price=source.total_price,
                total_savings=savings.total,
            )
        )


__all__ = ("CartNode", "LinesNode", "SavingsNode", "PayloadNode")
