"""
Cart reconciler — collapse server lines into one display line per product.

The server may return several entries for one product (races between
tabs, legacy rows). Display merges them; nothing is written back.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from storefront._types import ItemKey
from storefront.pricing import per_item_savings
from storefront.schema import CartLineItem


# ═══════════════════════════════════════════════════════════════════════════════
# CartLine
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One reconciled line.

    key: product id (entry id when the line has no product ref).
    display_key: unique per reconcile call, for list rendering.
    item: first occurrence, qty summed over duplicates.
    """

    key: ItemKey
    display_key: str
    item: CartLineItem

    @property
    def qty(self) -> int:
        return self.item.qty

    @property
    def subtotal(self) -> float:
        return self.item.price * self.item.qty


def reconcile(items: Iterable[CartLineItem]) -> list[CartLine]:
    """
    Merge duplicates by product id, keeping first-occurrence order.

    Example:
        lines = reconcile(cart.cart_items)
        assert sum(line.qty for line in lines) == sum(i.qty for i in cart.cart_items)
    """
    merged: dict[ItemKey, CartLineItem] = {}
    for item in items:
        key = item.key
        first = merged.get(key)
        if first is None:
            merged[key] = item
        else:
            merged[key] = first.model_copy(update={"qty": first.qty + item.qty})

    return [
        CartLine(key=key, display_key=f"{key}-{uuid.uuid4().hex[:8]}", item=item)
        for key, item in merged.items()
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# Summary
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartSummary:
    lines: list[CartLine]
    item_count: int
    items_total: float
    total_savings: float


def summarize(
    items: Sequence[CartLineItem],
    now: datetime,
    *,
    enforce_start: bool = True,
) -> CartSummary:
    """Reconciled lines plus the counts and totals a cart view shows."""
    lines = reconcile(items)
    return CartSummary(
        lines=lines,
        item_count=sum(item.qty for item in items),
        items_total=sum(line.subtotal for line in lines),
        total_savings=sum(
            per_item_savings(line.item, now, enforce_start=enforce_start)
            for line in lines
        ),
    )


__all__ = ("CartLine", "reconcile", "CartSummary", "summarize")
