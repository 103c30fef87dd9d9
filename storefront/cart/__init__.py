"""
Cart — server-owned cart, mirrored and mutated from the client.

    from storefront import cart as C

    session = C.CartSession(api, mirror=C.CartMirror(C.MemoryTier()))
    await session.refresh()

    guard = C.QuantityGuard(session)
    await guard.change_quantity(session.cart.cart_items[0], 3)

    view = session.summary()      # reconciled lines, counts, savings
"""

from storefront.cart._types import CartErrorKind, CartError, MirrorError
from storefront.cart._reconcile import CartLine, reconcile, CartSummary, summarize
from storefront.cart._mirror import (
    Tier,
    MemoryTier,
    FileTier,
    SqlTier,
    SnapshotTable,
    create_snapshot_database,
    CartMirror,
)
from storefront.cart._session import CartSession
from storefront.cart._guard import (
    LockHandle,
    InFlightTable,
    parse_quantity,
    QuantityGuard,
)

__all__ = (
    # Errors
    "CartErrorKind",
    "CartError",
    "MirrorError",
    # Reconcile
    "CartLine",
    "reconcile",
    "CartSummary",
    "summarize",
    # Mirror
    "Tier",
    "MemoryTier",
    "FileTier",
    "SqlTier",
    "SnapshotTable",
    "create_snapshot_database",
    "CartMirror",
    # Session
    "CartSession",
    # Guard
    "LockHandle",
    "InFlightTable",
    "parse_quantity",
    "QuantityGuard",
)
