"""
Cart session — the collaborators every cart and checkout component shares.
"""

from __future__ import annotations

import logging

from kungfu import Result, Ok, Error

from storefront._types import Clock, utc_now
from storefront.api import ApiError, StoreApi
from storefront.cart._mirror import CartMirror
from storefront.cart._reconcile import CartSummary, summarize
from storefront.notify import LogNotifier, Notifier
from storefront.policy import Policy
from storefront.schema import Cart


logger = logging.getLogger(__name__)


class CartSession:
    """
    Explicit context instead of a global store.

    Example:
        session = CartSession(api, notifier=MemoryNotifier())
        await session.refresh()
        guard = QuantityGuard(session)
    """

    def __init__(
        self,
        api: StoreApi,
        *,
        mirror: CartMirror | None = None,
        notifier: Notifier | None = None,
        policy: Policy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.api = api
        self.mirror = mirror if mirror is not None else CartMirror()
        self.notifier: Notifier = notifier if notifier is not None else LogNotifier()
        self.policy = policy if policy is not None else Policy()
        self.clock = clock

    @property
    def cart(self) -> Cart:
        return self.mirror.cart

    async def refresh(self) -> Result[Cart, ApiError]:
        """Fetch the authoritative cart and replace the mirror with it."""
        result = await self.api.get_cart()
        match result:
            case Ok(cart):
                await self.mirror.replace(cart)
            case Error(e):
                logger.warning("cart refresh failed: %s", e.message)
        return result

    async def adopt(self, cart: Cart) -> None:
        await self.mirror.replace(cart)

    def summary(self) -> CartSummary:
        return summarize(
            self.cart.cart_items,
            self.clock(),
            enforce_start=self.policy.enforce_discount_start,
        )


__all__ = ("CartSession",)
