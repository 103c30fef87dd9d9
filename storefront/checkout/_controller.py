"""
Checkout flow controller — shipping → place order → confirmation.

    checkout = CheckoutController(session)

    await checkout.submit_shipping(address, PaymentMethod.KHALTI)
    match await checkout.place_order():
        case Ok(order):
            redirect(f"/order/{order.id}")
        case Error(e):
            ...  # already notified; cart untouched
"""

from __future__ import annotations

import logging

from kungfu import Result, Ok, Error

from storefront import _graph as G
from storefront.cart import CartSession
from storefront.checkout._nodes import PayloadNode
from storefront.checkout._types import (
    CheckoutError,
    CheckoutErrorKind,
    CheckoutStep,
    PricingContext,
)
from storefront.schema import (
    Cart,
    Order,
    PaymentMethod,
    ShippingAddress,
    known_method,
)


logger = logging.getLogger(__name__)

_FIELD_LABELS = {
    "address": "address",
    "city": "city",
    "postal_code": "postal code",
    "country": "country",
}


def _has_address(cart: Cart) -> bool:
    return bool(cart.shipping_address.address.strip())


class CheckoutController:
    """
    One checkout wizard over a CartSession.

    Note: place_order requires a server-confirmed shipping address in the
    mirror; without one the wizard falls back to SHIPPING. busy is
    cleared on every exit path.
    """

    def __init__(self, session: CartSession) -> None:
        self._session = session
        self._pipeline = G.graph(PayloadNode)
        self.step = CheckoutStep.SHIPPING
        self.busy = False
        self.order_id: str | None = None

    def _fail(
        self, kind: CheckoutErrorKind, message: str, *, notify: bool = True
    ) -> Error[CheckoutError]:
        if notify:
            self._session.notifier.error(message)
        return Error(CheckoutError(kind, message))

    # ───────────────────────────────────────────────────────────────────────────
    # Step 1 — shipping
    # ───────────────────────────────────────────────────────────────────────────

    async def submit_shipping(
        self,
        address: ShippingAddress,
        payment_method: PaymentMethod | str | None,
    ) -> Result[Cart, CheckoutError]:
        """
        Validate locally, save address and method, then wait for a fresh cart.

        The step only advances after the refetch resolves, so the next
        step always sees the server's copy of the address.
        """
        if missing := address.missing_fields:
            labels = ", ".join(_FIELD_LABELS[name] for name in missing)
            return self._fail(CheckoutErrorKind.VALIDATION, f"Please fill in: {labels}")

        method = known_method(payment_method)
        if method is None:
            return self._fail(CheckoutErrorKind.VALIDATION, "Select a payment method")
        if self.busy:
            return self._fail(
                CheckoutErrorKind.PRECONDITION, "Checkout is busy", notify=False
            )

        self.busy = True
        try:
            api = self._session.api
            for call in (
                lambda: api.update_shipping(address),
                lambda: api.update_payment_method(PaymentMethod(method)),
                self._session.refresh,
            ):
                match await call():
                    case Error(e):
                        self._session.notifier.error(e.message)
                        return Error(
                            CheckoutError(CheckoutErrorKind.REMOTE, e.message, e)
                        )
                    case Ok(_):
                        pass

            self.step = CheckoutStep.PLACE_ORDER
            logger.info("checkout: shipping saved")
            return Ok(self._session.cart)
        finally:
            self.busy = False

    # ───────────────────────────────────────────────────────────────────────────
    # Step 2 — place order
    # ───────────────────────────────────────────────────────────────────────────

    def enter_place_order(self) -> CheckoutStep:
        """Open the review step, or bounce to SHIPPING without an address."""
        if _has_address(self._session.cart):
            self.step = CheckoutStep.PLACE_ORDER
        else:
            self.step = CheckoutStep.SHIPPING
        return self.step

    async def place_order(self) -> Result[Order, CheckoutError]:
        cart = self._session.cart
        if not _has_address(cart) or cart.payment_method is None:
            self.step = CheckoutStep.SHIPPING
            return self._fail(
                CheckoutErrorKind.PRECONDITION,
                "Shipping details are required",
                notify=False,
            )
        if cart.is_empty:
            return self._fail(CheckoutErrorKind.EMPTY_CART, "Your cart is empty")
        if orphans := [item.id for item in cart.cart_items if item.product_id is None]:
            logger.warning("checkout: lines without a product: %s", orphans)
            return self._fail(
                CheckoutErrorKind.VALIDATION,
                "Some cart items are no longer available",
            )
        if self.busy:
            return self._fail(
                CheckoutErrorKind.PRECONDITION, "Checkout is busy", notify=False
            )

        self.busy = True
        try:
            policy = self._session.policy
            payload = await self._pipeline(
                cart,
                PricingContext(
                    self._session.clock(),
                    enforce_start=policy.enforce_discount_start,
                ),
            )

            match await self._session.api.create_order(payload.data):
                case Error(e):
                    self._session.notifier.error(e.message)
                    return Error(CheckoutError(CheckoutErrorKind.REMOTE, e.message, e))
                case Ok(order):
                    pass

            match await self._session.api.clear_cart():
                case Error(e):
                    logger.warning(
                        "order %s placed but cart not cleared: %s", order.id, e.message
                    )
                case Ok(_):
                    pass
            await self._session.mirror.reset()

            self.order_id = order.id
            self.step = CheckoutStep.CONFIRMATION
            self._session.notifier.success("Order placed")
            logger.info("checkout: order %s placed", order.id)
            return Ok(order)
        finally:
            self.busy = False

    # ───────────────────────────────────────────────────────────────────────────
    # Step 3 — confirmation
    # ───────────────────────────────────────────────────────────────────────────

    async def confirmation(self) -> Result[Order, CheckoutError]:
        """Read-only view of the order just placed."""
        if self.order_id is None:
            return self._fail(
                CheckoutErrorKind.PRECONDITION, "No order has been placed", notify=False
            )
        match await self._session.api.get_order(self.order_id):
            case Ok(order):
                return Ok(order)
            case Error(e):
                self._session.notifier.error(e.message)
                return Error(CheckoutError(CheckoutErrorKind.REMOTE, e.message, e))


__all__ = ("CheckoutController",)
