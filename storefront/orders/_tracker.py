"""
Order tracker — executes lifecycle transitions against the service.

    tracker = OrderTracker(api, viewer=Viewer.ADMIN, notifier=notifier)
    await tracker.load(order_id)

    match await tracker.deliver():
        case Ok(order):
            ...           # refetched from the server
        case Error(OrderError(kind=OrderErrorKind.NOT_ALLOWED)):
            ...           # not offered in this state, nothing sent

Every transition is one network call. On success the order is refetched,
never patched locally; on failure the loaded order stays as it was.
A failed refetch after an applied transition is reported as STALE, not
REMOTE.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from kungfu import Result, Ok, Error

from storefront.api import ApiError, StoreApi
from storefront.notify import LogNotifier, Notifier
from storefront.orders._state import available_actions
from storefront.orders._types import OrderAction, OrderError, OrderErrorKind, Viewer
from storefront.policy import Policy
from storefront.schema import Order


logger = logging.getLogger(__name__)


class OrderTracker:
    """
    One order on screen, plus the viewer looking at it.

    Note: busy is set for the duration of a transition and cleared on
    every exit path; a second transition while busy is refused locally.
    """

    def __init__(
        self,
        api: StoreApi,
        *,
        viewer: Viewer = Viewer.CUSTOMER,
        notifier: Notifier | None = None,
        policy: Policy | None = None,
    ) -> None:
        self._api = api
        self.viewer = viewer
        self._notifier: Notifier = notifier if notifier is not None else LogNotifier()
        self._policy = policy if policy is not None else Policy()
        self.order: Order | None = None
        self.busy = False

    @property
    def actions(self) -> tuple[OrderAction, ...]:
        if self.order is None:
            return ()
        return available_actions(self.order, self.viewer, self._policy)

    def _remote(self, e: ApiError) -> Error[OrderError]:
        self._notifier.error(e.message)
        return Error(OrderError(OrderErrorKind.REMOTE, e.message, e))

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    async def load(self, order_id: str) -> Result[Order, OrderError]:
        match await self._api.get_order(order_id):
            case Ok(order):
                self.order = order
                return Ok(order)
            case Error(e):
                return self._remote(e)

    async def my_orders(self) -> Result[list[Order], OrderError]:
        match await self._api.my_orders():
            case Ok(orders):
                return Ok(orders)
            case Error(e):
                return self._remote(e)

    async def all_orders(self) -> Result[list[Order], OrderError]:
        """Every customer's orders. Admin viewers only; nothing is sent otherwise."""
        if self.viewer is not Viewer.ADMIN:
            return Error(
                OrderError(OrderErrorKind.NOT_ALLOWED, "Only admins can list all orders")
            )
        match await self._api.all_orders():
            case Ok(orders):
                return Ok(orders)
            case Error(e):
                return self._remote(e)

    # ───────────────────────────────────────────────────────────────────────────
    # Transitions
    # ───────────────────────────────────────────────────────────────────────────

    def _check(self, action: OrderAction) -> OrderError | None:
        if self.order is None:
            return OrderError(OrderErrorKind.NOT_LOADED, "Order is not loaded")
        if self.busy:
            return OrderError(OrderErrorKind.NOT_ALLOWED, "Another update is in progress")
        if action not in self.actions:
            return OrderError(
                OrderErrorKind.NOT_ALLOWED,
                f"{action.name.lower()} is not available for this order",
            )
        return None

    async def _transition(
        self,
        action: OrderAction,
        call: Callable[[str], Awaitable[Result[Any, ApiError]]],
        success: str,
    ) -> Result[Order, OrderError]:
        if refusal := self._check(action):
            logger.debug("refused %s: %s", action.name, refusal.message)
            return Error(refusal)
        assert self.order is not None
        order_id = self.order.id

        self.busy = True
        try:
            match await call(order_id):
                case Error(e):
                    logger.warning("%s on %s failed: %s", action.name, order_id, e.message)
                    return self._remote(e)
                case Ok(_):
                    pass

            self._notifier.success(success)
            logger.info("%s on %s done", action.name, order_id)
            return await self._refetch(order_id)
        finally:
            self.busy = False

    async def _refetch(self, order_id: str) -> Result[Order, OrderError]:
        match await self._api.get_order(order_id):
            case Ok(order):
                self.order = order
                return Ok(order)
            case Error(e):
                logger.warning("refetch of %s failed: %s", order_id, e.message)
                return Error(OrderError(OrderErrorKind.STALE, e.message, e))

    async def pay(self) -> Result[Order, OrderError]:
        return await self._transition(
            OrderAction.PAY, self._api.pay_order, "Order has been marked as paid"
        )

    async def deliver(self) -> Result[Order, OrderError]:
        return await self._transition(
            OrderAction.DELIVER,
            self._api.deliver_order,
            "Order has been marked as delivered",
        )

    async def cancel(self, reason: str) -> Result[Order, OrderError]:
        """Cancel with a reason. A blank reason is refused locally."""
        if refusal := self._check(OrderAction.CANCEL):
            return Error(refusal)
        if not reason or not reason.strip():
            return Error(
                OrderError(OrderErrorKind.VALIDATION, "Please provide a cancellation reason")
            )
        text = reason.strip()
        return await self._transition(
            OrderAction.CANCEL,
            lambda order_id: self._api.cancel_order(order_id, text),
            "Order cancelled successfully",
        )

    async def upload_payment_proof(self, image_url: str) -> Result[Order, OrderError]:
        """Attach a QR payment screenshot. The image must already be hosted."""
        if refusal := self._check(OrderAction.UPLOAD_PROOF):
            return Error(refusal)
        if not image_url or not image_url.strip():
            return Error(
                OrderError(OrderErrorKind.VALIDATION, "Please upload a payment proof image")
            )
        url = image_url.strip()
        return await self._transition(
            OrderAction.UPLOAD_PROOF,
            lambda order_id: self._api.upload_payment_proof(order_id, url),
            "Payment proof uploaded successfully",
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Khalti
    # ───────────────────────────────────────────────────────────────────────────

    async def initialize_payment(
        self, website_url: str | None = None
    ) -> Result[str, OrderError]:
        """
        Start a gateway payment and return the URL to redirect to.

        The gateway sends the shopper back with `?payment=success`; pass
        the query to handle_payment_return.
        """
        if refusal := self._check(OrderAction.INITIALIZE_PAYMENT):
            return Error(refusal)
        assert self.order is not None

        self.busy = True
        try:
            target = website_url or self._policy.website_url
            match await self._api.initialize_payment(self.order.id, target):
                case Ok(redirect):
                    return Ok(redirect.payment_url)
                case Error(e):
                    return self._remote(e)
        finally:
            self.busy = False

    async def handle_payment_return(
        self, query: Mapping[str, str]
    ) -> Result[Order | None, OrderError]:
        """
        React to the gateway's return parameters.

        payment=success: notify, then refetch. Any other value: notify the
        failure. No parameter: nothing happens, Ok(current order).
        """
        outcome = query.get("payment")
        if not outcome:
            return Ok(self.order)
        if self.order is None:
            return Error(OrderError(OrderErrorKind.NOT_LOADED, "Order is not loaded"))
        if outcome != "success":
            self._notifier.error("Payment was not completed")
            return Ok(self.order)

        self._notifier.success("Payment successful")
        match await self._refetch(self.order.id):
            case Ok(order):
                return Ok(order)
            case Error(e):
                return Error(e)


__all__ = ("OrderTracker",)
