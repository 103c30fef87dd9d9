"""
Memory store API — in-process reference backend.

Honours the service contract: upsert by product id with stock and price
checks, server-computed aggregates, and order state guards.

    api = MemoryStoreApi([
        ProductRef(_id="p1", name="Lamp", price=40.0, quantity=5),
    ])
    await api.upsert_item(CartLineItem(_id="l1", product="p1", name="Lamp", price=40.0, qty=2))
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from kungfu import Result, Ok, Error

from storefront._types import Clock, utc_now
from storefront.api._types import ApiError, ApiErrorKind
from storefront.pricing import effective_price, is_discount_active
from storefront.schema import (
    Cart,
    CartLineItem,
    Order,
    OrderItem,
    OrderPayload,
    PaymentMethod,
    PaymentRedirect,
    PaymentResult,
    ProductRef,
    ShippingAddress,
)


logger = logging.getLogger(__name__)

DEFAULT_STOCK = 20
PRICE_TOLERANCE = 0.01
FREE_SHIPPING_OVER = Decimal("100")
FLAT_SHIPPING = Decimal("10")
TAX_RATE = Decimal("0.15")

_CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def aggregates(
    lines: Iterable[CartLineItem | OrderItem],
) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """
    (items, shipping, tax, total) the way the service computes them.

    Shipping is free strictly above 100; tax is 15% of items.
    """
    items = _money(
        sum((Decimal(str(line.price)) * line.qty for line in lines), Decimal("0"))
    )
    shipping = _money(Decimal("0") if items > FREE_SHIPPING_OVER else FLAT_SHIPPING)
    tax = _money(items * TAX_RATE)
    return items, shipping, tax, items + shipping + tax


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


def _reject(message: str, status: int = 400) -> Error[ApiError]:
    return Error(ApiError(ApiErrorKind.REMOTE, message, status))


# ═══════════════════════════════════════════════════════════════════════════════
# MemoryStoreApi
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryStoreApi:
    """
    Single-shopper store service held in memory.

    Note: returns deep copies, so callers never alias server state.
    `calls` records every operation name; `fail_next` injects one failure.
    """

    def __init__(
        self,
        products: Iterable[ProductRef] = (),
        *,
        clock: Clock = utc_now,
        user: str = "shopper",
    ) -> None:
        self._products: dict[str, ProductRef] = {p.id: p for p in products}
        self._cart = Cart()
        self._orders: dict[str, Order] = {}
        self._payments: dict[str, str] = {}
        self._clock = clock
        self._user = user
        self._lock = asyncio.Lock()
        self._failures: dict[str, ApiError] = {}
        self.calls: list[str] = []

    # ───────────────────────────────────────────────────────────────────────────
    # Test hooks
    # ───────────────────────────────────────────────────────────────────────────

    def fail_next(self, operation: str, message: str, status: int = 500) -> None:
        """Make the next call to `operation` answer with an error."""
        self._failures[operation] = ApiError(ApiErrorKind.REMOTE, message, status)

    def add_product(self, product: ProductRef) -> None:
        self._products[product.id] = product

    def product(self, product_id: str) -> ProductRef | None:
        return self._products.get(product_id)

    def _enter(self, operation: str) -> ApiError | None:
        self.calls.append(operation)
        return self._failures.pop(operation, None)

    def _snapshot(self) -> Cart:
        return self._cart.model_copy(deep=True)

    def _recompute(self) -> None:
        items, shipping, tax, total = aggregates(self._cart.cart_items)
        self._cart.items_price = items
        self._cart.shipping_price = shipping
        self._cart.tax_price = tax
        self._cart.total_price = total

    def _order(self, order_id: str) -> Order | None:
        return self._orders.get(order_id)

    # ───────────────────────────────────────────────────────────────────────────
    # Cart
    # ───────────────────────────────────────────────────────────────────────────

    async def get_cart(self) -> Result[Cart, ApiError]:
        async with self._lock:
            if failure := self._enter("get_cart"):
                return Error(failure)
            return Ok(self._snapshot())

    async def upsert_item(self, item: CartLineItem) -> Result[Cart, ApiError]:
        async with self._lock:
            if failure := self._enter("upsert_item"):
                return Error(failure)

            product_id = item.product_id
            if not product_id or not item.name:
                return _reject("Missing required product information")

            product = self._products.get(product_id)
            if product is None:
                return _reject("Product not found", 404)

            stock = product.quantity if product.quantity is not None else DEFAULT_STOCK
            if item.qty > stock:
                return _reject(f"Only {stock} items available in stock")

            now = self._clock()
            expected = effective_price(product.price or 0.0, product.discount, now)
            if abs(item.price - expected) > PRICE_TOLERANCE:
                return _reject("Provided price does not match current product price")

            discount = (
                product.discount
                if is_discount_active(product.discount, now)
                else None
            )
            for line in self._cart.cart_items:
                if line.product_id == product_id:
                    line.qty = item.qty
                    line.price = item.price
                    line.discount = discount
                    line.quantity = stock
                    break
            else:
                self._cart.cart_items.append(
                    CartLineItem(
                        _id=item.id or _new_id(),
                        product=product.model_copy(deep=True),
                        name=item.name,
                        image=item.image,
                        price=item.price,
                        qty=item.qty,
                        discount=discount,
                        quantity=stock,
                    )
                )

            self._recompute()
            logger.debug("cart upsert %s qty=%s", product_id, item.qty)
            return Ok(self._snapshot())

    async def remove_item(self, entry_id: str) -> Result[Cart, ApiError]:
        async with self._lock:
            if failure := self._enter("remove_item"):
                return Error(failure)
            self._cart.cart_items = [
                line for line in self._cart.cart_items if line.id != entry_id
            ]
            self._recompute()
            return Ok(self._snapshot())

    async def update_shipping(self, address: ShippingAddress) -> Result[Cart, ApiError]:
        async with self._lock:
            if failure := self._enter("update_shipping"):
                return Error(failure)
            self._cart.shipping_address = address.model_copy()
            return Ok(self._snapshot())

    async def update_payment_method(
        self, method: PaymentMethod
    ) -> Result[Cart, ApiError]:
        async with self._lock:
            if failure := self._enter("update_payment_method"):
                return Error(failure)
            self._cart.payment_method = method
            return Ok(self._snapshot())

    async def clear_cart(self) -> Result[Cart, ApiError]:
        async with self._lock:
            if failure := self._enter("clear_cart"):
                return Error(failure)
            self._cart.cart_items = []
            self._recompute()
            self._cart.shipping_price = Decimal("0.00")
            self._cart.total_price = Decimal("0.00")
            return Ok(self._snapshot())

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    async def create_order(self, payload: OrderPayload) -> Result[Order, ApiError]:
        async with self._lock:
            if failure := self._enter("create_order"):
                return Error(failure)
            if not payload.order_items:
                return _reject("No order items")

            items: list[OrderItem] = []
            for line in payload.order_items:
                if line.product not in self._products:
                    return _reject(f"Product not found: {line.product}", 404)
                items.append(
                    OrderItem(
                        name=line.name,
                        qty=line.qty,
                        image=line.image,
                        price=line.price,
                        product=line.product,
                        discount=line.discount,
                    )
                )

            items_price, shipping, tax, total = aggregates(items)
            order = Order(
                _id=_new_id(),
                user=self._user,
                order_items=items,
                shipping_address=payload.shipping_address,
                payment_method=payload.payment_method,
                items_price=items_price,
                shipping_price=shipping,
                tax_price=tax,
                total_price=total,
                total_savings=_money(Decimal(str(payload.total_savings))),
                created_at=self._clock(),
            )
            self._orders[order.id] = order
            logger.info("order %s created, total %s", order.id, total)
            return Ok(order.model_copy(deep=True))

    async def get_order(self, order_id: str) -> Result[Order, ApiError]:
        async with self._lock:
            if failure := self._enter("get_order"):
                return Error(failure)
            order = self._order(order_id)
            if order is None:
                return _reject("Order not found", 404)
            return Ok(order.model_copy(deep=True))

    async def my_orders(self) -> Result[list[Order], ApiError]:
        async with self._lock:
            if failure := self._enter("my_orders"):
                return Error(failure)
            return Ok([o.model_copy(deep=True) for o in self._orders.values()])

    async def all_orders(self) -> Result[list[Order], ApiError]:
        """Single shopper, so the admin list holds the same orders as my_orders."""
        async with self._lock:
            if failure := self._enter("all_orders"):
                return Error(failure)
            return Ok([o.model_copy(deep=True) for o in self._orders.values()])

    async def pay_order(self, order_id: str) -> Result[Order, ApiError]:
        async with self._lock:
            if failure := self._enter("pay_order"):
                return Error(failure)
            order = self._order(order_id)
            if order is None:
                return _reject("Order not found", 404)
            if order.is_cancelled:
                return _reject("Cannot pay a cancelled order")
            if order.is_paid:
                return _reject("Order is already paid")

            for line in order.order_items:
                product = self._products.get(line.product_id or "")
                if product is not None and product.quantity is not None:
                    product.quantity = max(0, product.quantity - line.qty)

            now = self._clock()
            order.is_paid = True
            order.paid_at = now
            order.payment_result = PaymentResult(
                id=str(int(now.timestamp() * 1000)),
                status="COMPLETED",
                update_time=now.isoformat(),
                email_address="",
            )
            logger.info("order %s paid", order_id)
            return Ok(order.model_copy(deep=True))

    async def deliver_order(self, order_id: str) -> Result[Order, ApiError]:
        async with self._lock:
            if failure := self._enter("deliver_order"):
                return Error(failure)
            order = self._order(order_id)
            if order is None:
                return _reject("Order not found", 404)
            if order.is_cancelled:
                return _reject("Cannot deliver a cancelled order")
            if not order.is_paid:
                return _reject("Order is not paid yet")

            order.is_delivered = True
            order.delivered_at = self._clock()
            logger.info("order %s delivered", order_id)
            return Ok(order.model_copy(deep=True))

    async def cancel_order(self, order_id: str, reason: str) -> Result[Order, ApiError]:
        async with self._lock:
            if failure := self._enter("cancel_order"):
                return Error(failure)
            order = self._order(order_id)
            if order is None:
                return _reject("Order not found", 404)
            if order.is_cancelled:
                return _reject("Order is already cancelled")
            if order.is_delivered:
                return _reject("Cannot cancel delivered orders")
            if order.is_paid and order.payment_method is not PaymentMethod.KHALTI:
                return _reject("Cannot cancel paid orders")

            order.is_cancelled = True
            order.cancelled_at = self._clock()
            order.cancellation_reason = reason.strip() or "No reason provided"
            logger.info("order %s cancelled", order_id)
            return Ok(order.model_copy(deep=True))

    async def upload_payment_proof(
        self, order_id: str, image_url: str
    ) -> Result[Order, ApiError]:
        async with self._lock:
            if failure := self._enter("upload_payment_proof"):
                return Error(failure)
            order = self._order(order_id)
            if order is None:
                return _reject("Order not found", 404)
            if order.is_cancelled:
                return _reject("Cannot update a cancelled order")

            order.payment_proof_image = image_url
            return Ok(order.model_copy(deep=True))

    async def initialize_payment(
        self, order_id: str, website_url: str
    ) -> Result[PaymentRedirect, ApiError]:
        async with self._lock:
            if failure := self._enter("initialize_payment"):
                return Error(failure)
            order = self._order(order_id)
            if order is None:
                return _reject("Order not found", 404)
            if order.is_paid or order.is_cancelled:
                return _reject("Order cannot be paid")

            pidx = _new_id()
            self._payments[pidx] = order_id
            return Ok(
                PaymentRedirect(
                    payment_url=(
                        f"https://pay.khalti.test/?pidx={pidx}"
                        f"&return_url={website_url.rstrip('/')}/order/{order_id}"
                    ),
                    pidx=pidx,
                )
            )

    async def complete_payment(self, pidx: str) -> Result[Order, ApiError]:
        """Gateway callback: the payment behind `pidx` succeeded."""
        order_id = self._payments.pop(pidx, None)
        if order_id is None:
            return _reject("Unknown payment", 404)
        return await self.pay_order(order_id)


__all__ = ("MemoryStoreApi", "aggregates")
