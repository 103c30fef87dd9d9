"""
HTTP store API — httpx client for the remote store service.

    async with HttpStoreApi(policy, headers={"Cookie": session}) as api:
        match await api.get_cart():
            case Ok(cart):
                ...
            case Error(e):
                print(e.kind, e.message)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx
from combinators import lift as L
from kungfu import Result, Ok, Error
from pydantic import TypeAdapter

from storefront.api._types import ApiError, ApiErrorKind
from storefront.notify import GENERIC_ERROR
from storefront.policy import Policy
from storefront.schema import (
    Cart,
    CartLineItem,
    CancelRequest,
    ErrorBody,
    Order,
    OrderPayload,
    PaymentInitRequest,
    PaymentInitResponse,
    PaymentMethod,
    PaymentMethodUpdate,
    PaymentProofRequest,
    PaymentRedirect,
    ShippingAddress,
    WireModel,
)


logger = logging.getLogger(__name__)

_ORDERS = TypeAdapter(list[Order])


# ═══════════════════════════════════════════════════════════════════════════════
# Response handling
# ═══════════════════════════════════════════════════════════════════════════════


def _transport_error(exc: Exception) -> ApiError:
    return ApiError(ApiErrorKind.NETWORK, GENERIC_ERROR, original_error=exc)


def _error_message(response: httpx.Response) -> str:
    """`message` field, else `error` field, else generic."""
    try:
        body = ErrorBody.model_validate(response.json())
    except ValueError:
        return GENERIC_ERROR
    return body.text or GENERIC_ERROR


def _decode[T](response: httpx.Response, decode: Callable[[Any], T]) -> Result[T, ApiError]:
    try:
        return Ok(decode(response.json()))
    except ValueError as e:
        return Error(
            ApiError(
                ApiErrorKind.DECODE,
                "Unexpected response from server",
                response.status_code,
                e,
            )
        )


def _payment(data: Any) -> PaymentRedirect:
    return PaymentInitResponse.model_validate(data).payment


# ═══════════════════════════════════════════════════════════════════════════════
# HttpStoreApi
# ═══════════════════════════════════════════════════════════════════════════════


class HttpStoreApi:
    """
    StoreApi over HTTP.

    Note: base URL and transport timeout come from the Policy. A timeout
    surfaces as ApiError(NETWORK) like any other transport failure.
    Pass `transport` to run against an in-process ASGI app.
    """

    def __init__(
        self,
        policy: Policy | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._policy = policy or Policy()
        self._client = httpx.AsyncClient(
            base_url=self._policy.base_url,
            timeout=self._policy.request_timeout.total_seconds(),
            headers=dict(headers or {}),
            transport=transport,
        )

    async def __aenter__(self) -> HttpStoreApi:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call[T](
        self,
        method: str,
        path: str,
        decode: Callable[[Any], T],
        body: WireModel | None = None,
    ) -> Result[T, ApiError]:
        payload = body.to_wire() if body is not None else None
        sent = await L.catching_async(
            lambda: self._client.request(method, path, json=payload),
            on_error=_transport_error,
        )()

        match sent:
            case Error(e):
                logger.warning("%s %s failed: %r", method, path, e.original_error)
                return Error(e)
            case Ok(response):
                if response.is_error:
                    message = _error_message(response)
                    logger.warning(
                        "%s %s -> %s: %s", method, path, response.status_code, message
                    )
                    return Error(
                        ApiError(ApiErrorKind.REMOTE, message, response.status_code)
                    )
                logger.debug("%s %s -> %s", method, path, response.status_code)
                return _decode(response, decode)

    # ───────────────────────────────────────────────────────────────────────────
    # Cart
    # ───────────────────────────────────────────────────────────────────────────

    async def get_cart(self) -> Result[Cart, ApiError]:
        return await self._call("GET", "/cart", Cart.model_validate)

    async def upsert_item(self, item: CartLineItem) -> Result[Cart, ApiError]:
        return await self._call("POST", "/cart", Cart.model_validate, item)

    async def remove_item(self, entry_id: str) -> Result[Cart, ApiError]:
        return await self._call("DELETE", f"/cart/item/{entry_id}", Cart.model_validate)

    async def update_shipping(self, address: ShippingAddress) -> Result[Cart, ApiError]:
        return await self._call("PUT", "/cart/shipping", Cart.model_validate, address)

    async def update_payment_method(
        self, method: PaymentMethod
    ) -> Result[Cart, ApiError]:
        return await self._call(
            "PUT",
            "/cart/payment",
            Cart.model_validate,
            PaymentMethodUpdate(payment_method=method),
        )

    async def clear_cart(self) -> Result[Cart, ApiError]:
        return await self._call("DELETE", "/cart", Cart.model_validate)

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    async def create_order(self, payload: OrderPayload) -> Result[Order, ApiError]:
        return await self._call("POST", "/orders", Order.model_validate, payload)

    async def get_order(self, order_id: str) -> Result[Order, ApiError]:
        return await self._call("GET", f"/orders/{order_id}", Order.model_validate)

    async def my_orders(self) -> Result[list[Order], ApiError]:
        return await self._call("GET", "/orders/mine", _ORDERS.validate_python)

    async def all_orders(self) -> Result[list[Order], ApiError]:
        return await self._call("GET", "/orders", _ORDERS.validate_python)

    async def pay_order(self, order_id: str) -> Result[Order, ApiError]:
        return await self._call("PUT", f"/orders/{order_id}/pay", Order.model_validate)

    async def deliver_order(self, order_id: str) -> Result[Order, ApiError]:
        return await self._call(
            "PUT", f"/orders/{order_id}/deliver", Order.model_validate
        )

    async def cancel_order(self, order_id: str, reason: str) -> Result[Order, ApiError]:
        return await self._call(
            "PUT",
            f"/orders/{order_id}/cancel",
            Order.model_validate,
            CancelRequest(reason=reason),
        )

    async def upload_payment_proof(
        self, order_id: str, image_url: str
    ) -> Result[Order, ApiError]:
        return await self._call(
            "PUT",
            f"/orders/{order_id}/payment-proof",
            Order.model_validate,
            PaymentProofRequest(image_url=image_url),
        )

    async def initialize_payment(
        self, order_id: str, website_url: str
    ) -> Result[PaymentRedirect, ApiError]:
        return await self._call(
            "POST",
            f"/orders/{order_id}/khalti/initialize",
            _payment,
            PaymentInitRequest(website_url=website_url),
        )


__all__ = ("HttpStoreApi",)
