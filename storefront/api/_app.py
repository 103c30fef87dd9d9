"""
ASGI stub server — serves any StoreApi over the service's HTTP routes.

    app = create_app(MemoryStoreApi(products))
    api = HttpStoreApi(policy, transport=httpx.ASGITransport(app=app))

Errors answer with {"message": ...} and the backend's status code,
matching what HttpStoreApi expects from the real service.
"""

from typing import Any

import fastapi
from fastapi.responses import JSONResponse
from kungfu import Result, Ok, Error

from storefront.api._memory import MemoryStoreApi
from storefront.api._types import ApiError, StoreApi
from storefront.schema import (
    CancelRequest,
    CartLineItem,
    OrderPayload,
    PaymentInitRequest,
    PaymentInitResponse,
    PaymentMethodUpdate,
    PaymentProofRequest,
    PaymentRedirect,
    ShippingAddress,
    WireModel,
)


def _encode(value: Any) -> Any:
    match value:
        case PaymentRedirect():
            return PaymentInitResponse(payment=value).to_wire()
        case WireModel():
            return value.to_wire()
        case list():
            return [_encode(v) for v in value]
        case _:
            return value


def _respond(result: Result[Any, ApiError], status_code: int = 200) -> JSONResponse:
    match result:
        case Ok(value):
            return JSONResponse(_encode(value), status_code=status_code)
        case Error(e):
            return JSONResponse({"message": e.message}, status_code=e.status or 500)


def create_app(backend: StoreApi | None = None, *, prefix: str = "/api") -> fastapi.FastAPI:
    """Build a FastAPI app routing the store endpoints to `backend`."""
    store: StoreApi = backend if backend is not None else MemoryStoreApi()
    router = fastapi.APIRouter(prefix=prefix)

    # ───────────────────────────────────────────────────────────────────────────
    # Cart
    # ───────────────────────────────────────────────────────────────────────────

    @router.get("/cart")
    async def get_cart() -> JSONResponse:
        return _respond(await store.get_cart())

    @router.post("/cart")
    async def upsert_item(item: CartLineItem) -> JSONResponse:
        return _respond(await store.upsert_item(item))

    @router.delete("/cart/item/{entry_id}")
    async def remove_item(entry_id: str) -> JSONResponse:
        return _respond(await store.remove_item(entry_id))

    @router.put("/cart/shipping")
    async def update_shipping(address: ShippingAddress) -> JSONResponse:
        return _respond(await store.update_shipping(address))

    @router.put("/cart/payment")
    async def update_payment_method(body: PaymentMethodUpdate) -> JSONResponse:
        return _respond(await store.update_payment_method(body.payment_method))

    @router.delete("/cart")
    async def clear_cart() -> JSONResponse:
        return _respond(await store.clear_cart())

    # ───────────────────────────────────────────────────────────────────────────
    # Orders (static paths before /orders/{order_id})
    # ───────────────────────────────────────────────────────────────────────────

    @router.post("/orders")
    async def create_order(payload: OrderPayload) -> JSONResponse:
        return _respond(await store.create_order(payload), status_code=201)

    @router.get("/orders")
    async def all_orders() -> JSONResponse:
        return _respond(await store.all_orders())

    @router.get("/orders/mine")
    async def my_orders() -> JSONResponse:
        return _respond(await store.my_orders())

    @router.get("/orders/{order_id}")
    async def get_order(order_id: str) -> JSONResponse:
        return _respond(await store.get_order(order_id))

    @router.put("/orders/{order_id}/pay")
    async def pay_order(order_id: str) -> JSONResponse:
        return _respond(await store.pay_order(order_id))

    @router.put("/orders/{order_id}/deliver")
    async def deliver_order(order_id: str) -> JSONResponse:
        return _respond(await store.deliver_order(order_id))

    @router.put("/orders/{order_id}/cancel")
    async def cancel_order(order_id: str, body: CancelRequest) -> JSONResponse:
        return _respond(await store.cancel_order(order_id, body.reason))

    @router.put("/orders/{order_id}/payment-proof")
    async def upload_payment_proof(
        order_id: str, body: PaymentProofRequest
    ) -> JSONResponse:
        return _respond(await store.upload_payment_proof(order_id, body.image_url))

    @router.post("/orders/{order_id}/khalti/initialize")
    async def initialize_payment(
        order_id: str, body: PaymentInitRequest
    ) -> JSONResponse:
        return _respond(await store.initialize_payment(order_id, body.website_url))

    app = fastapi.FastAPI(title="storefront")
    app.include_router(router)
    return app


__all__ = ("create_app",)
