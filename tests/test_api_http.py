import json
from collections.abc import AsyncIterator, Callable
from decimal import Decimal

import httpx
import pytest
from kungfu import Error, Ok

from storefront.api import ApiErrorKind, HttpStoreApi, MemoryStoreApi, create_app
from storefront.cart import CartSession, QuantityGuard
from storefront.checkout import CheckoutController
from storefront.notify import GENERIC_ERROR, MemoryNotifier
from storefront.policy import Policy
from storefront.schema import (
    Cart,
    CartLineItem,
    PaymentMethod,
    ProductRef,
    ShippingAddress,
)

from tests.factories import clock, order_payload


POLICY = Policy().with_api(base_url="http://testserver/api")


def lamp(qty: int = 1) -> CartLineItem:
    return CartLineItem(id="l1", product="lamp", name="Lamp", price=40.0, qty=qty)


@pytest.fixture
async def api(backend: MemoryStoreApi) -> AsyncIterator[HttpStoreApi]:
    transport = httpx.ASGITransport(app=create_app(backend))
    async with HttpStoreApi(POLICY, transport=transport) as client:
        yield client


def mocked(handler: Callable[[httpx.Request], httpx.Response]) -> HttpStoreApi:
    return HttpStoreApi(POLICY, transport=httpx.MockTransport(handler))


# ═══════════════════════════════════════════════════════════════════════════════
# Against the ASGI stub
# ═══════════════════════════════════════════════════════════════════════════════


async def test_empty_cart(api: HttpStoreApi) -> None:
    result = await api.get_cart()
    assert isinstance(result, Ok)
    assert result.value.is_empty
    assert result.value.total_price == Decimal("0.00")


async def test_upsert_returns_populated_cart(api: HttpStoreApi) -> None:
    result = await api.upsert_item(lamp(2))

    assert isinstance(result, Ok)
    (entry,) = result.value.cart_items
    assert isinstance(entry.product, ProductRef)
    assert entry.key == "lamp"
    assert entry.qty == 2
    assert result.value.items_price == Decimal("80.00")
    assert result.value.shipping_price == Decimal("10.00")
    assert result.value.tax_price == Decimal("12.00")
    assert result.value.total_price == Decimal("102.00")


@pytest.mark.parametrize(
    ("item", "status", "message"),
    [
        (lamp(6), 400, "Only 5 items available in stock"),
        (
            CartLineItem(id="x", product="ghost", name="Ghost", price=1.0),
            404,
            "Product not found",
        ),
        (
            CartLineItem(id="l1", product="lamp", name="Lamp", price=39.0),
            400,
            "Provided price does not match current product price",
        ),
    ],
)
async def test_service_rejections_carry_message(
    api: HttpStoreApi, item: CartLineItem, status: int, message: str
) -> None:
    match await api.upsert_item(item):
        case Error(e):
            assert e.kind is ApiErrorKind.REMOTE
            assert e.status == status
            assert e.message == message
        case Ok(_):
            pytest.fail("rejection not surfaced")


async def test_unknown_order(api: HttpStoreApi) -> None:
    match await api.get_order("nope"):
        case Error(e):
            assert (e.status, e.message) == (404, "Order not found")
        case Ok(_):
            pytest.fail("unknown order found")


async def test_orders_round_trip(api: HttpStoreApi) -> None:
    created = await api.create_order(order_payload(PaymentMethod.KHALTI))
    assert isinstance(created, Ok)
    order = created.value
    assert order.total_price == Decimal("79.00")
    assert order.created_at is not None

    mine = await api.my_orders()
    assert isinstance(mine, Ok)
    assert [o.id for o in mine.value] == [order.id]

    every = await api.all_orders()
    assert isinstance(every, Ok)
    assert [o.id for o in every.value] == [order.id]

    redirect = await api.initialize_payment(order.id, "https://shop.test")
    assert isinstance(redirect, Ok)
    assert redirect.value.pidx
    assert redirect.value.payment_url.startswith("https://")

    cancelled = await api.cancel_order(order.id, "too slow")
    assert isinstance(cancelled, Ok)
    assert cancelled.value.is_cancelled
    assert cancelled.value.cancellation_reason == "too slow"


async def test_checkout_over_http(api: HttpStoreApi, backend: MemoryStoreApi) -> None:
    notifier = MemoryNotifier()
    session = CartSession(api, notifier=notifier, clock=clock)
    chair = backend.product("chair")
    assert chair is not None

    assert isinstance(await QuantityGuard(session).add_item(chair, 1), Ok)
    checkout = CheckoutController(session)
    address = ShippingAddress.model_validate(
        {
            "address": "1 Durbar Marg",
            "city": "Kathmandu",
            "postalCode": "44600",
            "country": "Nepal",
        }
    )
    shipped = await checkout.submit_shipping(address, PaymentMethod.QR_PAYMENT)
    assert isinstance(shipped, Ok)

    placed = await checkout.place_order()
    assert isinstance(placed, Ok)
    assert placed.value.total_savings == Decimal("20.00")
    assert notifier.errors == []

    remote = await api.get_cart()
    assert isinstance(remote, Ok) and remote.value.is_empty


# ═══════════════════════════════════════════════════════════════════════════════
# Response mapping
# ═══════════════════════════════════════════════════════════════════════════════


async def test_transport_failure_is_network_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with mocked(refuse) as api:
        match await api.get_cart():
            case Error(e):
                assert e.kind is ApiErrorKind.NETWORK
                assert e.message == GENERIC_ERROR
                assert isinstance(e.original_error, httpx.ConnectError)
            case Ok(_):
                pytest.fail("transport failure not surfaced")


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(400, json={"message": "Cart not found"}), "Cart not found"),
        (httpx.Response(403, json={"error": "Not authorized"}), "Not authorized"),
        (httpx.Response(500, text="<html>oops</html>"), GENERIC_ERROR),
        (httpx.Response(502, json={}), GENERIC_ERROR),
    ],
)
async def test_error_body_message(response: httpx.Response, message: str) -> None:
    async with mocked(lambda request: response) as api:
        match await api.get_cart():
            case Error(e):
                assert e.kind is ApiErrorKind.REMOTE
                assert e.message == message
                assert e.status == response.status_code
            case Ok(_):
                pytest.fail("error status not surfaced")


async def test_malformed_success_is_decode_error() -> None:
    async with mocked(lambda request: httpx.Response(200, text="not json")) as api:
        match await api.get_order("o1"):
            case Error(e):
                assert e.kind is ApiErrorKind.DECODE
            case Ok(_):
                pytest.fail("garbage decoded")


async def test_request_bodies_use_service_keys() -> None:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/initialize"):
            return httpx.Response(
                200, json={"payment": {"payment_url": "https://pay.test", "pidx": "p1"}}
            )
        if request.url.path.startswith("/api/orders"):
            return httpx.Response(200, json={"_id": "o1"})
        return httpx.Response(200, json=Cart().to_wire())

    async with mocked(record) as api:
        await api.upsert_item(lamp(2))
        await api.update_payment_method(PaymentMethod.KHALTI)
        await api.upload_payment_proof("o1", "https://img.test/p.png")
        redirect = await api.initialize_payment("o1", "https://shop.test")

    bodies = [json.loads(r.content) for r in seen]
    assert [r.url.path for r in seen] == [
        "/api/cart",
        "/api/cart/payment",
        "/api/orders/o1/payment-proof",
        "/api/orders/o1/khalti/initialize",
    ]
    assert bodies[0]["_id"] == "l1" and bodies[0]["qty"] == 2
    assert bodies[1] == {"paymentMethod": "Khalti"}
    assert bodies[2] == {"imageUrl": "https://img.test/p.png"}
    assert bodies[3] == {"website_url": "https://shop.test"}
    assert isinstance(redirect, Ok) and redirect.value.pidx == "p1"
