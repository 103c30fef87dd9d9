from datetime import timedelta
from decimal import Decimal
from urllib.parse import parse_qs, urlsplit

import pytest
from kungfu import Error, Ok

from storefront.api import MemoryStoreApi
from storefront.notify import MemoryNotifier
from storefront.orders import (
    OrderAction,
    OrderErrorKind,
    OrderState,
    OrderTracker,
    SortOrder,
    StatusFilter,
    Viewer,
    available_actions,
    filter_orders,
    order_state,
    sort_orders,
    status_label,
)
from storefront.policy import Policy
from storefront.schema import Order, PaymentMethod

from tests.factories import NOW, order_payload


A = OrderAction


async def place(backend: MemoryStoreApi, method: PaymentMethod) -> Order:
    result = await backend.create_order(order_payload(method))
    assert isinstance(result, Ok)
    return result.value


async def tracking(
    backend: MemoryStoreApi,
    notifier: MemoryNotifier,
    method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    *,
    viewer: Viewer = Viewer.CUSTOMER,
    policy: Policy | None = None,
) -> OrderTracker:
    order = await place(backend, method)
    tracker = OrderTracker(backend, viewer=viewer, notifier=notifier, policy=policy)
    assert isinstance(await tracker.load(order.id), Ok)
    backend.calls.clear()
    return tracker


# ═══════════════════════════════════════════════════════════════════════════════
# State machine
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("flags", "state"),
    [
        ({}, OrderState.UNPAID),
        ({"is_paid": True}, OrderState.PAID),
        ({"is_paid": True, "is_delivered": True}, OrderState.DELIVERED),
        ({"is_cancelled": True}, OrderState.CANCELLED),
        ({"is_paid": True, "is_delivered": True, "is_cancelled": True}, OrderState.CANCELLED),
    ],
)
def test_order_state_precedence(flags: dict[str, bool], state: OrderState) -> None:
    assert order_state(Order(id="o1", **flags)) is state


def test_terminal_states() -> None:
    assert OrderState.DELIVERED.is_terminal
    assert OrderState.CANCELLED.is_terminal
    assert not OrderState.PAID.is_terminal


@pytest.mark.parametrize(
    ("method", "extra", "viewer", "expected"),
    [
        (PaymentMethod.CASH_ON_DELIVERY, {}, Viewer.CUSTOMER, (A.CANCEL,)),
        (PaymentMethod.CASH_ON_DELIVERY, {}, Viewer.ADMIN, (A.PAY, A.CANCEL)),
        (PaymentMethod.QR_PAYMENT, {}, Viewer.CUSTOMER, (A.UPLOAD_PROOF, A.CANCEL)),
        (
            PaymentMethod.QR_PAYMENT,
            {"payment_proof_image": "/proof.png"},
            Viewer.CUSTOMER,
            (A.CANCEL,),
        ),
        (PaymentMethod.KHALTI, {}, Viewer.CUSTOMER, (A.INITIALIZE_PAYMENT, A.CANCEL)),
        (PaymentMethod.CASH_ON_DELIVERY, {"is_paid": True}, Viewer.ADMIN, (A.DELIVER,)),
        (PaymentMethod.CASH_ON_DELIVERY, {"is_paid": True}, Viewer.CUSTOMER, ()),
        (PaymentMethod.KHALTI, {"is_paid": True}, Viewer.CUSTOMER, ()),
    ],
)
def test_available_actions(
    method: PaymentMethod,
    extra: dict[str, object],
    viewer: Viewer,
    expected: tuple[OrderAction, ...],
) -> None:
    order = Order(id="o1", payment_method=method, **extra)
    assert available_actions(order, viewer) == expected


@pytest.mark.parametrize("viewer", list(Viewer))
@pytest.mark.parametrize(
    "flags",
    [
        {"is_cancelled": True},
        {"is_paid": True, "is_cancelled": True},
        {"is_paid": True, "is_delivered": True},
    ],
)
def test_terminal_orders_offer_nothing(flags: dict[str, bool], viewer: Viewer) -> None:
    order = Order(id="o1", payment_method=PaymentMethod.KHALTI, **flags)
    permissive = Policy().with_paid_khalti_cancel()
    assert available_actions(order, viewer, permissive) == ()


def test_paid_khalti_cancel_follows_policy() -> None:
    order = Order(id="o1", payment_method=PaymentMethod.KHALTI, is_paid=True)
    assert A.CANCEL not in available_actions(order, Viewer.CUSTOMER)
    allowed = Policy().with_paid_khalti_cancel()
    assert available_actions(order, Viewer.CUSTOMER, allowed) == (A.CANCEL,)

    cash = order.model_copy(update={"payment_method": PaymentMethod.CASH_ON_DELIVERY})
    assert A.CANCEL not in available_actions(cash, Viewer.CUSTOMER, allowed)


# ═══════════════════════════════════════════════════════════════════════════════
# Tracker — admin transitions
# ═══════════════════════════════════════════════════════════════════════════════


async def test_pay_then_deliver(backend: MemoryStoreApi, notifier: MemoryNotifier) -> None:
    tracker = await tracking(backend, notifier, viewer=Viewer.ADMIN)

    paid = await tracker.pay()
    assert isinstance(paid, Ok)
    assert paid.value.is_paid
    assert paid.value.payment_result is not None
    assert paid.value.payment_result.status == "COMPLETED"
    assert backend.calls == ["pay_order", "get_order"]
    assert tracker.actions == (A.DELIVER,)

    delivered = await tracker.deliver()
    assert isinstance(delivered, Ok)
    assert order_state(delivered.value) is OrderState.DELIVERED
    assert tracker.actions == ()
    assert notifier.successes == [
        "Order has been marked as paid",
        "Order has been marked as delivered",
    ]
    assert not tracker.busy


async def test_payment_decrements_stock(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    before = backend.product("rug")
    assert before is not None and before.quantity == 50
    tracker = await tracking(backend, notifier, viewer=Viewer.ADMIN)
    await tracker.pay()
    after = backend.product("rug")
    assert after is not None and after.quantity == 48


async def test_action_not_offered_sends_nothing(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier)

    for attempt in (tracker.pay, tracker.deliver):
        match await attempt():
            case Error(e):
                assert e.kind is OrderErrorKind.NOT_ALLOWED
            case Ok(_):
                pytest.fail("customer transition accepted")
    assert backend.calls == []
    assert notifier.messages == []


async def test_nothing_loaded(backend: MemoryStoreApi) -> None:
    match await OrderTracker(backend).pay():
        case Error(e):
            assert e.kind is OrderErrorKind.NOT_LOADED
        case Ok(_):
            pytest.fail("transition without an order")
    assert backend.calls == []


async def test_busy_refuses_second_transition(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier, viewer=Viewer.ADMIN)
    tracker.busy = True
    result = await tracker.pay()
    assert isinstance(result, Error)
    assert backend.calls == []


async def test_remote_failure_keeps_order(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier, viewer=Viewer.ADMIN)
    backend.fail_next("pay_order", "Order is already paid", 400)

    match await tracker.pay():
        case Error(e):
            assert e.kind is OrderErrorKind.REMOTE
            assert e.message == "Order is already paid"
        case Ok(_):
            pytest.fail("failure not surfaced")
    assert tracker.order is not None and not tracker.order.is_paid
    assert backend.calls == ["pay_order"]
    assert notifier.errors == ["Order is already paid"]
    assert not tracker.busy


async def test_failed_refetch_is_stale(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier, viewer=Viewer.ADMIN)
    assert tracker.order is not None
    order_id = tracker.order.id
    backend.fail_next("get_order", "Gateway timeout", 504)

    match await tracker.pay():
        case Error(e):
            assert e.kind is OrderErrorKind.STALE
            assert e.message == "Gateway timeout"
        case Ok(_):
            pytest.fail("failed refetch not surfaced")
    assert backend.calls == ["pay_order", "get_order"]
    assert notifier.successes == ["Order has been marked as paid"]

    applied = await backend.get_order(order_id)
    assert isinstance(applied, Ok) and applied.value.is_paid
    assert not tracker.busy


# ═══════════════════════════════════════════════════════════════════════════════
# Tracker — admin order list
# ═══════════════════════════════════════════════════════════════════════════════


async def test_admin_lists_all_orders(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    first = await place(backend, PaymentMethod.KHALTI)
    second = await place(backend, PaymentMethod.QR_PAYMENT)
    tracker = OrderTracker(backend, viewer=Viewer.ADMIN, notifier=notifier)

    result = await tracker.all_orders()
    assert isinstance(result, Ok)
    assert [o.id for o in result.value] == [first.id, second.id]
    assert backend.calls[-1] == "all_orders"


async def test_customer_cannot_list_all_orders(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    await place(backend, PaymentMethod.KHALTI)
    backend.calls.clear()

    match await OrderTracker(backend, notifier=notifier).all_orders():
        case Error(e):
            assert e.kind is OrderErrorKind.NOT_ALLOWED
        case Ok(_):
            pytest.fail("customer listed every order")
    assert backend.calls == []


async def test_all_orders_failure_notifies(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    backend.fail_next("all_orders", "Not authorized as an admin", 401)
    tracker = OrderTracker(backend, viewer=Viewer.ADMIN, notifier=notifier)

    match await tracker.all_orders():
        case Error(e):
            assert e.kind is OrderErrorKind.REMOTE
        case Ok(_):
            pytest.fail("failure not surfaced")
    assert notifier.errors == ["Not authorized as an admin"]


# ═══════════════════════════════════════════════════════════════════════════════
# Tracker — cancellation
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("reason", ["", "   "])
async def test_cancel_requires_reason(
    backend: MemoryStoreApi, notifier: MemoryNotifier, reason: str
) -> None:
    tracker = await tracking(backend, notifier)
    match await tracker.cancel(reason):
        case Error(e):
            assert e.kind is OrderErrorKind.VALIDATION
        case Ok(_):
            pytest.fail("blank reason accepted")
    assert backend.calls == []


async def test_cancelled_order_is_terminal(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier, viewer=Viewer.ADMIN)
    result = await tracker.cancel("  changed my mind ")

    assert isinstance(result, Ok)
    cancelled = result.value
    assert cancelled.is_cancelled
    assert cancelled.cancellation_reason == "changed my mind"
    assert cancelled.cancelled_at == NOW
    assert tracker.actions == ()
    assert notifier.successes == ["Order cancelled successfully"]

    backend.calls.clear()
    refused = await tracker.pay()
    assert isinstance(refused, Error)
    assert backend.calls == []

    forced = await backend.pay_order(cancelled.id)
    assert isinstance(forced, Error)
    reloaded = await backend.get_order(cancelled.id)
    assert isinstance(reloaded, Ok)
    assert not reloaded.value.is_paid and not reloaded.value.is_delivered


async def test_paid_khalti_cancel(backend: MemoryStoreApi, notifier: MemoryNotifier) -> None:
    order = await place(backend, PaymentMethod.KHALTI)
    assert isinstance(await backend.pay_order(order.id), Ok)

    strict = OrderTracker(backend, notifier=notifier)
    await strict.load(order.id)
    assert isinstance(await strict.cancel("refund please"), Error)

    lenient = OrderTracker(
        backend, notifier=notifier, policy=Policy().with_paid_khalti_cancel()
    )
    await lenient.load(order.id)
    result = await lenient.cancel("refund please")
    assert isinstance(result, Ok)
    assert order_state(result.value) is OrderState.CANCELLED


# ═══════════════════════════════════════════════════════════════════════════════
# Tracker — customer payments
# ═══════════════════════════════════════════════════════════════════════════════


async def test_upload_payment_proof(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier, PaymentMethod.QR_PAYMENT)

    match await tracker.upload_payment_proof(" "):
        case Error(e):
            assert e.kind is OrderErrorKind.VALIDATION
        case Ok(_):
            pytest.fail("blank proof accepted")
    assert backend.calls == []

    result = await tracker.upload_payment_proof("https://img.test/proof.png")
    assert isinstance(result, Ok)
    assert result.value.payment_proof_image == "https://img.test/proof.png"
    assert A.UPLOAD_PROOF not in tracker.actions
    assert notifier.successes == ["Payment proof uploaded successfully"]


async def test_khalti_round_trip(backend: MemoryStoreApi, notifier: MemoryNotifier) -> None:
    tracker = await tracking(backend, notifier, PaymentMethod.KHALTI)

    started = await tracker.initialize_payment("https://shop.test")
    assert isinstance(started, Ok)
    url = started.value
    assert "/order/" in url
    (pidx,) = parse_qs(urlsplit(url).query)["pidx"]

    assert isinstance(await backend.complete_payment(pidx), Ok)
    backend.calls.clear()

    returned = await tracker.handle_payment_return({"payment": "success"})
    assert isinstance(returned, Ok)
    assert returned.value is not None and returned.value.is_paid
    assert backend.calls == ["get_order"]
    assert notifier.successes == ["Payment successful"]

    again = await tracker.initialize_payment()
    assert isinstance(again, Error)


async def test_payment_return_without_outcome(
    backend: MemoryStoreApi, notifier: MemoryNotifier
) -> None:
    tracker = await tracking(backend, notifier, PaymentMethod.KHALTI)

    quiet = await tracker.handle_payment_return({})
    assert isinstance(quiet, Ok) and quiet.value is tracker.order

    failed = await tracker.handle_payment_return({"payment": "failed"})
    assert isinstance(failed, Ok)
    assert notifier.errors == ["Payment was not completed"]
    assert backend.calls == []


# ═══════════════════════════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def history() -> list[Order]:
    return [
        Order(id="old", total_price=Decimal("50"), created_at=NOW - timedelta(days=3)),
        Order(
            id="paid",
            is_paid=True,
            total_price=Decimal("120"),
            created_at=NOW - timedelta(days=1),
        ),
        Order(
            id="done",
            is_paid=True,
            is_delivered=True,
            total_price=Decimal("80"),
            created_at=NOW,
        ),
        Order(id="gone", is_cancelled=True, total_price=Decimal("10")),
    ]


def ids(orders: list[Order]) -> list[str]:
    return [o.id for o in orders]


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (StatusFilter.ALL, ["old", "paid", "done", "gone"]),
        (StatusFilter.PAID, ["paid", "done"]),
        (StatusFilter.UNPAID, ["old", "gone"]),
        (StatusFilter.DELIVERED, ["done"]),
        ("processing", ["paid"]),
        ("cancelled", ["gone"]),
    ],
)
def test_filter(history: list[Order], status: str, expected: list[str]) -> None:
    assert ids(filter_orders(history, status)) == expected


def test_filter_unknown_status(history: list[Order]) -> None:
    with pytest.raises(ValueError):
        filter_orders(history, "shipped")


@pytest.mark.parametrize(
    ("order", "expected"),
    [
        (SortOrder.NEWEST, ["done", "paid", "old", "gone"]),
        (SortOrder.OLDEST, ["gone", "old", "paid", "done"]),
        ("highest", ["paid", "done", "old", "gone"]),
        ("lowest", ["gone", "old", "done", "paid"]),
    ],
)
def test_sort(history: list[Order], order: str, expected: list[str]) -> None:
    assert ids(sort_orders(history, order)) == expected


def test_status_label(history: list[Order]) -> None:
    assert [status_label(o) for o in history] == [
        "Pending",
        "Paid",
        "Delivered",
        "Cancelled",
    ]
