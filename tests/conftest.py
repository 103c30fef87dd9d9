import pytest

from storefront.api import MemoryStoreApi
from storefront.cart import CartSession
from storefront.notify import MemoryNotifier
from storefront.policy import Policy
from storefront.schema import ProductRef

from tests.factories import clock, spring_sale


@pytest.fixture
def products() -> list[ProductRef]:
    return [
        ProductRef(id="lamp", name="Lamp", image="/lamp.jpg", price=40.0, quantity=5),
        ProductRef(
            id="chair",
            name="Chair",
            image="/chair.jpg",
            price=100.0,
            quantity=3,
            discount=spring_sale(),
        ),
        ProductRef(id="vase", name="Vase", image="/vase.jpg", price=15.0, quantity=0),
        ProductRef(id="rug", name="Rug", image="/rug.jpg", price=30.0, quantity=50),
    ]


@pytest.fixture
def backend(products: list[ProductRef]) -> MemoryStoreApi:
    return MemoryStoreApi(products, clock=clock)


@pytest.fixture
def notifier() -> MemoryNotifier:
    return MemoryNotifier()


@pytest.fixture
def policy() -> Policy:
    return Policy()


@pytest.fixture
def session(
    backend: MemoryStoreApi, notifier: MemoryNotifier, policy: Policy
) -> CartSession:
    return CartSession(backend, notifier=notifier, policy=policy, clock=clock)
