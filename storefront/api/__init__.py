"""
API — the remote store service, seen as a Result-returning protocol.

    from storefront import api as A

    # live service
    async with A.HttpStoreApi(policy) as store:
        cart = await store.get_cart()

    # in-process
    store = A.MemoryStoreApi(products)
    app = A.create_app(store)   # same routes over ASGI
"""

from storefront.api._types import ApiErrorKind, ApiError, StoreApi
from storefront.api._http import HttpStoreApi
from storefront.api._memory import MemoryStoreApi, aggregates
from storefront.api._app import create_app

__all__ = (
    "ApiErrorKind",
    "ApiError",
    "StoreApi",
    "HttpStoreApi",
    "MemoryStoreApi",
    "aggregates",
    "create_app",
)
