"""
Quantity mutation guard — at most one in-flight mutation per cart line.

    guard = QuantityGuard(session)

    match await guard.change_quantity(line, "3"):
        case Ok(cart):
            ...                       # mirror already replaced
        case Error(CartError(kind=CartErrorKind.IN_FLIGHT)):
            ...                       # dropped: same line still mutating
        case Error(e):
            ...

A second request for a line that is still mutating is dropped, not
queued. Different lines may race; the server's last write wins.
"""

from __future__ import annotations

import logging
from types import TracebackType

from kungfu import Result, Ok, Error

from storefront._types import ItemKey
from storefront.api import ApiError
from storefront.cart._session import CartSession
from storefront.cart._types import CartError, CartErrorKind
from storefront.pricing import effective_price
from storefront.schema import Cart, CartLineItem, ProductRef


logger = logging.getLogger(__name__)

DEFAULT_STOCK = 20


# ═══════════════════════════════════════════════════════════════════════════════
# In-flight table
# ═══════════════════════════════════════════════════════════════════════════════


class LockHandle:
    """
    Scoped hold on one key. Released on every exit path of the `with` block.

    Note: release is idempotent.
    """

    __slots__ = ("_table", "key", "_released")

    def __init__(self, table: InFlightTable, key: ItemKey) -> None:
        self._table = table
        self.key = key
        self._released = False

    def release(self) -> None:
        if not self._released:
            self._released = True
            self._table._release(self.key)

    def __enter__(self) -> LockHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class InFlightTable:
    """
    Keys with a mutation currently awaiting the server.

    try_acquire is check-and-set with no await in between, so on a single
    event loop two coroutines can never both hold the same key.
    """

    def __init__(self) -> None:
        self._held: set[ItemKey] = set()

    def try_acquire(self, key: ItemKey) -> LockHandle | None:
        if key in self._held:
            return None
        self._held.add(key)
        return LockHandle(self, key)

    def _release(self, key: ItemKey) -> None:
        self._held.discard(key)

    def __contains__(self, key: object) -> bool:
        return key in self._held

    def __len__(self) -> int:
        return len(self._held)


# ═══════════════════════════════════════════════════════════════════════════════
# Quantity parsing
# ═══════════════════════════════════════════════════════════════════════════════


def parse_quantity(requested: object) -> int | None:
    """Integer >= 1 from an int, an integral float, or an integral string."""
    match requested:
        case bool():
            return None
        case int():
            value = requested
        case float() if requested.is_integer():
            value = int(requested)
        case str():
            try:
                value = int(requested.strip())
            except ValueError:
                return None
        case _:
            return None
    return value if value >= 1 else None


# ═══════════════════════════════════════════════════════════════════════════════
# QuantityGuard
# ═══════════════════════════════════════════════════════════════════════════════


class QuantityGuard:
    """
    Validates, deduplicates and clamps cart mutations.

    Note: guard drops and invalid input are silent (no notification).
    Remote failures notify with the server's message and re-sync the
    whole cart from the server.
    """

    def __init__(self, session: CartSession, table: InFlightTable | None = None) -> None:
        self._session = session
        self._table = table if table is not None else InFlightTable()

    @property
    def in_flight(self) -> InFlightTable:
        return self._table

    async def change_quantity(
        self, item: CartLineItem, requested: object
    ) -> Result[Cart, CartError]:
        """Set the line's quantity to `requested`, clamped to stock and policy."""
        return await self._upsert(item, requested)

    async def add_item(
        self, product: ProductRef, requested: object = 1
    ) -> Result[Cart, CartError]:
        """
        Put a product into the cart at `requested` quantity.

        The unit price sent is the discounted price at the session's clock.
        """
        policy = self._session.policy
        line = CartLineItem(
            _id=product.id,
            product=product.id,
            name=product.name,
            image=product.image,
            price=effective_price(
                product.price or 0.0,
                product.discount,
                self._session.clock(),
                enforce_start=policy.enforce_discount_start,
            ),
            qty=1,
            discount=product.discount,
            quantity=product.quantity if product.quantity is not None else DEFAULT_STOCK,
        )
        return await self._upsert(line, requested)

    async def remove_item(self, item: CartLineItem) -> Result[Cart, CartError]:
        """Delete by entry id. Not serialized against quantity changes."""
        result = await self._session.api.remove_item(item.id)
        return await self._settle(result)

    async def _upsert(
        self, item: CartLineItem, requested: object
    ) -> Result[Cart, CartError]:
        qty = parse_quantity(requested)
        if qty is None:
            logger.debug("ignored quantity %r for %s", requested, item.key)
            return Error(
                CartError(CartErrorKind.INVALID_QUANTITY, f"Invalid quantity: {requested!r}")
            )

        handle = self._table.try_acquire(item.key)
        if handle is None:
            logger.debug("dropped mutation for %s: in flight", item.key)
            return Error(CartError(CartErrorKind.IN_FLIGHT, f"{item.key} is updating"))

        with handle:
            ceiling = min(item.quantity, self._session.policy.max_line_qty)
            if ceiling < 1:
                return Error(CartError(CartErrorKind.OUT_OF_STOCK, "Out of stock"))

            line = item.model_copy(
                update={"qty": min(qty, ceiling), "product": item.product_id}
            )
            result = await self._session.api.upsert_item(line)
            return await self._settle(result)

    async def _settle(self, result: Result[Cart, ApiError]) -> Result[Cart, CartError]:
        match result:
            case Ok(cart):
                await self._session.adopt(cart)
                return Ok(cart)
            case Error(e):
                self._session.notifier.error(e.message)
                await self._session.refresh()
                return Error(CartError(CartErrorKind.REMOTE, e.message, e))


__all__ = (
    "LockHandle",
    "InFlightTable",
    "parse_quantity",
    "QuantityGuard",
)
