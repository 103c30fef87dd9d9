"""
Order history — filtering, sorting and badges for the "my orders" list.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, UTC
from enum import StrEnum

from storefront._types import as_utc
from storefront.schema import Order


class StatusFilter(StrEnum):
    ALL = "all"
    PAID = "paid"
    UNPAID = "unpaid"
    DELIVERED = "delivered"
    PROCESSING = "processing"  # paid, not yet delivered
    CANCELLED = "cancelled"


class SortOrder(StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    HIGHEST = "highest"
    LOWEST = "lowest"


_EPOCH = datetime.min.replace(tzinfo=UTC)


def _matches(order: Order, status: StatusFilter) -> bool:
    match status:
        case StatusFilter.PAID:
            return order.is_paid
        case StatusFilter.UNPAID:
            return not order.is_paid
        case StatusFilter.DELIVERED:
            return order.is_delivered
        case StatusFilter.PROCESSING:
            return order.is_paid and not order.is_delivered
        case StatusFilter.CANCELLED:
            return order.is_cancelled
        case _:
            return True


def filter_orders(
    orders: Iterable[Order], status: StatusFilter | str = StatusFilter.ALL
) -> list[Order]:
    """Raises ValueError for an unknown status name."""
    wanted = StatusFilter(status)
    return [order for order in orders if _matches(order, wanted)]


def _created(order: Order) -> datetime:
    return as_utc(order.created_at) if order.created_at else _EPOCH


def sort_orders(
    orders: Iterable[Order], order: SortOrder | str = SortOrder.NEWEST
) -> list[Order]:
    """Stable sort; orders without a creation time sort as oldest."""
    match SortOrder(order):
        case SortOrder.NEWEST:
            return sorted(orders, key=_created, reverse=True)
        case SortOrder.OLDEST:
            return sorted(orders, key=_created)
        case SortOrder.HIGHEST:
            return sorted(orders, key=lambda o: o.total_price, reverse=True)
        case SortOrder.LOWEST:
            return sorted(orders, key=lambda o: o.total_price)


def status_label(order: Order) -> str:
    if order.is_cancelled:
        return "Cancelled"
    if order.is_delivered:
        return "Delivered"
    if order.is_paid:
        return "Paid"
    return "Pending"


__all__ = (
    "StatusFilter",
    "SortOrder",
    "filter_orders",
    "sort_orders",
    "status_label",
)
