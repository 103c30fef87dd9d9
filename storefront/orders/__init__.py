"""
Orders — lifecycle state machine and history views.

    from storefront import orders as O

    O.order_state(order)                                # O.OrderState.PAID
    O.available_actions(order, O.Viewer.ADMIN)          # (O.OrderAction.DELIVER,)

    tracker = O.OrderTracker(api, viewer=O.Viewer.ADMIN)
    await tracker.load(order_id)
    await tracker.deliver()

    mine = O.sort_orders(O.filter_orders(orders, "processing"), "highest")
"""

from storefront.orders._types import (
    OrderState,
    OrderAction,
    Viewer,
    OrderErrorKind,
    OrderError,
)
from storefront.orders._state import order_state, available_actions
from storefront.orders._history import (
    StatusFilter,
    SortOrder,
    filter_orders,
    sort_orders,
    status_label,
)
from storefront.orders._tracker import OrderTracker

__all__ = (
    # Types
    "OrderState",
    "OrderAction",
    "Viewer",
    "OrderErrorKind",
    "OrderError",
    # State machine
    "order_state",
    "available_actions",
    # History
    "StatusFilter",
    "SortOrder",
    "filter_orders",
    "sort_orders",
    "status_label",
    # Tracker
    "OrderTracker",
)
