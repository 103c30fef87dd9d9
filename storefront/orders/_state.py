"""
Order state machine — which transitions an order offers, and to whom.

Pure functions over the server's order; nothing here touches the network.
"""

from __future__ import annotations

from storefront.orders._types import OrderAction, OrderState, Viewer
from storefront.policy import Policy
from storefront.schema import Order, PaymentMethod


def order_state(order: Order) -> OrderState:
    """Precedence: cancelled > delivered > paid > unpaid."""
    if order.is_cancelled:
        return OrderState.CANCELLED
    if order.is_delivered:
        return OrderState.DELIVERED
    if order.is_paid:
        return OrderState.PAID
    return OrderState.UNPAID


def _cancellable(order: Order, policy: Policy) -> bool:
    match order_state(order):
        case OrderState.UNPAID:
            return True
        case OrderState.PAID:
            return (
                policy.allow_paid_khalti_cancel
                and order.payment_method is PaymentMethod.KHALTI
            )
        case _:
            return False


def available_actions(
    order: Order,
    viewer: Viewer,
    policy: Policy | None = None,
) -> tuple[OrderAction, ...]:
    """
    Actions to offer `viewer` for `order`, in display order.

    Example:
        if OrderAction.CANCEL in available_actions(order, Viewer.CUSTOMER):
            show_cancel_button()
    """
    policy = policy or Policy()
    state = order_state(order)
    actions: list[OrderAction] = []

    if state is OrderState.UNPAID:
        if viewer is Viewer.ADMIN:
            actions.append(OrderAction.PAY)
        elif order.payment_method is PaymentMethod.QR_PAYMENT:
            if not order.payment_proof_image:
                actions.append(OrderAction.UPLOAD_PROOF)
        elif order.payment_method is PaymentMethod.KHALTI:
            actions.append(OrderAction.INITIALIZE_PAYMENT)

    if state is OrderState.PAID and viewer is Viewer.ADMIN:
        actions.append(OrderAction.DELIVER)

    if _cancellable(order, policy):
        actions.append(OrderAction.CANCEL)

    return tuple(actions)


__all__ = ("order_state", "available_actions")
