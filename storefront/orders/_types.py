"""
Order types — lifecycle states, actions, viewer roles, errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, StrEnum, auto

from storefront.api import ApiError


# ═══════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class OrderState(Enum):
    """
    Derived from the order's status flags.

    Lifecycle:
        UNPAID → PAID → DELIVERED
               ↘ CANCELLED
        PAID   → CANCELLED   (Khalti only, when the policy allows it)

    DELIVERED and CANCELLED are terminal.
    """

    UNPAID = auto()
    PAID = auto()
    DELIVERED = auto()
    CANCELLED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (OrderState.DELIVERED, OrderState.CANCELLED)


class OrderAction(Enum):
    PAY = auto()  # admin marks paid
    UPLOAD_PROOF = auto()  # customer, QRPayment
    INITIALIZE_PAYMENT = auto()  # customer, Khalti redirect
    DELIVER = auto()  # admin
    CANCEL = auto()  # customer or admin


class Viewer(StrEnum):
    CUSTOMER = "customer"
    ADMIN = "admin"


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class OrderErrorKind(Enum):
    VALIDATION = auto()  # Missing reason or proof; nothing sent
    NOT_ALLOWED = auto()  # Action not offered in this state; nothing sent
    NOT_LOADED = auto()  # No order loaded yet
    REMOTE = auto()  # Service rejected the transition
    STALE = auto()  # Transition applied, but the refetch failed; order is outdated


@dataclass(frozen=True, slots=True)
class OrderError:
    kind: OrderErrorKind
    message: str
    original_error: ApiError | None = None


__all__ = (
    "OrderState",
    "OrderAction",
    "Viewer",
    "OrderErrorKind",
    "OrderError",
)
