"""
Cart types — errors for mutations and for the local mirror.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from storefront.api import ApiError


class CartErrorKind(Enum):
    """Kinds of cart mutation errors."""

    INVALID_QUANTITY = auto()  # Not an integer >= 1; nothing sent
    IN_FLIGHT = auto()  # Same item already mutating; dropped, not queued
    OUT_OF_STOCK = auto()  # Stock ceiling below 1; nothing sent
    REMOTE = auto()  # Service rejected the mutation; cart re-synced


@dataclass(frozen=True, slots=True)
class CartError:
    """
    Cart mutation error.

    Note: original_error carries the ApiError when kind is REMOTE.
    """

    kind: CartErrorKind
    message: str
    original_error: ApiError | None = None


@dataclass(frozen=True, slots=True)
class MirrorError:
    """Local snapshot could not be read or written."""

    message: str
    cause: Exception | None = None


__all__ = ("CartErrorKind", "CartError", "MirrorError")
