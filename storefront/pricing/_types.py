"""
Pricing types.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PricingError:
    """Rejected discount definition."""

    message: str
    field: str | None = None


__all__ = ("PricingError",)
