"""
Storefront policy — behaviour configuration.

    from storefront import Policy

    policy = (
        Policy()
        .with_api(base_url="https://shop.example.com/api")
        .with_timeout(seconds=5)
        .with_max_line_qty(10)
    )

Every component receives the same Policy instance; nothing reads globals.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import timedelta


_TRUE = frozenset({"1", "true", "yes", "on"})


def _flag(raw: str) -> bool:
    return raw.strip().lower() in _TRUE


# ═══════════════════════════════════════════════════════════════════════════════
# Policy — Full Configuration
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Storefront configuration.

    Chain the with_* builders to configure.

    Note: Immutable. Each builder returns a new Policy.

    max_line_qty: UI cap on a single line's quantity, independent of stock.
    enforce_discount_start: a discount whose start_date lies in the future is
        not active yet. Disabling it reproduces end-date-only checks.
    allow_paid_khalti_cancel: paid Khalti orders may still be cancelled.
    """

    base_url: str = "http://localhost:5000/api"
    website_url: str = "http://localhost:5173"
    request_timeout: timedelta = timedelta(seconds=10)
    max_line_qty: int = 20
    enforce_discount_start: bool = True
    allow_paid_khalti_cancel: bool = False

    def with_api(
        self,
        *,
        base_url: str | None = None,
        website_url: str | None = None,
    ) -> Policy:
        """
        Point the client at a backend.

        website_url is sent to the payment collaborator as the return target.
        """
        return replace(
            self,
            base_url=base_url if base_url is not None else self.base_url,
            website_url=website_url if website_url is not None else self.website_url,
        )

    def with_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        Set the transport timeout for remote calls.

        Example:
            .with_timeout(seconds=5)
        """
        if delta is not None:
            timeout = delta
        else:
            timeout = timedelta(seconds=seconds if seconds is not None else 10)
        if timeout <= timedelta(0):
            raise ValueError("request_timeout must be positive")
        return replace(self, request_timeout=timeout)

    def with_max_line_qty(self, limit: int) -> Policy:
        if limit < 1:
            raise ValueError("max_line_qty must be at least 1")
        return replace(self, max_line_qty=limit)

    def with_discount_start(self, enforce: bool = True) -> Policy:
        return replace(self, enforce_discount_start=enforce)

    def with_paid_khalti_cancel(self, allow: bool = True) -> Policy:
        return replace(self, allow_paid_khalti_cancel=allow)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Policy:
        """
        Build a policy from STOREFRONT_* variables, defaults for the rest.

            STOREFRONT_API_URL, STOREFRONT_WEBSITE_URL, STOREFRONT_TIMEOUT,
            STOREFRONT_MAX_LINE_QTY, STOREFRONT_ENFORCE_DISCOUNT_START,
            STOREFRONT_ALLOW_PAID_KHALTI_CANCEL
        """
        env = os.environ if environ is None else environ
        policy = cls().with_api(
            base_url=env.get("STOREFRONT_API_URL"),
            website_url=env.get("STOREFRONT_WEBSITE_URL"),
        )
        if "STOREFRONT_TIMEOUT" in env:
            policy = policy.with_timeout(seconds=float(env["STOREFRONT_TIMEOUT"]))
        if "STOREFRONT_MAX_LINE_QTY" in env:
            policy = policy.with_max_line_qty(int(env["STOREFRONT_MAX_LINE_QTY"]))
        if "STOREFRONT_ENFORCE_DISCOUNT_START" in env:
            policy = policy.with_discount_start(
                _flag(env["STOREFRONT_ENFORCE_DISCOUNT_START"])
            )
        if "STOREFRONT_ALLOW_PAID_KHALTI_CANCEL" in env:
            policy = policy.with_paid_khalti_cancel(
                _flag(env["STOREFRONT_ALLOW_PAID_KHALTI_CANCEL"])
            )
        return policy


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("Policy",)
