"""
Notify — transient user-facing messages ("toasts").

    notifier = MemoryNotifier()
    await guard.change_quantity(line, 3)
    notifier.messages  # [Notice(level=ERROR, text="Only 2 left in stock")]

Notifications are what the shopper sees; logging is what operators see.
LogNotifier bridges the two for headless use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol


logger = logging.getLogger(__name__)

GENERIC_ERROR = "Network error"


# ═══════════════════════════════════════════════════════════════════════════════
# Notifier Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Notifier(Protocol):
    def success(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...


class Level(Enum):
    SUCCESS = auto()
    ERROR = auto()


@dataclass(frozen=True, slots=True)
class Notice:
    level: Level
    text: str


# ═══════════════════════════════════════════════════════════════════════════════
# Implementations
# ═══════════════════════════════════════════════════════════════════════════════


class LogNotifier:
    """Routes notifications to the `storefront.notify` logger."""

    def success(self, text: str) -> None:
        logger.info("notify: %s", text)

    def error(self, text: str) -> None:
        logger.warning("notify: %s", text)


class MemoryNotifier:
    """Records notifications in order. For tests and previews."""

    def __init__(self) -> None:
        self.messages: list[Notice] = []

    def success(self, text: str) -> None:
        self.messages.append(Notice(Level.SUCCESS, text))

    def error(self, text: str) -> None:
        self.messages.append(Notice(Level.ERROR, text))

    @property
    def errors(self) -> list[str]:
        return [n.text for n in self.messages if n.level is Level.ERROR]

    @property
    def successes(self) -> list[str]:
        return [n.text for n in self.messages if n.level is Level.SUCCESS]

    def clear(self) -> None:
        self.messages.clear()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "GENERIC_ERROR",
    "Notifier",
    "Level",
    "Notice",
    "LogNotifier",
    "MemoryNotifier",
)
