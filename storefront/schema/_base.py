"""
Wire base — shared pydantic configuration and lenient field types.

The remote service speaks camelCase JSON with Mongo-style `_id` keys.
Python attributes stay snake_case; aliases are generated.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def _lenient_datetime(value: Any) -> datetime | None:
    """
    Parse a timestamp, mapping anything unparsable to None.

    Note: A discount with a garbage end date must evaluate as inactive,
    not fail the whole cart payload.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


LenientDatetime = Annotated[datetime | None, BeforeValidator(_lenient_datetime)]


class WireModel(BaseModel):
    """Base for every request/response shape."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with the service's key names."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = ("WireModel", "LenientDatetime")
