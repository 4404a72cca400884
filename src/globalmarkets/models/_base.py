"""Base model shared by every globalmarkets data type.

:class:`MarketsBaseModel` provides:

* ``alias_generator=to_camel`` so the persisted document and the HTTP
  boundary use camelCase keys while Python code uses snake_case.
* ``populate_by_name=True`` so either spelling is accepted on input.
* Frozen instances; snapshots and readings are replaced, never patched.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def ensure_utc(value: Any) -> Any:
    """Coerce naive datetimes to UTC; parse ISO strings (``Z`` suffix included)."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, BeforeValidator(ensure_utc)]
"""Annotated type for timezone-aware UTC datetimes."""


class MarketsBaseModel(BaseModel):
    """Base for all globalmarkets models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with camelCase aliases and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)
