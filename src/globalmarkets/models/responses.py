"""Documents returned across the service boundary."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from globalmarkets.models._base import MarketsBaseModel
from globalmarkets.models.readings import IndexReading


class CacheStatus(MarketsBaseModel):
    has_data: bool
    updated_at: datetime | None = None
    age_hours: float | None = None
    countries_count: int = 0


class RefreshState(StrEnum):
    PROCESSING = "processing"
    ALREADY_RUNNING = "already_running"


class RefreshAck(MarketsBaseModel):
    """Acknowledgement of a detached full refresh.

    Carries no completion signal; poll the status document to observe
    when the new snapshot lands.
    """

    message: str
    status: RefreshState


class SingleEntityRefresh(MarketsBaseModel):
    """Transient readings from an on-demand single-entity lookup (never persisted)."""

    entity_id: str
    indices: dict[str, IndexReading] = Field(default_factory=dict)
