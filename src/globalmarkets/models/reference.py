"""Static reference records: the tracked catalogue and its baseline fields."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from globalmarkets.models._base import MarketsBaseModel


class Region(StrEnum):
    AFRICA = "Africa"
    NORTH_AMERICA = "North America"
    SOUTH_AMERICA = "South America"
    EUROPE = "Europe"
    ASIA = "Asia"
    MIDDLE_EAST = "Middle East"
    OCEANIA = "Oceania"


class MarketIndex(MarketsBaseModel):
    """One named sub-index of a multi-index entity."""

    name: str
    value: str
    notes: str = ""


class TrackedEntity(MarketsBaseModel):
    """Identity of a tracked country and the index names looked up for it."""

    id: str
    display_name: str
    tracked_index_names: tuple[str, ...] = ()
    country_code: str | None = None


class ReferenceEntity(MarketsBaseModel):
    """Baseline record for one country.

    ``indices`` is set only for entities that break their market down into
    named sub-indices; single-index entities carry their level in
    ``market_value``.
    """

    id: str
    country: str
    flag: str = ""
    index_name: str
    currency: str
    currency_symbol: str
    exchange_rate: str
    gdp: float
    notes: str = ""
    fun_fact: str = ""
    region: Region
    lat: float
    lng: float
    market_value: str
    indices: tuple[MarketIndex, ...] | None = None
    tracked_indices: tuple[str, ...] = Field(default_factory=tuple)
    country_code: str | None = None

    @property
    def is_multi_index(self) -> bool:
        return bool(self.indices)

    def tracked(self) -> TrackedEntity:
        return TrackedEntity(
            id=self.id,
            display_name=self.country,
            tracked_index_names=self.tracked_indices,
            country_code=self.country_code,
        )


class MergedViewEntity(ReferenceEntity):
    """Display-ready entity: baseline fields overlaid with found live readings."""

    gdp_year: str | None = None
    live_fields: tuple[str, ...] = ()
