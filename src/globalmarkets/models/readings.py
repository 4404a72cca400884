"""Live readings and the snapshot document built from them."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, model_validator

from globalmarkets.models._base import MarketsBaseModel, UtcDatetime


class IndexReading(MarketsBaseModel):
    """Value of one stock index as extracted from search results.

    Parameters
    ----------
    name : str
        Tracked index name (e.g. ``"FTSE 100"``).
    value : str or None
        Index level as formatted text (``"8,210.45"``).
    found : bool
        Whether a value was obtained.
    error : str or None
        Failure message when the lookup raised.
    """

    name: str = ""
    value: str | None = None
    found: bool = False
    error: str | None = None

    @classmethod
    def missing(cls, name: str, error: str | None = None) -> IndexReading:
        return cls(name=name, value=None, found=False, error=error)


class GDPReading(MarketsBaseModel):
    """Latest GDP observation in trillions of USD, rounded to 2 decimals."""

    value: float | None = Field(
        default=None,
        validation_alias=AliasChoices("gdp", "value"),
        serialization_alias="gdp",
    )
    as_of_year: str | None = Field(
        default=None,
        validation_alias=AliasChoices("year", "asOfYear", "as_of_year"),
        serialization_alias="year",
    )
    found: bool = False

    @classmethod
    def missing(cls) -> GDPReading:
        return cls(value=None, as_of_year=None, found=False)


class EntitySnapshot(MarketsBaseModel):
    """All live readings gathered for one tracked entity during a run."""

    entity_id: str = ""
    indices: dict[str, IndexReading] = Field(default_factory=dict)
    gdp: GDPReading = Field(default_factory=GDPReading.missing)

    @model_validator(mode="before")
    @classmethod
    def _name_readings_from_keys(cls, values: Any) -> Any:
        # The document keys readings by index name; the name field is optional on disk.
        if not isinstance(values, dict):
            return values
        indices = values.get("indices")
        if not isinstance(indices, dict):
            return values
        named: dict[str, Any] = {}
        for key, reading in indices.items():
            if isinstance(reading, dict) and not reading.get("name"):
                reading = {**reading, "name": key}
            named[key] = reading
        return {**values, "indices": named}


class CacheSnapshot(MarketsBaseModel):
    """A complete, timestamped set of readings for every tracked entity.

    Persisted as ``{"updatedAt": ..., "data": {entityId: {...}}}``.
    """

    updated_at: UtcDatetime
    entities: dict[str, EntitySnapshot] = Field(default_factory=dict, alias="data")

    @model_validator(mode="before")
    @classmethod
    def _id_entities_from_keys(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        key = "data" if "data" in values else "entities"
        entities = values.get(key)
        if not isinstance(entities, dict):
            return values
        keyed: dict[str, Any] = {}
        for entity_id, entity in entities.items():
            if isinstance(entity, dict) and not entity.get("entityId") and not entity.get("entity_id"):
                entity = {**entity, "entityId": entity_id}
            keyed[entity_id] = entity
        return {**values, key: keyed}

    def entity(self, entity_id: str) -> EntitySnapshot | None:
        return self.entities.get(entity_id)


class ExtractedValue(MarketsBaseModel):
    """Structured output of the extraction provider: ``{value, found}``."""

    value: str | None = None
    found: bool = False

    @classmethod
    def not_found(cls) -> ExtractedValue:
        return cls(value=None, found=False)
