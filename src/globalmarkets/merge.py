"""Reconciliation merge of the static baseline with the latest snapshot.

``merge`` is total and order-preserving: one output entity per baseline
entity, in baseline order.  Live readings replace baseline values only
when they are ``found``; everything else passes through unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from globalmarkets.models.readings import CacheSnapshot, EntitySnapshot
from globalmarkets.models.reference import MergedViewEntity, ReferenceEntity


def _usable(reading: Any) -> bool:
    return reading is not None and reading.found and bool(reading.value)


def merge_entity(entity: ReferenceEntity, live: EntitySnapshot | None) -> MergedViewEntity:
    """Overlay one entity's found readings onto its baseline record."""
    fields: dict[str, Any] = entity.model_dump()
    if live is None:
        return MergedViewEntity.model_validate(fields)

    live_fields: list[str] = []

    if live.gdp.found and live.gdp.value is not None:
        fields["gdp"] = live.gdp.value
        fields["gdp_year"] = live.gdp.as_of_year
        live_fields.append("gdp")

    if entity.indices:
        merged_indices = []
        for index in entity.indices:
            reading = live.indices.get(index.name)
            if _usable(reading):
                merged_indices.append({**index.model_dump(), "value": reading.value})
                live_fields.append(f"indices.{index.name}")
            else:
                merged_indices.append(index.model_dump())
        fields["indices"] = merged_indices
    elif len(entity.tracked_indices) == 1:
        reading = live.indices.get(entity.tracked_indices[0])
        if _usable(reading):
            fields["market_value"] = reading.value
            live_fields.append("market_value")

    fields["live_fields"] = tuple(live_fields)
    return MergedViewEntity.model_validate(fields)


def merge(dataset: Iterable[ReferenceEntity], snapshot: CacheSnapshot | None) -> list[MergedViewEntity]:
    """Combine the baseline *dataset* with *snapshot* into the display view."""
    entities = snapshot.entities if snapshot is not None else {}
    return [merge_entity(entity, entities.get(entity.id)) for entity in dataset]
