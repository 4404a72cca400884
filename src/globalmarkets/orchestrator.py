"""External acquisition orchestrator.

One full run walks ``Idle -> FetchingGDP -> FetchingIndices -> Persisted``:

1. GDP for every mapped entity (sequential, paced by the GDP pacer).
2. For every tracked index of every entity, in catalogue order, a search
   lookup followed by an extraction lookup.  Every one of these calls goes
   through the shared lookup pacer, so no two calls overlap and successive
   calls are at least ``lookup_interval`` apart.
3. The aggregated snapshot is persisted as one unit.

Failures are isolated per index: the reading is recorded as not found
with the error message and the run carries on.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum

from globalmarkets.exceptions import UnknownEntityError
from globalmarkets.gdp import GdpAdapter
from globalmarkets.models.readings import CacheSnapshot, EntitySnapshot, GDPReading, IndexReading
from globalmarkets.models.reference import TrackedEntity
from globalmarkets.models.responses import SingleEntityRefresh
from globalmarkets.pacing import IntervalPacer
from globalmarkets.providers.extraction import ExtractionProvider
from globalmarkets.providers.search import SearchProvider
from globalmarkets.reference import StaticReferenceDataset
from globalmarkets.store import CacheStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RunPhase(StrEnum):
    IDLE = "idle"
    FETCHING_GDP = "fetching_gdp"
    FETCHING_INDICES = "fetching_indices"
    PERSISTED = "persisted"


class AcquisitionOrchestrator:
    """Drive rate-limited lookups for the tracked catalogue and build snapshots."""

    def __init__(
        self,
        dataset: StaticReferenceDataset,
        store: CacheStore,
        search: SearchProvider,
        extraction: ExtractionProvider,
        gdp: GdpAdapter,
        *,
        pacer: IntervalPacer,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._dataset = dataset
        self._store = store
        self._search = search
        self._extraction = extraction
        self._gdp = gdp
        self._pacer = pacer
        self._clock = clock
        self._phase = RunPhase.IDLE

    @property
    def phase(self) -> RunPhase:
        return self._phase

    def _require_entity(self, entity_id: str) -> TrackedEntity:
        entity = self._dataset.get(entity_id)
        if entity is None:
            raise UnknownEntityError(entity_id)
        return entity.tracked()

    async def _lookup(self, entity: TrackedEntity, index_name: str) -> IndexReading:
        async with self._pacer:
            result = await self._search.search(index_name, entity.display_name)
        async with self._pacer:
            extracted = await self._extraction.extract(result.content, index_name)
        return IndexReading(name=index_name, value=extracted.value, found=extracted.found)

    async def _lookup_isolated(self, entity: TrackedEntity, index_name: str) -> IndexReading:
        try:
            reading = await self._lookup(entity, index_name)
        except Exception as exc:
            _logger.warning("  Error fetching %s (%s): %s", index_name, entity.id, exc)
            return IndexReading.missing(index_name, error=str(exc) or type(exc).__name__)
        _logger.info("  %s: %s", index_name, reading.value if reading.found else "not found")
        return reading

    async def _lookup_entity(self, entity: TrackedEntity) -> dict[str, IndexReading]:
        indices: dict[str, IndexReading] = {}
        for index_name in entity.tracked_index_names:
            indices[index_name] = await self._lookup_isolated(entity, index_name)
        return indices

    async def run_full(self) -> CacheSnapshot:
        """Refresh every tracked entity and persist the snapshot.

        Never raises for provider failures; a run where every call fails
        still persists a snapshot with every reading not found.
        """
        started = time.monotonic()
        _logger.info("Starting full update (indices + GDP)")

        self._phase = RunPhase.FETCHING_GDP
        gdp_readings = await self._gdp.fetch_all()

        self._phase = RunPhase.FETCHING_INDICES
        entities: dict[str, EntitySnapshot] = {}
        for entity in self._dataset.tracked():
            _logger.info("Fetching %s", entity.display_name)
            entities[entity.id] = EntitySnapshot(
                entity_id=entity.id,
                indices=await self._lookup_entity(entity),
                gdp=gdp_readings.get(entity.id) or GDPReading.missing(),
            )

        snapshot = CacheSnapshot(updated_at=self._clock(), entities=entities)
        if not self._store.put(snapshot):
            _logger.error("Snapshot from run finished at %s could not be persisted", snapshot.updated_at.isoformat())
        self._phase = RunPhase.PERSISTED

        readings = [r for e in entities.values() for r in e.indices.values()]
        _logger.info(
            "Update complete: %d/%d indices found, %d/%d GDP found in %.1fs",
            sum(r.found for r in readings),
            len(readings),
            sum(e.gdp.found for e in entities.values()),
            len(entities),
            time.monotonic() - started,
        )
        return snapshot

    async def run_single(self, entity_id: str) -> SingleEntityRefresh:
        """Look up one entity's indices without touching GDP or the store.

        Raises
        ------
        UnknownEntityError
            If *entity_id* is not in the tracked catalogue.
        """
        entity = self._require_entity(entity_id)
        _logger.info("Refreshing single entity %s", entity_id)
        return SingleEntityRefresh(entity_id=entity.id, indices=await self._lookup_entity(entity))
