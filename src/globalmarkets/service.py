"""Service façade wiring the pipeline together behind the external boundary."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from globalmarkets._transport import HttpTransport
from globalmarkets.config import MarketsConfig
from globalmarkets.exceptions import MarketsError
from globalmarkets.gdp import GdpAdapter
from globalmarkets.merge import merge
from globalmarkets.models.readings import CacheSnapshot
from globalmarkets.models.reference import MergedViewEntity
from globalmarkets.models.responses import CacheStatus, RefreshAck, SingleEntityRefresh
from globalmarkets.orchestrator import AcquisitionOrchestrator
from globalmarkets.pacing import Clock, IntervalPacer
from globalmarkets.providers.extraction import AnthropicExtractionProvider, ExtractionProvider
from globalmarkets.providers.search import SearchProvider, TavilySearchProvider
from globalmarkets.providers.worldbank import MacroStatsProvider, WorldBankClient
from globalmarkets.reference import StaticReferenceDataset, default_dataset
from globalmarkets.scheduler import RefreshScheduler
from globalmarkets.store import CacheStore, JsonFileCacheStore, snapshot_age_hours

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MarketDataService:
    """Composes store, providers, orchestrator and scheduler.

    Usage::

        async with MarketDataService(MarketsConfig.from_env()) as service:
            service.scheduler.start()
            status = service.get_status()

    Every collaborator can be injected; anything not supplied is built
    from *config* on entry.
    """

    def __init__(
        self,
        config: MarketsConfig,
        *,
        dataset: StaticReferenceDataset | None = None,
        store: CacheStore | None = None,
        session: aiohttp.ClientSession | None = None,
        search: SearchProvider | None = None,
        extraction: ExtractionProvider | None = None,
        macro: MacroStatsProvider | None = None,
        pacing_clock: Clock | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._dataset = dataset if dataset is not None else default_dataset()
        self._store: CacheStore = store if store is not None else JsonFileCacheStore(config.cache_path, clock=clock)
        self._external_session = session is not None
        self._http_session = session
        self._search = search
        self._extraction = extraction
        self._owns_extraction = extraction is None
        self._macro = macro
        self._pacing_clock = pacing_clock
        self._clock = clock
        self._orchestrator: AcquisitionOrchestrator | None = None
        self._scheduler: RefreshScheduler | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MarketDataService:
        config = self._config
        needs_http = self._search is None or self._macro is None
        if needs_http and self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        if needs_http:
            assert self._http_session is not None  # noqa: S101
            transport = HttpTransport(self._http_session, timeout=config.request_timeout)
            if self._search is None:
                self._search = TavilySearchProvider(
                    transport,
                    config.tavily_api_key,
                    max_results=config.search_max_results,
                    search_depth=config.search_depth,
                )
            if self._macro is None:
                self._macro = WorldBankClient(transport, per_page=config.gdp_per_page)
        if self._extraction is None:
            self._extraction = AnthropicExtractionProvider(
                api_key=config.anthropic_api_key,
                model=config.extraction_model,
                max_tokens=config.extraction_max_tokens,
                timeout=config.request_timeout,
            )

        gdp = GdpAdapter(
            self._macro,
            self._dataset.country_codes(),
            pacer=IntervalPacer(config.gdp_interval, clock=self._pacing_clock),
            date_range=config.gdp_date_range,
        )
        self._orchestrator = AcquisitionOrchestrator(
            self._dataset,
            self._store,
            self._search,
            self._extraction,
            gdp,
            pacer=IntervalPacer(config.lookup_interval, clock=self._pacing_clock),
            clock=self._clock,
        )
        self._scheduler = RefreshScheduler(
            self._orchestrator,
            self._store,
            staleness_threshold=config.staleness_threshold,
            weekly_weekday=config.weekly_weekday,
            weekly_time=config.weekly_time,
            clock=self._clock,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
        if self._owns_extraction and isinstance(self._extraction, AnthropicExtractionProvider):
            await self._extraction.close()
            self._extraction = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._orchestrator = None
        self._scheduler = None

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def config(self) -> MarketsConfig:
        return self._config

    @property
    def dataset(self) -> StaticReferenceDataset:
        return self._dataset

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def orchestrator(self) -> AcquisitionOrchestrator:
        if self._orchestrator is None:
            raise MarketsError("Service not initialized. Use 'async with MarketDataService(...) as service:'")
        return self._orchestrator

    @property
    def scheduler(self) -> RefreshScheduler:
        if self._scheduler is None:
            raise MarketsError("Service not initialized. Use 'async with MarketDataService(...) as service:'")
        return self._scheduler

    # ------------------------------------------------------------------
    # External boundary
    # ------------------------------------------------------------------

    def get_snapshot(self) -> CacheSnapshot | None:
        """Current snapshot, or ``None`` when no live data has been computed yet."""
        return self._store.get()

    def get_status(self) -> CacheStatus:
        snapshot = self._store.get()
        age = snapshot_age_hours(snapshot, self._clock())
        return CacheStatus(
            has_data=snapshot is not None,
            updated_at=snapshot.updated_at if snapshot is not None else None,
            age_hours=None if age == float("inf") else round(age, 2),
            countries_count=len(snapshot.entities) if snapshot is not None else 0,
        )

    def trigger_refresh(self) -> RefreshAck:
        """Start a detached full refresh; completion is visible only via :meth:`get_status`."""
        return self.scheduler.trigger_full()

    async def refresh_entity(self, entity_id: str) -> SingleEntityRefresh:
        return await self.scheduler.trigger_single(entity_id)

    def merged_view(self) -> list[MergedViewEntity]:
        return merge(self._dataset, self._store.get())
