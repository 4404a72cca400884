"""Client-side poll loop keeping a merged view fresh.

The poller loads once when started, then re-reads the snapshot every
``interval`` seconds.  A missing snapshot keeps the current view (the
static baseline until live data first arrives); a failing source keeps
the current view and records an error.  :meth:`SnapshotPoller.stop`
cancels the timer task so nothing outlives teardown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from globalmarkets._constants import POLL_INTERVAL_SECONDS
from globalmarkets.exceptions import ProviderError
from globalmarkets.merge import merge
from globalmarkets.models.readings import CacheSnapshot
from globalmarkets.models.reference import MergedViewEntity, ReferenceEntity
from globalmarkets.store import CacheStore

_logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    async def fetch(self) -> CacheSnapshot | None: ...


class StoreSnapshotSource:
    """Read the snapshot straight from a cache store."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    async def fetch(self) -> CacheSnapshot | None:
        return self._store.get()


class HttpSnapshotSource:
    """Read the snapshot from a running server's ``/api/stocks`` endpoint."""

    def __init__(self, session: aiohttp.ClientSession, base_url: str = "http://localhost:3002") -> None:
        self._session = session
        self._url = f"{base_url.rstrip('/')}/api/stocks"

    async def fetch(self) -> CacheSnapshot | None:
        try:
            async with self._session.get(self._url) as resp:
                if resp.status != 200:
                    _logger.warning("Stock data not available yet (HTTP %s)", resp.status)
                    return None
                body = await resp.json()
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ProviderError(f"Failed to fetch stock data: {exc}", provider="server") from exc
        try:
            return CacheSnapshot.model_validate(body)
        except ValidationError as exc:
            raise ProviderError(f"Invalid stock data document: {exc}", provider="server") from exc


class SnapshotPoller:
    """Periodically merge the latest snapshot into the baseline view."""

    def __init__(
        self,
        source: SnapshotSource,
        dataset: Iterable[ReferenceEntity],
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._dataset = tuple(dataset)
        self._interval = interval
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self.stock_data: list[MergedViewEntity] = merge(self._dataset, None)
        self.last_updated: datetime | None = None
        self.is_loading = False
        self.error: str | None = None

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> None:
        """Load the snapshot once and update the merged view."""
        self.is_loading = True
        self.error = None
        try:
            snapshot = await self._source.fetch()
            if snapshot is not None:
                self.stock_data = merge(self._dataset, snapshot)
                self.last_updated = snapshot.updated_at
        except Exception:
            _logger.warning("Failed to load live data", exc_info=True)
            self.error = "Failed to load live data. Using cached values."
        finally:
            self.is_loading = False

    async def _loop(self) -> None:
        while True:
            await self.refresh()
            await self._sleep(self._interval)

    def start(self) -> None:
        if self.is_polling:
            return
        self._task = asyncio.create_task(self._loop(), name="snapshot-poller")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> SnapshotPoller:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
