"""Refresh scheduler: decides when the orchestrator runs.

Triggers:

* startup check - dispatch a full run when the snapshot is missing or
  older than the staleness threshold;
* weekly - a fixed calendar trigger (Sunday 00:00 UTC by default);
* on-demand full - detached; the caller gets an acknowledgement, never
  the result, and must poll the status document to see completion;
* on-demand single - awaited; returns the transient readings.

Only one full run executes at a time.  A full trigger that arrives while
a run is in flight is rejected (logged, and reported to on-demand callers
as ``already_running``) instead of racing it to overwrite the snapshot.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, time, timedelta

from globalmarkets._constants import STALENESS_THRESHOLD_HOURS
from globalmarkets.models.responses import RefreshAck, RefreshState, SingleEntityRefresh
from globalmarkets.orchestrator import AcquisitionOrchestrator
from globalmarkets.store import CacheStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def next_weekly_run(now: datetime, weekday: int, at: time) -> datetime:
    """First ``weekday`` at ``at`` strictly after *now* (same timezone as *now*)."""
    candidate = datetime.combine(now.date(), at, tzinfo=now.tzinfo)
    candidate += timedelta(days=(weekday - now.weekday()) % 7)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


class RefreshScheduler:
    """Dispatch orchestrator runs from startup, calendar and on-demand triggers.

    Parameters
    ----------
    orchestrator : AcquisitionOrchestrator
        Runs the lookups.
    store : CacheStore
        Queried for snapshot age at startup.
    staleness_threshold : float
        Maximum snapshot age in hours before startup dispatches a run.
    weekly_weekday, weekly_time
        Calendar slot for the periodic trigger (UTC).
    clock : callable
        Current UTC time.
    sleep : callable
        Awaitable sleep used by the weekly loop.
    """

    def __init__(
        self,
        orchestrator: AcquisitionOrchestrator,
        store: CacheStore,
        *,
        staleness_threshold: float = STALENESS_THRESHOLD_HOURS,
        weekly_weekday: int = 6,
        weekly_time: time = time(0, 0),
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._staleness_threshold = staleness_threshold
        self._weekly_weekday = weekly_weekday
        self._weekly_time = weekly_time
        self._clock = clock
        self._sleep = sleep
        self._current: asyncio.Task[object] | None = None
        self._weekly_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether a full run is in flight."""
        return self._current is not None and not self._current.done()

    @property
    def current_task(self) -> asyncio.Task[object] | None:
        return self._current

    def _on_run_done(self, task: asyncio.Task[object]) -> None:
        if task.cancelled():
            _logger.warning("Full refresh was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Full refresh failed", exc_info=exc)

    def dispatch_full(self, reason: str) -> bool:
        """Start a detached full run.  Returns ``False`` if one is already running."""
        if self.is_running:
            _logger.warning("Full refresh (%s) skipped: a refresh is already in progress", reason)
            return False
        _logger.info("Full refresh dispatched (%s)", reason)
        task: asyncio.Task[object] = asyncio.create_task(self._orchestrator.run_full(), name=f"full-refresh:{reason}")
        task.add_done_callback(self._on_run_done)
        self._current = task
        return True

    def startup_check(self) -> bool:
        """Dispatch a full run if the snapshot is missing or stale."""
        age = self._store.age()
        if age > self._staleness_threshold:
            _logger.info("Cache is stale or empty (age=%s hours). Starting initial fetch", age)
            return self.dispatch_full("startup")
        _logger.info("Cache is fresh (%.1f hours old)", age)
        return False

    def trigger_full(self) -> RefreshAck:
        """On-demand full refresh.  Returns immediately with an acknowledgement."""
        _logger.info("Manual refresh triggered")
        if self.dispatch_full("on-demand"):
            return RefreshAck(message="Update started", status=RefreshState.PROCESSING)
        return RefreshAck(message="Update already in progress", status=RefreshState.ALREADY_RUNNING)

    async def trigger_single(self, entity_id: str) -> SingleEntityRefresh:
        """On-demand single-entity refresh; raises ``UnknownEntityError`` for bad ids."""
        return await self._orchestrator.run_single(entity_id)

    def next_weekly_run(self) -> datetime:
        return next_weekly_run(self._clock(), self._weekly_weekday, self._weekly_time)

    async def _weekly_loop(self) -> None:
        while True:
            due = self.next_weekly_run()
            delay = max((due - self._clock()).total_seconds(), 0.0)
            _logger.debug("Next weekly refresh at %s (in %.0fs)", due.isoformat(), delay)
            await self._sleep(delay)
            _logger.info("Scheduled weekly update starting")
            self.dispatch_full("weekly")

    def start(self) -> None:
        """Run the startup check and arm the weekly trigger (idempotent)."""
        if self._weekly_task is not None and not self._weekly_task.done():
            return
        self.startup_check()
        self._weekly_task = asyncio.create_task(self._weekly_loop(), name="weekly-refresh")

    async def wait_idle(self) -> None:
        """Wait for the in-flight full run, if any."""
        task = self._current
        if task is not None and not task.done():
            with contextlib.suppress(Exception):
                await asyncio.shield(task)

    async def stop(self) -> None:
        """Disarm the weekly trigger and cancel an in-flight run.

        Only called on process teardown.  The run holds no cancellation
        point of its own; it is cancelled here because its HTTP session is
        about to close, and a run finishing against a closed session would
        persist an all-not-found snapshot over the last good one.  A
        cancelled run persists nothing.
        """
        tasks = [t for t in (self._weekly_task, self._current) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._weekly_task = None
