"""Clock abstraction and the interval pacer that enforces provider rate limits.

Every outbound lookup goes through an :class:`IntervalPacer`.  The pacer
serializes callers (at most one call in flight) and holds each caller back
until ``min_interval`` seconds have passed since the previous call
finished.  Tests swap :class:`SystemClock` for a virtual clock so no real
time passes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

_logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Monotonic time source with an awaitable sleep."""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real wall-clock time backed by :mod:`asyncio`."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class IntervalPacer:
    """Serialize calls and keep a minimum gap between them.

    Usage::

        pacer = IntervalPacer(0.5)
        async with pacer:
            await provider.search(...)

    Parameters
    ----------
    min_interval : float
        Seconds that must elapse between the end of one call and the
        start of the next.
    clock : Clock
        Time source.  Defaults to :class:`SystemClock`.
    """

    def __init__(self, min_interval: float, *, clock: Clock | None = None) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must be non-negative, got {min_interval}")
        self._min_interval = float(min_interval)
        self._clock: Clock = clock or SystemClock()
        self._lock = asyncio.Lock()
        self._last_release: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def clock(self) -> Clock:
        return self._clock

    async def acquire(self) -> None:
        await self._lock.acquire()
        try:
            if self._last_release is not None:
                wait = self._min_interval - (self._clock.monotonic() - self._last_release)
                if wait > 0:
                    _logger.debug("Pacing: waiting %.3fs before next call", wait)
                    await self._clock.sleep(wait)
        except BaseException:
            self._lock.release()
            raise

    def release(self) -> None:
        self._last_release = self._clock.monotonic()
        self._lock.release()

    async def __aenter__(self) -> IntervalPacer:
        await self.acquire()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.release()
