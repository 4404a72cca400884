"""Persistent snapshot store.

The store owns the only durable copy of the latest :class:`CacheSnapshot`.
Readers never see a partially written document: the file implementation
writes to a temporary file in the same directory and swaps it into place
with :func:`os.replace`, which is atomic on POSIX and Windows.
"""

from __future__ import annotations

import contextlib
import json
import logging
import math
import os
import stat
import tempfile
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from globalmarkets.exceptions import CacheIOError
from globalmarkets.models.readings import CacheSnapshot

_logger = logging.getLogger(__name__)

_DEFAULT_MODE = 0o644


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CacheStore(Protocol):
    """Structural interface shared by the file store and test doubles."""

    def get(self) -> CacheSnapshot | None: ...

    def put(self, snapshot: CacheSnapshot) -> bool: ...

    def age(self) -> float: ...


def snapshot_age_hours(snapshot: CacheSnapshot | None, now: datetime) -> float:
    """Hours since *snapshot* was written, or ``inf`` when there is none."""
    if snapshot is None:
        return math.inf
    return (now - snapshot.updated_at).total_seconds() / 3600.0


class JsonFileCacheStore:
    """Snapshot store backed by one JSON document on disk.

    Parameters
    ----------
    path : Path
        Location of the canonical snapshot document.  The parent
        directory is created on first write.
    clock : callable
        Returns the current UTC time; used by :meth:`age`.
    """

    def __init__(self, path: Path, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._path = Path(path)
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> CacheSnapshot | None:
        if not self._path.exists():
            return None
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CacheIOError(f"Cannot read cache: {exc}", path=str(self._path)) from exc
        except UnicodeDecodeError as exc:
            raise CacheIOError(f"Corrupt cache document: {exc}", path=str(self._path)) from exc
        try:
            return CacheSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CacheIOError(f"Corrupt cache document: {exc}", path=str(self._path)) from exc

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self._path.stat().st_mode)
        except OSError:
            return _DEFAULT_MODE

    def _write(self, snapshot: CacheSnapshot) -> None:
        body = json.dumps(snapshot.to_json_dict(), indent=2, ensure_ascii=False)
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=directory)
        except OSError as exc:
            raise CacheIOError(f"Cannot create temporary cache file: {exc}", path=str(self._path)) from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                # mkstemp creates the file 0600; carry over the current document mode.
                os.chmod(tmp_name, self._file_mode())
                handle.write(body)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise CacheIOError(f"Cannot write cache: {exc}", path=str(self._path)) from exc

    def get(self) -> CacheSnapshot | None:
        """Return the current snapshot, or ``None`` when absent or unreadable."""
        try:
            return self._read()
        except CacheIOError:
            _logger.error("Error reading cache %s", self._path, exc_info=True)
            return None

    def put(self, snapshot: CacheSnapshot) -> bool:
        """Atomically replace the stored snapshot.  Returns ``False`` on failure."""
        try:
            self._write(snapshot)
        except CacheIOError:
            _logger.error("Error writing cache %s", self._path, exc_info=True)
            return False
        _logger.info("Cache updated at: %s", snapshot.updated_at.isoformat())
        return True

    def age(self) -> float:
        """Snapshot age in hours, ``inf`` when no readable snapshot exists."""
        return snapshot_age_hours(self.get(), self._clock())


class MemoryCacheStore:
    """In-process store holding the snapshot in memory.

    Assignment of the single reference is the swap, so readers always
    observe a complete snapshot.
    """

    def __init__(
        self,
        snapshot: CacheSnapshot | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._snapshot = snapshot
        self._clock = clock
        self.puts = 0

    def get(self) -> CacheSnapshot | None:
        return self._snapshot

    def put(self, snapshot: CacheSnapshot) -> bool:
        self._snapshot = snapshot
        self.puts += 1
        return True

    def age(self) -> float:
        return snapshot_age_hours(self._snapshot, self._clock())
