"""globalmarkets - live stock index and GDP synchronization for a fixed country catalogue."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("globalmarkets")
except PackageNotFoundError:
    __version__ = "0+local"
from globalmarkets.config import MarketsConfig
from globalmarkets.exceptions import (
    CacheIOError,
    ConfigError,
    MalformedExtractionError,
    MarketsError,
    ProviderError,
    UnknownEntityError,
)
from globalmarkets.merge import merge
from globalmarkets.models import (
    CacheSnapshot,
    CacheStatus,
    EntitySnapshot,
    GDPReading,
    IndexReading,
    MergedViewEntity,
    ReferenceEntity,
    RefreshAck,
    SingleEntityRefresh,
    TrackedEntity,
)
from globalmarkets.orchestrator import AcquisitionOrchestrator, RunPhase
from globalmarkets.pacing import IntervalPacer, SystemClock
from globalmarkets.reference import StaticReferenceDataset, default_dataset
from globalmarkets.scheduler import RefreshScheduler
from globalmarkets.service import MarketDataService
from globalmarkets.store import CacheStore, JsonFileCacheStore, MemoryCacheStore

__all__ = [
    "__version__",
    "AcquisitionOrchestrator",
    "CacheIOError",
    "CacheSnapshot",
    "CacheStatus",
    "CacheStore",
    "ConfigError",
    "EntitySnapshot",
    "GDPReading",
    "IndexReading",
    "IntervalPacer",
    "JsonFileCacheStore",
    "MalformedExtractionError",
    "MarketDataService",
    "MarketsConfig",
    "MarketsError",
    "MemoryCacheStore",
    "MergedViewEntity",
    "ProviderError",
    "ReferenceEntity",
    "RefreshAck",
    "RefreshScheduler",
    "RunPhase",
    "SingleEntityRefresh",
    "StaticReferenceDataset",
    "SystemClock",
    "TrackedEntity",
    "UnknownEntityError",
    "default_dataset",
    "merge",
]
