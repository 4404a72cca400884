"""Data models for globalmarkets."""

from globalmarkets.models._base import MarketsBaseModel, UtcDatetime, ensure_utc
from globalmarkets.models.readings import CacheSnapshot, EntitySnapshot, ExtractedValue, GDPReading, IndexReading
from globalmarkets.models.reference import MarketIndex, MergedViewEntity, ReferenceEntity, Region, TrackedEntity
from globalmarkets.models.responses import CacheStatus, RefreshAck, RefreshState, SingleEntityRefresh

__all__ = [
    "CacheSnapshot",
    "CacheStatus",
    "EntitySnapshot",
    "ExtractedValue",
    "GDPReading",
    "IndexReading",
    "MarketIndex",
    "MarketsBaseModel",
    "MergedViewEntity",
    "ReferenceEntity",
    "RefreshAck",
    "RefreshState",
    "Region",
    "SingleEntityRefresh",
    "TrackedEntity",
    "UtcDatetime",
    "ensure_utc",
]
