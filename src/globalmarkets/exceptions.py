"""Custom exception hierarchy for globalmarkets."""

from __future__ import annotations


class MarketsError(Exception):
    """Base exception for all globalmarkets errors."""


class ConfigError(MarketsError):
    """Invalid or missing configuration."""


class ProviderError(MarketsError):
    """External provider failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider: str = "",
    ) -> None:
        self.status_code = status_code
        self.provider = provider
        super().__init__(message)


class MalformedExtractionError(ProviderError):
    """Extraction response could not be parsed into a reading.

    Only raised by the strict parser.  :func:`globalmarkets.providers.extraction.parse_extraction`
    catches it and degrades to a not-found reading.
    """


class UnknownEntityError(MarketsError):
    """Requested entity id is not part of the tracked catalogue."""

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"Country {entity_id} not found")


class CacheIOError(MarketsError):
    """Read or write failure on the persistent cache store."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)
