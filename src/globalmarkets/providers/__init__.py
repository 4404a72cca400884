"""External lookup providers consumed by the acquisition orchestrator."""

from globalmarkets.providers.extraction import AnthropicExtractionProvider, ExtractionProvider, parse_extraction
from globalmarkets.providers.search import SearchProvider, SearchResult, TavilySearchProvider
from globalmarkets.providers.worldbank import MacroStatsProvider, Observation, WorldBankClient

__all__ = [
    "AnthropicExtractionProvider",
    "ExtractionProvider",
    "MacroStatsProvider",
    "Observation",
    "SearchProvider",
    "SearchResult",
    "TavilySearchProvider",
    "WorldBankClient",
    "parse_extraction",
]
