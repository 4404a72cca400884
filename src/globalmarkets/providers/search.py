"""Free-text search provider (Tavily)."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from globalmarkets._constants import TAVILY_SEARCH_URL
from globalmarkets._transport import Transport
from globalmarkets.exceptions import ProviderError

_logger = logging.getLogger(__name__)

_PROVIDER = "tavily"


class SearchResult(BaseModel):
    """Combined text excerpts returned for one search."""

    model_config = ConfigDict(frozen=True)

    query: str
    content: str = ""
    raw_results: list[dict[str, Any]] = Field(default_factory=list)


class SearchProvider(Protocol):
    async def search(self, index_name: str, country_name: str) -> SearchResult: ...


def build_query(index_name: str, country_name: str) -> str:
    return f"{index_name} {country_name} stock index value today"


class TavilySearchProvider:
    """Search for the current value of a stock index.

    Parameters
    ----------
    transport : Transport
        JSON transport used for the POST request.
    api_key : str or None
        Tavily API key.  A missing key fails each search with
        :class:`ProviderError` rather than failing construction, so a
        misconfigured deployment still produces a (fully not-found) snapshot.
    max_results : int
        Upper bound on returned excerpts.
    search_depth : str
        ``"basic"`` or ``"advanced"``.
    """

    def __init__(
        self,
        transport: Transport,
        api_key: str | None,
        *,
        max_results: int = 3,
        search_depth: str = "basic",
    ) -> None:
        self._transport = transport
        self._api_key = api_key
        self._max_results = max_results
        self._search_depth = search_depth

    async def search(self, index_name: str, country_name: str) -> SearchResult:
        if not self._api_key:
            raise ProviderError("TAVILY_API_KEY is not set", provider=_PROVIDER)

        query = build_query(index_name, country_name)
        body = await self._transport.post_json(
            TAVILY_SEARCH_URL,
            {
                "api_key": self._api_key,
                "query": query,
                "search_depth": self._search_depth,
                "max_results": self._max_results,
            },
            provider=_PROVIDER,
        )
        if not isinstance(body, dict):
            raise ProviderError(f"Unexpected search response type: {type(body).__name__}", provider=_PROVIDER)

        results = body.get("results") or []
        if not isinstance(results, list):
            raise ProviderError("Search response 'results' is not a list", provider=_PROVIDER)
        results = [r for r in results[: self._max_results] if isinstance(r, dict)]
        content = "\n\n".join(str(r.get("content") or "") for r in results)
        _logger.debug("Search %r returned %d results", query, len(results))
        return SearchResult(query=query, content=content, raw_results=results)
