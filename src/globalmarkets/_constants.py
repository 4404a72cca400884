"""Internal constants shared across the library."""

from __future__ import annotations

USER_AGENT = "globalmarkets/1.0"

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
WORLD_BANK_BASE_URL = "https://api.worldbank.org/v2"

#: GDP in current US dollars.
GDP_INDICATOR = "NY.GDP.MKTP.CD"

#: Minimum gap between successive search/extraction calls (seconds).
MIN_LOOKUP_INTERVAL: float = 0.5
#: Minimum gap between successive macro-statistics calls (seconds).
MIN_GDP_INTERVAL: float = 0.2

#: Snapshot age after which a startup refresh is dispatched (hours).
STALENESS_THRESHOLD_HOURS: float = 168.0

#: Client-side poll period (seconds).
POLL_INTERVAL_SECONDS: float = 30 * 60

TRILLION = 1_000_000_000_000
