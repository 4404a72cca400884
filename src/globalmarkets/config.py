"""Runtime configuration for globalmarkets."""

from __future__ import annotations

import dataclasses
import os
from datetime import time
from pathlib import Path
from typing import Any

from globalmarkets._constants import MIN_GDP_INTERVAL, MIN_LOOKUP_INTERVAL, STALENESS_THRESHOLD_HOURS
from globalmarkets.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _parse_time(value: str) -> time:
    try:
        hours, minutes = value.strip().split(":", 1)
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ConfigError(f"invalid time of day {value!r}, expected HH:MM") from exc


@dataclasses.dataclass(frozen=True)
class MarketsConfig:
    """Service configuration.

    Parameters
    ----------
    cache_path : Path
        Location of the canonical snapshot document.
    host : str
        Interface the HTTP shell binds to.
    port : int
        Port the HTTP shell listens on.
    tavily_api_key : str or None
        API key for the search provider.
    anthropic_api_key : str or None
        API key for the extraction provider.  ``None`` lets the SDK
        fall back to its own environment lookup.
    extraction_model : str
        Model used for structured value extraction.
    extraction_max_tokens : int
        Upper bound on the extraction response size.
    search_max_results : int
        Number of text excerpts requested per search.
    search_depth : str
        Search provider depth setting.
    lookup_interval : float
        Seconds between successive search/extraction calls.  Values
        below 0.5 are raised to 0.5.
    gdp_interval : float
        Seconds between successive macro-statistics calls.  Values
        below 0.2 are raised to 0.2.
    staleness_threshold : float
        Snapshot age in hours after which startup dispatches a refresh.
    request_timeout : float
        Total timeout in seconds for one outbound HTTP request.
    gdp_date_range : str
        ``YYYY:YYYY`` window queried from the macro-statistics provider.
    gdp_per_page : int
        Observations requested per country.
    weekly_weekday : int
        Day of the periodic refresh (0 = Monday, 6 = Sunday).
    weekly_time : datetime.time
        UTC time of day of the periodic refresh.
    scheduler_enabled : bool
        Run the startup check and weekly trigger when the app starts.
    """

    cache_path: Path = Path("data/cache.json")
    host: str = "0.0.0.0"
    port: int = 3002
    tavily_api_key: str | None = None
    anthropic_api_key: str | None = None
    extraction_model: str = "claude-3-5-haiku-20241022"
    extraction_max_tokens: int = 256
    search_max_results: int = 3
    search_depth: str = "basic"
    lookup_interval: float = MIN_LOOKUP_INTERVAL
    gdp_interval: float = MIN_GDP_INTERVAL
    staleness_threshold: float = STALENESS_THRESHOLD_HOURS
    request_timeout: float = 30.0
    gdp_date_range: str = "2020:2024"
    gdp_per_page: int = 5
    weekly_weekday: int = 6
    weekly_time: time = time(0, 0)
    scheduler_enabled: bool = True

    def __post_init__(self) -> None:
        # Rate limits are a floor, never a tuning knob.
        object.__setattr__(self, "lookup_interval", max(float(self.lookup_interval), MIN_LOOKUP_INTERVAL))
        object.__setattr__(self, "gdp_interval", max(float(self.gdp_interval), MIN_GDP_INTERVAL))
        object.__setattr__(self, "cache_path", Path(self.cache_path))
        if not 0 <= self.weekly_weekday <= 6:
            raise ConfigError(f"weekly_weekday must be between 0 and 6, got {self.weekly_weekday}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port must be between 1 and 65535, got {self.port}")

    @classmethod
    def from_env(cls, **overrides: Any) -> MarketsConfig:
        """Create configuration from environment variables.

        Reads ``TAVILY_API_KEY``, ``ANTHROPIC_API_KEY``, ``PORT`` and
        the optional ``GLOBALMARKETS_*`` variables.  Explicit keyword
        arguments override environment values.

        Raises
        ------
        ConfigError
            If a numeric or time value cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "GLOBALMARKETS_CACHE_PATH": "cache_path",
            "GLOBALMARKETS_HOST": "host",
            "TAVILY_API_KEY": "tavily_api_key",
            "ANTHROPIC_API_KEY": "anthropic_api_key",
            "GLOBALMARKETS_EXTRACTION_MODEL": "extraction_model",
            "GLOBALMARKETS_SEARCH_DEPTH": "search_depth",
            "GLOBALMARKETS_GDP_DATE_RANGE": "gdp_date_range",
        }
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "PORT": ("port", int),
            "GLOBALMARKETS_PORT": ("port", int),
            "GLOBALMARKETS_EXTRACTION_MAX_TOKENS": ("extraction_max_tokens", int),
            "GLOBALMARKETS_SEARCH_MAX_RESULTS": ("search_max_results", int),
            "GLOBALMARKETS_LOOKUP_INTERVAL": ("lookup_interval", float),
            "GLOBALMARKETS_GDP_INTERVAL": ("gdp_interval", float),
            "GLOBALMARKETS_STALENESS_HOURS": ("staleness_threshold", float),
            "GLOBALMARKETS_REQUEST_TIMEOUT": ("request_timeout", float),
            "GLOBALMARKETS_GDP_PER_PAGE": ("gdp_per_page", int),
            "GLOBALMARKETS_WEEKLY_WEEKDAY": ("weekly_weekday", int),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val

        for env_key, (field_name, kind) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = kind(val)
            except ValueError as exc:
                raise ConfigError(f"{env_key} must be {kind.__name__}, got {val!r}") from exc

        weekly_time_env = env.get("GLOBALMARKETS_WEEKLY_TIME")
        if weekly_time_env is not None and "weekly_time" not in overrides:
            config_kwargs["weekly_time"] = _parse_time(weekly_time_env)

        if "scheduler_enabled" not in overrides:
            config_kwargs["scheduler_enabled"] = _env_bool(env.get("GLOBALMARKETS_SCHEDULER_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
