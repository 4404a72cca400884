"""Macro-statistics provider (World Bank indicators API, no key required)."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from globalmarkets._constants import GDP_INDICATOR, WORLD_BANK_BASE_URL
from globalmarkets._transport import Transport
from globalmarkets.exceptions import ProviderError

_logger = logging.getLogger(__name__)

_PROVIDER = "worldbank"


class Observation(BaseModel):
    """One point of an indicator time series."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str
    value: float | None = None


class MacroStatsProvider(Protocol):
    async def fetch_indicator(self, country_code: str, date_range: str) -> list[Observation]: ...


class WorldBankClient:
    """Fetch an indicator series for one country.

    The API answers ``[metadata, observations]``; an unknown country or an
    empty window yields ``[metadata]`` or ``[metadata, null]``, both of
    which map to an empty list here.
    """

    def __init__(self, transport: Transport, *, indicator: str = GDP_INDICATOR, per_page: int = 5) -> None:
        self._transport = transport
        self._indicator = indicator
        self._per_page = per_page

    async def fetch_indicator(self, country_code: str, date_range: str) -> list[Observation]:
        url = f"{WORLD_BANK_BASE_URL}/country/{country_code}/indicator/{self._indicator}"
        body = await self._transport.get_json(
            url,
            params={"format": "json", "per_page": self._per_page, "date": date_range},
            provider=_PROVIDER,
        )
        return parse_observations(body)


def parse_observations(body: Any) -> list[Observation]:
    if not isinstance(body, list):
        raise ProviderError(f"Unexpected response type: {type(body).__name__}", provider=_PROVIDER)
    if len(body) < 2 or not isinstance(body[1], list):
        return []
    observations: list[Observation] = []
    for entry in body[1]:
        if not isinstance(entry, dict):
            continue
        try:
            observations.append(Observation.model_validate(entry))
        except ValidationError:
            _logger.debug("Skipping malformed observation %r", entry)
    return observations
