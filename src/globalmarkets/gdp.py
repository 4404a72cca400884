"""GDP adapter: latest GDP per tracked entity, in trillions of USD."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from globalmarkets._constants import TRILLION
from globalmarkets.exceptions import ProviderError
from globalmarkets.models.readings import GDPReading
from globalmarkets.pacing import IntervalPacer
from globalmarkets.providers.worldbank import MacroStatsProvider, Observation

_logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def to_trillions(value: float) -> float:
    """Convert a USD amount to trillions, rounded half-up to 2 decimals."""
    return float((Decimal(str(value)) / TRILLION).quantize(_CENT, rounding=ROUND_HALF_UP))


def _date_key(observation: Observation) -> tuple[int, str]:
    # World Bank dates are years ("2023"), but quarterly/monthly forms ("2023Q4") sort fine as text.
    head = observation.date[:4]
    return (int(head) if head.isdigit() else -1, observation.date)


def latest_observation(observations: Sequence[Observation]) -> Observation | None:
    """Most recent observation with a non-null value, or ``None``."""
    candidates = [o for o in observations if o.value is not None]
    if not candidates:
        return None
    return max(candidates, key=_date_key)


class GdpAdapter:
    """Fetch GDP for tracked entities from a macro-statistics provider.

    Parameters
    ----------
    provider : MacroStatsProvider
        Source of indicator time series.
    country_codes : mapping
        Entity id to provider country code.  Entities without a code
        are reported as not found without a lookup.
    pacer : IntervalPacer
        Enforces the gap between successive provider calls.
    date_range : str
        ``YYYY:YYYY`` window to query.
    """

    def __init__(
        self,
        provider: MacroStatsProvider,
        country_codes: Mapping[str, str],
        *,
        pacer: IntervalPacer,
        date_range: str = "2020:2024",
    ) -> None:
        self._provider = provider
        self._country_codes = dict(country_codes)
        self._pacer = pacer
        self._date_range = date_range

    @property
    def entity_ids(self) -> list[str]:
        return list(self._country_codes)

    async def fetch_one(self, entity_id: str) -> GDPReading:
        country_code = self._country_codes.get(entity_id)
        if not country_code:
            _logger.warning("No country code mapping for: %s", entity_id)
            return GDPReading.missing()

        try:
            async with self._pacer:
                observations = await self._provider.fetch_indicator(country_code, self._date_range)
        except ProviderError as exc:
            _logger.warning("Error fetching GDP for %s: %s", entity_id, exc)
            return GDPReading.missing()

        entry = latest_observation(observations)
        if entry is None or entry.value is None:
            _logger.warning("No GDP data found for %s", country_code)
            return GDPReading.missing()

        return GDPReading(value=to_trillions(entry.value), as_of_year=entry.date, found=True)

    async def fetch_all(self) -> dict[str, GDPReading]:
        """GDP for every mapped entity, sequentially; failures stay per-entity."""
        _logger.info("Fetching GDP data for %d countries", len(self._country_codes))
        results: dict[str, GDPReading] = {}
        for entity_id in self._country_codes:
            try:
                reading = await self.fetch_one(entity_id)
            except Exception:
                _logger.exception("Unexpected error fetching GDP for %s", entity_id)
                reading = GDPReading.missing()
            results[entity_id] = reading
            if reading.found:
                _logger.info("  %s: $%sT (%s)", entity_id, reading.value, reading.as_of_year)
        _logger.info("GDP fetch complete")
        return results
