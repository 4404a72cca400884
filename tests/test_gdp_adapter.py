from __future__ import annotations

import pytest

from globalmarkets.gdp import GdpAdapter, latest_observation, to_trillions
from globalmarkets.models.readings import GDPReading
from globalmarkets.pacing import IntervalPacer
from globalmarkets.providers.worldbank import Observation

from fakes import CallLog, FakeMacro, VirtualClock


def _adapter(macro: FakeMacro, clock: VirtualClock, codes: dict[str, str] | None = None) -> GdpAdapter:
    return GdpAdapter(
        macro,
        codes if codes is not None else {"gbr": "GBR", "usa": "USA", "jpn": "JPN"},
        pacer=IntervalPacer(0.2, clock=clock),
        date_range="2020:2024",
    )


def test_to_trillions_rounds_half_up() -> None:
    assert to_trillions(2_345_678_900_000) == 2.35
    assert to_trillions(27_360_935_000_000) == 27.36
    assert to_trillions(145_000_000_000) == 0.15
    assert to_trillions(4_000_000_000) == 0.0


def test_latest_observation_skips_nulls() -> None:
    observations = [
        Observation(date="2024", value=None),
        Observation(date="2022", value=1.0e12),
        Observation(date="2023", value=2.0e12),
    ]
    latest = latest_observation(observations)
    assert latest == Observation(date="2023", value=2.0e12)
    assert latest_observation([Observation(date="2024", value=None)]) is None
    assert latest_observation([]) is None


@pytest.mark.asyncio
async def test_fetch_one_converts_latest() -> None:
    macro = FakeMacro(
        {"GBR": [Observation(date="2024", value=None), Observation(date="2023", value=3_340_032_000_000)]}
    )
    adapter = _adapter(macro, VirtualClock())

    reading = await adapter.fetch_one("gbr")

    assert reading == GDPReading(value=3.34, as_of_year="2023", found=True)
    assert macro.requested == [("GBR", "2020:2024")]


@pytest.mark.asyncio
async def test_fetch_one_unmapped_makes_no_call() -> None:
    macro = FakeMacro()
    adapter = _adapter(macro, VirtualClock())
    assert await adapter.fetch_one("atlantis") == GDPReading.missing()
    assert macro.requested == []


@pytest.mark.asyncio
async def test_fetch_one_empty_or_failed() -> None:
    macro = FakeMacro({"GBR": [Observation(date="2023", value=None)]}, failing={"USA"})
    adapter = _adapter(macro, VirtualClock())
    assert (await adapter.fetch_one("gbr")).found is False
    assert (await adapter.fetch_one("usa")).found is False


@pytest.mark.asyncio
async def test_fetch_all_isolates_failures_and_paces() -> None:
    clock = VirtualClock()
    log = CallLog(clock)
    macro = FakeMacro(
        {
            "GBR": [Observation(date="2023", value=3.34e12)],
            "JPN": [Observation(date="2023", value=4.21e12)],
        },
        failing={"USA"},
        log=log,
    )
    adapter = _adapter(macro, clock)

    results = await adapter.fetch_all()

    assert list(results) == ["gbr", "usa", "jpn"]
    assert results["gbr"].value == 3.34
    assert results["usa"] == GDPReading.missing()
    assert results["jpn"].value == 4.21
    for prev, nxt in zip(log.calls, log.calls[1:]):
        assert nxt.started - prev.finished >= 0.2 - 1e-9
    assert adapter.entity_ids == ["gbr", "usa", "jpn"]
