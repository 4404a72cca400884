from __future__ import annotations

import pytest

from globalmarkets.exceptions import UnknownEntityError
from globalmarkets.gdp import GdpAdapter
from globalmarkets.models.readings import GDPReading
from globalmarkets.orchestrator import AcquisitionOrchestrator, RunPhase
from globalmarkets.pacing import IntervalPacer
from globalmarkets.providers.worldbank import Observation
from globalmarkets.store import MemoryCacheStore

from fakes import NOW, CallLog, FakeExtraction, FakeMacro, FakeSearch, VirtualClock, small_dataset

VALUES = {"FTSE 100": "8,312.10", "Dow Jones": "43,001.00", "S&P 500": "5,901.00", "Hang Seng": "17,900.25"}


def _build(
    *,
    search_failing: set[str] | None = None,
    extract_failing: set[str] | None = None,
    macro_failing: set[str] | None = None,
    values: dict[str, str] | None = None,
) -> tuple[AcquisitionOrchestrator, MemoryCacheStore, CallLog, FakeMacro]:
    clock = VirtualClock()
    log = CallLog(clock)
    dataset = small_dataset()
    macro = FakeMacro(
        {"GBR": [Observation(date="2023", value=3.34e12)], "USA": [Observation(date="2023", value=27.36e12)]},
        failing=macro_failing,
    )
    store = MemoryCacheStore(clock=lambda: NOW)
    orchestrator = AcquisitionOrchestrator(
        dataset,
        store,
        FakeSearch(log, failing=search_failing),
        FakeExtraction(log, VALUES if values is None else values, failing=extract_failing),
        GdpAdapter(macro, dataset.country_codes(), pacer=IntervalPacer(0.2, clock=clock)),
        pacer=IntervalPacer(0.5, clock=clock),
        clock=lambda: NOW,
    )
    return orchestrator, store, log, macro


@pytest.mark.asyncio
async def test_full_run_persists_snapshot() -> None:
    orchestrator, store, log, _macro = _build()
    assert orchestrator.phase is RunPhase.IDLE

    snapshot = await orchestrator.run_full()

    assert orchestrator.phase is RunPhase.PERSISTED
    assert store.get() is snapshot
    assert store.puts == 1
    assert snapshot.updated_at == NOW
    assert list(snapshot.entities) == ["gbr", "usa", "hkg"]

    gbr = snapshot.entities["gbr"]
    assert gbr.indices["FTSE 100"].value == "8,312.10"
    assert gbr.gdp == GDPReading(value=3.34, as_of_year="2023", found=True)

    usa = snapshot.entities["usa"]
    assert list(usa.indices) == ["Dow Jones", "S&P 500"]
    assert all(r.found for r in usa.indices.values())
    assert usa.gdp.value == 27.36

    # No country code: index still looked up, GDP not found.
    hkg = snapshot.entities["hkg"]
    assert hkg.indices["Hang Seng"].found
    assert hkg.gdp.found is False


@pytest.mark.asyncio
async def test_lookups_follow_catalogue_order_and_are_paced() -> None:
    orchestrator, _store, log, _macro = _build()

    await orchestrator.run_full()

    assert [(c.kind, c.target) for c in log.calls] == [
        ("search", "FTSE 100"),
        ("extract", "FTSE 100"),
        ("search", "Dow Jones"),
        ("extract", "Dow Jones"),
        ("search", "S&P 500"),
        ("extract", "S&P 500"),
        ("search", "Hang Seng"),
        ("extract", "Hang Seng"),
    ]
    assert log.max_in_flight == 1
    for prev, nxt in zip(log.calls, log.calls[1:]):
        assert nxt.started - prev.finished >= 0.5 - 1e-9


@pytest.mark.asyncio
async def test_gdp_is_fetched_before_indices() -> None:
    clock = VirtualClock()
    log = CallLog(clock)
    dataset = small_dataset()
    macro = FakeMacro(log=log)
    orchestrator = AcquisitionOrchestrator(
        dataset,
        MemoryCacheStore(clock=lambda: NOW),
        FakeSearch(log),
        FakeExtraction(log, VALUES),
        GdpAdapter(macro, dataset.country_codes(), pacer=IntervalPacer(0.2, clock=clock)),
        pacer=IntervalPacer(0.5, clock=clock),
        clock=lambda: NOW,
    )

    await orchestrator.run_full()

    kinds = [c.kind for c in log.calls]
    assert kinds[:2] == ["gdp", "gdp"]
    assert "gdp" not in kinds[2:]


@pytest.mark.asyncio
async def test_failures_are_isolated_per_index() -> None:
    orchestrator, store, _log, _macro = _build(search_failing={"Dow Jones"}, extract_failing={"Hang Seng"})

    snapshot = await orchestrator.run_full()

    dow = snapshot.entities["usa"].indices["Dow Jones"]
    assert dow.found is False
    assert dow.value is None
    assert "search failed" in (dow.error or "")
    assert snapshot.entities["usa"].indices["S&P 500"].found
    assert snapshot.entities["hkg"].indices["Hang Seng"].error == "extraction failed"
    assert snapshot.entities["gbr"].indices["FTSE 100"].found
    assert store.puts == 1


@pytest.mark.asyncio
async def test_total_failure_still_persists() -> None:
    names = {"FTSE 100", "Dow Jones", "S&P 500", "Hang Seng"}
    orchestrator, store, _log, _macro = _build(search_failing=names, macro_failing={"GBR", "USA"})

    snapshot = await orchestrator.run_full()

    assert store.get() is snapshot
    readings = [r for e in snapshot.entities.values() for r in e.indices.values()]
    assert len(readings) == 4
    assert not any(r.found for r in readings)
    assert not any(e.gdp.found for e in snapshot.entities.values())


@pytest.mark.asyncio
async def test_not_found_extraction_is_recorded() -> None:
    orchestrator, _store, _log, _macro = _build(values={})
    snapshot = await orchestrator.run_full()
    reading = snapshot.entities["gbr"].indices["FTSE 100"]
    assert reading.found is False
    assert reading.error is None


@pytest.mark.asyncio
async def test_single_run_does_not_touch_gdp_or_store() -> None:
    orchestrator, store, log, macro = _build()

    result = await orchestrator.run_single("usa")

    assert result.entity_id == "usa"
    assert {name: r.value for name, r in result.indices.items()} == {
        "Dow Jones": "43,001.00",
        "S&P 500": "5,901.00",
    }
    assert store.puts == 0
    assert macro.requested == []
    assert orchestrator.phase is RunPhase.IDLE
    assert len(log.calls) == 4


@pytest.mark.asyncio
async def test_single_run_unknown_entity() -> None:
    orchestrator, store, log, _macro = _build()
    with pytest.raises(UnknownEntityError, match="Country atlantis not found"):
        await orchestrator.run_single("atlantis")
    assert log.calls == []
    assert store.puts == 0
