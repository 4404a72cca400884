from __future__ import annotations

from globalmarkets.merge import merge, merge_entity
from globalmarkets.models.readings import CacheSnapshot, EntitySnapshot, GDPReading, IndexReading
from globalmarkets.reference import default_dataset

from fakes import NOW, small_dataset


def _found(name: str, value: str) -> IndexReading:
    return IndexReading(name=name, value=value, found=True)


def _snapshot(**entities: EntitySnapshot) -> CacheSnapshot:
    return CacheSnapshot(updated_at=NOW, entities=entities)


def test_no_snapshot_returns_baseline() -> None:
    dataset = small_dataset()
    view = merge(dataset, None)

    assert [e.id for e in view] == dataset.ids()
    for merged, baseline in zip(view, dataset):
        assert merged.market_value == baseline.market_value
        assert merged.gdp == baseline.gdp
        assert merged.indices == baseline.indices
        assert merged.live_fields == ()
        assert merged.gdp_year is None


def test_view_is_total_for_bundled_catalogue() -> None:
    dataset = default_dataset()
    view = merge(dataset, _snapshot(gbr=EntitySnapshot(entity_id="gbr")))
    assert [e.id for e in view] == dataset.ids()


def test_single_index_overlay() -> None:
    snapshot = _snapshot(
        gbr=EntitySnapshot(
            entity_id="gbr",
            indices={"FTSE 100": _found("FTSE 100", "8,312.10")},
            gdp=GDPReading(value=3.34, as_of_year="2023", found=True),
        )
    )
    gbr = merge(small_dataset(), snapshot)[0]

    assert gbr.market_value == "8,312.10"
    assert gbr.gdp == 3.34
    assert gbr.gdp_year == "2023"
    assert set(gbr.live_fields) == {"gdp", "market_value"}
    # Non-live fields pass through.
    assert gbr.country == "United Kingdom"
    assert gbr.index_name == "FTSE 100"


def test_not_found_readings_keep_baseline() -> None:
    snapshot = _snapshot(
        gbr=EntitySnapshot(
            entity_id="gbr",
            indices={"FTSE 100": IndexReading(name="FTSE 100", value=None, found=False, error="timeout")},
            gdp=GDPReading.missing(),
        ),
        hkg=EntitySnapshot(entity_id="hkg", indices={"Hang Seng": IndexReading(name="Hang Seng", value="", found=True)}),
    )
    view = {e.id: e for e in merge(small_dataset(), snapshot)}

    assert view["gbr"].market_value == "8,210.45"
    assert view["gbr"].gdp == 3.3
    assert view["gbr"].live_fields == ()
    assert view["hkg"].market_value == "17,650.00"


def test_multi_index_overlay_by_name() -> None:
    snapshot = _snapshot(
        usa=EntitySnapshot(
            entity_id="usa",
            indices={
                "Dow Jones": _found("Dow Jones", "43,001.00"),
                "S&P 500": IndexReading(name="S&P 500", found=False),
                "Russell 2000": _found("Russell 2000", "2,100.00"),
            },
        )
    )
    usa = merge(small_dataset(), snapshot)[1]

    assert usa.indices is not None
    assert [(i.name, i.value) for i in usa.indices] == [("Dow Jones", "43,001.00"), ("S&P 500", "5,842.21")]
    # The headline value of a multi-index entity is never overwritten.
    assert usa.market_value == "Multiple Indices"
    assert usa.live_fields == ("indices.Dow Jones",)


def test_merge_is_idempotent() -> None:
    dataset = small_dataset()
    snapshot = _snapshot(gbr=EntitySnapshot(entity_id="gbr", indices={"FTSE 100": _found("FTSE 100", "8,312.10")}))
    assert merge(dataset, snapshot) == merge(dataset, snapshot)


def test_merge_entity_without_live_data() -> None:
    baseline = small_dataset().get("hkg")
    assert baseline is not None
    merged = merge_entity(baseline, None)
    assert merged.model_dump(exclude={"gdp_year", "live_fields"}) == baseline.model_dump()


def test_entities_missing_from_snapshot_keep_baseline() -> None:
    dataset = small_dataset()
    view = merge(dataset, _snapshot(gbr=EntitySnapshot(entity_id="gbr", indices={"FTSE 100": _found("FTSE 100", "1")})))
    assert view[2].market_value == dataset[2].market_value
