"""End-to-end tests of the HTTP shell against in-memory providers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from aiohttp.test_utils import TestClient, TestServer

from globalmarkets.config import MarketsConfig
from globalmarkets.exceptions import MarketsError
from globalmarkets.models.readings import CacheSnapshot
from globalmarkets.providers.worldbank import Observation
from globalmarkets.server import create_app
from globalmarkets.service import MarketDataService
from globalmarkets.store import MemoryCacheStore

from fakes import NOW, CallLog, FakeExtraction, FakeMacro, FakeSearch, VirtualClock, small_dataset


def _service(store: MemoryCacheStore, config: MarketsConfig) -> MarketDataService:
    clock = VirtualClock()
    log = CallLog(clock)
    return MarketDataService(
        config,
        dataset=small_dataset(),
        store=store,
        search=FakeSearch(log),
        extraction=FakeExtraction(log, {"FTSE 100": "8,312.10", "Dow Jones": "43,001.00"}),
        macro=FakeMacro({"GBR": [Observation(date="2023", value=3.34e12)]}),
        pacing_clock=clock,
        clock=lambda: NOW,
    )


@asynccontextmanager
async def _client(
    store: MemoryCacheStore | None = None, *, scheduler_enabled: bool = False
) -> AsyncIterator[tuple[TestClient, MarketDataService]]:
    config = MarketsConfig(scheduler_enabled=scheduler_enabled)
    service = _service(store or MemoryCacheStore(clock=lambda: NOW), config)
    async with TestClient(TestServer(create_app(config, service=service))) as client:
        yield client, service


@pytest.mark.asyncio
async def test_health_and_index() -> None:
    async with _client() as (client, _service):
        resp = await client.get("/health")
        assert resp.status == 200
        body = await resp.json()
        assert body["status"] == "ok"
        assert "timestamp" in body

        resp = await client.get("/")
        assert resp.status == 200
        assert "/api/stocks" in await resp.text()


@pytest.mark.asyncio
async def test_stocks_unavailable_before_first_run() -> None:
    async with _client() as (client, _service):
        resp = await client.get("/api/stocks")
        assert resp.status == 503
        body = await resp.json()
        assert body["error"] == "No data available yet"

        resp = await client.get("/api/status")
        assert resp.status == 200
        assert await resp.json() == {"hasData": False, "updatedAt": None, "ageHours": None, "countriesCount": 0}


@pytest.mark.asyncio
async def test_refresh_then_read() -> None:
    store = MemoryCacheStore(clock=lambda: NOW)
    async with _client(store) as (client, service):
        resp = await client.post("/api/refresh")
        assert resp.status == 200
        assert await resp.json() == {"message": "Update started", "status": "processing"}

        await service.scheduler.wait_idle()
        assert store.puts == 1

        resp = await client.get("/api/stocks")
        assert resp.status == 200
        body = await resp.json()
        assert body["updatedAt"] == "2026-03-04T12:00:00Z"
        assert list(body["data"]) == ["gbr", "usa", "hkg"]
        assert body["data"]["gbr"]["indices"]["FTSE 100"] == {
            "name": "FTSE 100",
            "value": "8,312.10",
            "found": True,
            "error": None,
        }
        assert body["data"]["gbr"]["gdp"] == {"gdp": 3.34, "year": "2023", "found": True}
        assert body["data"]["hkg"]["indices"]["Hang Seng"]["found"] is False

        resp = await client.get("/api/status")
        assert await resp.json() == {
            "hasData": True,
            "updatedAt": "2026-03-04T12:00:00Z",
            "ageHours": 0.0,
            "countriesCount": 3,
        }

        resp = await client.get("/api/markets")
        view = await resp.json()
        assert [e["id"] for e in view] == ["gbr", "usa", "hkg"]
        assert view[0]["marketValue"] == "8,312.10"
        assert view[0]["gdpYear"] == "2023"
        assert view[1]["indices"][0]["value"] == "43,001.00"
        assert view[2]["marketValue"] == "17,650.00"


@pytest.mark.asyncio
async def test_single_entity_refresh_is_not_persisted() -> None:
    store = MemoryCacheStore(clock=lambda: NOW)
    async with _client(store) as (client, _service):
        resp = await client.get("/api/stocks/usa/refresh")
        assert resp.status == 200
        body = await resp.json()
        assert body["entityId"] == "usa"
        assert body["indices"]["Dow Jones"]["value"] == "43,001.00"
        assert body["indices"]["S&P 500"]["found"] is False
        assert store.puts == 0

        resp = await client.get("/api/stocks/atlantis/refresh")
        assert resp.status == 404
        assert await resp.json() == {"error": "Country atlantis not found"}


@pytest.mark.asyncio
async def test_cors_headers() -> None:
    async with _client() as (client, _service):
        resp = await client.get("/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

        resp = await client.options("/api/refresh")
        assert resp.status == 204
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]


@pytest.mark.asyncio
async def test_startup_skips_refresh_when_fresh() -> None:
    store = MemoryCacheStore(CacheSnapshot(updated_at=NOW - timedelta(hours=1), entities={}), clock=lambda: NOW)
    async with _client(store, scheduler_enabled=True) as (_client_, service):
        assert not service.scheduler.is_running
    assert store.puts == 0


@pytest.mark.asyncio
async def test_startup_refreshes_when_stale() -> None:
    store = MemoryCacheStore(CacheSnapshot(updated_at=NOW - timedelta(hours=200), entities={}), clock=lambda: NOW)
    async with _client(store, scheduler_enabled=True) as (_client_, service):
        await service.scheduler.wait_idle()
        assert store.puts == 1


def test_service_requires_entering() -> None:
    service = _service(MemoryCacheStore(clock=lambda: NOW), MarketsConfig())
    with pytest.raises(MarketsError):
        service.orchestrator  # noqa: B018
    assert service.get_status().has_data is False
    assert len(service.merged_view()) == 3
