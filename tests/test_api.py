"""Tests for the HTTP API endpoints."""

from __future__ import annotations

import math

import pytest

from conftest import fix_payload
from dredgetrack.core.geometry import EARTH_RADIUS_M


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["clients"] == 0
    assert data["lastUpdate"] is None
    assert data["stale"] is False
    assert data["storage_writable"] is True


@pytest.mark.asyncio
async def test_stats_empty(client):
    resp = await client.get("/api/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["fixes_received"] == 0
    assert data["observers"]["connected"] == 0


@pytest.mark.asyncio
async def test_position_before_first_fix(client):
    resp = await client.get("/api/position")
    assert resp.status_code == 200
    data = resp.json()
    assert data["latitude"] is None
    assert data["last_update"] is None


@pytest.mark.asyncio
async def test_submit_position(client):
    resp = await client.post("/api/position", json=fix_payload())
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    data = (await client.get("/api/position")).json()
    assert data["latitude"] == 45.0
    assert data["fixed_rate"] == "100.0"
    assert data["timestamp"] == "01:00:00 UTC"
    assert data["fix_status"] == "RTK FIXED"
    assert data["last_update"] is not None

    health = (await client.get("/api/health")).json()
    assert health["lastUpdate"] == data["last_update"]


@pytest.mark.asyncio
async def test_partial_fix_keeps_unknowns(client):
    resp = await client.post("/api/position", json={"fix_type": 0, "num_sv": 3})
    assert resp.status_code == 200
    data = (await client.get("/api/position")).json()
    assert data["latitude"] is None
    assert data["h_acc"] is None
    assert data["num_sv"] == 3
    assert data["fixed_rate"] == "0.0"
    assert data["fix_status"] == "No Fix"


@pytest.mark.asyncio
async def test_second_fix_extends_trail(client):
    await client.post("/api/position", json=fix_payload())
    ten_m = math.degrees(10.0 / EARTH_RADIUS_M)
    await client.post("/api/position", json=fix_payload(latitude=45.0 + ten_m, sec=1))

    trails = (await client.get("/api/trails")).json()
    assert len(trails["trails"]["piloting"]) == 2
    assert len(trails["geojson"]["tailings"]["features"]) == 2

    stats = (await client.get("/api/stats")).json()
    assert stats["fixes_received"] == 2
    assert stats["trail_points_admitted"] == 2


@pytest.mark.asyncio
async def test_clear_trails(client):
    await client.post("/api/position", json=fix_payload())
    resp = await client.delete("/api/trails")
    assert resp.json() == {"success": True, "deleted": 1}
    trails = (await client.get("/api/trails")).json()
    assert trails["trails"]["piloting"] == []


@pytest.mark.asyncio
async def test_invalid_json(client):
    resp = await client.post(
        "/api/position",
        content=b"not json at all",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_non_numeric_field_rejected(client):
    resp = await client.post("/api/position", json=fix_payload(latitude="north"))
    assert resp.status_code == 400
    assert "latitude" in resp.json()["error"]


@pytest.mark.asyncio
async def test_mark_crud(client):
    resp = await client.post("/api/marks", json={"latitude": 45.1, "longitude": -122.1})
    assert resp.status_code == 200
    mark = resp.json()
    assert mark["id"] == 1
    assert mark["label"] == "RM_1"

    resp = await client.patch("/api/marks/1", json={"label": "BENCH_A"})
    assert resp.status_code == 200
    assert resp.json()["label"] == "BENCH_A"
    assert resp.json()["id"] == 1

    resp = await client.delete("/api/marks/1")
    assert resp.json() == {"success": True}

    resp = await client.post("/api/marks", json={"latitude": 45.2, "longitude": -122.2})
    assert resp.json()["id"] == 2

    marks = (await client.get("/api/marks")).json()
    assert [m["id"] for m in marks] == [2]


@pytest.mark.asyncio
async def test_mark_requires_coordinates(client):
    resp = await client.post("/api/marks", json={"latitude": 45.1})
    assert resp.status_code == 400
    assert "required" in resp.json()["error"]


@pytest.mark.asyncio
async def test_mark_not_found(client):
    assert (await client.delete("/api/marks/99")).status_code == 404
    assert (await client.patch("/api/marks/99", json={"label": "X"})).status_code == 404


@pytest.mark.asyncio
async def test_clear_marks_restarts_ids(client):
    for _ in range(2):
        await client.post("/api/marks", json={"latitude": 45.1, "longitude": -122.1})
    resp = await client.delete("/api/marks")
    assert resp.json() == {"success": True, "deleted": 2}
    resp = await client.post("/api/marks", json={"latitude": 45.1, "longitude": -122.1})
    assert resp.json()["id"] == 1


@pytest.mark.asyncio
async def test_marks_persisted_to_disk(client, tmp_path):
    import json

    await client.post("/api/marks", json={"latitude": 45.1, "longitude": -122.1, "label": "A"})
    saved = json.loads((tmp_path / "data" / "marks.json").read_text())
    assert saved["markCounter"] == 1
    assert saved["marks"][0]["label"] == "A"


@pytest.mark.asyncio
async def test_settings_roundtrip(client):
    data = (await client.get("/api/settings")).json()
    assert data["heading"] == 0
    assert data["location_mode"] == "live"
    assert "nome" in data["location_modes"]

    resp = await client.put("/api/settings", json={"heading": 370, "location_mode": "nome"})
    assert resp.status_code == 200
    assert resp.json()["heading"] == 10
    assert resp.json()["location_mode"] == "nome"


@pytest.mark.asyncio
async def test_settings_rejects_unknown_mode(client):
    resp = await client.put("/api/settings", json={"location_mode": "mars"})
    assert resp.status_code == 400
    resp = await client.put("/api/settings", json={"heading": "north"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_footprint(client):
    assert (await client.get("/api/footprint")).status_code == 404

    await client.post("/api/position", json=fix_payload())
    resp = await client.get("/api/footprint")
    assert resp.status_code == 200
    fc = resp.json()
    assert fc["type"] == "FeatureCollection"
    assert fc["features"][0]["properties"]["name"] == "Hull"


@pytest.mark.asyncio
async def test_footprint_in_test_location(client):
    await client.put("/api/settings", json={"location_mode": "nome"})
    resp = await client.get("/api/footprint")
    assert resp.status_code == 200
    antenna = resp.json()["features"][-1]["geometry"]["coordinates"][0]
    lon, lat = antenna[0]
    assert lat == pytest.approx(64.495336, abs=1e-3)
    assert lon == pytest.approx(-165.402452, abs=1e-3)
