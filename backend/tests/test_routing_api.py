import json
import math

import pytest

from app.config import settings
from app.models.geometry import MeterVector, Point
from app.models.network import Building, ProjectSnapshot, Route, SystemType, TransformerPad
from app.services.metric_frame import translate

BUILDING = Building(id=1, name="School", lat=55.7560, lng=37.6175, width_m=20, height_m=10)
ANCHOR = BUILDING.anchor


def _at(north: float, east: float) -> dict:
    return translate(ANCHOR, MeterVector(north=north, east=east), ANCHOR.lat).model_dump()


SNAPSHOT = ProjectSnapshot(
    buildings=[BUILDING],
    pads=[TransformerPad(id=7, center=Point(**_at(-60, 40)))],
).model_dump(mode="json")


@pytest.fixture(autouse=True)
def builtin_profiles(monkeypatch):
    monkeypatch.setattr(settings, "rules_service_base", None)


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_list_systems(client):
    resp = await client.get("/api/routing/systems")
    assert resp.status_code == 200
    data = {p["system"]: p for p in resp.json()}
    assert set(data) == {s.value for s in SystemType}
    assert data["water"]["dual_line"] is True
    assert data["water"]["spacing_m"] == 1.8
    assert data["sewerage"]["joins_main"] is True


@pytest.mark.asyncio
async def test_clearance_rules(client):
    resp = await client.get("/api/routing/clearance-rules")
    assert resp.status_code == 200
    rules = resp.json()
    assert len(rules) == 15
    assert (rules[0]["system_a"], rules[0]["system_b"]) == ("water", "sewerage")
    assert rules[0]["min_distance_m"] == 5.0


@pytest.mark.asyncio
async def test_attachment_snaps_to_building(client):
    resp = await client.post("/api/routing/attachment", json={
        "cursor": _at(-7, 3),
        "system_type": "water",
        "snapshot": SNAPSHOT,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] is None
    assert data["attachment"]["kind"] == "building"
    assert data["attachment"]["building"]["id"] == 1
    assert data["attachment"]["distance_m"] == pytest.approx(2.0, abs=1e-6)
    assert data["attachment"]["outward_normal"]["north"] == pytest.approx(-1.0)


@pytest.mark.asyncio
async def test_attachment_out_of_range(client):
    resp = await client.post("/api/routing/attachment", json={
        "cursor": _at(-100, 0),
        "system_type": "water",
        "snapshot": SNAPSHOT,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["attachment"] is None
    assert "building" in data["message"]


@pytest.mark.asyncio
async def test_attachment_unknown_system(client):
    resp = await client.post("/api/routing/attachment", json={"cursor": _at(0, 0), "system_type": "gas"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_route_without_attachment(client):
    resp = await client.post("/api/routing/route", json={
        "start": _at(-30, 0),
        "end": _at(-60, 20),
        "system_type": "water",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["path"]) == 3
    assert len(data["dual_paths"]) == 2
    assert all(len(p) == 3 for p in data["dual_paths"])


@pytest.mark.asyncio
async def test_route_with_attachment(client):
    att = (await client.post("/api/routing/attachment", json={
        "cursor": _at(-7, 3),
        "system_type": "sewerage",
        "snapshot": SNAPSHOT,
    })).json()["attachment"]

    resp = await client.post("/api/routing/route", json={
        "start": _at(-7, 3),
        "end": _at(-60, 20),
        "system_type": "sewerage",
        "attachment": att,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["path"]) == 4
    assert data["path"][0] == att["point"]
    assert data["dual_paths"] is None


@pytest.mark.asyncio
async def test_dual_line_single_line_system(client):
    resp = await client.post("/api/routing/dual-line", json={
        "path": [_at(0, 0), _at(0, 10)],
        "system_type": "sewerage",
    })
    assert resp.status_code == 200
    assert resp.json()["paths"] is None


@pytest.mark.asyncio
async def test_dual_line_needs_two_points(client):
    resp = await client.post("/api/routing/dual-line", json={"path": [_at(0, 0)], "system_type": "water"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_clearance_violation(client):
    sewer = Route(id=3, system_type=SystemType.sewerage, path=[Point(**_at(3, 0)), Point(**_at(3, 50))])
    resp = await client.post("/api/routing/clearance", json={
        "path": [_at(0, 0), _at(0, 50)],
        "system_type": "water",
        "existing_routes": [sewer.model_dump(mode="json")],
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is False
    assert len(data["violations"]) == 1
    assert data["violations"][0]["existing_route_id"] == 3
    assert data["violations"][0]["message"] == "Distance between water and sewerage is 3.00 m, minimum: 5.00 m"


@pytest.mark.asyncio
async def test_clearance_with_custom_rules(client):
    sewer = Route(system_type=SystemType.sewerage, path=[Point(**_at(3, 0)), Point(**_at(3, 50))])
    resp = await client.post("/api/routing/clearance", json={
        "path": [_at(0, 0), _at(0, 50)],
        "system_type": "water",
        "existing_routes": [sewer.model_dump(mode="json")],
        "rules": [{"system_a": "water", "system_b": "sewerage", "min_distance_m": 2.0}],
    })
    assert resp.status_code == 200
    assert resp.json() == {"valid": True, "violations": []}


@pytest.mark.asyncio
async def test_plan(client):
    resp = await client.post("/api/routing/plan", json={
        "system_type": "power",
        "start": _at(-7, 3),
        "end": _at(-60, 30),
        "snapshot": SNAPSHOT,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is True
    assert data["route"]["building_id"] == 1
    assert data["route"]["pad_id"] == 7
    assert data["path"][-1] == data["end"]


@pytest.mark.asyncio
async def test_plan_without_destination(client):
    resp = await client.post("/api/routing/plan", json={
        "system_type": "storm",
        "start": _at(-7, 3),
        "snapshot": SNAPSHOT,
    })
    assert resp.status_code == 422
    assert "storm" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_clearance_tolerates_infinite_coordinate(client):
    sewer = Route(system_type=SystemType.sewerage, path=[Point(**_at(3, 0)), Point(**_at(3, 50))])
    body = {
        "path": [{"lat": math.inf, "lng": ANCHOR.lng}, _at(0, 0)],
        "system_type": "water",
        "existing_routes": [sewer.model_dump(mode="json")],
    }
    resp = await client.post(
        "/api/routing/clearance",
        content=json.dumps(body),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"valid": True, "violations": []}
