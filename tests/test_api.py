"""
API tests for the runeboard service.

Covers the health and metrics endpoints, stateless board analysis and the
session lifecycle, including the error paths (unknown session, illegal
swap, bad layout, malformed grid).
"""

from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from conftest import build_grid
from runeboard import main as service
from runeboard.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clear_sessions():
    with service._session_lock:
        service.sessions.clear()
    yield
    with service._session_lock:
        service.sessions.clear()


def _grid_payload(rows=None):
    return [
        [tile.model_dump(by_alias=True, mode="json") for tile in line]
        for line in build_grid(rows)
    ]


def _create(client: TestClient, **body: Any) -> Dict[str, Any]:
    response = client.post("/sessions", json={"seed": 7, **body})
    assert response.status_code == 200, response.text
    return response.json()


class TestServiceEndpoints:
    def test_root(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "healthy"}

    def test_metrics(self, client) -> None:
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "runeboard_cascade_iterations" in response.text


class TestAnalyze:
    """Tests for POST /boards/analyze."""

    def test_match_found(self, client) -> None:
        response = client.post(
            "/boards/analyze", json={"grid": _grid_payload(["", "", "", "--FFF"])}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["score"] == 30
        assert body["matches"] == [
            {"row": 3, "col": 2},
            {"row": 3, "col": 3},
            {"row": 3, "col": 4},
        ]
        assert body["newPowerUps"] == []

    def test_power_up_reported(self, client) -> None:
        response = client.post(
            "/boards/analyze", json={"grid": _grid_payload(["", "", "", "-FFFFF"])}
        )
        body = response.json()
        assert body["newPowerUps"] == [{"row": 3, "col": 2, "type": "COLOR_BOMB"}]
        assert body["score"] == 70

    def test_no_moves(self, client) -> None:
        rows = ["FWNLVFWN"] + ["." * 8] * 7
        body = client.post("/boards/analyze", json={"grid": _grid_payload(rows)}).json()
        assert body["matches"] == []
        assert body["hasPossibleMoves"] is False

    def test_malformed_grid(self, client) -> None:
        response = client.post("/boards/analyze", json={"grid": _grid_payload()[:7]})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INVALID_STATE"

    def test_duplicate_tile_ids(self, client) -> None:
        grid = _grid_payload(["", "", "", "--FFF"])
        for line in grid:
            for cell in line:
                cell["id"] = "same"

        response = client.post("/boards/analyze", json={"grid": grid})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "INVALID_STATE"
        assert detail["context"]["id"] == "same"


class TestSessions:
    """Tests for the session lifecycle endpoints."""

    def test_create_and_fetch(self, client) -> None:
        created = _create(client)

        assert created["movesLeft"] == 20
        assert len(created["grid"]) == 8
        assert created["outcome"] is None

        fetched = client.get(f"/sessions/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["grid"] == created["grid"]

    def test_custom_level(self, client) -> None:
        layout = ["########"] * 7 + ["SSSSSSSS"]
        created = _create(client, level={"moves": 5, "targetScore": 100, "layout": layout})
        assert created["movesLeft"] == 5
        assert all(cell["obstacle"] == "STONE" for cell in created["grid"][7])

    def test_bad_layout(self, client) -> None:
        response = client.post("/sessions", json={"level": {"layout": ["###"]}})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INVALID_LAYOUT"

    def test_unknown_session(self, client) -> None:
        response = client.get("/sessions/does-not-exist")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SESSION_NOT_FOUND"

    def test_illegal_swap(self, client) -> None:
        created = _create(client)
        response = client.post(
            f"/sessions/{created['id']}/swap",
            json={"from": {"row": 0, "col": 0}, "to": {"row": 2, "col": 0}},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["context"]["reason"] == "not_adjacent"

    def test_out_of_range_position(self, client) -> None:
        created = _create(client)
        response = client.post(
            f"/sessions/{created['id']}/swap",
            json={"from": {"row": 0, "col": 7}, "to": {"row": 0, "col": 8}},
        )
        assert response.status_code == 422

    def test_hinted_swap_accepted(self, client) -> None:
        created = _create(client)
        hint = client.get(f"/sessions/{created['id']}/hint").json()["hint"]
        assert hint is not None

        response = client.post(f"/sessions/{created['id']}/swap", json=hint)

        assert response.status_code == 200
        body = response.json()
        assert body["accepted"] is True
        assert body["iterations"] >= 1
        assert body["session"]["movesLeft"] == 19
        assert body["session"]["score"] >= body["scoreGain"]

    def test_booster(self, client) -> None:
        created = _create(client)
        response = client.post(
            f"/sessions/{created['id']}/booster", json={"booster": "moves_5"}
        )
        assert response.status_code == 200
        assert response.json()["session"]["movesLeft"] == 25

    def test_unknown_booster(self, client) -> None:
        created = _create(client)
        response = client.post(
            f"/sessions/{created['id']}/booster", json={"booster": "hammer"}
        )
        assert response.status_code == 422

    def test_events(self, client) -> None:
        created = _create(client)
        client.post(f"/sessions/{created['id']}/booster", json={"booster": "shuffle"})

        body = client.get(f"/sessions/{created['id']}/events").json()

        assert body["counts"]["shuffled"] >= 1

    def test_delete(self, client) -> None:
        created = _create(client)

        response = client.delete(f"/sessions/{created['id']}")
        assert response.status_code == 200

        assert client.get(f"/sessions/{created['id']}").status_code == 404
        assert client.delete(f"/sessions/{created['id']}").status_code == 404


class TestSessionStore:
    def test_capacity_eviction(self, client, monkeypatch) -> None:
        monkeypatch.setattr(service, "SESSION_MAX", 2)
        first = _create(client)
        _create(client)
        _create(client)

        assert len(service.sessions) == 2
        assert client.get(f"/sessions/{first['id']}").status_code == 404

    def test_ttl_eviction(self, client, monkeypatch) -> None:
        created = _create(client)
        monkeypatch.setattr(service, "SESSION_TTL_SEC", -1)

        assert client.get(f"/sessions/{created['id']}").status_code == 404
