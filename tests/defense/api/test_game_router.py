"""Unit tests for the game API router (/api/game/*).

Tests all endpoints: state, snapshot, begin, fire, advance, restart.
Uses FastAPI TestClient with a mocked DefenseEngine — no real server needed.
"""
from __future__ import annotations

import pytest
from unittest.mock import MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.routers.game import router, FireCommand


def _make_app(engine=None):
    """Create a minimal FastAPI app with the game router and an optional engine."""
    app = FastAPI()
    app.include_router(router)
    app.state.engine = engine
    return app


def _mock_engine(state="start", wave=1, score=0):
    """Create a mock DefenseEngine with game_mode."""
    engine = MagicMock()
    engine.game_mode.state = state
    engine.get_game_state.return_value = {
        "state": state,
        "wave": wave,
        "score": score,
    }
    engine.snapshot.return_value.to_dict.return_value = {
        "state": state,
        "towers": [],
        "enemy_missiles": [],
    }
    return engine


@pytest.mark.unit
class TestGetGameState:
    """GET /api/game/state"""

    def test_returns_state(self):
        engine = _mock_engine(state="playing", wave=3, score=240)
        client = TestClient(_make_app(engine=engine))
        resp = client.get("/api/game/state")
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "playing"
        assert data["wave"] == 3
        assert data["score"] == 240

    def test_503_without_engine(self):
        client = TestClient(_make_app(engine=None))
        resp = client.get("/api/game/state")
        assert resp.status_code == 503


@pytest.mark.unit
class TestGetSnapshot:
    """GET /api/game/snapshot"""

    def test_returns_snapshot(self):
        engine = _mock_engine(state="playing")
        client = TestClient(_make_app(engine=engine))
        resp = client.get("/api/game/snapshot")
        assert resp.status_code == 200
        assert resp.json()["state"] == "playing"

    def test_503_without_engine(self):
        client = TestClient(_make_app(engine=None))
        assert client.get("/api/game/snapshot").status_code == 503


@pytest.mark.unit
class TestBeginSession:
    """POST /api/game/begin"""

    def test_begin_from_start(self):
        engine = _mock_engine(state="start")
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/begin")
        assert resp.status_code == 200
        assert resp.json() == {"status": "playing", "wave": 1}
        engine.start_session.assert_called_once()

    @pytest.mark.parametrize("state", ["playing", "wave_complete", "victory", "defeat"])
    def test_begin_rejected_outside_start(self, state):
        engine = _mock_engine(state=state)
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/begin")
        assert resp.status_code == 400
        assert state in resp.json()["detail"]
        engine.start_session.assert_not_called()

    def test_begin_refused_by_engine(self):
        engine = _mock_engine(state="start")
        engine.start_session.return_value = False
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/begin")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Session did not start"


@pytest.mark.unit
class TestFire:
    """POST /api/game/fire"""

    def test_fire_launches(self):
        engine = _mock_engine(state="playing")
        engine.fire.return_value.id = "missile-12"
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/fire", json={"x": 400, "y": 300})
        assert resp.status_code == 200
        assert resp.json() == {"fired": True, "missile_id": "missile-12"}
        engine.fire.assert_called_once_with(400.0, 300.0)

    def test_fire_refused_by_engine(self):
        engine = _mock_engine(state="playing")
        engine.fire.return_value = None
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/fire", json={"x": 400, "y": 590})
        assert resp.status_code == 200
        assert resp.json() == {"fired": False}

    def test_fire_rejected_when_not_playing(self):
        engine = _mock_engine(state="wave_complete")
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/fire", json={"x": 400, "y": 300})
        assert resp.status_code == 400
        engine.fire.assert_not_called()

    def test_fire_validates_body(self):
        engine = _mock_engine(state="playing")
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/fire", json={"x": "left"})
        assert resp.status_code == 422

    def test_fire_command_model(self):
        cmd = FireCommand(x=1, y=2.5)
        assert cmd.x == 1.0
        assert cmd.y == 2.5


@pytest.mark.unit
class TestAdvance:
    """POST /api/game/advance"""

    def test_advance_from_wave_complete(self):
        engine = _mock_engine(state="wave_complete")
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/advance")
        assert resp.status_code == 200
        engine.advance_wave.assert_called_once()

    def test_advance_rejected_while_playing(self):
        engine = _mock_engine(state="playing")
        client = TestClient(_make_app(engine=engine))
        assert client.post("/api/game/advance").status_code == 400
        engine.advance_wave.assert_not_called()

    def test_advance_refused_by_engine(self):
        engine = _mock_engine(state="wave_complete")
        engine.advance_wave.return_value = False
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/advance")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Wave did not advance"
        engine.advance_wave.assert_called_once()


@pytest.mark.unit
class TestRestart:
    """POST /api/game/restart"""

    @pytest.mark.parametrize("state", ["playing", "wave_complete", "victory", "defeat"])
    def test_restart(self, state):
        engine = _mock_engine(state=state)
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/restart")
        assert resp.status_code == 200
        assert resp.json() == {"status": "reset", "state": "start"}
        engine.restart.assert_called_once()

    def test_restart_rejected_in_start(self):
        engine = _mock_engine(state="start")
        client = TestClient(_make_app(engine=engine))
        assert client.post("/api/game/restart").status_code == 400

    def test_restart_refused_by_engine(self):
        engine = _mock_engine(state="defeat")
        engine.restart.return_value = False
        client = TestClient(_make_app(engine=engine))
        resp = client.post("/api/game/restart")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Session did not restart"

    def test_503_without_engine(self):
        client = TestClient(_make_app(engine=None))
        assert client.post("/api/game/restart").status_code == 503


@pytest.mark.integration
class TestRealEngine:
    """Router against a real DefenseEngine (no frame loop)."""

    def test_begin_fire_restart(self):
        import random

        from defense.simulation import DefenseEngine

        engine = DefenseEngine(rng=random.Random(5))
        client = TestClient(_make_app(engine=engine))

        assert client.post("/api/game/begin").status_code == 200
        resp = client.post("/api/game/fire", json={"x": 400, "y": 300})
        assert resp.json()["fired"] is True
        state = client.get("/api/game/state").json()
        assert state["state"] == "playing"
        snap = client.get("/api/game/snapshot").json()
        assert snap["towers"][1]["ammo"] == 39
        assert len(snap["player_missiles"]) == 1

        assert client.post("/api/game/restart").status_code == 200
        assert engine.state == "start"
