"""Unit tests for SessionState and Snapshot."""

from __future__ import annotations

import pytest

from defense.simulation.entities import City, Tower, make_explosion, make_missile
from defense.simulation.session import SessionState, Snapshot

pytestmark = pytest.mark.unit


def _session() -> SessionState:
    session = SessionState()
    session.towers = [Tower(id="t1", x=80.0, y=570.0, max_ammo=20)]
    session.cities = [City(id="c1", x=160.0, y=575.0), City(id="c2", x=240.0, y=575.0)]
    return session


class TestSessionState:
    def test_structures_cities_first(self):
        assert [s.id for s in _session().structures()] == ["c1", "c2", "t1"]

    def test_active_structures(self):
        session = _session()
        session.cities[0].active = False
        assert [s.id for s in session.active_structures()] == ["c2", "t1"]

    def test_add_score_ignores_non_positive(self):
        session = SessionState()
        session.add_score(20)
        session.add_score(0)
        session.add_score(-5)
        assert session.score == 20

    def test_prune_keeps_structures(self):
        session = _session()
        session.cities[0].active = False
        m = make_missile(session.ids, "enemy", (0.0, 0.0), (0.0, 560.0), 0.04)
        m.active = False
        session.enemy_missiles.append(m)
        e = make_explosion(session.ids, "impact", (0.0, 560.0))
        session.explosions.append(e)
        session.prune()
        assert session.enemy_missiles == []
        assert session.explosions == [e]
        assert len(session.cities) == 2

    def test_clear_projectiles(self):
        session = _session()
        session.player_missiles.append(
            make_missile(session.ids, "player", (80.0, 540.0), (80.0, 100.0), 0.02)
        )
        session.explosions.append(make_explosion(session.ids, "player", (0.0, 0.0)))
        session.clear_projectiles()
        assert session.player_missiles == []
        assert session.explosions == []
        assert len(session.towers) == 1


class TestSnapshot:
    def test_capture(self):
        session = _session()
        session.score = 120
        snap = Snapshot.capture("playing", session)
        assert snap.state == "playing"
        assert snap.score == 120
        assert [t["id"] for t in snap.towers] == ["t1"]
        assert len(snap.cities) == 2

    def test_frozen(self):
        snap = Snapshot.capture("start", SessionState())
        with pytest.raises(AttributeError):
            snap.score = 5

    def test_later_mutation_not_visible(self):
        session = _session()
        snap = Snapshot.capture("playing", session)
        session.towers[0].ammo = 0
        assert snap.towers[0]["ammo"] == 20
