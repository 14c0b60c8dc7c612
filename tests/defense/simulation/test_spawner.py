"""Unit tests for EnemySpawner — cadence, budget and target policy."""

from __future__ import annotations

import random

import pytest

from defense.simulation.entities import GROUND_Y, City, IdAllocator, Tower
from defense.simulation.session import SessionState
from defense.simulation.spawner import (
    EnemySpawner,
    initial_spawn_interval,
    next_wave_budget,
    next_wave_spawn_interval,
)

pytestmark = pytest.mark.unit


class ScriptedRandom:
    """Replays fixed draws so launch geometry is predictable."""

    def __init__(self, uniforms: list[float], indices: list[int] | None = None) -> None:
        self._uniforms = list(uniforms)
        self._indices = list(indices or [])

    def random(self) -> float:
        return self._uniforms.pop(0)

    def randrange(self, n: int) -> int:
        idx = self._indices.pop(0)
        assert 0 <= idx < n
        return idx


def _session(**kwargs) -> SessionState:
    session = SessionState(spawn_interval=1000.0, enemies_to_spawn=3)
    for key, value in kwargs.items():
        setattr(session, key, value)
    return session


class TestIntervals:
    def test_initial_interval(self):
        assert initial_spawn_interval(1) == 2300.0
        assert initial_spawn_interval(10) == 500.0
        assert initial_spawn_interval(30) == 500.0

    def test_next_wave_interval(self):
        assert next_wave_spawn_interval(2) == 2200.0
        assert next_wave_spawn_interval(14) == 400.0
        assert next_wave_spawn_interval(40) == 400.0

    def test_next_wave_budget(self):
        assert next_wave_budget(2) == 14
        assert next_wave_budget(5) == 20


class TestCadence:
    def test_no_launch_until_interval_exceeded(self):
        spawner = EnemySpawner(random.Random(1))
        session = _session()
        assert spawner.tick(600.0, session) is None
        assert spawner.tick(400.0, session) is None  # exactly the interval
        assert session.enemy_missiles == []
        assert spawner.tick(1.0, session) is not None
        assert session.spawn_timer == 0.0
        assert session.enemies_spawned == 1
        assert len(session.enemy_missiles) == 1

    def test_at_most_one_launch_per_tick(self):
        spawner = EnemySpawner(random.Random(1))
        session = _session()
        spawner.tick(10_000.0, session)
        assert session.enemies_spawned == 1

    def test_budget_stops_spawning(self):
        spawner = EnemySpawner(random.Random(2))
        session = _session()
        for _ in range(10):
            spawner.tick(1500.0, session)
        assert session.enemies_spawned == 3
        assert len(session.enemy_missiles) == 3
        assert spawner.exhausted(session)

    def test_exhausted_does_not_accumulate_timer(self):
        spawner = EnemySpawner(random.Random(2))
        session = _session(enemies_to_spawn=0)
        assert spawner.tick(5000.0, session) is None
        assert session.spawn_timer == 0.0


class TestLaunchGeometry:
    def test_ground_target_when_nothing_stands(self):
        rng = ScriptedRandom([0.5, 0.25, 0.5])
        spawner = EnemySpawner(rng)
        session = _session(spawn_timer=1000.0)
        missile = spawner.tick(1.0, session)
        assert missile.start == (400.0, 0.0)
        assert missile.target == (200.0, GROUND_Y)
        assert missile.speed == pytest.approx(0.04)
        assert missile.kind == "enemy"

    def test_structure_target_on_low_roll(self):
        ids = IdAllocator()
        session = _session(spawn_timer=1000.0, ids=ids)
        session.cities = [City(id="c1", x=160.0, y=575.0), City(id="c2", x=240.0, y=575.0)]
        session.towers = [Tower(id="t1", x=80.0, y=570.0, max_ammo=20)]
        rng = ScriptedRandom([0.1, 0.9, 0.69, 0.0], indices=[2])
        missile = EnemySpawner(rng).tick(1.0, session)
        # cities come first, then towers
        assert missile.target == (80.0, 570.0)
        assert missile.speed == pytest.approx(0.03)

    def test_ground_target_on_high_roll(self):
        session = _session(spawn_timer=1000.0)
        session.cities = [City(id="c1", x=160.0, y=575.0)]
        rng = ScriptedRandom([0.1, 0.9, 0.7, 1.0])
        missile = EnemySpawner(rng).tick(1.0, session)
        assert missile.target == (720.0, GROUND_Y)
        assert missile.speed == pytest.approx(0.05)

    def test_destroyed_structures_are_not_targeted(self):
        session = _session(spawn_timer=1000.0)
        session.cities = [
            City(id="dead", x=160.0, y=575.0, active=False),
            City(id="alive", x=640.0, y=575.0),
        ]
        rng = ScriptedRandom([0.0, 0.0, 0.0, 0.0], indices=[0])
        missile = EnemySpawner(rng).tick(1.0, session)
        assert missile.target == (640.0, 575.0)

    def test_speed_scales_with_wave_multiplier(self):
        session = _session(spawn_timer=1000.0, enemy_speed_multiplier=2.0)
        rng = ScriptedRandom([0.0, 0.0, 0.0])
        missile = EnemySpawner(rng).tick(1.0, session)
        assert missile.speed == pytest.approx(0.06)

    def test_seeded_launches_stay_in_bounds(self):
        spawner = EnemySpawner(random.Random(42))
        session = _session(enemies_to_spawn=200)
        for _ in range(200):
            spawner.tick(1001.0, session)
        for m in session.enemy_missiles:
            assert 0.0 <= m.start_x < 800.0
            assert m.start_y == 0.0
            assert 0.03 <= m.speed < 0.05
            assert m.target_y == GROUND_Y
