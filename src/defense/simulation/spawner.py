"""EnemySpawner — timed enemy-missile launches for the current wave.

Each tick the spawner accumulates elapsed time.  Once the accumulated
time passes the wave's spawn interval, one enemy missile is launched from
a random point along the top edge and the timer restarts from zero.  The
spawner stops once the wave's budget (``enemies_to_spawn``) is used up.

Target policy: 70% of launches pick one of the still-standing structures
(cities and towers, uniformly); the rest, or every launch once nothing is
standing, aim at a random point on the ground line.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from loguru import logger

from .entities import GAME_WIDTH, GROUND_Y, Missile, make_missile

if TYPE_CHECKING:
    from .session import SessionState

STRUCTURE_TARGET_CHANCE = 0.7

# Enemy speed = (base + U(0, jitter)) * wave speed multiplier
_BASE_SPEED = 0.03
_SPEED_JITTER = 0.02


def initial_spawn_interval(wave: int) -> float:
    """Spawn interval used when a session starts."""
    return float(max(500, 2500 - wave * 200))


def next_wave_spawn_interval(wave: int) -> float:
    """Spawn interval used when advancing into a later wave."""
    return float(max(400, 2500 - wave * 150))


def next_wave_budget(wave: int) -> int:
    return 10 + wave * 2


class EnemySpawner:
    """Launches enemy missiles on the wave's cadence."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def exhausted(self, session: SessionState) -> bool:
        return session.enemies_spawned >= session.enemies_to_spawn

    def tick(self, dt: float, session: SessionState) -> Missile | None:
        """Advance the spawn timer; return the missile launched this tick, if any."""
        if self.exhausted(session):
            return None
        session.spawn_timer += dt
        if session.spawn_timer <= session.spawn_interval:
            return None

        session.spawn_timer = 0.0
        session.enemies_spawned += 1
        missile = self._launch(session)
        session.enemy_missiles.append(missile)
        logger.debug(
            f"Enemy {missile.id} launched ({session.enemies_spawned}/"
            f"{session.enemies_to_spawn}) -> ({missile.target_x:.0f}, {missile.target_y:.0f})"
        )
        return missile

    def _launch(self, session: SessionState) -> Missile:
        rng = self._rng
        start = (rng.random() * GAME_WIDTH, 0.0)
        target = self._pick_target(session)
        speed = (_BASE_SPEED + rng.random() * _SPEED_JITTER) * session.enemy_speed_multiplier
        return make_missile(session.ids, "enemy", start, target, speed)

    def _pick_target(self, session: SessionState) -> tuple[float, float]:
        rng = self._rng
        ground = (rng.random() * GAME_WIDTH, GROUND_Y)
        candidates = session.active_structures()
        if candidates and rng.random() < STRUCTURE_TARGET_CHANCE:
            structure = candidates[rng.randrange(len(candidates))]
            return structure.position
        return ground
