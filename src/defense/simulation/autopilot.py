"""AutoGunner — scripted input layer for headless play.

Stands in for a human at the mouse.  Every ``cooldown`` ms it looks at the
enemy missiles in the air, picks the one closest to landing that nobody
is already shooting at, projects it ``lead_time`` ms along its path and
calls ``DefenseEngine.fire()`` there.  It only reads the engine's
snapshot and only acts through ``fire()``, exactly like a real input
layer would.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .entities import ENEMY_TIME_SCALE, FIRE_GUARD_Y
from .geometry import distance, lerp_point

if TYPE_CHECKING:
    from .engine import DefenseEngine

# An enemy counts as covered if an interceptor is aimed this close to it.
_COVER_RADIUS = 40.0


class AutoGunner:
    """Fires at the most advanced uncovered threat on a fixed cadence."""

    def __init__(
        self,
        engine: DefenseEngine,
        cooldown: float = 250.0,
        lead_time: float = 350.0,
    ) -> None:
        self._engine = engine
        self.cooldown = cooldown
        self.lead_time = lead_time
        self._since_last = cooldown
        self.shots = 0

    def tick(self, dt: float) -> bool:
        """Accumulate *dt* ms; fire once if the cooldown has elapsed.  True if fired."""
        self._since_last += dt
        if self._since_last < self.cooldown:
            return False

        snap = self._engine.snapshot()
        if snap.state != "playing":
            return False

        aim = self._pick_aim_point(snap.enemy_missiles, snap.player_missiles)
        if aim is None:
            return False
        if self._engine.fire(*aim) is None:
            return False
        self._since_last = 0.0
        self.shots += 1
        return True

    def _pick_aim_point(
        self, enemies: tuple[dict, ...], interceptors: tuple[dict, ...]
    ) -> tuple[float, float] | None:
        aimed = [(m["target"]["x"], m["target"]["y"]) for m in interceptors]
        for enemy in sorted(enemies, key=lambda m: m["progress"], reverse=True):
            point = self._project(enemy)
            if any(distance(point, a) < _COVER_RADIUS for a in aimed):
                continue
            return point
        return None

    def _project(self, enemy: dict) -> tuple[float, float]:
        start = (enemy["start"]["x"], enemy["start"]["y"])
        target = (enemy["target"]["x"], enemy["target"]["y"])
        progress = enemy["progress"] + enemy["speed"] * self.lead_time * ENEMY_TIME_SCALE
        x, y = lerp_point(start, target, min(progress, 1.0))
        return (x, min(y, FIRE_GUARD_Y))
