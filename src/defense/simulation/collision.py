"""CollisionResolver — structure damage, interceptions and scoring.

Architecture
------------
The resolver runs in two phases of every tick, split around explosion
aging so that blasts created by this tick's impacts age on the same tick:

  1. ``resolve_impacts()``, right after missiles move.  Every enemy
     warhead that landed destroys each standing structure (city or tower)
     within STRUCTURE_KILL_RADIUS of the impact point, leaving a "debris"
     blast at the structure's position.  One impact can take out several
     structures.

  2. ``resolve_interceptions()``, after explosions age.  Any enemy
     missile closer to a blast centre than that blast's *current* radius
     is destroyed, scores INTERCEPT_SCORE and leaves a small "intercept"
     blast where it was, which can in turn catch other missiles on later
     ticks (chain reactions).  A missile is deactivated the moment it is
     hit, so it can be credited at most once.

Blasts created during phase 2 are not tested in the same pass; they have
zero radius until they age anyway.

Events published on the EventBus:
  - ``structure_destroyed``: a city or tower was lost
  - ``missile_intercepted``: an enemy missile was shot down
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from .entities import (
    INTERCEPT_SCORE,
    STRUCTURE_KILL_RADIUS,
    City,
    Missile,
    Tower,
    make_explosion,
)
from .geometry import distance

if TYPE_CHECKING:
    from defense.comms.event_bus import EventBus
    from .session import SessionState


class CollisionResolver:
    """Applies destruction and score deltas from geometric overlaps."""

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._event_bus = event_bus

    def set_event_bus(self, event_bus: EventBus | None) -> None:
        self._event_bus = event_bus

    def resolve_impacts(
        self, landed: list[Missile], session: SessionState
    ) -> list[Tower | City]:
        """Destroy structures around each landed warhead.  Returns the losses."""
        destroyed: list[Tower | City] = []
        for missile in landed:
            impact = missile.target
            for structure in session.structures():
                if not structure.active:
                    continue
                if distance(impact, structure.position) < STRUCTURE_KILL_RADIUS:
                    structure.active = False
                    session.explosions.append(
                        make_explosion(session.ids, "debris", structure.position)
                    )
                    destroyed.append(structure)
                    kind = "tower" if isinstance(structure, Tower) else "city"
                    logger.debug(f"{kind} {structure.id} destroyed by {missile.id}")
                    self._publish("structure_destroyed", {
                        "id": structure.id,
                        "kind": kind,
                        "position": {"x": structure.x, "y": structure.y},
                    })
        return destroyed

    def resolve_interceptions(self, session: SessionState) -> int:
        """Destroy enemy missiles inside live blasts.  Returns the kill count."""
        kills = 0
        for explosion in list(session.explosions):
            if not explosion.active or explosion.radius <= 0:
                continue
            for missile in session.enemy_missiles:
                if not missile.active:
                    continue
                if distance(missile.position, explosion.position) < explosion.radius:
                    missile.active = False
                    session.add_score(INTERCEPT_SCORE)
                    session.explosions.append(
                        make_explosion(session.ids, "intercept", missile.position)
                    )
                    kills += 1
                    self._publish("missile_intercepted", {
                        "missile_id": missile.id,
                        "explosion_id": explosion.id,
                        "position": {"x": missile.x, "y": missile.y},
                        "score": session.score,
                    })
        if kills:
            logger.debug(f"Intercepted {kills} missile(s), score {session.score}")
        return kills

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
