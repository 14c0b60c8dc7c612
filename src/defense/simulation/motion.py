"""MotionIntegrator — missile flight and explosion aging.

Missiles fly a straight line: every tick ``progress`` grows by
``speed * dt`` (player) or ``speed * dt * ENEMY_TIME_SCALE`` (enemy) and
the position is recomputed as the interpolation of start and target.
When progress reaches 1 the missile is clamped onto its target,
deactivated, and replaced by exactly one explosion there:

  player interceptor  ->  "player" blast (r=70, 1200 ms)
  enemy warhead       ->  "impact" blast (r=40,  800 ms)

Explosions follow a triangular envelope: the radius grows linearly from 0
to ``max_radius`` at half the duration, then shrinks back to 0.  An
explosion whose age passes its duration is deactivated.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from .entities import ENEMY_TIME_SCALE, Explosion, Missile, make_explosion
from .geometry import lerp_point

if TYPE_CHECKING:
    from .session import SessionState

_IMPACT_KIND = {"player": "player", "enemy": "impact"}


def envelope_radius(age: float, duration: float, max_radius: float) -> float:
    """Triangular radius envelope over ``[0, duration]``, peak at the midpoint."""
    if duration <= 0 or age <= 0 or age >= duration:
        return 0.0
    half = duration / 2
    if age < half:
        return (age / half) * max_radius
    return (1 - (age - half) / half) * max_radius


class MotionIntegrator:
    """Advances every active missile and explosion by elapsed milliseconds."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def advance_missiles(self, dt: float, session: SessionState) -> list[Missile]:
        """Move all missiles; return the enemy missiles that hit the ground this tick.

        The impact explosions are already added to ``session.explosions``;
        the caller resolves structure damage for the returned missiles.
        """
        for missile in session.player_missiles:
            self._advance(missile, missile.speed * dt, session)

        landed: list[Missile] = []
        for missile in session.enemy_missiles:
            if self._advance(missile, missile.speed * dt * ENEMY_TIME_SCALE, session):
                landed.append(missile)
        return landed

    def age_explosions(self, dt: float, session: SessionState) -> None:
        for explosion in session.explosions:
            self._age(explosion, dt)

    def _advance(self, missile: Missile, step: float, session: SessionState) -> bool:
        """Advance one missile; True if it detonated on this call."""
        if not missile.active:
            return False

        missile.progress += step
        if missile.progress >= 1.0:
            missile.progress = 1.0
            missile.x, missile.y = missile.target
            missile.active = False
            session.explosions.append(
                make_explosion(session.ids, _IMPACT_KIND[missile.kind], missile.target)
            )
            return True

        missile.x, missile.y = lerp_point(missile.start, missile.target, missile.progress)
        if self._rng.random() < missile.trail_probability:
            # deque maxlen evicts the oldest point
            missile.trail.append(missile.position)
        return False

    @staticmethod
    def _age(explosion: Explosion, dt: float) -> None:
        if not explosion.active:
            return
        explosion.age += dt
        if explosion.age > explosion.duration:
            explosion.active = False
            explosion.radius = 0.0
            return
        explosion.radius = envelope_radius(
            explosion.age, explosion.duration, explosion.max_radius
        )
