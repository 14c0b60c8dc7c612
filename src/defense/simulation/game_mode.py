"""GameMode — state machine, wave controller, and scoring.

Architecture
------------
GameMode manages the flow of a defense session through a small state
machine:

  start -> playing -> wave_complete (3s) -> playing -> ... -> victory | defeat
  victory | defeat -> start   (restart)

Entering ``playing`` from ``start`` lays out a fresh field: three towers
(20/40/20 rounds), six cities, no projectiles, score 0, wave 1, speed
multiplier 1.0 and a budget of 10 enemy launches.

A wave is complete once its whole budget has launched and no enemy
missile or explosion is left in the air.  Unused ammo in surviving towers
is then converted into a bonus (5 points per round) and the controller
sits in ``wave_complete`` for ``wave_advance_delay`` ms.  When the delay
runs out it either declares victory (score >= WIN_SCORE) or advances to
the next wave: speed multiplier +0.15, budget ``10 + 2*wave``, faster
spawn cadence, ammo replenished in every standing tower, projectiles
cleared.

The delayed transition is a PendingTransition bound to the session token
that scheduled it.  Restarting cancels it, and a transition whose token no
longer matches the live session is discarded, so a restart inside the
delay window can never push a stale wave into the new session.

While playing, two outcome checks run every tick after the wave check:
no standing tower -> ``defeat``; score >= WIN_SCORE -> ``victory`` right
away, without waiting for the wave to finish.

Events published on EventBus:
  - ``game_state_change``: any state transition
  - ``wave_start``: new wave begins
  - ``wave_complete``: wave cleared, bonus awarded
  - ``game_over``: victory or defeat
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from .entities import AMMO_BONUS, WIN_SCORE, default_cities, default_towers
from .spawner import initial_spawn_interval, next_wave_budget, next_wave_spawn_interval

if TYPE_CHECKING:
    from defense.comms.event_bus import EventBus
    from .session import SessionState

_INITIAL_BUDGET = 10
_SPEED_STEP = 0.15

# Time spent in wave_complete before advancing
WAVE_ADVANCE_DELAY = 3000.0  # ms


@dataclass
class PendingTransition:
    """A wave_complete -> next-wave/victory decision waiting for its delay."""

    session_token: int
    remaining: float
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class GameMode:
    """Game state machine + wave controller + scoring."""

    STATES = ("start", "playing", "wave_complete", "victory", "defeat")

    def __init__(
        self,
        event_bus: EventBus | None = None,
        wave_advance_delay: float = WAVE_ADVANCE_DELAY,
    ) -> None:
        self._event_bus = event_bus
        self.wave_advance_delay = wave_advance_delay
        self.state: str = "start"
        self.wave_message: str = ""
        self._session_token: int = 0
        self._pending: PendingTransition | None = None

    def set_event_bus(self, event_bus: EventBus | None) -> None:
        self._event_bus = event_bus

    @property
    def pending(self) -> PendingTransition | None:
        return self._pending

    @property
    def is_playing(self) -> bool:
        return self.state == "playing"

    # -- Lifecycle ------------------------------------------------------------

    def begin(self, session: SessionState) -> bool:
        """start -> playing.  Lays out a fresh field in *session*."""
        if self.state != "start":
            return False
        self._cancel_pending()
        self._session_token += 1

        session.score = 0
        session.wave = 1
        session.enemy_speed_multiplier = 1.0
        session.enemies_to_spawn = _INITIAL_BUDGET
        session.towers = default_towers(session.ids)
        session.cities = default_cities(session.ids)
        session.clear_projectiles()
        session.spawn_timer = 0.0
        session.enemies_spawned = 0
        session.spawn_interval = initial_spawn_interval(session.wave)
        session.wave_bonus = 0
        self.wave_message = ""

        self.state = "playing"
        logger.info(
            f"Session {self._session_token} started: wave 1, "
            f"{session.enemies_to_spawn} enemies every {session.spawn_interval:.0f} ms"
        )
        self._publish_wave_start(session)
        self._publish_state_change(session)
        return True

    def restart(self, session: SessionState) -> bool:
        """Any non-start state -> start.  Cancels a pending wave transition."""
        if self.state == "start":
            return False
        self._cancel_pending()
        self._session_token += 1
        session.clear_projectiles()
        self.wave_message = ""
        self.state = "start"
        logger.info("Session reset")
        self._publish_state_change(session)
        return True

    def advance_wave(self, session: SessionState) -> bool:
        """wave_complete -> playing with the next wave's parameters."""
        if self.state != "wave_complete":
            return False
        self._cancel_pending()

        session.wave += 1
        session.enemy_speed_multiplier += _SPEED_STEP
        session.enemies_to_spawn = next_wave_budget(session.wave)
        session.enemies_spawned = 0
        session.spawn_timer = 0.0
        session.spawn_interval = next_wave_spawn_interval(session.wave)
        for tower in session.active_towers():
            tower.replenish()
        session.clear_projectiles()

        self.state = "playing"
        logger.info(
            f"Wave {session.wave}: {session.enemies_to_spawn} enemies every "
            f"{session.spawn_interval:.0f} ms at x{session.enemy_speed_multiplier:.2f}"
        )
        self._publish_wave_start(session)
        self._publish_state_change(session)
        return True

    # -- Per-tick checks -------------------------------------------------------

    def tick(self, dt: float, session: SessionState) -> None:
        """Run the pending wave_complete transition down by *dt* ms."""
        if self.state != "wave_complete":
            return
        pending = self._pending
        if pending is None:
            return
        if pending.cancelled or pending.session_token != self._session_token:
            self._pending = None
            return
        pending.remaining -= dt
        if pending.remaining > 0:
            return

        self._pending = None
        if session.score >= WIN_SCORE:
            self._finish("victory", session)
        else:
            self.advance_wave(session)

    def check_wave_complete(self, session: SessionState) -> bool:
        """playing -> wave_complete once the wave's budget is spent and the sky is clear."""
        if self.state != "playing":
            return False
        if session.enemies_spawned < session.enemies_to_spawn:
            return False
        if session.enemy_missiles or session.explosions:
            return False

        bonus = sum(t.ammo * AMMO_BONUS for t in session.active_towers())
        session.add_score(bonus)
        session.wave_bonus = bonus
        self.wave_message = f"+{bonus} Pts"

        self.state = "wave_complete"
        self._pending = PendingTransition(
            session_token=self._session_token,
            remaining=self.wave_advance_delay,
        )
        logger.info(f"Wave {session.wave} complete: bonus {bonus}, score {session.score}")
        self._publish("wave_complete", {
            "wave": session.wave,
            "bonus": bonus,
            "score": session.score,
        })
        self._publish_state_change(session)
        return True

    def check_outcome(self, session: SessionState) -> str | None:
        """playing -> defeat (no towers) or victory (score reached).  Returns the new state."""
        if self.state != "playing":
            return None
        if not session.active_towers():
            self._finish("defeat", session)
            return "defeat"
        if session.score >= WIN_SCORE:
            self._finish("victory", session)
            return "victory"
        return None

    def get_state(self, session: SessionState) -> dict:
        """Return serializable game state for API/frontend."""
        pending = self._pending
        return {
            "state": self.state,
            "wave": session.wave,
            "score": session.score,
            "wave_bonus": session.wave_bonus,
            "wave_message": self.wave_message,
            "enemies_to_spawn": session.enemies_to_spawn,
            "enemies_spawned": session.enemies_spawned,
            "speed_multiplier": round(session.enemy_speed_multiplier, 2),
            "active_towers": len(session.active_towers()),
            "active_cities": sum(1 for c in session.cities if c.active),
            "wave_advance_in": max(0.0, pending.remaining) if pending else None,
        }

    # -- Internals -------------------------------------------------------------

    def _finish(self, result: str, session: SessionState) -> None:
        self._cancel_pending()
        self.state = result
        logger.info(f"Game over: {result} at wave {session.wave}, score {session.score}")
        self._publish("game_over", {
            "result": result,
            "final_score": session.score,
            "wave": session.wave,
        })
        self._publish_state_change(session)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _publish_wave_start(self, session: SessionState) -> None:
        self._publish("wave_start", {
            "wave": session.wave,
            "enemies_to_spawn": session.enemies_to_spawn,
            "spawn_interval": session.spawn_interval,
            "speed_multiplier": round(session.enemy_speed_multiplier, 2),
        })

    def _publish_state_change(self, session: SessionState) -> None:
        self._publish("game_state_change", self.get_state(session))

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
