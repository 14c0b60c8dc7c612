"""DefenseEngine — per-frame driver for the missile-defense simulation.

Architecture
------------
The engine is the sole owner of the SessionState.  Each call to
``update(dt)`` (dt in milliseconds) runs one frame to completion, in a
fixed order:

  1. EnemySpawner.tick            - maybe launch one enemy missile
  2. MotionIntegrator.advance     - move missiles, detonate arrivals
  3. CollisionResolver.impacts    - destroy structures near enemy impacts
  4. MotionIntegrator.age         - grow/shrink explosions
  5. CollisionResolver.intercepts - shoot down missiles inside blasts
  6. SessionState.prune           - drop inactive missiles/explosions
  7. GameMode.check_wave_complete - end of wave + ammo bonus
  8. GameMode.check_outcome       - defeat / early victory

Steps 1-8 only run while ``playing``.  In ``wave_complete`` the frame
only counts down the pending wave transition; in ``start``, ``victory``
and ``defeat`` nothing is mutated at all.

After the frame a Snapshot is captured and handed to every attached
renderer.  A renderer whose ``surface`` is None (no canvas, no connected
clients) is skipped for that frame, and a renderer that raises is logged
and skipped; neither can stall the simulation.

Input (``fire``) and lifecycle calls (``start_session``, ``advance_wave``,
``restart``) take the same lock as ``update``, so when the background
frame loop is running they are applied strictly between frames.

Threading:
  ``start()`` runs a daemon ``frame-loop`` thread calling ``update`` at
  ``frame_rate`` Hz with wall-clock dt clamped to ``max_frame_dt``.
  ``stop()`` joins it.  Tests call ``update`` directly.
"""

from __future__ import annotations

import random
import threading
import time
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from .collision import CollisionResolver
from .entities import (
    FIRE_GUARD_Y,
    PLAYER_MISSILE_SPEED,
    Missile,
    Tower,
    make_missile,
)
from .game_mode import WAVE_ADVANCE_DELAY, GameMode
from .geometry import distance
from .motion import MotionIntegrator
from .session import SessionState, Snapshot
from .spawner import EnemySpawner

if TYPE_CHECKING:
    from defense.comms.event_bus import EventBus


class Renderer(Protocol):
    """Anything that draws snapshots.  ``surface`` is None while it cannot draw."""

    surface: Any

    def render(self, snapshot: Snapshot) -> None: ...


class DefenseEngine:
    """Drives one defense session and publishes its events."""

    def __init__(
        self,
        event_bus: EventBus | None = None,
        rng: random.Random | None = None,
        frame_rate: float = 60.0,
        max_frame_dt: float = 100.0,
        wave_advance_delay: float = WAVE_ADVANCE_DELAY,
    ) -> None:
        self._event_bus = event_bus
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._frame_rate = frame_rate
        self._max_frame_dt = max_frame_dt

        self._session = SessionState()
        self.game_mode = GameMode(event_bus, wave_advance_delay=wave_advance_delay)
        self.spawner = EnemySpawner(self._rng)
        self.motion = MotionIntegrator(self._rng)
        self.collisions = CollisionResolver(event_bus)

        self._renderers: list[Renderer] = []
        self._running = False
        self._thread: threading.Thread | None = None
        self._clock_reset = True
        self.frame_count = 0

    # -- Wiring ---------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus | None:
        return self._event_bus

    def set_event_bus(self, event_bus: EventBus | None) -> None:
        self._event_bus = event_bus
        self.game_mode.set_event_bus(event_bus)
        self.collisions.set_event_bus(event_bus)

    @property
    def session(self) -> SessionState:
        """The live session.  Read it in tests; mutate only via engine calls."""
        return self._session

    @property
    def state(self) -> str:
        return self.game_mode.state

    def add_renderer(self, renderer: Renderer) -> None:
        with self._lock:
            if renderer not in self._renderers:
                self._renderers.append(renderer)

    def remove_renderer(self, renderer: Renderer) -> None:
        with self._lock:
            if renderer in self._renderers:
                self._renderers.remove(renderer)

    # -- Input layer ------------------------------------------------------------

    def start_session(self) -> bool:
        """start -> playing with a fresh field."""
        with self._lock:
            if self.game_mode.state != "start":
                return False
            self._session = SessionState()
            self._clock_reset = True
            return self.game_mode.begin(self._session)

    def advance_wave(self) -> bool:
        """Skip the wave_complete delay and start the next wave now."""
        with self._lock:
            return self.game_mode.advance_wave(self._session)

    def restart(self) -> bool:
        """Abandon the current session and return to ``start``."""
        with self._lock:
            if self.game_mode.state == "start":
                return False
            self._session = SessionState()
            self._clock_reset = True
            return self.game_mode.restart(self._session)

    def fire(self, target_x: float, target_y: float) -> Missile | None:
        """Launch an interceptor at (target_x, target_y) in logical units.

        Uses the closest standing tower that still has ammo.  Returns the
        missile, or None when nothing was fired (not playing, target below
        the guard line, or every tower empty).
        """
        with self._lock:
            if not self.game_mode.is_playing:
                return None
            if target_y > FIRE_GUARD_Y:
                return None
            target = (float(target_x), float(target_y))
            tower = self._closest_loaded_tower(target)
            if tower is None:
                return None

            session = self._session
            tower.ammo -= 1
            missile = make_missile(
                session.ids, "player", tower.launch_point, target, PLAYER_MISSILE_SPEED
            )
            session.player_missiles.append(missile)
            logger.debug(f"{tower.id} fired {missile.id} at ({target[0]:.0f}, {target[1]:.0f}), {tower.ammo} left")
            self._publish("interceptor_fired", {
                "id": missile.id,
                "tower_id": tower.id,
                "start": {"x": missile.start_x, "y": missile.start_y},
                "target": {"x": missile.target_x, "y": missile.target_y},
            })
            return missile

    def _closest_loaded_tower(self, point: tuple[float, float]) -> Tower | None:
        best: Tower | None = None
        best_dist = float("inf")
        for tower in self._session.towers:
            if not tower.active or tower.ammo <= 0:
                continue
            d = distance(tower.position, point)
            if d < best_dist:
                best = tower
                best_dist = d
        return best

    # -- Frame --------------------------------------------------------------------

    def update(self, dt: float) -> Snapshot:
        """Advance the simulation by *dt* milliseconds and render the result."""
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        with self._lock:
            state = self.game_mode.state
            if state == "playing":
                self._step(dt)
            elif state == "wave_complete":
                self.game_mode.tick(dt, self._session)
            self.frame_count += 1
            snapshot = Snapshot.capture(self.game_mode.state, self._session)
            renderers = list(self._renderers)
        self._render(snapshot, renderers)
        return snapshot

    def _step(self, dt: float) -> None:
        session = self._session
        launched = self.spawner.tick(dt, session)
        if launched is not None:
            self._publish("enemy_launched", {
                "id": launched.id,
                "start": {"x": launched.start_x, "y": launched.start_y},
                "target": {"x": launched.target_x, "y": launched.target_y},
                "speed": launched.speed,
            })

        landed = self.motion.advance_missiles(dt, session)
        self.collisions.resolve_impacts(landed, session)
        self.motion.age_explosions(dt, session)
        self.collisions.resolve_interceptions(session)
        session.prune()

        if not self.game_mode.check_wave_complete(session):
            self.game_mode.check_outcome(session)

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot.capture(self.game_mode.state, self._session)

    def get_game_state(self) -> dict:
        with self._lock:
            return self.game_mode.get_state(self._session)

    def _render(self, snapshot: Snapshot, renderers: list[Renderer]) -> None:
        for renderer in renderers:
            if getattr(renderer, "surface", None) is None:
                logger.debug(f"Renderer {type(renderer).__name__} has no surface, frame skipped")
                continue
            try:
                renderer.render(snapshot)
            except Exception as e:
                logger.warning(f"Renderer {type(renderer).__name__} failed: {e}")

    # -- Lifecycle ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._clock_reset = True
        self._thread = threading.Thread(
            target=self._frame_loop, name="frame-loop", daemon=True
        )
        self._thread.start()
        logger.info(f"Frame loop started ({self._frame_rate:.0f} Hz)")

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
            logger.info("Frame loop stopped")

    def _frame_loop(self) -> None:
        period = 1.0 / self._frame_rate
        last = time.monotonic()
        while self._running:
            time.sleep(period)
            now = time.monotonic()
            elapsed = (now - last) * 1000.0
            last = now
            if self._clock_reset:
                self._clock_reset = False
                elapsed = 0.0
            elif elapsed > self._max_frame_dt:
                logger.warning(f"Frame overran: {elapsed:.0f} ms, clamped to {self._max_frame_dt:.0f}")
                elapsed = self._max_frame_dt
            self.update(elapsed)

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
