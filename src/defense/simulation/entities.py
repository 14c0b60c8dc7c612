"""Entity model — towers, cities, missiles and explosions.

Architecture
------------
Entities are plain dataclasses that carry state and lifecycle flags only.
All behaviour lives in the subsystems that own a tick phase:

  spawner.py    creates enemy missiles
  motion.py     advances missiles and ages explosions
  collision.py  destroys structures and intercepts missiles
  game_mode.py  resets structures and replenishes ammo between waves

Entities never hold references to each other.  Interaction is always a
geometric proximity query performed by a subsystem, so one entity can be
pruned without leaving a dangling pointer anywhere else.

Type-specific numbers (explosion size, lifetime, colour, trail length)
live in lookup tables keyed by ``kind`` rather than in subclasses, so the
subsystems can create any variant from data.
"""

from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass, field

from .geometry import Point, lerp_point

# Play field, in logical units.  Callers map screen coordinates into this
# space before handing them to the engine.
GAME_WIDTH = 800.0
GAME_HEIGHT = 600.0
GROUND_HEIGHT = 40.0
GROUND_Y = GAME_HEIGHT - GROUND_HEIGHT

# Player shots aimed below this line are refused.
FIRE_GUARD_Y = GROUND_Y + 10.0

# Player missiles leave the launcher this far above the tower's base.
LAUNCH_OFFSET = 30.0
PLAYER_MISSILE_SPEED = 0.02

# Enemy missile progress is scaled by this on top of its own speed.
ENEMY_TIME_SCALE = 0.005

# Structures within this distance of an enemy impact are destroyed.
STRUCTURE_KILL_RADIUS = 35.0

INTERCEPT_SCORE = 20
AMMO_BONUS = 5
WIN_SCORE = 1000

TOWER_COLOR = "#60a5fa"
CITY_COLOR = "#34d399"

# Explosion profiles by kind.
# Format: (max_radius, duration_ms, color)
_EXPLOSION_PROFILES: dict[str, tuple[float, float, str]] = {
    "player":    (70.0, 1200.0, "#ffffff"),
    "impact":    (40.0,  800.0, "#f59e0b"),
    "debris":    (50.0, 1000.0, "#ef4444"),
    "intercept": (30.0,  600.0, "#fbbf24"),
}

# Missile profiles by kind.
# Format: (trail_cap, trail_probability, color)
_MISSILE_PROFILES: dict[str, tuple[int, float, str]] = {
    "player": (10, 0.5, "#60a5fa"),
    "enemy":  (5,  0.3, "#ef4444"),
}

# (x fraction of width, max ammo)
_TOWER_LAYOUT: tuple[tuple[float, int], ...] = ((0.1, 20), (0.5, 40), (0.9, 20))
_CITY_LAYOUT: tuple[float, ...] = (0.2, 0.3, 0.4, 0.6, 0.7, 0.8)
_TOWER_Y = GROUND_Y + 10.0
_CITY_Y = GROUND_Y + 15.0


class IdAllocator:
    """Monotonic per-session id source: ``tower-1``, ``missile-2``, ...

    A single counter is shared by every kind so that ids stay unique even
    when many entities are created inside one tick.
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def next(self, kind: str) -> str:
        return f"{kind}-{next(self._counter)}"


@dataclass
class Tower:
    """A missile launcher.  Fires player interceptors; can be destroyed."""

    id: str
    x: float
    y: float
    max_ammo: int
    ammo: int | None = None
    active: bool = True
    color: str = TOWER_COLOR

    def __post_init__(self) -> None:
        if self.ammo is None:
            self.ammo = self.max_ammo

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @property
    def launch_point(self) -> Point:
        return (self.x, self.y - LAUNCH_OFFSET)

    def replenish(self) -> None:
        self.ammo = self.max_ammo

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "tower",
            "x": self.x,
            "y": self.y,
            "active": self.active,
            "ammo": self.ammo,
            "max_ammo": self.max_ammo,
            "color": self.color,
        }


@dataclass
class City:
    """A passive structure.  Exists only to survive or be destroyed."""

    id: str
    x: float
    y: float
    active: bool = True
    color: str = CITY_COLOR

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "city",
            "x": self.x,
            "y": self.y,
            "active": self.active,
            "color": self.color,
        }


@dataclass
class Missile:
    """A missile in flight along a straight line from start to target.

    ``progress`` is the flown fraction (0..1).  Position is always the
    interpolation of start and target by progress.
    """

    id: str
    kind: str  # "player" or "enemy"
    start_x: float
    start_y: float
    target_x: float
    target_y: float
    speed: float  # progress per millisecond, before kind scaling
    progress: float = 0.0
    active: bool = True
    x: float = 0.0
    y: float = 0.0
    color: str = ""
    trail: deque = field(default_factory=deque)

    def __post_init__(self) -> None:
        cap, _, color = _MISSILE_PROFILES[self.kind]
        self.x, self.y = lerp_point(self.start, self.target, self.progress)
        if not self.color:
            self.color = color
        self.trail = deque(self.trail, maxlen=cap)

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @property
    def start(self) -> Point:
        return (self.start_x, self.start_y)

    @property
    def target(self) -> Point:
        return (self.target_x, self.target_y)

    @property
    def trail_probability(self) -> float:
        return _MISSILE_PROFILES[self.kind][1]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "x": self.x,
            "y": self.y,
            "start": {"x": self.start_x, "y": self.start_y},
            "target": {"x": self.target_x, "y": self.target_y},
            "progress": self.progress,
            "speed": self.speed,
            "active": self.active,
            "color": self.color,
            "trail": [{"x": px, "y": py} for px, py in self.trail],
        }


@dataclass
class Explosion:
    """An expanding-then-collapsing blast.  ``radius`` is the live kill zone."""

    id: str
    kind: str  # "player", "impact", "debris", "intercept"
    x: float
    y: float
    max_radius: float
    duration: float  # ms
    age: float = 0.0
    radius: float = 0.0
    active: bool = True
    color: str = ""

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "max_radius": self.max_radius,
            "duration": self.duration,
            "age": self.age,
            "active": self.active,
            "color": self.color,
        }


def make_explosion(ids: IdAllocator, kind: str, position: Point) -> Explosion:
    """Create an explosion of *kind* using its size/lifetime profile."""
    max_radius, duration, color = _EXPLOSION_PROFILES[kind]
    return Explosion(
        id=ids.next("explosion"),
        kind=kind,
        x=position[0],
        y=position[1],
        max_radius=max_radius,
        duration=duration,
        color=color,
    )


def make_missile(
    ids: IdAllocator,
    kind: str,
    start: Point,
    target: Point,
    speed: float,
) -> Missile:
    return Missile(
        id=ids.next("missile"),
        kind=kind,
        start_x=start[0],
        start_y=start[1],
        target_x=target[0],
        target_y=target[1],
        speed=speed,
    )


def default_towers(ids: IdAllocator) -> list[Tower]:
    """Three launchers: two flanks with 20 rounds, a centre battery with 40."""
    return [
        Tower(id=ids.next("tower"), x=GAME_WIDTH * frac, y=_TOWER_Y, max_ammo=ammo)
        for frac, ammo in _TOWER_LAYOUT
    ]


def default_cities(ids: IdAllocator) -> list[City]:
    return [
        City(id=ids.next("city"), x=GAME_WIDTH * frac, y=_CITY_Y)
        for frac in _CITY_LAYOUT
    ]
