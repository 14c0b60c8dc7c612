"""SessionState — the single mutable aggregate for one play-through.

DefenseEngine owns exactly one SessionState and hands it by reference to
each subsystem during a tick.  Nothing else holds on to it: renderers get
a Snapshot, input goes through DefenseEngine.fire().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .entities import City, Explosion, IdAllocator, Missile, Tower


@dataclass
class SessionState:
    """Entity collections plus score/wave/spawn counters."""

    towers: list[Tower] = field(default_factory=list)
    cities: list[City] = field(default_factory=list)
    player_missiles: list[Missile] = field(default_factory=list)
    enemy_missiles: list[Missile] = field(default_factory=list)
    explosions: list[Explosion] = field(default_factory=list)

    score: int = 0
    wave: int = 1
    enemy_speed_multiplier: float = 1.0
    enemies_to_spawn: int = 10
    enemies_spawned: int = 0
    spawn_timer: float = 0.0
    spawn_interval: float = 2000.0
    wave_bonus: int = 0

    ids: IdAllocator = field(default_factory=IdAllocator)

    def structures(self) -> Iterator[Tower | City]:
        """Cities first, then towers, matching enemy target selection order."""
        yield from self.cities
        yield from self.towers

    def active_structures(self) -> list[Tower | City]:
        return [s for s in self.structures() if s.active]

    def active_towers(self) -> list[Tower]:
        return [t for t in self.towers if t.active]

    def add_score(self, points: int) -> None:
        if points > 0:
            self.score += points

    def clear_projectiles(self) -> None:
        self.player_missiles.clear()
        self.enemy_missiles.clear()
        self.explosions.clear()

    def prune(self) -> None:
        """Drop inactive missiles and explosions.  Structures are kept."""
        self.player_missiles = [m for m in self.player_missiles if m.active]
        self.enemy_missiles = [m for m in self.enemy_missiles if m.active]
        self.explosions = [e for e in self.explosions if e.active]


@dataclass(frozen=True)
class Snapshot:
    """Read-only per-frame view handed to renderers and the HTTP layer."""

    state: str
    score: int
    wave: int
    wave_bonus: int
    enemies_to_spawn: int
    enemies_spawned: int
    towers: tuple[dict, ...]
    cities: tuple[dict, ...]
    player_missiles: tuple[dict, ...]
    enemy_missiles: tuple[dict, ...]
    explosions: tuple[dict, ...]

    @classmethod
    def capture(cls, state: str, session: SessionState) -> Snapshot:
        return cls(
            state=state,
            score=session.score,
            wave=session.wave,
            wave_bonus=session.wave_bonus,
            enemies_to_spawn=session.enemies_to_spawn,
            enemies_spawned=session.enemies_spawned,
            towers=tuple(t.to_dict() for t in session.towers),
            cities=tuple(c.to_dict() for c in session.cities),
            player_missiles=tuple(m.to_dict() for m in session.player_missiles if m.active),
            enemy_missiles=tuple(m.to_dict() for m in session.enemy_missiles if m.active),
            explosions=tuple(e.to_dict() for e in session.explosions if e.active),
        )

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "score": self.score,
            "wave": self.wave,
            "wave_bonus": self.wave_bonus,
            "enemies_to_spawn": self.enemies_to_spawn,
            "enemies_spawned": self.enemies_spawned,
            "towers": list(self.towers),
            "cities": list(self.cities),
            "player_missiles": list(self.player_missiles),
            "enemy_missiles": list(self.enemy_missiles),
            "explosions": list(self.explosions),
        }
