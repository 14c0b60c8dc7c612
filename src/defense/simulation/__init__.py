"""Simulation subsystem — entities, spawner, motion, collisions, game mode."""
from .autopilot import AutoGunner
from .collision import CollisionResolver
from .engine import DefenseEngine, Renderer
from .entities import City, Explosion, IdAllocator, Missile, Tower
from .game_mode import GameMode, PendingTransition
from .motion import MotionIntegrator, envelope_radius
from .session import SessionState, Snapshot
from .spawner import EnemySpawner

__all__ = [
    "AutoGunner",
    "City",
    "CollisionResolver",
    "DefenseEngine",
    "EnemySpawner",
    "Explosion",
    "GameMode",
    "IdAllocator",
    "Missile",
    "MotionIntegrator",
    "PendingTransition",
    "Renderer",
    "SessionState",
    "Snapshot",
    "Tower",
    "envelope_radius",
]
