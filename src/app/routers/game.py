"""Game control API — begin, fire, advance, restart, state and snapshot."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

router = APIRouter(prefix="/api/game", tags=["game"])


class FireCommand(BaseModel):
    x: float  # logical play-field units (0..800)
    y: float  # logical play-field units (0..600), y grows downward


def _get_engine(request: Request):
    """Retrieve the DefenseEngine from app state."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(503, "Simulation engine not available")
    return engine


@router.get("/state")
async def get_game_state(request: Request):
    """Get current game state counters."""
    engine = _get_engine(request)
    return engine.get_game_state()


@router.get("/snapshot")
async def get_snapshot(request: Request):
    """Full entity snapshot for late-joining renderers."""
    engine = _get_engine(request)
    return engine.snapshot().to_dict()


@router.post("/begin")
async def begin_session(request: Request):
    """Start a new session: start -> playing."""
    engine = _get_engine(request)
    state = engine.game_mode.state
    if state != "start":
        raise HTTPException(400, f"Cannot begin session in state: {state}")
    if not engine.start_session():
        raise HTTPException(400, "Session did not start")
    return {"status": "playing", "wave": 1}


@router.post("/fire")
async def fire(command: FireCommand, request: Request):
    """Launch an interceptor from the closest loaded tower."""
    engine = _get_engine(request)
    state = engine.game_mode.state
    if state != "playing":
        raise HTTPException(400, f"Cannot fire in state: {state}")
    missile = engine.fire(command.x, command.y)
    if missile is None:
        return {"fired": False}
    return {"fired": True, "missile_id": missile.id}


@router.post("/advance")
async def advance_wave(request: Request):
    """Skip the wave_complete pause and start the next wave."""
    engine = _get_engine(request)
    state = engine.game_mode.state
    if state != "wave_complete":
        raise HTTPException(400, f"Cannot advance wave in state: {state}")
    if not engine.advance_wave():
        raise HTTPException(400, "Wave did not advance")
    return {"status": "playing"}


@router.post("/restart")
async def restart(request: Request):
    """Abandon the session and return to the start screen."""
    engine = _get_engine(request)
    if engine.game_mode.state == "start":
        raise HTTPException(400, "No session to restart")
    if not engine.restart():
        raise HTTPException(400, "Session did not restart")
    return {"status": "reset", "state": "start"}
