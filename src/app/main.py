"""NOVA-DEFENSE - missile defense simulation server.

Main FastAPI application.  The lifespan owns the DefenseEngine: it is
created and its frame loop started when the app starts, and the loop is
stopped and joined when the app shuts down.
"""

import asyncio
import random
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.config import settings
from app.routers.game import router as game_router
from app.routers.ws import EventBridge, FrameBroadcaster, router as ws_router
from defense.comms.event_bus import EventBus
from defense.simulation import DefenseEngine


def _configure_logging() -> None:
    # The frame loop logs per-frame detail at DEBUG
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if settings.debug else "INFO")


def _create_engine() -> DefenseEngine:
    """Create the DefenseEngine from settings."""
    rng = random.Random(settings.rng_seed) if settings.rng_seed is not None else None
    engine = DefenseEngine(
        EventBus(),
        rng=rng,
        frame_rate=settings.frame_rate,
        max_frame_dt=settings.max_frame_dt,
        wave_advance_delay=settings.wave_advance_delay,
    )
    logger.info("Simulation engine created")
    return engine


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    _configure_logging()
    logger.info("=" * 60)
    logger.info(f"  {settings.app_name} v0.1.0 - INITIALIZING")
    logger.info("=" * 60)

    engine = _create_engine()
    app.state.engine = engine

    loop = asyncio.get_running_loop()
    broadcaster = FrameBroadcaster(loop, frame_rate=settings.ws_frame_rate)
    engine.add_renderer(broadcaster)
    bridge = EventBridge(engine.event_bus, loop)
    bridge.start()

    if settings.autostart_loop:
        engine.start()
    else:
        logger.info("Frame loop not started (AUTOSTART_LOOP=false)")

    logger.info(f"  {settings.app_name} ONLINE")

    yield

    logger.info("Stopping frame loop...")
    engine.stop()
    engine.remove_renderer(broadcaster)
    bridge.stop()
    app.state.engine = None
    logger.info(f"{settings.app_name} shutting down...")


# Create FastAPI app
app = FastAPI(
    title="NOVA-DEFENSE",
    description="Missile defense simulation - towers, cities, waves",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ws_router)
app.include_router(game_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": "0.1.0",
        "system": settings.app_name,
    }


@app.get("/api/status")
async def status():
    """Frame loop status."""
    engine = getattr(app.state, "engine", None)
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "engine": engine is not None,
        "frame_loop": engine.running if engine is not None else False,
        "frames": engine.frame_count if engine is not None else 0,
    }


def serve() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()
