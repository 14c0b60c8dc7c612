"""WebSocket endpoints for real-time frames and game events.

Two feeds share one socket:

  - ``frame`` messages carry engine snapshots.  FrameBroadcaster is
    registered with the engine as a renderer; its surface is the server's
    event loop, and it reports no surface while nobody is connected so the
    engine skips serialisation entirely.
  - every other message type is forwarded from the engine's EventBus by
    the event bridge thread (``game_state_change``, ``wave_complete``, ...).

Clients can also drive the game over the same socket (``begin``, ``fire``,
``advance``, ``restart``), which makes the socket a complete input layer.
"""

from __future__ import annotations

import asyncio
import json
import queue
import threading
import time
from datetime import datetime, timezone
from typing import Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

router = APIRouter(prefix="/ws", tags=["websocket"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConnectionManager:
    """Tracks connected viewers and fans frames and events out to them.

    Every method runs on the server's event loop; the frame loop and the
    event bridge reach it through ``run_coroutine_threadsafe``.
    """

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"Viewer joined ({len(self.active_connections)} watching)")

    async def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(f"Viewer left ({len(self.active_connections)} watching)")

    async def broadcast(self, message: dict):
        """Send *message* to every viewer; drop viewers whose socket fails."""
        if not self.active_connections:
            return

        payload = json.dumps(message)
        # Snapshot the set: viewers may join while a send is awaited
        for connection in list(self.active_connections):
            try:
                await connection.send_text(payload)
            except Exception as e:
                logger.warning(f"Dropping viewer after failed {message.get('type')} send: {e}")
                self.active_connections.discard(connection)

    async def send_to(self, websocket: WebSocket, message: dict):
        """Reply to a single viewer."""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.warning(f"Failed to send {message.get('type')} reply: {e}")


# Global connection manager
manager = ConnectionManager()


class FrameBroadcaster:
    """Engine renderer that pushes snapshots to WebSocket clients."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None,
        connections: ConnectionManager = manager,
        frame_rate: float = 30.0,
    ) -> None:
        self._loop = loop
        self._connections = connections
        self._interval = 1.0 / frame_rate if frame_rate > 0 else 0.0
        self._last_sent = 0.0

    @property
    def surface(self):
        """The event loop frames are drawn into, or None when nobody is watching."""
        if self._loop is None or self._loop.is_closed():
            return None
        if not self._connections.active_connections:
            return None
        return self._loop

    def render(self, snapshot) -> None:
        now = time.monotonic()
        if now - self._last_sent < self._interval:
            return
        self._last_sent = now
        asyncio.run_coroutine_threadsafe(
            self._connections.broadcast({"type": "frame", "data": snapshot.to_dict()}),
            self._loop,
        )


class EventBridge:
    """Daemon thread forwarding EventBus messages to WebSocket clients."""

    def __init__(self, event_bus, loop: asyncio.AbstractEventLoop,
                 connections: ConnectionManager = manager) -> None:
        self._event_bus = event_bus
        self._loop = loop
        self._connections = connections
        self._sub: queue.Queue | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._sub = self._event_bus.subscribe()
        self._thread = threading.Thread(
            target=self._bridge_loop, name="ws-event-bridge", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._sub is not None:
            self._event_bus.unsubscribe(self._sub)
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _bridge_loop(self) -> None:
        while not self._stop.is_set():
            try:
                msg = self._sub.get(timeout=0.5)
            except queue.Empty:
                continue
            if self._loop.is_closed():
                break
            asyncio.run_coroutine_threadsafe(
                self._connections.broadcast({
                    "type": msg.get("type", "unknown"),
                    "data": msg.get("data", {}),
                    "timestamp": _now(),
                }),
                self._loop,
            )


@router.websocket("/live")
async def websocket_live(websocket: WebSocket):
    """WebSocket endpoint for live frames, events and player input."""
    await manager.connect(websocket)

    engine = getattr(websocket.app.state, "engine", None)
    await manager.send_to(
        websocket,
        {
            "type": "connected",
            "timestamp": _now(),
            "game": engine.get_game_state() if engine is not None else None,
        },
    )

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_to(
                    websocket, {"type": "error", "message": "Invalid JSON"}
                )
                continue
            if not isinstance(message, dict):
                await manager.send_to(
                    websocket, {"type": "error", "message": "Expected a JSON object"}
                )
                continue
            await handle_client_message(websocket, engine, message)
    except WebSocketDisconnect:
        logger.debug("WebSocket client closed the connection")
    finally:
        await manager.disconnect(websocket)


async def handle_client_message(websocket: WebSocket, engine, message: dict):
    """Handle messages from WebSocket clients."""
    msg_type = message.get("type")

    if msg_type == "ping":
        await manager.send_to(websocket, {"type": "pong", "timestamp": _now()})
        return

    if engine is None:
        await manager.send_to(
            websocket, {"type": "error", "message": "Simulation engine not available"}
        )
        return

    if msg_type == "fire":
        try:
            x = float(message["x"])
            y = float(message["y"])
        except (KeyError, TypeError, ValueError):
            await manager.send_to(
                websocket, {"type": "error", "message": "fire needs numeric x and y"}
            )
            return
        missile = engine.fire(x, y)
        await manager.send_to(websocket, {
            "type": "fire_result",
            "fired": missile is not None,
            "missile_id": missile.id if missile is not None else None,
        })
    elif msg_type == "begin":
        ok = engine.start_session()
        await manager.send_to(websocket, {"type": "begin_result", "ok": ok})
    elif msg_type == "advance":
        ok = engine.advance_wave()
        await manager.send_to(websocket, {"type": "advance_result", "ok": ok})
    elif msg_type == "restart":
        ok = engine.restart()
        await manager.send_to(websocket, {"type": "restart_result", "ok": ok})
    else:
        await manager.send_to(
            websocket,
            {"type": "error", "message": f"Unknown message type: {msg_type}"},
        )
