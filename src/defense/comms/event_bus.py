"""EventBus — thread-safe pub/sub for simulation events.

DefenseEngine publishes game events (state changes, waves, interceptions,
structure losses) here.  The WebSocket bridge and the headless runner
subscribe and drain their queues on their own threads, so the frame loop
never blocks on a slow consumer.
"""

from __future__ import annotations

import queue
import threading


class EventBus:
    """Simple thread-safe pub/sub for pushing events to subscribers."""

    def __init__(self, maxsize: int = 100) -> None:
        """``maxsize`` bounds each subscriber queue; 0 means unbounded."""
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[tuple[str | None, queue.Queue]] = []

    def subscribe(self, topic: str | None = None) -> queue.Queue:
        """Subscribe to events. Returns a Queue of ``{"type", "data"}`` messages.

        With ``topic`` set, only messages of that type are delivered;
        ``None`` receives everything.
        """
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        with self._lock:
            self._subscribers.append((topic, q))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [(t, s) for t, s in self._subscribers if s is not q]

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for topic, q in self._subscribers:
                if topic is not None and topic != event_type:
                    continue
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    # Drop oldest so state changes are never lost behind
                    # a backlog of interception events.
                    try:
                        q.get_nowait()
                    except queue.Empty:
                        pass
                    try:
                        q.put_nowait(msg)
                    except queue.Full:
                        pass
