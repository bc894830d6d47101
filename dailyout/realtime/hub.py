"""
In-memory WebSocket hub for progress and wins events.

Every socket joins the room of the user it authenticated as. User-scoped
events (progress:update) go to that room only; public events (win:new,
win:like) go to every socket.

Services emit synchronously (they run in the request threadpool); the hub
hands the send over to the event loop captured at startup.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Set

from fastapi import WebSocket

from dailyout.core.metrics import (
    ws_active_connections,
    ws_connections_total,
    ws_messages_sent_total,
)

logger = logging.getLogger("dailyout.realtime")

PROGRESS_UPDATE = "progress:update"
WIN_NEW = "win:new"
WIN_LIKE = "win:like"


class EventEmitter(Protocol):
    def emit(self, topic: str, payload: dict, user_id: Optional[str] = None) -> None:
        ...


@dataclass(frozen=True)
class RecordedEvent:
    topic: str
    payload: dict
    user_id: Optional[str] = None


class RecordingEmitter:
    """Keeps emitted events in memory (tests)."""

    def __init__(self):
        self.events: List[RecordedEvent] = []

    def emit(self, topic: str, payload: dict, user_id: Optional[str] = None) -> None:
        self.events.append(RecordedEvent(topic, dict(payload), user_id))

    def topics(self) -> List[str]:
        return [event.topic for event in self.events]

    def clear(self) -> None:
        self.events.clear()


class ProgressHub:
    def __init__(self):
        # user_id -> sockets authenticated as that user
        self._rooms: Dict[str, Set[WebSocket]] = {}
        # socket -> user_id
        self._connections: Dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # in-flight publishes started by emit(); held until done
        self._pending: Set = set()

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        self._loop = loop

    async def register(self, user_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._rooms.setdefault(user_id, set()).add(websocket)
            self._connections[websocket] = user_id
            ws_connections_total.inc()
            ws_active_connections.set(len(self._connections))
        logger.debug("hub.registered", extra={"user_id": user_id})

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._drop(websocket)
            ws_active_connections.set(len(self._connections))

    def _drop(self, websocket: WebSocket) -> None:
        user_id = self._connections.pop(websocket, None)
        if user_id is None:
            return
        room = self._rooms.get(user_id)
        if room is not None:
            room.discard(websocket)
            if not room:
                del self._rooms[user_id]

    async def publish(self, topic: str, payload: dict, user_id: Optional[str] = None) -> int:
        """Send to the user's room, or to every socket when user_id is None. Returns deliveries."""
        async with self._lock:
            if user_id is not None:
                sockets = set(self._rooms.get(user_id, set()))
            else:
                sockets = set(self._connections)

        message = {"type": topic, "payload": payload}
        dead: List[WebSocket] = []
        delivered = 0
        for ws in sockets:
            try:
                await ws.send_json(message)
                delivered += 1
                ws_messages_sent_total.inc(labels={"event_type": topic})
            except Exception as e:
                logger.debug("hub.send_failed", extra={"error_message": str(e)})
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._drop(ws)
                ws_active_connections.set(len(self._connections))
        return delivered

    def emit(self, topic: str, payload: dict, user_id: Optional[str] = None) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("hub.emit_dropped", extra={"topic": topic})
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            future = loop.create_task(self.publish(topic, payload, user_id))
        else:
            future = asyncio.run_coroutine_threadsafe(self.publish(topic, payload, user_id), loop)
        self._pending.add(future)
        future.add_done_callback(self._publish_done)

    def _publish_done(self, future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("hub.publish_failed", extra={"error_message": str(error)})

    @property
    def pending_publishes(self) -> int:
        return len(self._pending)

    async def room_size(self, user_id: str) -> int:
        async with self._lock:
            return len(self._rooms.get(user_id, set()))

    async def connection_count(self) -> int:
        async with self._lock:
            return len(self._connections)
