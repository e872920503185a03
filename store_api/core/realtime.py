# store_api/core/realtime.py
"""
Socket.IO server for live notifications.

Rooms:
  - "user-<uuid>" : every socket of one user
  - "admin"       : every admin socket

Route handlers are sync functions executed in FastAPI's threadpool, while
the Socket.IO server lives on the application's event loop. `broadcaster`
bridges the two: it schedules `sio.emit` on that loop from any thread.
"""
import asyncio
import logging
import uuid
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any

import socketio
from fastapi.encoders import jsonable_encoder

from store_api.core.config import get_settings

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admin"

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=get_settings().CORS_ORIGINS,
)


def user_room(user_id: uuid.UUID | str) -> str:
    return f"user-{user_id}"


def make_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Event data as JSON-safe values, stamped with the send time."""
    return {
        **jsonable_encoder(data),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _log_emit_failure(future: Future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.error("Socket emit failed: %s", future.exception())


class Broadcaster:
    """Thread-safe entry point for emitting to Socket.IO rooms."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def publish(self, room: str, event: str, data: dict[str, Any]) -> bool:
        """
        Schedule `event` for every socket in `room`.

        Returns False when no server loop is running yet; nobody can be
        connected then, so the event is dropped.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No socket loop; dropping %s for %s", event, room)
            return False
        future = asyncio.run_coroutine_threadsafe(
            self.server.emit(event, make_payload(data), room=room),
            loop,
        )
        future.add_done_callback(_log_emit_failure)
        return True


broadcaster = Broadcaster(sio)
