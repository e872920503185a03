# store_api/routers/realtime.py
"""
Socket.IO event handlers.

Clients connect to `/socket.io` with the Supabase access token, either as
`auth={"token": "Bearer <jwt>"}` or as a `?token=<jwt>` query parameter.
Each socket joins its user room; admins also join the admin room.
"""
import asyncio
import logging
import uuid
from urllib.parse import parse_qs

from fastapi import HTTPException
from fastapi.concurrency import run_in_threadpool
from socketio.exceptions import ConnectionRefusedError as SocketRefused
from sqlmodel import Session

from store_api.core.auth import user_from_token
from store_api.core.realtime import ADMIN_ROOM, broadcaster, sio, user_room
from store_api.database import engine

logger = logging.getLogger(__name__)


def _token_from(environ: dict, auth) -> str | None:
    raw = auth.get("token") if isinstance(auth, dict) else None
    if not raw:
        raw = parse_qs(environ.get("QUERY_STRING", "")).get("token", [None])[0]
    if raw and raw.lower().startswith("bearer "):
        raw = raw[len("bearer "):]
    return raw or None


def _authenticate(token: str) -> tuple[uuid.UUID, str]:
    with Session(engine) as session:
        user = user_from_token(session, token)
        return user.id, user.role


@sio.event
async def connect(sid, environ, auth=None):
    broadcaster.bind(asyncio.get_running_loop())

    token = _token_from(environ, auth)
    if not token:
        raise SocketRefused("Authentication required")
    try:
        user_id, role = await run_in_threadpool(_authenticate, token)
    except HTTPException as exc:
        logger.info("Rejected socket %s: %s", sid, exc.detail)
        raise SocketRefused(exc.detail)

    rooms = [user_room(user_id)]
    if role == "admin":
        rooms.append(ADMIN_ROOM)
    for room in rooms:
        await sio.enter_room(sid, room)
    await sio.save_session(sid, {"user_id": str(user_id)})

    logger.info("Socket %s connected for %s in %s", sid, user_id, rooms)
    await sio.emit("connected", {"user_id": str(user_id), "rooms": rooms}, to=sid)


@sio.event
async def ping(sid, data=None):
    await sio.emit("pong", {}, to=sid)


@sio.event
async def disconnect(sid, reason=None):
    logger.info("Socket %s disconnected (%s)", sid, reason)
