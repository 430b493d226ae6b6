"""FastAPI application exposing the realtime room endpoint."""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request, WebSocket
from fastapi.staticfiles import StaticFiles

from .config import Settings
from .rooms import RoomRegistry
from .sessions import SessionManager, WebSocketConnection

logger = logging.getLogger(__name__)

router = APIRouter()


def _sessions(scope_owner: Request | WebSocket) -> SessionManager:
    return scope_owner.app.state.sessions


@router.websocket("/")
@router.websocket("/ws")
async def realtime(websocket: WebSocket) -> None:
    await websocket.accept()
    sessions = _sessions(websocket)
    connection = WebSocketConnection(websocket)
    sessions.connect(connection)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            await sessions.handle(connection.id, raw)
    finally:
        await sessions.disconnect(connection.id)


@router.get("/healthz")
def health(request: Request) -> Dict[str, object]:
    sessions = _sessions(request)
    return {"status": "ok", "rooms": len(sessions.registry)}


@router.get("/api/room/{room_id}")
def inspect_room(room_id: str, request: Request) -> Dict[str, object]:
    room = _sessions(request).registry.lookup(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return {
        "roomId": room.code,
        "players": len(room.members),
        "available": not room.is_full,
        "turn": room.turn,
    }


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with a fresh, empty room registry."""

    settings = settings or Settings.from_env()
    app = FastAPI(title="xorooms", description="Two-player tic-tac-toe rooms")
    app.state.settings = settings
    app.state.sessions = SessionManager(
        RoomRegistry(idle_ttl=float(settings.room_idle_ttl))
    )
    app.include_router(router)

    # Static assets go last so they never shadow the routes above.
    if settings.static_dir:
        if os.path.isdir(settings.static_dir):
            app.mount(
                "/",
                StaticFiles(directory=settings.static_dir, html=True),
                name="static",
            )
        else:
            logger.warning("Static directory %s does not exist", settings.static_dir)
    return app


app = create_app()
