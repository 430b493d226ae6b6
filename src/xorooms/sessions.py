"""Binds live connections to rooms and routes messages between them."""

from __future__ import annotations

import abc
import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from . import protocol
from .protocol import MalformedMessage, parse_message
from .rooms import (
    InvalidMove,
    Message,
    Room,
    RoomAllocationError,
    RoomError,
    RoomNotFound,
    RoomRegistry,
    normalize_code,
)

logger = logging.getLogger(__name__)


class ConnectionClosed(Exception):
    """Raised by :meth:`Connection.send` when the peer can no longer be written to."""


class Connection(abc.ABC):
    """One live transport session, identified by an ephemeral ``id``."""

    id: str

    @property
    @abc.abstractmethod
    def is_open(self) -> bool:
        ...

    @abc.abstractmethod
    async def send(self, message: Message) -> None:
        ...


class WebSocketConnection(Connection):
    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, message: Message) -> None:
        try:
            await self.websocket.send_json(message)
        except (RuntimeError, OSError, WebSocketDisconnect) as exc:
            raise ConnectionClosed(str(exc)) from exc


class SessionManager:
    """Dispatches inbound frames to rooms and fans results out to members.

    Each connection is bound to at most one room, tracked by code only; the
    :class:`RoomRegistry` stays the sole owner of :class:`Room` objects. A
    room's lock is held for the whole of a transition and its broadcast so
    that operations on one room are serialised while different rooms never
    wait on each other.
    """

    def __init__(self, registry: Optional[RoomRegistry] = None) -> None:
        self.registry = registry if registry is not None else RoomRegistry()
        self._connections: Dict[str, Connection] = {}
        self._bindings: Dict[str, str] = {}

    # ---- connection lifecycle ----

    def connect(self, connection: Connection) -> None:
        self._connections[connection.id] = connection
        logger.debug("Connection %s opened", connection.id)

    async def disconnect(self, connection_id: str) -> None:
        """Forget ``connection_id`` and leave whatever room it was bound to."""

        self._connections.pop(connection_id, None)
        code = self._bindings.get(connection_id)
        if code is not None:
            logger.info("Connection %s dropped from room %s", connection_id, code)
            await self._leave(connection_id, code)
        else:
            logger.debug("Connection %s closed", connection_id)

    def bound_room(self, connection_id: str) -> Optional[str]:
        return self._bindings.get(connection_id)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ---- inbound ----

    async def handle(self, connection_id: str, raw: Union[str, bytes]) -> None:
        """Parse one raw frame from ``connection_id`` and act on it."""

        try:
            message = parse_message(raw)
        except MalformedMessage as exc:
            logger.warning("Dropping malformed message from %s: %s", connection_id, exc)
            return
        await self.dispatch(connection_id, message)

    async def dispatch(self, connection_id: str, message: Any) -> None:
        if isinstance(message, protocol.CreateRoom):
            await self._create(connection_id)
        elif isinstance(message, protocol.JoinRoom):
            await self._join_or_reject(connection_id, message.room_id)
        elif isinstance(message, protocol.MakeMove):
            await self._move(connection_id, message.room_id, message.index, message.symbol)
        elif isinstance(message, protocol.Restart):
            await self._restart(connection_id, message.room_id)
        elif isinstance(message, protocol.LeaveRoom):
            code = message.room_id or self._bindings.get(connection_id)
            if code is not None:
                await self._leave(connection_id, code)
        else:
            logger.warning("Unhandled message %r from %s", message, connection_id)

    # ---- transitions ----

    async def _create(self, connection_id: str) -> None:
        await self._expire_idle_rooms()
        try:
            code, room = self.registry.create()
        except RoomAllocationError as exc:
            logger.error("Room allocation failed for %s: %s", connection_id, exc)
            await self._reply(connection_id, protocol.error(str(exc)))
            return
        await self._join(connection_id, code, reply=protocol.room_created(code))

    async def _join_or_reject(self, connection_id: str, code: str) -> None:
        try:
            await self._join(connection_id, code)
        except RoomError as exc:
            logger.info("Join of %s by %s rejected: %s", code, connection_id, exc.message)
            await self._reply(connection_id, protocol.error(exc.message))

    async def _join(
        self, connection_id: str, code: str, reply: Optional[Message] = None
    ) -> None:
        room = self.registry.get(code)
        previous = self._bindings.get(connection_id)
        async with room.lock:
            if room.closed:
                raise RoomNotFound()
            messages = room.join(connection_id)
            self._bindings[connection_id] = room.code
            self.registry.touch(room)
            logger.info(
                "Connection %s joined room %s (%d/2)",
                connection_id,
                room.code,
                len(room.members),
            )
            if reply is not None:
                await self._reply(connection_id, reply)
            await self._broadcast(room, messages)
        if previous is not None and previous != room.code:
            await self._leave(connection_id, previous)

    async def _move(self, connection_id: str, code: str, index: int, symbol: str) -> None:
        room = self.registry.lookup(code)
        if room is None:
            logger.debug("Move from %s for unknown room %s dropped", connection_id, code)
            return
        async with room.lock:
            if room.closed:
                return
            try:
                messages = room.move(index, symbol)
            except InvalidMove as exc:
                logger.debug(
                    "Move %s@%r in room %s from %s rejected: %s",
                    symbol,
                    index,
                    room.code,
                    connection_id,
                    exc.message,
                )
                return
            self.registry.touch(room)
            await self._broadcast(room, messages)

    async def _restart(self, connection_id: str, code: str) -> None:
        room = self.registry.lookup(code)
        if room is None:
            logger.debug("Restart from %s for unknown room %s dropped", connection_id, code)
            return
        async with room.lock:
            if room.closed:
                return
            messages = room.restart()
            self.registry.touch(room)
            logger.info("Room %s restarted, %s to move", room.code, room.turn)
            await self._broadcast(room, messages)

    async def _leave(self, connection_id: str, code: str) -> None:
        room = self.registry.lookup(code)
        target = room.code if room is not None else normalize_code(code)
        if self._bindings.get(connection_id) == target:
            del self._bindings[connection_id]
        if room is None:
            return
        async with room.lock:
            if room.closed:
                return
            messages = room.leave(connection_id)
            if room.is_empty:
                self.registry.remove(room.code)
            elif messages:
                logger.info("Connection %s left room %s", connection_id, room.code)
                self.registry.touch(room)
            await self._broadcast(room, messages)

    async def _expire_idle_rooms(self) -> None:
        for room in self.registry.expire_idle():
            members: List[str] = list(room.members)
            for member in members:
                if self._bindings.get(member) == room.code:
                    del self._bindings[member]
                await self._reply(member, protocol.error("Room expired"))

    # ---- outbound ----

    async def _reply(self, connection_id: str, message: Message) -> None:
        connection = self._connections.get(connection_id)
        if connection is None or not connection.is_open:
            return
        try:
            await connection.send(message)
        except ConnectionClosed as exc:
            logger.warning("Failed to send %s to %s: %s", message["type"], connection_id, exc)

    async def _broadcast(self, room: Room, messages: List[Message]) -> None:
        for message in messages:
            for member in list(room.members):
                await self._reply(member, message)
