"""In-memory rooms: the registry of active matches and their state machine."""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from . import protocol
from .board import (
    BOARD_SIZE,
    Cell,
    Draw,
    Symbol,
    Win,
    empty_board,
    evaluate,
    other,
)

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 5
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_ATTEMPTS = 10
MAX_MEMBERS = 2

Message = Dict[str, Any]


class RoomError(Exception):
    """Base class for rejected room operations."""

    message = "Room error"

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class RoomNotFound(RoomError):
    message = "Room not found"


class RoomFull(RoomError):
    message = "Room full"


class InvalidMove(RoomError):
    message = "Invalid move"


class RoomAllocationError(RuntimeError):
    pass


def normalize_code(code: str) -> str:
    return code.strip().upper()


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


@dataclass
class Room:
    """One match between at most two connections.

    The transition methods mutate the room and return the messages that must
    be broadcast to ``members`` afterwards. Callers hold ``lock`` across both
    the transition and the broadcast.
    """

    code: str
    members: List[str] = field(default_factory=list)
    board: List[Cell] = field(default_factory=empty_board)
    turn: Symbol = "X"
    game_starter: Symbol = "X"
    next_starter: Symbol = "X"
    finished: bool = False
    closed: bool = False
    last_activity: float = 0.0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def is_full(self) -> bool:
        return len(self.members) >= MAX_MEMBERS

    @property
    def is_empty(self) -> bool:
        return not self.members

    def join(self, connection_id: str) -> List[Message]:
        if connection_id in self.members:
            return []
        if self.is_full:
            raise RoomFull()
        self.members.append(connection_id)
        if len(self.members) == MAX_MEMBERS:
            return [protocol.game_start(self.code)]
        return []

    def move(self, index: Any, symbol: Any) -> List[Message]:
        if self.finished:
            raise InvalidMove("game over")
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidMove("out of range")
        if not 0 <= index < BOARD_SIZE:
            raise InvalidMove("out of range")
        if self.board[index] is not None:
            raise InvalidMove("occupied")
        if symbol != self.turn:
            raise InvalidMove("wrong turn")

        self.board[index] = symbol
        self.turn = other(symbol)
        messages = [protocol.move_made(index, symbol, self.turn)]

        outcome = evaluate(self.board)
        if isinstance(outcome, Win):
            self.finished = True
            self.next_starter = outcome.winner
            messages.append(protocol.game_over(outcome.winner, outcome.line))
        elif isinstance(outcome, Draw):
            self.finished = True
            # Whoever did not open the drawn game opens the next one.
            self.next_starter = other(self.game_starter)
            messages.append(protocol.game_over(protocol.DRAW))
        return messages

    def restart(self) -> List[Message]:
        self.board = empty_board()
        self.turn = self.next_starter
        self.game_starter = self.next_starter
        self.finished = False
        return [protocol.restart_game(self.turn)]

    def leave(self, connection_id: str) -> List[Message]:
        if connection_id not in self.members:
            return []
        self.members.remove(connection_id)
        if self.members:
            return [protocol.user_left()]
        return []


class RoomRegistry:
    """Mapping from room code to :class:`Room` for every active match.

    Dictionary access never awaits, so the registry itself needs no lock;
    per-room exclusivity is provided by ``Room.lock``.
    """

    def __init__(
        self,
        code_factory: Callable[[], str] = generate_room_code,
        idle_ttl: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rooms: Dict[str, Room] = {}
        self._code_factory = code_factory
        self._clock = clock
        self.idle_ttl = idle_ttl

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_code(code) in self._rooms

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def create(self) -> Tuple[str, Room]:
        for _ in range(ROOM_CODE_ATTEMPTS):
            code = normalize_code(self._code_factory())
            if code not in self._rooms:
                break
        else:
            raise RoomAllocationError("Unable to allocate room")

        room = Room(code=code, last_activity=self._clock())
        self._rooms[code] = room
        logger.info("Room %s created", code)
        return code, room

    def lookup(self, code: Any) -> Optional[Room]:
        if not isinstance(code, str):
            return None
        return self._rooms.get(normalize_code(code))

    def get(self, code: Any) -> Room:
        room = self.lookup(code)
        if room is None:
            raise RoomNotFound()
        return room

    def remove(self, code: str) -> None:
        room = self._rooms.pop(normalize_code(code), None)
        if room is not None:
            room.closed = True
            logger.info("Room %s removed", room.code)

    def touch(self, room: Room) -> None:
        room.last_activity = self._clock()

    def expire_idle(self) -> List[Room]:
        """Remove and return rooms idle for at least ``idle_ttl`` seconds."""

        if self.idle_ttl <= 0:
            return []
        now = self._clock()
        expired = [
            room
            for room in self._rooms.values()
            if now - room.last_activity >= self.idle_ttl
        ]
        for room in expired:
            logger.info("Room %s expired after %.0fs idle", room.code, self.idle_ttl)
            self.remove(room.code)
        return expired
