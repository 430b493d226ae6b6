"""JSON message contract spoken over the realtime connection.

Every frame is a JSON object with a ``type`` discriminator. Inbound frames
are validated into the pydantic models below; outbound frames are plain
dictionaries built by the helpers at the bottom of this module.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Sequence, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    TypeAdapter,
    ValidationError,
)

DRAW = "draw"


class MalformedMessage(ValueError):
    """Raised when an inbound frame cannot be understood."""


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateRoom(_Inbound):
    type: Literal["create_room"]


class JoinRoom(_Inbound):
    type: Literal["join_room"]
    room_id: str = Field(alias="roomId")


class MakeMove(_Inbound):
    type: Literal["make_move"]
    room_id: str = Field(alias="roomId")
    # Booleans and numeric strings are malformed, not cell numbers.
    index: StrictInt
    symbol: str


class Restart(_Inbound):
    type: Literal["restart"]
    room_id: str = Field(alias="roomId")


class LeaveRoom(_Inbound):
    type: Literal["leave_room"]
    # Falls back to the connection's bound room when omitted.
    room_id: Optional[str] = Field(default=None, alias="roomId")


InboundMessage = Annotated[
    Union[CreateRoom, JoinRoom, MakeMove, Restart, LeaveRoom],
    Field(discriminator="type"),
]

_INBOUND_ADAPTER: TypeAdapter[Any] = TypeAdapter(InboundMessage)


def parse_message(raw: Union[str, bytes]) -> InboundMessage:
    """Decode and validate one inbound frame.

    Invalid JSON, unknown ``type`` values and payloads of the wrong shape all
    raise :class:`MalformedMessage`.
    """

    try:
        return _INBOUND_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<frame>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise MalformedMessage(errors) from exc


# ---------- Outbound ----------


def room_created(code: str) -> Dict[str, Any]:
    return {"type": "room_created", "roomId": code}


def game_start(code: str) -> Dict[str, Any]:
    return {"type": "game_start", "roomId": code}


def move_made(index: int, symbol: str, next_turn: str) -> Dict[str, Any]:
    return {"type": "move_made", "index": index, "symbol": symbol, "nextTurn": next_turn}


def game_over(winner: str, line: Optional[Sequence[int]] = None) -> Dict[str, Any]:
    message: Dict[str, Any] = {"type": "game_over", "winner": winner}
    if line is not None:
        message["line"] = list(line)
    return message


def restart_game(turn: str) -> Dict[str, Any]:
    return {"type": "restart_game", "turn": turn}


def user_left() -> Dict[str, Any]:
    return {"type": "user_left"}


def error(message: str) -> Dict[str, Any]:
    return {"type": "error", "message": message}
