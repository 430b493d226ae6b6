"""Outcome evaluation for a single 3x3 tic-tac-toe board."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

Symbol = str  # "X" or "O"
Cell = Optional[Symbol]  # None for empty

SYMBOLS: Tuple[Symbol, Symbol] = ("X", "O")
BOARD_SIZE = 9

# Rows, then columns, then diagonals. The scan order decides which line is
# reported when more than one is complete.
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


@dataclass(frozen=True)
class InProgress:
    pass


@dataclass(frozen=True)
class Win:
    winner: Symbol
    line: Tuple[int, int, int]


@dataclass(frozen=True)
class Draw:
    pass


Outcome = Union[InProgress, Win, Draw]

IN_PROGRESS = InProgress()
DRAW = Draw()


def empty_board() -> List[Cell]:
    return [None] * BOARD_SIZE


def other(symbol: Symbol) -> Symbol:
    """Return the opposing symbol."""
    return "O" if symbol == "X" else "X"


def evaluate(board: Sequence[Cell]) -> Outcome:
    """Classify ``board`` as a win, a draw or a game still in progress.

    The first complete line in ``WINNING_LINES`` order wins; its indices are
    returned as-is so clients can highlight it. A full board without a
    complete line is a draw.
    """

    for a, b, c in WINNING_LINES:
        v = board[a]
        if v is not None and v == board[b] == board[c]:
            return Win(winner=v, line=(a, b, c))
    if all(cell is not None for cell in board):
        return DRAW
    return IN_PROGRESS
