"""Board model, terminal evaluation and error taxonomy for classic Tic-Tac-Toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

Player = str  # "X" or "O"

X: Player = "X"
O: Player = "O"
EMPTY = " "

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

CORNERS: Tuple[int, ...] = (0, 2, 6, 8)
CENTER = 4


class IllegalMove(ValueError):
    """A move the caller is not allowed to make; the match is left untouched."""


class InvariantViolation(RuntimeError):
    """Internal contradiction, e.g. searching a board that has no legal move."""


def opponent(player: Player) -> Player:
    return O if player == X else X


# ---------- Outcome ----------


@dataclass(frozen=True)
class Outcome:
    """Ongoing, Win(mark) or Draw, derived from a board."""

    winner: Optional[Player] = None
    drawn: bool = False

    @classmethod
    def win(cls, player: Player) -> "Outcome":
        return cls(winner=player, drawn=False)

    @property
    def is_terminal(self) -> bool:
        return self.winner is not None or self.drawn

    def __str__(self) -> str:
        if self.winner:
            return f"win({self.winner})"
        return "draw" if self.drawn else "ongoing"


ONGOING = Outcome()
DRAW = Outcome(drawn=True)


# ---------- Board ----------


@dataclass
class Board:
    # 'X', 'O', or ' ' (space) for empty, row-major
    cells: List[str] = field(default_factory=lambda: [EMPTY] * 9)

    def __post_init__(self) -> None:
        if len(self.cells) != 9:
            raise ValueError(f"A board has 9 cells, got {len(self.cells)}")
        for c in self.cells:
            if c not in (X, O, EMPTY):
                raise ValueError(f"Unknown cell value {c!r}")

    @classmethod
    def from_string(cls, text: str) -> "Board":
        """Parse 9 characters such as ``"XX__O____"``; ``.`` and ``_`` mean empty."""
        cells = [EMPTY if ch in "._ " else ch.upper() for ch in text]
        return cls(cells=cells)

    def __str__(self) -> str:
        return "".join("_" if c == EMPTY else c for c in self.cells)

    def copy(self) -> "Board":
        return Board(cells=self.cells.copy())

    def empty_cells(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c == EMPTY]

    def is_full(self) -> bool:
        return all(c != EMPTY for c in self.cells)

    def count(self, player: Player) -> int:
        return self.cells.count(player)

    def place(self, player: Player, idx: int) -> None:
        if not 0 <= idx < 9:
            raise IllegalMove(f"Cell {idx} is off the board")
        if self.cells[idx] != EMPTY:
            raise IllegalMove(f"Cell {idx} already occupied")
        self.cells[idx] = player

    def clear(self, idx: int) -> None:
        self.cells[idx] = EMPTY

    def rows(self) -> List[List[str]]:
        return [self.cells[r * 3 : r * 3 + 3] for r in range(3)]


def evaluate(board: Board) -> Outcome:
    """Return the Outcome of ``board``; the first complete line wins."""
    cells = board.cells
    for a, b, c in WINNING_LINES:
        v = cells[a]
        if v != EMPTY and v == cells[b] == cells[c]:
            return Outcome.win(v)
    if EMPTY in cells:
        return ONGOING
    return DRAW


def winning_lines(board: Board, player: Player) -> List[Tuple[int, int, int]]:
    return [
        line for line in WINNING_LINES if all(board.cells[i] == player for i in line)
    ]


def side_to_move(board: Board) -> Player:
    """X moves first, so O is to move exactly when X has one more mark."""
    return O if board.count(X) > board.count(O) else X


def is_valid_board(board: Board) -> bool:
    """True when ``board`` can be reached by alternating play starting with X."""
    x, o = board.count(X), board.count(O)
    if x not in (o, o + 1):
        return False
    x_lines = winning_lines(board, X)
    o_lines = winning_lines(board, O)
    if x_lines and o_lines:
        return False
    # The winner must have made the last move
    if x_lines and x != o + 1:
        return False
    if o_lines and x != o:
        return False
    # Two X lines are only reachable when they share the final cell
    if len(x_lines) > 1 and not set.intersection(*(set(line) for line in x_lines)):
        return False
    if len(o_lines) > 1:
        return False
    return True


def board_from_moves(moves: Iterable[int]) -> Board:
    """Replay alternating moves starting with X."""
    board = Board()
    player = X
    for idx in moves:
        if evaluate(board).is_terminal:
            raise IllegalMove("Board already resolved")
        board.place(player, idx)
        player = opponent(player)
    return board
