"""Exhaustive minimax for classic Tic-Tac-Toe."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .game import (
    EMPTY,
    Board,
    InvariantViolation,
    Player,
    evaluate,
    opponent,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 10

IMPOSSIBLE = "impossible"
EASY = "easy"
DIFFICULTIES: Tuple[str, ...] = (IMPOSSIBLE, EASY)


@dataclass
class SearchStats:
    nodes: int = 0


def best_move(
    board: Board,
    maximizer: Player,
    to_move: Player,
    depth: int = 0,
    stats: Optional[SearchStats] = None,
) -> int:
    """Score ``board`` for ``maximizer`` with ``to_move`` about to play.

    A win for the maximizer scores ``10 - depth``, a loss ``depth - 10`` and a
    draw ``0``, so quicker wins and slower losses are preferred. The tree is
    always searched to the end; ``depth`` only shapes the score.

    Marks are placed and retracted in place, so callers hand in a board they
    own. ``choose_move`` passes a scratch copy.
    """
    if stats is not None:
        stats.nodes += 1
    result = evaluate(board)
    if result.winner == maximizer:
        return WIN_SCORE - depth
    if result.winner is not None:
        return depth - WIN_SCORE
    if result.drawn:
        return 0

    cells = board.cells
    moves = [i for i, c in enumerate(cells) if c == EMPTY]
    if not moves:
        raise InvariantViolation(f"Ongoing board {board} has no legal move")

    nxt = opponent(to_move)
    if to_move == maximizer:
        value = -WIN_SCORE - 1
        for i in moves:
            cells[i] = to_move
            try:
                value = max(value, best_move(board, maximizer, nxt, depth + 1, stats))
            finally:
                cells[i] = EMPTY
    else:
        value = WIN_SCORE + 1
        for i in moves:
            cells[i] = to_move
            try:
                value = min(value, best_move(board, maximizer, nxt, depth + 1, stats))
            finally:
                cells[i] = EMPTY
    return value


def score_moves(
    board: Board, player: Player, stats: Optional[SearchStats] = None
) -> List[Tuple[int, int]]:
    """(cell, score) for every legal move of ``player``, in cell order."""
    outcome = evaluate(board)
    if outcome.is_terminal:
        raise InvariantViolation(f"Search requested on finished board {board} ({outcome})")
    moves = board.empty_cells()
    if not moves:
        raise InvariantViolation(f"Ongoing board {board} has no legal move")

    scratch = board.copy()
    scored: List[Tuple[int, int]] = []
    for i in moves:
        scratch.cells[i] = player
        scored.append((i, best_move(scratch, player, opponent(player), 0, stats)))
        scratch.cells[i] = EMPTY
    return scored


def choose_move(board: Board, player: Player) -> int:
    """Best cell for ``player``; the lowest index wins ties."""
    best_cell: Optional[int] = None
    best_score = -WIN_SCORE - 1
    stats = SearchStats()
    for cell, score in score_moves(board, player, stats):
        if score > best_score:
            best_cell, best_score = cell, score
    if best_cell is None:
        raise InvariantViolation(f"No move chosen for {player} on {board}")
    logger.debug(
        "minimax %s on %s -> %d (score %d, %d nodes)",
        player,
        board,
        best_cell,
        best_score,
        stats.nodes,
    )
    return best_cell


@dataclass
class MinimaxAI:
    """Engine player.

    ``difficulty="impossible"`` plays perfectly via ``choose_move``;
    ``difficulty="easy"`` picks uniformly among the legal moves.
    """

    player: Player
    difficulty: str = IMPOSSIBLE
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(
                f"Unsupported difficulty {self.difficulty!r}. "
                f"Choose one of {', '.join(DIFFICULTIES)}."
            )

    def choose(self, board: Board) -> int:
        if self.difficulty == EASY:
            outcome = evaluate(board)
            if outcome.is_terminal:
                raise InvariantViolation(
                    f"Search requested on finished board {board} ({outcome})"
                )
            cell = self.rng.choice(board.empty_cells())
            logger.debug("random %s on %s -> %d", self.player, board, cell)
            return cell
        return choose_move(board, self.player)
