"""Turn controller: a series of boards between a human and the engine."""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .ai import IMPOSSIBLE, MinimaxAI
from .game import (
    O,
    X,
    Board,
    InvariantViolation,
    IllegalMove,
    ONGOING,
    Outcome,
    Player,
    evaluate,
    is_valid_board,
    opponent,
    side_to_move,
)

logger = logging.getLogger(__name__)


class TurnState(str, enum.Enum):
    AWAITING_FIRST_SIDE = "awaiting_first_side"  # X to move
    AWAITING_SECOND_SIDE = "awaiting_second_side"  # O to move
    TERMINAL = "terminal"


def next_state(state: TurnState, outcome: Outcome) -> TurnState:
    """State after an accepted move in ``state`` produced ``outcome``."""
    if state is TurnState.TERMINAL:
        raise IllegalMove("Match already finished")
    if outcome.is_terminal:
        return TurnState.TERMINAL
    if state is TurnState.AWAITING_FIRST_SIDE:
        return TurnState.AWAITING_SECOND_SIDE
    return TurnState.AWAITING_FIRST_SIDE


def _state_for(board: Board) -> TurnState:
    if evaluate(board).is_terminal:
        return TurnState.TERMINAL
    if side_to_move(board) == X:
        return TurnState.AWAITING_FIRST_SIDE
    return TurnState.AWAITING_SECOND_SIDE


@dataclass
class Tally:
    """Series statistics; survives ``reset_match``."""

    wins: Dict[Player, int] = field(default_factory=lambda: {X: 0, O: 0})
    draws: int = 0

    def record(self, outcome: Outcome) -> None:
        if outcome.winner is not None:
            self.wins[outcome.winner] += 1
        elif outcome.drawn:
            self.draws += 1

    def as_dict(self) -> Dict[str, int]:
        return {"winsX": self.wins[X], "winsO": self.wins[O], "draws": self.draws}


@dataclass
class Match:
    human: Player = X
    difficulty: str = IMPOSSIBLE
    board: Board = field(default_factory=Board)
    tally: Tally = field(default_factory=Tally)
    history: List[Tuple[Player, int]] = field(default_factory=list)
    rng: Optional[random.Random] = field(default=None, repr=False)

    state: TurnState = field(default=TurnState.AWAITING_FIRST_SIDE, init=False)
    outcome: Outcome = field(default=ONGOING, init=False)
    _ai: MinimaxAI = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.human not in (X, O):
            raise ValueError(f"Unknown mark {self.human!r}")
        # The match owns its board outright
        self.board = self.board.copy()
        if not is_valid_board(self.board):
            raise InvariantViolation(f"Board {self.board} is not reachable")
        self._ai = MinimaxAI(
            player=self.engine,
            difficulty=self.difficulty,
            rng=self.rng or random.Random(),
        )
        self.outcome = evaluate(self.board)
        self.state = _state_for(self.board)

    @property
    def engine(self) -> Player:
        return opponent(self.human)

    @property
    def current_player(self) -> Optional[Player]:
        if self.state is TurnState.AWAITING_FIRST_SIDE:
            return X
        if self.state is TurnState.AWAITING_SECOND_SIDE:
            return O
        return None

    @property
    def is_terminal(self) -> bool:
        return self.state is TurnState.TERMINAL

    def engine_to_move(self) -> bool:
        return self.current_player == self.engine


def new_match(human: Player = X, difficulty: str = IMPOSSIBLE, rng=None) -> Match:
    return Match(human=human, difficulty=difficulty, rng=rng)


def apply_move(match: Match, cell: int) -> Outcome:
    """Place the side-to-move's mark on ``cell`` and advance the match.

    Raises ``IllegalMove`` without touching the match when the cell is taken or
    off the board, or when the board is already decided.
    """
    if match.is_terminal:
        logger.debug("rejected move %s: match finished", cell)
        raise IllegalMove("Match already finished")
    player = match.current_player
    if player is None:
        raise InvariantViolation(f"No side to move in state {match.state.value}")
    try:
        match.board.place(player, cell)
    except IllegalMove as exc:
        logger.debug("rejected move %s for %s: %s", cell, player, exc)
        raise

    outcome = evaluate(match.board)
    match.history.append((player, cell))
    match.outcome = outcome
    match.state = next_state(match.state, outcome)
    logger.info("%s -> %d on %s (%s)", player, cell, match.board, outcome)
    if outcome.is_terminal:
        match.tally.record(outcome)
    return outcome


def engine_move(match: Match) -> int:
    """Cell the engine would play now; apply it with ``apply_move``."""
    if match.is_terminal:
        raise IllegalMove("Match already finished")
    if not match.engine_to_move():
        raise IllegalMove(f"It is not {match.engine}'s turn")
    return match._ai.choose(match.board)


def set_difficulty(match: Match, difficulty: str) -> Match:
    """Switch the engine between ``impossible`` and ``easy``; board and tally are kept."""
    match._ai = MinimaxAI(player=match.engine, difficulty=difficulty, rng=match._ai.rng)
    match.difficulty = difficulty
    logger.info("difficulty set to %s (tally %s)", difficulty, match.tally.as_dict())
    return match


def reset_match(match: Match) -> Match:
    """Fresh board with X to move; tallies are kept."""
    match.board = Board()
    match.history.clear()
    match.outcome = ONGOING
    match.state = TurnState.AWAITING_FIRST_SIDE
    logger.info("match reset (tally %s)", match.tally.as_dict())
    return match


def tally(match: Match) -> Dict[str, int]:
    return match.tally.as_dict()
