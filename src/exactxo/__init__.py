"""ExactXO package exposing the game rules, the minimax engine, and the web application."""

from .ai import MinimaxAI, best_move, choose_move
from .game import Board, IllegalMove, InvariantViolation, Outcome, evaluate
from .match import Match, apply_move, engine_move, new_match, reset_match, tally
from .ui import app

__all__ = [
    "Board",
    "IllegalMove",
    "InvariantViolation",
    "Match",
    "MinimaxAI",
    "Outcome",
    "app",
    "apply_move",
    "best_move",
    "choose_move",
    "engine_move",
    "evaluate",
    "new_match",
    "reset_match",
    "tally",
]
