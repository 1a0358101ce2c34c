"""Result payloads handed to the platform's stats endpoint after a finished board."""

from __future__ import annotations

from typing import Dict, Tuple

from .game import Outcome, Player
from .match import Match

WIN, LOSS, DRAW = "win", "loss", "draw"
RESULTS: Tuple[str, ...] = (WIN, LOSS, DRAW)

WIN_XP = 50
LOSS_XP = 20
DRAW_XP = 30
PERFECT_WIN_XP = 100
PERFECT_SCORE = 90
XP_MULTIPLIER = 1  # tic-tac-toe

WIN_POINTS = 100
LOSS_POINTS = 10
DRAW_POINTS = 50


def result_for(outcome: Outcome, human: Player) -> str:
    """``"win"``, ``"loss"`` or ``"draw"`` from the human's point of view."""
    if outcome.winner is not None:
        return WIN if outcome.winner == human else LOSS
    if outcome.drawn:
        return DRAW
    raise ValueError("Board is still ongoing")


def _check(result: str) -> None:
    if result not in RESULTS:
        raise ValueError(f"Unknown result {result!r}")


def calculate_score(result: str, seconds: float) -> int:
    # Faster wins score higher; the bonus bottoms out after 90 seconds
    _check(result)
    if result == WIN:
        return int(100 - min(max(seconds, 0), 90))
    if result == DRAW:
        return 50
    return 10


def calculate_xp(result: str, score: int) -> int:
    _check(result)
    xp = LOSS_XP
    if result == WIN:
        xp = PERFECT_WIN_XP if score >= PERFECT_SCORE else WIN_XP
    elif result == DRAW:
        xp = DRAW_XP
    return round(xp * XP_MULTIPLIER)


def calculate_points(result: str, score: int) -> int:
    _check(result)
    if result == WIN:
        return WIN_POINTS + score // 10
    if result == DRAW:
        return DRAW_POINTS
    return LOSS_POINTS


def summarize(match: Match, seconds: float = 0.0) -> Dict[str, object]:
    """Stats payload for the board the match just finished."""
    result = result_for(match.outcome, match.human)
    score = calculate_score(result, seconds)
    return {
        "result": result,
        "score": score,
        "xp": calculate_xp(result, score),
        "points": calculate_points(result, score),
    }
