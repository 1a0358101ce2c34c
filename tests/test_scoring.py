"""Tests for the stats payload of a finished board."""

import pytest

from exactxo.game import DRAW, ONGOING, Outcome
from exactxo.match import apply_move, new_match
from exactxo.scoring import (
    calculate_points,
    calculate_score,
    calculate_xp,
    result_for,
    summarize,
)


def test_result_from_human_perspective():
    assert result_for(Outcome.win("X"), "X") == "win"
    assert result_for(Outcome.win("O"), "X") == "loss"
    assert result_for(DRAW, "O") == "draw"
    with pytest.raises(ValueError):
        result_for(ONGOING, "X")


def test_score_rewards_fast_wins():
    assert calculate_score("win", 5) == 95
    assert calculate_score("win", 300) == 10
    assert calculate_score("draw", 5) == 50
    assert calculate_score("loss", 5) == 10


def test_xp_and_points():
    assert calculate_xp("win", 95) == 100
    assert calculate_xp("win", 60) == 50
    assert calculate_xp("draw", 50) == 30
    assert calculate_xp("loss", 10) == 20
    assert calculate_points("win", 95) == 109
    assert calculate_points("draw", 50) == 50
    assert calculate_points("loss", 10) == 10


def test_unknown_result_rejected():
    with pytest.raises(ValueError):
        calculate_points("forfeit", 0)


def test_summarize_finished_board():
    match = new_match()
    for cell in (0, 3, 1, 4, 2):
        apply_move(match, cell)
    assert summarize(match, seconds=12) == {
        "result": "win",
        "score": 88,
        "xp": 50,
        "points": 108,
    }
