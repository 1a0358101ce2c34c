"""Tests for the exhaustive minimax engine."""

import random

import pytest
from hypothesis import given, settings, strategies as st

from exactxo import ai
from exactxo.ai import MinimaxAI, SearchStats, best_move, choose_move, score_moves
from exactxo.game import (
    CENTER,
    CORNERS,
    Board,
    InvariantViolation,
    Outcome,
    evaluate,
    opponent,
)


def test_first_move_is_corner_or_center():
    move = choose_move(Board(), "O")
    assert move in CORNERS + (CENTER,)


def test_takes_immediate_win():
    board = Board.from_string("XX__O____")
    assert choose_move(board, "X") == 2


def test_blocks_immediate_threat():
    board = Board.from_string("XX__O____")
    assert choose_move(board, "O") == 2


def test_prefers_fastest_win():
    # Cell 2 forks (win in three plies) and comes first; cell 5 wins now.
    board = Board.from_string("OO_XX____")
    scores = dict(score_moves(board, "X"))
    assert scores[2] > 0
    assert scores[5] > scores[2]
    assert choose_move(board, "X") == 5


def test_prefers_slowest_loss():
    # X threatens both diagonals through the centre; every O move loses.
    board = Board.from_string("XOXOXO___")
    scores = dict(score_moves(board, "O"))
    assert set(scores) == {6, 7, 8}
    assert all(score < 0 for score in scores.values())
    assert choose_move(board, "O") == 6
    assert evaluate(play_out(board, "O")) == Outcome.win("X")


def test_only_drawing_move_is_found():
    board = Board.from_string("XOXXOO_X_")
    assert choose_move(board, "O") == 6
    assert evaluate(play_out(board, "O")).drawn


def test_best_move_scores_terminal_boards():
    assert best_move(Board.from_string("XXXOO____"), "X", "O", 0) == 10
    assert best_move(Board.from_string("XXXOO____"), "O", "O", 3) == -7
    assert best_move(Board.from_string("XOXXOOOXX"), "X", "X", 9) == 0


def test_choose_move_is_deterministic():
    board = Board.from_string("X___O____")
    moves = {choose_move(board, "X") for _ in range(3)}
    assert len(moves) == 1


def test_search_leaves_board_untouched():
    board = Board.from_string("X_O_X____")
    before = list(board.cells)
    choose_move(board, "O")
    assert board.cells == before
    best_move(board, "O", "O")
    assert board.cells == before


@settings(max_examples=30, deadline=None)
@given(st.permutations(range(9)), st.integers(min_value=2, max_value=7))
def test_search_never_leaks_into_input(order, plies):
    board = Board()
    player = "X"
    for idx in order[:plies]:
        if evaluate(board).is_terminal:
            break
        board.place(player, idx)
        player = opponent(player)
    if evaluate(board).is_terminal:
        return
    before = list(board.cells)
    choose_move(board, player)
    assert board.cells == before


def test_finished_board_is_refused():
    with pytest.raises(InvariantViolation):
        choose_move(Board.from_string("XXXOO____"), "O")
    with pytest.raises(InvariantViolation):
        choose_move(Board.from_string("XOXXOOOXX"), "X")


def test_easy_mode_picks_random_legal_move():
    board = Board.from_string("XOXXO____")
    ai = MinimaxAI(player="X", difficulty="easy", rng=random.Random(7))
    picks = {ai.choose(board) for _ in range(40)}
    assert picks <= set(board.empty_cells())
    assert len(picks) > 1
    assert str(board) == "XOXXO____"


def test_unknown_difficulty_rejected():
    with pytest.raises(ValueError):
        MinimaxAI(player="O", difficulty="medium")


def play_out(board, player):
    """Both sides follow the engine from ``board`` until it is decided."""
    board = board.copy()
    while not evaluate(board).is_terminal:
        board.place(player, choose_move(board, player))
        player = opponent(player)
    return board


def _engine_never_loses(board, engine, to_move, allowed=None):
    # Enumerate every opponent reply; the engine answers with choose_move.
    outcome = evaluate(board)
    if outcome.is_terminal:
        assert outcome.winner in (allowed or (None, engine)), str(board)
        return
    if to_move == engine:
        cell = choose_move(board, engine)
        board.cells[cell] = engine
        _engine_never_loses(board, engine, opponent(engine), allowed)
        board.clear(cell)
        return
    for cell in board.empty_cells():
        board.cells[cell] = to_move
        _engine_never_loses(board, engine, engine, allowed)
        board.clear(cell)


def test_engine_as_o_never_loses():
    _engine_never_loses(Board(), "O", "X")


def test_engine_as_x_never_loses():
    _engine_never_loses(Board(), "X", "X")


def test_engine_converts_won_positions():
    # X to move after O's edge reply; X can force a win.
    board = Board.from_string("X__O_____")
    assert best_move(board.copy(), "X", "X") > 0
    _engine_never_loses(board, "X", "X", allowed=("X",))


def test_search_counts_nodes():
    stats = SearchStats()
    best_move(Board.from_string("XXXOO____"), "X", "O", 0, stats)
    assert stats.nodes == 1

    stats = SearchStats()
    scores = score_moves(Board.from_string("XOXXOO_X_"), "O", stats)
    # Each root move is one node plus X's forced reply (a draw after 6, a win after 8)
    assert [cell for cell, _ in scores] == [6, 8]
    assert stats.nodes == 4


def test_choose_move_logs_node_count(caplog):
    with caplog.at_level("DEBUG", logger="exactxo.ai"):
        choose_move(Board.from_string("XX__O____"), "X")
    assert "nodes" in caplog.text


def test_empty_search_result_raises(monkeypatch):
    monkeypatch.setattr(ai, "score_moves", lambda board, player, stats=None: [])
    with pytest.raises(InvariantViolation):
        choose_move(Board.from_string("XX__O____"), "X")
