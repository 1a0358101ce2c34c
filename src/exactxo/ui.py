"""FastAPI surface for playing against the engine in the browser."""

from __future__ import annotations

import functools
import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import DIFFICULTIES
from .config import Settings, load_settings
from .game import O, X, IllegalMove
from .match import (
    Match,
    apply_move,
    engine_move,
    new_match,
    reset_match,
    set_difficulty,
    tally,
)
from .scoring import summarize

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Read on first use; importing the package never touches the environment."""
    return load_settings()


@dataclass
class MatchSession:
    """Container for an active match and its pending engine turn."""

    match: Match
    ai_pending: bool = False
    # Bumped on reset so a stale engine turn drops its move
    generation: int = 0
    started_at: float = field(default_factory=time.monotonic)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, MatchSession] = {}
app = FastAPI(title="ExactXO", description="Tic-tac-toe against a perfect minimax engine")

# None means "use the configured think delay"
AI_THINK_DELAY: Optional[Tuple[float, float]] = None


def _check_difficulty(value: str) -> str:
    value = value.lower()
    if value not in DIFFICULTIES:
        raise ValueError(
            f"Unsupported difficulty {value!r}. Choose one of {', '.join(DIFFICULTIES)}."
        )
    return value


class NewMatchRequest(BaseModel):
    """Request payload for starting a new match."""

    difficulty: Optional[str] = Field(
        default=None,
        description="'impossible' searches the full tree, 'easy' plays at random",
    )
    human: str = Field(default=X, description="Mark played by the human; X moves first")

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_difficulty(value)

    @field_validator("human")
    @classmethod
    def ensure_mark(cls, value: str) -> str:
        value = value.upper()
        if value not in (X, O):
            raise ValueError("human must be 'X' or 'O'")
        return value


class DifficultyRequest(BaseModel):
    """Request payload for switching the engine strength mid-series."""

    difficulty: str

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: str) -> str:
        return _check_difficulty(value)


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing match."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


def _create_session(difficulty: str, human: str) -> Tuple[str, MatchSession]:
    session = MatchSession(match=new_match(human=human, difficulty=difficulty))
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("match %s created (%s, human=%s)", session_id, difficulty, human)
    return session_id, session


def _get_session(match_id: str) -> MatchSession:
    try:
        return SESSIONS[match_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Match not found") from exc


def _think_delay() -> Tuple[float, float]:
    if AI_THINK_DELAY is not None:
        return AI_THINK_DELAY
    return get_settings().think_delay


def _run_ai_turn(match_id: str, generation: int = 0) -> None:
    session = SESSIONS.get(match_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*_think_delay())))

    with session.lock:
        if session.generation != generation:
            logger.debug("match %s: dropping engine turn from a reset board", match_id)
            return
        try:
            match = session.match
            if match.is_terminal or not match.engine_to_move():
                return
            apply_move(match, engine_move(match))
        finally:
            session.ai_pending = False


def _schedule_ai(session: MatchSession) -> bool:
    # Caller holds session.lock
    match = session.match
    if not match.is_terminal and match.engine_to_move():
        session.ai_pending = True
    return session.ai_pending


def _serialize_session(match_id: str, session: MatchSession) -> Dict[str, object]:
    with session.lock:
        match = session.match
        state: Dict[str, object] = {
            "id": match_id,
            "human": match.human,
            "engine": match.engine,
            "difficulty": match.difficulty,
            "state": match.state.value,
            "currentPlayer": match.current_player,
            "winner": match.outcome.winner,
            "drawn": match.outcome.drawn,
            "cells": [c if c in (X, O) else "" for c in match.board.cells],
            "availableMoves": [] if match.is_terminal else match.board.empty_cells(),
            "moveLog": [
                {"player": player, "cellIndex": cell} for player, cell in match.history
            ],
            "tally": tally(match),
            "aiPending": session.ai_pending,
        }
        if match.history:
            state["lastMove"] = state["moveLog"][-1]  # type: ignore[index]
        return state


def _apply_player_move(
    match_id: str,
    session: MatchSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        match = session.match
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="Engine is completing its move")
        if not match.is_terminal and match.engine_to_move():
            raise HTTPException(status_code=400, detail="It is the engine's turn")
        try:
            apply_move(match, cell_index)
        except IllegalMove as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        should_schedule_ai = _schedule_ai(session)
        generation = session.generation

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, match_id, generation)


@app.post("/api/match")
def create_match(
    request: NewMatchRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    difficulty = request.difficulty or get_settings().difficulty
    match_id, session = _create_session(difficulty, request.human)
    with session.lock:
        should_schedule_ai = _schedule_ai(session)
    if should_schedule_ai:
        background_tasks.add_task(_run_ai_turn, match_id, session.generation)
    return _serialize_session(match_id, session)


@app.get("/api/match/{match_id}")
def get_match(match_id: str) -> Dict[str, object]:
    session = _get_session(match_id)
    return _serialize_session(match_id, session)


@app.post("/api/match/{match_id}/move")
def make_move(
    match_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(match_id)
    _apply_player_move(match_id, session, request.cell_index, background_tasks)
    return _serialize_session(match_id, session)


@app.post("/api/match/{match_id}/difficulty")
def change_difficulty(match_id: str, request: DifficultyRequest) -> Dict[str, object]:
    session = _get_session(match_id)
    with session.lock:
        set_difficulty(session.match, request.difficulty)
    return _serialize_session(match_id, session)


@app.post("/api/match/{match_id}/reset")
def reset(match_id: str, background_tasks: BackgroundTasks) -> Dict[str, object]:
    session = _get_session(match_id)
    with session.lock:
        # A pending engine turn belongs to the old board and is dropped
        session.generation += 1
        session.ai_pending = False
        reset_match(session.match)
        session.started_at = time.monotonic()
        should_schedule_ai = _schedule_ai(session)
        generation = session.generation
    if should_schedule_ai:
        background_tasks.add_task(_run_ai_turn, match_id, generation)
    return _serialize_session(match_id, session)


@app.get("/api/match/{match_id}/tally")
def get_tally(match_id: str) -> Dict[str, int]:
    session = _get_session(match_id)
    with session.lock:
        return tally(session.match)


@app.get("/api/match/{match_id}/result")
def get_result(
    match_id: str, seconds: Optional[float] = Query(default=None, ge=0)
) -> Dict[str, object]:
    session = _get_session(match_id)
    with session.lock:
        match = session.match
        if not match.is_terminal:
            raise HTTPException(status_code=409, detail="Board is still being played")
        if seconds is None:
            seconds = time.monotonic() - session.started_at
        return summarize(match, seconds)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>ExactXO</title>
    <style>
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        align-items: center;
        background: #0d1117;
        color: #e6edf3;
        font-family: system-ui, -apple-system, \"Segoe UI\", sans-serif;
      }
      main {
        background: #161b22;
        border: 1px solid #30363d;
        border-radius: 18px;
        padding: 2rem;
        width: min(520px, 100%);
      }
      h1 {
        margin: 0 0 1rem;
        text-align: center;
        letter-spacing: 0.08em;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
        margin: 1rem 0;
      }
      .cell {
        aspect-ratio: 1;
        font-size: 2.5rem;
        font-weight: 700;
        border: none;
        border-radius: 12px;
        background: #21262d;
        color: #79c0ff;
        cursor: pointer;
      }
      .cell.o {
        color: #ff7b72;
      }
      .cell:disabled {
        cursor: default;
      }
      .controls {
        display: flex;
        gap: 0.5rem;
        justify-content: center;
      }
      button,
      select {
        font: inherit;
        padding: 0.45rem 0.9rem;
        border-radius: 999px;
        border: 1px solid #30363d;
        background: #21262d;
        color: inherit;
      }
      .status,
      .tally {
        text-align: center;
        margin: 0.5rem 0;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>TIC-TAC-TOE</h1>
      <div class=\"controls\">
        <select id=\"difficulty\">
          <option value=\"impossible\">Pro AI</option>
          <option value=\"easy\">Easy</option>
        </select>
        <select id=\"human\">
          <option value=\"X\">Play X</option>
          <option value=\"O\">Play O</option>
        </select>
        <button id=\"new-match\">New match</button>
        <button id=\"next-board\">Next board</button>
      </div>
      <p class=\"status\" id=\"status\"></p>
      <div class=\"board\" id=\"board\"></div>
      <p class=\"tally\" id=\"tally\"></p>
    </main>
    <script>
      let matchId = null;
      let state = null;
      let pollTimer = null;

      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const tallyEl = document.getElementById('tally');

      function render() {
        boardEl.innerHTML = '';
        state.cells.forEach((cell, index) => {
          const button = document.createElement('button');
          button.className = 'cell' + (cell === 'O' ? ' o' : '');
          button.textContent = cell;
          const playable =
            state.currentPlayer === state.human &&
            !state.aiPending &&
            state.availableMoves.includes(index);
          button.disabled = !playable;
          button.addEventListener('click', () => play(index));
          boardEl.appendChild(button);
        });
        if (state.winner) {
          statusEl.textContent = state.winner === state.human ? 'Victory' : 'Defeat';
        } else if (state.drawn) {
          statusEl.textContent = 'Draw';
        } else if (state.aiPending) {
          statusEl.textContent = 'Engine is thinking...';
        } else {
          statusEl.textContent = 'Your move';
        }
        const t = state.tally;
        tallyEl.textContent = `X ${t.winsX} | Draws ${t.draws} | O ${t.winsO}`;
        if (state.aiPending && !pollTimer) {
          pollTimer = setTimeout(refresh, 250);
        }
      }

      async function refresh() {
        pollTimer = null;
        const response = await fetch(`/api/match/${matchId}`);
        state = await response.json();
        render();
      }

      async function post(url, body) {
        const response = await fetch(url, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body ? JSON.stringify(body) : undefined,
        });
        const payload = await response.json();
        if (!response.ok) {
          statusEl.textContent = payload.detail || 'Request failed';
          return;
        }
        state = payload;
        matchId = state.id;
        render();
      }

      function play(index) {
        post(`/api/match/${matchId}/move`, { cellIndex: index });
      }

      document.getElementById('new-match').addEventListener('click', () => {
        post('/api/match', {
          difficulty: document.getElementById('difficulty').value,
          human: document.getElementById('human').value,
        });
      });
      document.getElementById('difficulty').addEventListener('change', (event) => {
        if (matchId) {
          post(`/api/match/${matchId}/difficulty`, { difficulty: event.target.value });
        }
      });
      document.getElementById('next-board').addEventListener('click', () => {
        if (matchId) {
          post(`/api/match/${matchId}/reset`);
        }
      });

      post('/api/match', { difficulty: 'impossible', human: 'X' });
    </script>
  </body>
</html>
"""
