"""FastAPI-powered web UI for playing tic-tac-toe against the engine."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import MinimaxAI
from .game import DIFFICULTIES, Phase, TicTacToeGame

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """Container for an active game and its engine opponent."""

    game: TicTacToeGame
    ai: MinimaxAI
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    touched_at: float = field(default_factory=lambda: time.time())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
SESSIONS_LOCK = threading.Lock()
app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe against a minimax engine")


ALLOWED_DIFFICULTIES: Tuple[str, ...] = DIFFICULTIES
AI_THINK_DELAY: Tuple[float, float] = (0.2, 0.3)
SESSION_TTL_SECONDS = 60 * 30  # 30 minutes


def _ensure_supported_difficulty(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in ALLOWED_DIFFICULTIES:
        raise ValueError(
            f"Unsupported difficulty {value!r}. "
            f"Choose one of {', '.join(ALLOWED_DIFFICULTIES)}."
        )
    return value


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    human: Literal["X", "O"] = Field(
        default="X", description="Mark played by the human; X always moves first"
    )
    difficulty: str = Field(default="hard", description="Engine strategy")

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: str) -> str:
        return _ensure_supported_difficulty(value)


class RestartRequest(BaseModel):
    """Optional settings for the next round; omitted fields keep their value."""

    human: Optional[Literal["X", "O"]] = None
    difficulty: Optional[str] = None

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: Optional[str]) -> Optional[str]:
        return _ensure_supported_difficulty(value)


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


def _cleanup_sessions() -> None:
    """Drop sessions nobody has touched for ``SESSION_TTL_SECONDS``."""

    now = time.time()
    with SESSIONS_LOCK:
        expired = [
            game_id
            for game_id, session in SESSIONS.items()
            if not session.ai_pending
            and now - session.touched_at >= SESSION_TTL_SECONDS
        ]
        for game_id in expired:
            SESSIONS.pop(game_id, None)
    if expired:
        logger.info("Expired %d idle game(s)", len(expired))


def _create_session(human: str, difficulty: str) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    _cleanup_sessions()
    game = TicTacToeGame(human=human, difficulty=difficulty)
    ai = MinimaxAI(player=game.engine, difficulty=difficulty)
    session = GameSession(game=game, ai=ai)
    session_id = uuid.uuid4().hex
    with SESSIONS_LOCK:
        SESSIONS[session_id] = session
    logger.info(
        "Created game %s (human=%s, difficulty=%s)", session_id, human, difficulty
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    _cleanup_sessions()
    try:
        session = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    session.touched_at = time.time()
    return session


def _log_if_finished(game_id: str, game: TicTacToeGame) -> None:
    if game.phase is Phase.FINISHED:
        logger.info(
            "Game %s finished: %s",
            game_id,
            "draw" if game.outcome.drawn else f"{game.outcome.winner} wins",
        )


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        try:
            game = session.game
            if not game.engine_to_move:
                return
            cell_index = session.ai.choose(game)
            game.play_move(cell_index)
            session.move_log.append(
                {"player": session.ai.player, "cellIndex": cell_index}
            )
            _log_if_finished(game_id, game)
        finally:
            session.ai_pending = False


def _start_round(
    game_id: str,
    session: GameSession,
    background_tasks: Optional[BackgroundTasks] = None,
    settings: Optional[RestartRequest] = None,
) -> None:
    with session.lock:
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        if settings is not None:
            game = session.game
            game.human = settings.human or game.human
            game.difficulty = settings.difficulty or game.difficulty
            session.ai = MinimaxAI(player=game.engine, difficulty=game.difficulty)
        session.game.start()
        session.move_log.clear()
        should_schedule_ai = session.game.engine_to_move
        if should_schedule_ai:
            session.ai_pending = True

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        outcome = game.outcome
        state: Dict[str, object] = {
            "id": game_id,
            "board": [c or "" for c in game.board],
            "currentPlayer": game.current_player,
            "human": game.human,
            "engine": game.engine,
            "difficulty": game.difficulty,
            "phase": game.phase.value,
            "winner": outcome.winner,
            "winLine": list(outcome.line) if outcome.line else None,
            "drawn": outcome.drawn,
            "availableMoves": game.available_moves(),
            "scores": {
                "human": game.scores.human,
                "ai": game.scores.ai,
                "draw": game.scores.draw,
            },
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_ai = False
    with session.lock:
        game = session.game
        if game.phase is not Phase.IN_PROGRESS:
            raise HTTPException(status_code=400, detail="Game is not in progress")

        if session.ai_pending or game.current_player != game.human:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        try:
            game.play_move(cell_index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        session.move_log.append({"player": game.human, "cellIndex": cell_index})
        _log_if_finished(game_id, game)

        should_schedule_ai = game.engine_to_move
        if should_schedule_ai:
            session.ai_pending = True

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, session = _create_session(request.human, request.difficulty)
    _start_round(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/restart")
def restart_game(
    game_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[RestartRequest] = None,
) -> Dict[str, object]:
    session = _get_session(game_id)
    _start_round(game_id, session, background_tasks, request)
    return _serialize_session(game_id, session)


@app.delete("/api/game/{game_id}/scores")
def reset_scores(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.game.reset_scores()
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: clamp(1.5rem, 4vw, 2.5rem);
        width: min(480px, 100%);
      }
      h1 {
        margin: 0 0 1rem;
        text-align: center;
        letter-spacing: 0.06em;
      }
      .controls {
        display: flex;
        flex-wrap: wrap;
        gap: 0.75rem;
        justify-content: center;
        margin-bottom: 1rem;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 8px;
        margin: 1rem auto;
        width: min(320px, 100%);
      }
      .cell {
        aspect-ratio: 1;
        font-size: 2.4rem;
        font-weight: 700;
        border: none;
        border-radius: 12px;
        background: #eef1ff;
        cursor: pointer;
      }
      .cell:disabled {
        cursor: default;
      }
      .cell.win {
        background: linear-gradient(90deg, #dcfce7, #bbf7d0);
      }
      .cell.lose {
        background: linear-gradient(90deg, #fee2e2, #fecaca);
      }
      .status {
        text-align: center;
        font-weight: 600;
        min-height: 1.5rem;
      }
      .scores {
        display: flex;
        justify-content: space-around;
        margin-top: 1rem;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"controls\">
        <label>
          You play
          <select id=\"human\">
            <option value=\"X\">X (first)</option>
            <option value=\"O\">O</option>
          </select>
        </label>
        <label>
          Difficulty
          <select id=\"difficulty\">
            <option value=\"easy\">Easy</option>
            <option value=\"medium\">Medium</option>
            <option value=\"hard\" selected>Hard</option>
          </select>
        </label>
        <button id=\"start\">Start</button>
        <button id=\"resetScores\">Reset scores</button>
      </div>
      <div class=\"status\" id=\"status\">Choose a side and a difficulty, then press Start.</div>
      <div class=\"board\" id=\"board\"></div>
      <div class=\"scores\">
        <span>You: <strong id=\"scoreHuman\">0</strong></span>
        <span>Engine: <strong id=\"scoreAi\">0</strong></span>
        <span>Draws: <strong id=\"scoreDraw\">0</strong></span>
      </div>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const STORAGE_KEY = 'tictactoeGameId';
      let gameId = localStorage.getItem(STORAGE_KEY);
      let pollTimer = null;

      async function api(path, options = {}) {
        const response = await fetch(path, {
          headers: { 'Content-Type': 'application/json' },
          ...options,
        });
        const payload = await response.json();
        if (!response.ok) {
          const error = new Error(payload.detail || 'Request failed');
          error.status = response.status;
          throw error;
        }
        return payload;
      }

      function forgetGame() {
        gameId = null;
        localStorage.removeItem(STORAGE_KEY);
      }

      function render(state) {
        boardEl.innerHTML = '';
        const line = state.winLine || [];
        const humanWon = state.winner === state.human;
        state.board.forEach((mark, index) => {
          const cell = document.createElement('button');
          cell.className = 'cell';
          cell.textContent = mark;
          if (line.includes(index)) {
            cell.classList.add(humanWon ? 'win' : 'lose');
          }
          const playable =
            state.phase === 'in_progress' &&
            !state.aiPending &&
            state.currentPlayer === state.human &&
            mark === '';
          cell.disabled = !playable;
          cell.addEventListener('click', () => play(index));
          boardEl.appendChild(cell);
        });

        document.getElementById('scoreHuman').textContent = state.scores.human;
        document.getElementById('scoreAi').textContent = state.scores.ai;
        document.getElementById('scoreDraw').textContent = state.scores.draw;

        if (state.phase === 'finished') {
          statusEl.textContent = state.drawn
            ? 'Draw.'
            : humanWon ? 'You win!' : 'The engine wins.';
        } else if (state.aiPending) {
          statusEl.textContent = 'Engine is thinking...';
        } else {
          statusEl.textContent = `Your turn (${state.human}).`;
        }

        clearTimeout(pollTimer);
        if (state.aiPending) {
          pollTimer = setTimeout(refresh, 150);
        }
      }

      async function refresh() {
        if (!gameId) return;
        try {
          render(await api(`/api/game/${gameId}`));
        } catch (error) {
          if (error.status === 404) {
            forgetGame();
          }
        }
      }

      async function start() {
        const body = JSON.stringify({
          human: document.getElementById('human').value,
          difficulty: document.getElementById('difficulty').value,
        });
        let state = null;
        if (gameId) {
          try {
            state = await api(`/api/game/${gameId}/restart`, { method: 'POST', body });
          } catch (error) {
            if (error.status !== 404) {
              statusEl.textContent = error.message;
              return;
            }
            forgetGame();
          }
        }
        if (!state) {
          state = await api('/api/game', { method: 'POST', body });
        }
        gameId = state.id;
        localStorage.setItem(STORAGE_KEY, gameId);
        render(state);
      }

      async function play(index) {
        try {
          render(
            await api(`/api/game/${gameId}/move`, {
              method: 'POST',
              body: JSON.stringify({ cellIndex: index }),
            })
          );
        } catch (error) {
          statusEl.textContent = error.message;
        }
      }

      async function resetScores() {
        if (!gameId || !confirm('Reset all scores?')) return;
        render(await api(`/api/game/${gameId}/scores`, { method: 'DELETE' }));
        localStorage.removeItem(STORAGE_KEY);
      }

      document.getElementById('start').addEventListener('click', start);
      document.getElementById('resetScores').addEventListener('click', resetScores);
      refresh();
    </script>
  </body>
</html>
"""
