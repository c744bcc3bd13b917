"""Minimax move selection (random, depth-bounded, alpha-beta) for tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional
import logging
import math
import random

from .game import (
    DIFFICULTIES,
    PLAYERS,
    Board,
    InvalidState,
    Outcome,
    Player,
    TicTacToeGame,
    apply_move,
    empty_indices,
    evaluate,
    other,
    validate_board,
)

logger = logging.getLogger(__name__)

MEDIUM_DEPTH = 3
WIN_SCORE = 10


@dataclass(frozen=True)
class SearchResult:
    # index is None at leaves and whenever no move could be tried
    index: Optional[int]
    score: float


# ---- scoring ----


def _leaf_score(outcome: Outcome, depth: int, engine: Player) -> float:
    # Faster wins score higher, slower losses score less badly.
    if outcome.winner is None:
        return 0
    if outcome.winner == engine:
        return WIN_SCORE - depth
    return depth - WIN_SCORE


def _pick(moves: List[SearchResult], maximizing: bool) -> SearchResult:
    best: Optional[SearchResult] = None
    for move in moves:
        if best is None:
            best = move
        elif maximizing and move.score > best.score:
            best = move
        elif not maximizing and move.score < best.score:
            best = move
    if best is None:
        return SearchResult(index=None, score=0)
    return best


# ---- core search ----


def search_bounded(
    board: Board,
    player: Player,
    depth: int,
    max_depth: int,
    engine: Player,
    opponent: Player,
) -> SearchResult:
    """Plain minimax that stops ``max_depth`` plies below the root.

    Positions still open at the horizon score 0. Every child is explored.
    """
    outcome = evaluate(board)
    if outcome.is_over or depth >= max_depth:
        return SearchResult(index=None, score=_leaf_score(outcome, depth, engine))

    next_player = opponent if player == engine else engine
    moves: List[SearchResult] = []
    for idx in empty_indices(board):
        child = apply_move(board, player, idx)
        result = search_bounded(
            child, next_player, depth + 1, max_depth, engine, opponent
        )
        moves.append(SearchResult(index=idx, score=result.score))
    return _pick(moves, maximizing=player == engine)


def search_full(
    board: Board,
    player: Player,
    depth: int,
    alpha: float,
    beta: float,
    engine: Player,
    opponent: Player,
) -> SearchResult:
    """Unbounded minimax with alpha-beta cutoffs; plays perfectly."""
    outcome = evaluate(board)
    if outcome.is_over:
        return SearchResult(index=None, score=_leaf_score(outcome, depth, engine))

    maximizing = player == engine
    next_player = opponent if maximizing else engine
    moves: List[SearchResult] = []
    for idx in empty_indices(board):
        child = apply_move(board, player, idx)
        result = search_full(
            child, next_player, depth + 1, alpha, beta, engine, opponent
        )
        moves.append(SearchResult(index=idx, score=result.score))
        if maximizing:
            alpha = max(alpha, result.score)
        else:
            beta = min(beta, result.score)
        if beta <= alpha:
            break
    return _pick(moves, maximizing=maximizing)


# ---- strategy dispatch ----


def select_move(
    board: Board,
    engine: Player,
    opponent: Player,
    difficulty: str,
    *,
    rng: Optional[random.Random] = None,
    max_depth: int = MEDIUM_DEPTH,
) -> int:
    """Choose the engine's next cell on ``board`` for the given difficulty.

    ``easy`` picks a random empty cell, ``medium`` runs minimax ``max_depth``
    plies deep and ``hard`` runs the full alpha-beta search. The returned
    index always refers to an empty cell.
    """
    validate_board(board)
    if engine not in PLAYERS or opponent not in PLAYERS or engine == opponent:
        raise ValueError(f"Invalid sides: engine={engine!r}, opponent={opponent!r}")
    if difficulty not in DIFFICULTIES:
        raise ValueError(
            f"Unsupported difficulty {difficulty!r}. "
            f"Choose one of {', '.join(DIFFICULTIES)}."
        )

    empty = empty_indices(board)
    if not empty or evaluate(board).is_over:
        raise InvalidState("No move available: the game is already over")

    if difficulty == "easy":
        move = (rng or random).choice(empty)
    else:
        if difficulty == "medium":
            best = search_bounded(board, engine, 0, max_depth, engine, opponent)
        else:
            best = search_full(board, engine, 0, -math.inf, math.inf, engine, opponent)
        move = best.index if best.index is not None else empty[0]

    logger.debug("%s (%s) plays cell %d", engine, difficulty, move)
    return move


@dataclass
class MinimaxAI:
    """Engine player bound to one side and difficulty.

      - MinimaxAI(player="O", difficulty="hard")
      - choose(game) -> cell_index
    """

    player: Player
    difficulty: str = "hard"
    max_depth: int = MEDIUM_DEPTH
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"Unsupported difficulty {self.difficulty!r}")

    def choose(self, game: TicTacToeGame) -> int:
        if game.current_player != self.player or not game.engine_to_move:
            raise ValueError("It is not this AI player's turn")
        opponent = other(self.player)
        return select_move(
            game.board,
            self.player,
            opponent,
            self.difficulty,
            rng=self.rng,
            max_depth=self.max_depth,
        )
