"""Core rules, outcome evaluation and session state for 3x3 tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

Player = str  # "X" or "O"
Cell = Optional[Player]
Board = Sequence[Cell]

EMPTY: Cell = None
PLAYERS: Tuple[Player, Player] = ("X", "O")
BOARD_SIZE = 9
DIFFICULTIES: Tuple[str, ...] = ("easy", "medium", "hard")

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


class InvalidBoard(ValueError):
    """Raised when a board is not 9 cells of ``None``, ``"X"`` or ``"O"``."""


class InvalidState(RuntimeError):
    """Raised when a move is requested on a board that has no move to give."""


# ---------- Board helpers ----------


def validate_board(board: Board) -> None:
    if not isinstance(board, (list, tuple)):
        raise InvalidBoard(f"Board must be a list or tuple, got {type(board).__name__}")
    if len(board) != BOARD_SIZE:
        raise InvalidBoard(f"Board must have {BOARD_SIZE} cells, got {len(board)}")
    for idx, cell in enumerate(board):
        if cell is not EMPTY and cell not in PLAYERS:
            raise InvalidBoard(f"Invalid value {cell!r} at cell {idx}")


def other(player: Player) -> Player:
    if player == "X":
        return "O"
    if player == "O":
        return "X"
    raise ValueError(f"Unknown player {player!r}")


def empty_indices(board: Board) -> List[int]:
    return [i for i, c in enumerate(board) if c is EMPTY]


def apply_move(board: Board, player: Player, idx: int) -> List[Cell]:
    """Return a copy of ``board`` with ``player`` placed at ``idx``."""
    new_board = list(board)
    new_board[idx] = player
    return new_board


# ---------- Outcome ----------


@dataclass(frozen=True)
class Outcome:
    winner: Optional[Player] = None
    line: Optional[Tuple[int, int, int]] = None
    drawn: bool = False

    @classmethod
    def ongoing(cls) -> "Outcome":
        return cls()

    @classmethod
    def draw(cls) -> "Outcome":
        return cls(drawn=True)

    @classmethod
    def win(cls, player: Player, line: Tuple[int, int, int]) -> "Outcome":
        return cls(winner=player, line=line)

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.drawn


def evaluate(board: Board) -> Outcome:
    """Report a win (with its line), a draw, or an ongoing game.

    Callers must not pass positions where both sides own a complete line;
    the first line found in ``WINNING_LINES`` order is reported.
    """
    validate_board(board)
    for line in WINNING_LINES:
        a, b, c = line
        v = board[a]
        if v is not EMPTY and v == board[b] == board[c]:
            return Outcome.win(v, line)
    if all(c is not EMPTY for c in board):
        return Outcome.draw()
    return Outcome.ongoing()


# ---------- Session ----------


class Phase(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass
class Scoreboard:
    human: int = 0
    ai: int = 0
    draw: int = 0

    def reset(self) -> None:
        self.human = self.ai = self.draw = 0


@dataclass
class TicTacToeGame:
    """One human-versus-engine match: the board, whose turn it is, and totals.

    ``X`` always opens, so a human playing ``O`` lets the engine move first.
    Rounds can be replayed with ``start()``; the scoreboard carries over.
    """

    human: Player = "X"
    difficulty: str = "hard"
    board: List[Cell] = field(default_factory=lambda: [EMPTY] * BOARD_SIZE)
    current_player: Player = "X"
    phase: Phase = Phase.IDLE
    outcome: Outcome = field(default_factory=Outcome.ongoing)
    scores: Scoreboard = field(default_factory=Scoreboard)

    def __post_init__(self) -> None:
        if self.human not in PLAYERS:
            raise ValueError(f"Unknown player {self.human!r}")
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"Unsupported difficulty {self.difficulty!r}")

    @property
    def engine(self) -> Player:
        return other(self.human)

    @property
    def engine_to_move(self) -> bool:
        return self.phase is Phase.IN_PROGRESS and self.current_player == self.engine

    # ---- API used by UI & AI ----

    def start(self) -> None:
        self.board = [EMPTY] * BOARD_SIZE
        self.current_player = "X"
        self.outcome = Outcome.ongoing()
        self.phase = Phase.IN_PROGRESS

    def available_moves(self) -> List[int]:
        if self.phase is not Phase.IN_PROGRESS:
            return []
        return empty_indices(self.board)

    def play_move(self, idx: int) -> Outcome:
        """Place the current player's mark, then settle the round if it ended."""
        if self.phase is not Phase.IN_PROGRESS:
            raise ValueError("Game is not in progress")
        if not 0 <= idx < BOARD_SIZE:
            raise ValueError(f"Cell index {idx} is out of range")
        if self.board[idx] is not EMPTY:
            raise ValueError("Cell already occupied")

        self.board = apply_move(self.board, self.current_player, idx)
        self.outcome = evaluate(self.board)
        if self.outcome.is_over:
            self._finish()
        else:
            self.current_player = other(self.current_player)
        return self.outcome

    def reset_scores(self) -> None:
        self.scores.reset()

    # ---- helpers ----

    def _finish(self) -> None:
        self.phase = Phase.FINISHED
        if self.outcome.drawn:
            self.scores.draw += 1
        elif self.outcome.winner == self.human:
            self.scores.human += 1
        else:
            self.scores.ai += 1
