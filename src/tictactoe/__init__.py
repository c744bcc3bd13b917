"""Tic-tac-toe package exposing outcome evaluation, the minimax engine, and the web application."""

from .ai import MinimaxAI, search_bounded, search_full, select_move
from .game import InvalidBoard, InvalidState, Outcome, TicTacToeGame, evaluate
from .ui import app

__all__ = [
    "InvalidBoard",
    "InvalidState",
    "MinimaxAI",
    "Outcome",
    "TicTacToeGame",
    "app",
    "evaluate",
    "search_bounded",
    "search_full",
    "select_move",
]
