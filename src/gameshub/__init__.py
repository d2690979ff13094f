"""Fun Games Hub package exposing the game engines, hub controller, and web application."""

from .hub import HubController
from .memory import MemoryMatchEngine
from .rng import RandomSource
from .spinner import SpinnerEngine
from .tictactoe import TicTacToeEngine
from .ui import app

__all__ = [
    "HubController",
    "MemoryMatchEngine",
    "RandomSource",
    "SpinnerEngine",
    "TicTacToeEngine",
    "app",
]
