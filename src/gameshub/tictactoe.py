"""Tic-Tac-Toe rules, turn state and the random "CPU" opponent."""

from __future__ import annotations

from dataclasses import InitVar, dataclass, field, replace
from typing import List, Optional, Tuple
import logging

from .rng import RandomSource
from .timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

Mark = str  # "X" or "O"
Board = Tuple[str, ...]

EMPTY = " "
DRAW = "draw"

MODE_HUMAN = "human"
MODE_CPU = "cpu"
ALLOWED_MODES: Tuple[str, ...] = (MODE_HUMAN, MODE_CPU)

HUMAN_MARK: Mark = "X"
OPPONENT_MARK: Mark = "O"

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

EMPTY_BOARD: Board = (EMPTY,) * 9


@dataclass(frozen=True)
class TicTacToeState:
    board: Board = EMPTY_BOARD
    next_mark: Mark = "X"
    mode: str = MODE_HUMAN


# ---------- Rules ----------


def evaluate(board: Board) -> Optional[str]:
    """Return the winning mark, ``"draw"`` for a full board, or ``None``."""
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v != EMPTY and v == board[b] == board[c]:
            return v
    if all(c != EMPTY for c in board):
        return DRAW
    return None


def empty_cells(board: Board) -> List[int]:
    return [i for i, c in enumerate(board) if c == EMPTY]


def move(state: TicTacToeState, cell_index: int) -> TicTacToeState:
    """Place the current mark; occupied cells and finished games are no-ops."""
    if not 0 <= cell_index < 9:
        raise ValueError(f"Cell index out of range: {cell_index}")
    if state.board[cell_index] != EMPTY or evaluate(state.board) is not None:
        return state
    cells = list(state.board)
    cells[cell_index] = state.next_mark
    return replace(
        state,
        board=tuple(cells),
        next_mark="O" if state.next_mark == "X" else "X",
    )


def opponent_should_move(state: TicTacToeState) -> bool:
    return (
        state.mode == MODE_CPU
        and state.next_mark == OPPONENT_MARK
        and evaluate(state.board) is None
    )


def opponent_move(state: TicTacToeState, rng: RandomSource) -> TicTacToeState:
    """Uniformly random move for O; a no-op whenever O may not play."""
    if not opponent_should_move(state):
        return state
    return move(state, rng.choice(empty_cells(state.board)))


def reset(mode: str = MODE_HUMAN) -> TicTacToeState:
    if mode not in ALLOWED_MODES:
        raise ValueError(f"Unsupported mode {mode!r}")
    return TicTacToeState(mode=mode)


def status_text(state: TicTacToeState) -> str:
    outcome = evaluate(state.board)
    if outcome == DRAW:
        return "Draw!"
    if outcome:
        return f"Winner: {outcome}"
    return f"{state.next_mark}'s turn"


# ---------- Engine ----------


@dataclass
class TicTacToeEngine:
    """One game instance: current state plus the delayed opponent timer.

    The human always plays X against the opponent; in human mode both marks
    come from ``play``.
    """

    rng: RandomSource
    scheduler: Scheduler
    opponent_delay: float = 0.42
    mode: InitVar[str] = MODE_HUMAN
    _state: TicTacToeState = field(init=False, repr=False)
    _pending: Optional[TimerHandle] = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self, mode: str) -> None:
        self._state = reset(mode)

    # ---- read side ----

    @property
    def state(self) -> TicTacToeState:
        return self._state

    @property
    def outcome(self) -> Optional[str]:
        return evaluate(self._state.board)

    @property
    def opponent_pending(self) -> bool:
        return self._pending is not None and self._pending.pending

    @property
    def status_text(self) -> str:
        return status_text(self._state)

    # ---- input ----

    def play(self, cell_index: int) -> TicTacToeState:
        if self._closed:
            return self._state
        if self._state.mode == MODE_CPU and self._state.next_mark != HUMAN_MARK:
            logger.debug("Ignoring move on %d while the opponent is to play", cell_index)
            return self._state
        self._apply(move(self._state, cell_index))
        return self._state

    def set_mode(self, mode: str) -> TicTacToeState:
        if mode not in ALLOWED_MODES:
            raise ValueError(f"Unsupported mode {mode!r}")
        if self._closed or mode == self._state.mode:
            return self._state
        self._apply(replace(self._state, mode=mode))
        return self._state

    def reset(self) -> TicTacToeState:
        self._cancel_pending()
        self._state = reset(self._state.mode)
        return self._state

    def close(self) -> None:
        self._closed = True
        self._cancel_pending()

    # ---- helpers ----

    def _apply(self, new_state: TicTacToeState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        self._cancel_pending()
        if opponent_should_move(new_state):
            self._pending = self.scheduler.schedule(
                self.opponent_delay, self._run_opponent
            )

    def _run_opponent(self) -> None:
        self._pending = None
        if self._closed:
            return
        before = self._state
        self._apply(opponent_move(before, self.rng))
        if self._state is not before:
            idx = next(i for i in range(9) if before.board[i] != self._state.board[i])
            logger.debug("Opponent played cell %d", idx)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
