"""Surprise Spinner: wait a random moment, then pick a game."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence, Tuple
import logging

from .rng import RandomSource
from .timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Destination:
    id: str
    name: str


DEFAULT_DESTINATIONS: Tuple[Destination, ...] = (
    Destination(id="tictactoe", name="Tic‑Tac‑Toe"),
    Destination(id="memory", name="Memory Match"),
)


@dataclass(frozen=True)
class SpinnerState:
    spinning: bool = False
    result: Optional[Destination] = None


def pick(candidates: Sequence[Destination], rng: RandomSource) -> Destination:
    if not candidates:
        raise ValueError("Spinner needs at least one destination")
    return rng.choice(candidates)


@dataclass
class SpinnerEngine:
    """Two-stage timer: spin for a while, show the pick, then announce it.

    ``on_choose`` receives the destination id once the announce delay has
    passed.
    """

    rng: RandomSource
    scheduler: Scheduler
    on_choose: Callable[[str], None]
    candidates: Tuple[Destination, ...] = DEFAULT_DESTINATIONS
    spin_delay: Tuple[float, float] = (1.2, 2.0)
    announce_delay: float = 0.7
    _state: SpinnerState = field(default_factory=SpinnerState, init=False, repr=False)
    _spin_timer: Optional[TimerHandle] = field(default=None, init=False, repr=False)
    _announce_timer: Optional[TimerHandle] = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.candidates = tuple(self.candidates)
        if not self.candidates:
            raise ValueError("Spinner needs at least one destination")

    @property
    def state(self) -> SpinnerState:
        return self._state

    @property
    def pending(self) -> bool:
        return any(
            t is not None and t.pending for t in (self._spin_timer, self._announce_timer)
        )

    @property
    def status_text(self) -> str:
        if self._state.result is not None:
            return f"Going to {self._state.result.name}…"
        return "Click spin to choose a game at random."

    def spin(self) -> SpinnerState:
        if self._closed or self._state.spinning:
            logger.debug("Spin ignored")
            return self._state
        self._cancel(announce=True)
        self._state = SpinnerState(spinning=True, result=None)
        delay = self.rng.uniform(*self.spin_delay)
        self._spin_timer = self.scheduler.schedule(delay, self._land)
        return self._state

    def close(self) -> None:
        # The last result stays readable after teardown.
        self._closed = True
        self._cancel(spin=True, announce=True)
        self._state = replace(self._state, spinning=False)

    def _land(self) -> None:
        self._spin_timer = None
        choice = pick(self.candidates, self.rng)
        self._state = SpinnerState(spinning=False, result=choice)
        logger.debug("Spinner landed on %s", choice.id)
        self._announce_timer = self.scheduler.schedule(
            self.announce_delay, self._announce
        )

    def _announce(self) -> None:
        self._announce_timer = None
        if self._state.result is not None:
            self.on_choose(self._state.result.id)

    def _cancel(self, spin: bool = False, announce: bool = False) -> None:
        if spin and self._spin_timer is not None:
            self._spin_timer.cancel()
            self._spin_timer = None
        if announce and self._announce_timer is not None:
            self._announce_timer.cancel()
            self._announce_timer = None
