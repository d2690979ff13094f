"""View routing and theme for the games hub."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union
import logging

from .config import Timings
from .memory import DEFAULT_ICONS, MemoryMatchEngine
from .rng import RandomSource
from .spinner import DEFAULT_DESTINATIONS, SpinnerEngine
from .tictactoe import TicTacToeEngine
from .timers import Scheduler

logger = logging.getLogger(__name__)

VIEW_MENU = "menu"
VIEW_TICTACTOE = "tictactoe"
VIEW_MEMORY = "memory"
VIEW_SPINNER = "spinner"
GAME_VIEWS: Tuple[str, ...] = (VIEW_TICTACTOE, VIEW_MEMORY, VIEW_SPINNER)
VIEWS: Tuple[str, ...] = (VIEW_MENU,) + GAME_VIEWS

THEME_LIGHT = "light"
THEME_DARK = "dark"


@dataclass(frozen=True)
class MenuEntry:
    view: str
    title: str
    description: str


MENU: Tuple[MenuEntry, ...] = (
    MenuEntry(VIEW_TICTACTOE, "Tic‑Tac‑Toe", "Classic 3×3. Play vs Human or quick CPU."),
    MenuEntry(VIEW_MEMORY, "Memory Match", "Flip cards and find pairs. Test your memory!"),
    MenuEntry(VIEW_SPINNER, "Surprise Spinner", "Spin to pick a game for you."),
)
TITLES: Dict[str, str] = {entry.view: entry.title for entry in MENU}

Engine = Union[TicTacToeEngine, MemoryMatchEngine, SpinnerEngine]


@dataclass
class HubController:
    """Menu <-> game navigation plus the light/dark toggle.

    Each visit to a game view gets a fresh engine; leaving the view closes
    it so none of its timers can fire into a game nobody is looking at.
    """

    scheduler: Scheduler
    rng: RandomSource = field(default_factory=RandomSource)
    timings: Timings = field(default_factory=Timings)
    icons: Tuple[str, ...] = DEFAULT_ICONS
    view: str = field(default=VIEW_MENU, init=False)
    theme: str = field(default=THEME_LIGHT, init=False)
    _engine: Optional[Engine] = field(default=None, init=False, repr=False)

    # ---- navigation ----

    def select(self, view: str) -> str:
        if self.view != VIEW_MENU or view not in GAME_VIEWS:
            logger.debug("Ignoring selection of %r from %r", view, self.view)
            return self.view
        self._enter(view)
        return self.view

    def back(self) -> str:
        if self.view in GAME_VIEWS:
            self._enter(VIEW_MENU)
        return self.view

    def home(self) -> str:
        if self.view != VIEW_MENU:
            self._enter(VIEW_MENU)
        return self.view

    def toggle_theme(self) -> str:
        self.theme = THEME_DARK if self.theme == THEME_LIGHT else THEME_LIGHT
        return self.theme

    def close(self) -> None:
        self._close_engine()

    # ---- engines ----

    @property
    def active_engine(self) -> Optional[Engine]:
        return self._engine

    @property
    def tictactoe(self) -> Optional[TicTacToeEngine]:
        return self._engine if isinstance(self._engine, TicTacToeEngine) else None

    @property
    def memory(self) -> Optional[MemoryMatchEngine]:
        return self._engine if isinstance(self._engine, MemoryMatchEngine) else None

    @property
    def spinner(self) -> Optional[SpinnerEngine]:
        return self._engine if isinstance(self._engine, SpinnerEngine) else None

    @property
    def pending(self) -> bool:
        engine = self._engine
        if isinstance(engine, TicTacToeEngine):
            return engine.opponent_pending
        if isinstance(engine, MemoryMatchEngine):
            return engine.resolution_pending
        if isinstance(engine, SpinnerEngine):
            return engine.pending
        return False

    # ---- helpers ----

    def _enter(self, view: str) -> None:
        self._close_engine()
        logger.info("View %s -> %s", self.view, view)
        self.view = view
        if view == VIEW_TICTACTOE:
            self._engine = TicTacToeEngine(
                rng=self.rng,
                scheduler=self.scheduler,
                opponent_delay=self.timings.opponent_delay,
            )
        elif view == VIEW_MEMORY:
            self._engine = MemoryMatchEngine(
                rng=self.rng,
                scheduler=self.scheduler,
                icons=self.icons,
                mismatch_delay=self.timings.mismatch_delay,
            )
        elif view == VIEW_SPINNER:
            spinner = SpinnerEngine(
                rng=self.rng,
                scheduler=self.scheduler,
                on_choose=lambda dest: self._spinner_chose(spinner, dest),
                candidates=DEFAULT_DESTINATIONS,
                spin_delay=self.timings.spin_delay,
                announce_delay=self.timings.announce_delay,
            )
            self._engine = spinner

    def _spinner_chose(self, spinner: SpinnerEngine, destination: str) -> None:
        if self._engine is not spinner or self.view != VIEW_SPINNER:
            return
        if destination not in GAME_VIEWS:
            logger.warning("Spinner picked unknown view %r", destination)
            return
        self._enter(destination)

    def _close_engine(self) -> None:
        if self._engine is not None:
            self._engine.close()
            self._engine = None
