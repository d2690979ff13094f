"""Memory Match: deal, flip, and pair resolution."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple
import logging

from .rng import RandomSource
from .timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_ICONS: Tuple[str, ...] = ("🍎", "🍌", "🍇", "🍓", "🍍", "🥝")


@dataclass(frozen=True)
class Card:
    id: int
    value: str
    flipped: bool = False
    matched: bool = False


@dataclass(frozen=True)
class MemoryState:
    deck: Tuple[Card, ...]
    first_selection: Optional[Card] = None
    second_selection: Optional[Card] = None
    move_count: int = 0
    input_locked: bool = False


# ---------- Rules ----------


def new_deck(icons: Sequence[str], rng: RandomSource) -> Tuple[Card, ...]:
    """Two of every icon, Fisher-Yates shuffled, ids in dealt order."""
    if not icons:
        raise ValueError("Icon set must not be empty")
    if len(set(icons)) != len(icons):
        raise ValueError("Icon set must not contain duplicates")
    values = rng.shuffled(list(icons) * 2)
    return tuple(Card(id=i, value=v) for i, v in enumerate(values))


def new_state(icons: Sequence[str], rng: RandomSource) -> MemoryState:
    return MemoryState(deck=new_deck(icons, rng))


restart = new_state


def card_by_id(state: MemoryState, card_id: int) -> Card:
    for card in state.deck:
        if card.id == card_id:
            return card
    raise ValueError(f"Unknown card id {card_id}")


def _update_cards(state: MemoryState, ids, **changes) -> Tuple[Card, ...]:
    return tuple(replace(c, **changes) if c.id in ids else c for c in state.deck)


def flip(state: MemoryState, card_id: int) -> MemoryState:
    card = card_by_id(state, card_id)
    if state.input_locked or card.flipped or card.matched:
        return state
    deck = _update_cards(state, {card_id}, flipped=True)
    flipped = replace(card, flipped=True)
    if state.first_selection is None:
        return replace(state, deck=deck, first_selection=flipped)
    return replace(
        state,
        deck=deck,
        second_selection=flipped,
        move_count=state.move_count + 1,
        input_locked=True,
    )


def needs_delay(state: MemoryState) -> bool:
    """True for a completed pair-attempt whose cards differ."""
    first, second = state.first_selection, state.second_selection
    return first is not None and second is not None and first.value != second.value


def resolve(state: MemoryState) -> MemoryState:
    """Commit a matched pair or turn a mismatched pair face down again."""
    first, second = state.first_selection, state.second_selection
    if first is None or second is None:
        return state
    ids = {first.id, second.id}
    if first.value == second.value:
        deck = _update_cards(state, ids, matched=True)
    else:
        deck = _update_cards(state, ids, flipped=False)
    return replace(
        state,
        deck=deck,
        first_selection=None,
        second_selection=None,
        input_locked=False,
    )


def is_complete(state: MemoryState) -> bool:
    return all(c.matched for c in state.deck)


# ---------- Engine ----------


@dataclass
class MemoryMatchEngine:
    """A Memory Match table whose mismatches flip back after a delay."""

    rng: RandomSource
    scheduler: Scheduler
    icons: Tuple[str, ...] = DEFAULT_ICONS
    mismatch_delay: float = 0.7
    _state: MemoryState = field(init=False, repr=False)
    _pending: Optional[TimerHandle] = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.icons = tuple(self.icons)
        self._state = new_state(self.icons, self.rng)

    @property
    def state(self) -> MemoryState:
        return self._state

    @property
    def resolution_pending(self) -> bool:
        return self._pending is not None and self._pending.pending

    @property
    def is_complete(self) -> bool:
        return is_complete(self._state)

    @property
    def status_text(self) -> str:
        if self.is_complete:
            return f"You matched everything in {self._state.move_count} moves!"
        return f"Moves: {self._state.move_count}"

    def flip(self, card_id: int) -> MemoryState:
        if self._closed:
            return self._state
        before = self._state
        self._state = flip(before, card_id)
        if self._state is before:
            logger.debug("Ignoring flip of card %d", card_id)
            return self._state
        if self._state.second_selection is not None:
            if needs_delay(self._state):
                self._pending = self.scheduler.schedule(
                    self.mismatch_delay, self._resolve_mismatch
                )
            else:
                self._state = resolve(self._state)
        return self._state

    def restart(self) -> MemoryState:
        self._cancel_pending()
        self._state = restart(self.icons, self.rng)
        return self._state

    def close(self) -> None:
        self._closed = True
        self._cancel_pending()

    def _resolve_mismatch(self) -> None:
        self._pending = None
        if self._closed:
            return
        self._state = resolve(self._state)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
