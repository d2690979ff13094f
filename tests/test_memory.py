"""Unit tests for Memory Match dealing, flipping and resolution."""

from collections import Counter

import pytest

from gameshub.memory import (
    DEFAULT_ICONS,
    Card,
    MemoryMatchEngine,
    MemoryState,
    flip,
    is_complete,
    new_deck,
    new_state,
    resolve,
)
from gameshub.rng import RandomSource
from gameshub.timers import ManualScheduler


def fixed_state():
    deck = (
        Card(id=0, value="A"),
        Card(id=1, value="B"),
        Card(id=2, value="A"),
        Card(id=3, value="B"),
    )
    return MemoryState(deck=deck)


@pytest.mark.parametrize("size", [1, 2, 3, 6])
def test_new_deck_has_each_icon_twice(size):
    icons = [f"icon-{i}" for i in range(size)]
    deck = new_deck(icons, RandomSource(size))
    assert len(deck) == 2 * size
    assert Counter(c.value for c in deck) == {icon: 2 for icon in icons}
    assert [c.id for c in deck] == list(range(2 * size))
    assert not any(c.flipped or c.matched for c in deck)


def test_new_deck_rejects_bad_icon_sets():
    with pytest.raises(ValueError):
        new_deck([], RandomSource(0))
    with pytest.raises(ValueError):
        new_deck(["a", "a"], RandomSource(0))


def test_new_deck_shuffle_has_no_positional_bias():
    icons = ["a", "b", "c"]
    rng = RandomSource(1234)
    trials = 3000
    first_slot = Counter(new_deck(icons, rng)[0].value for _ in range(trials))
    for icon in icons:
        # Each icon owns 2 of 6 slots, so a third of the trials.
        assert abs(first_slot[icon] / trials - 1 / 3) < 0.05


def test_first_flip_records_selection():
    state = flip(fixed_state(), 0)
    assert state.deck[0].flipped
    assert state.first_selection.id == 0
    assert state.second_selection is None
    assert state.move_count == 0
    assert not state.input_locked


def test_second_flip_counts_move_and_locks_input():
    state = flip(flip(fixed_state(), 0), 1)
    assert state.second_selection.id == 1
    assert state.move_count == 1
    assert state.input_locked


def test_flip_on_flipped_or_matched_card_is_noop():
    state = flip(fixed_state(), 0)
    assert flip(state, 0) is state

    matched = resolve(flip(state, 2))
    assert matched.deck[0].matched
    assert flip(matched, 0) is matched


def test_flip_while_locked_is_noop():
    state = flip(flip(fixed_state(), 0), 1)
    assert flip(state, 2) is state


def test_flip_unknown_card_raises():
    with pytest.raises(ValueError):
        flip(fixed_state(), 42)


def test_resolve_match_marks_both_cards():
    state = resolve(flip(flip(fixed_state(), 0), 2))
    assert state.deck[0].matched and state.deck[2].matched
    assert state.first_selection is None and state.second_selection is None
    assert not state.input_locked


def test_resolve_mismatch_turns_cards_back():
    state = resolve(flip(flip(fixed_state(), 0), 1))
    assert not state.deck[0].flipped and not state.deck[1].flipped
    assert not state.deck[0].matched and not state.deck[1].matched
    assert not state.input_locked


def test_is_complete():
    assert not is_complete(new_state(DEFAULT_ICONS, RandomSource(0)))
    state = fixed_state()
    state = resolve(flip(flip(state, 0), 2))
    assert not is_complete(state)
    state = resolve(flip(flip(state, 1), 3))
    assert is_complete(state)


def make_engine(icons=("A", "B")):
    scheduler = ManualScheduler()
    engine = MemoryMatchEngine(
        rng=RandomSource(5), scheduler=scheduler, icons=icons, mismatch_delay=0.7
    )
    return engine, scheduler


def pair_ids(engine):
    by_value = {}
    for card in engine.state.deck:
        by_value.setdefault(card.value, []).append(card.id)
    return by_value


def test_engine_match_resolves_immediately():
    engine, scheduler = make_engine()
    a1, a2 = pair_ids(engine)["A"]
    engine.flip(a1)
    engine.flip(a2)
    assert engine.state.deck[a1].matched and engine.state.deck[a2].matched
    assert not engine.state.input_locked
    assert scheduler.pending_count == 0


def test_engine_mismatch_waits_for_delay():
    engine, scheduler = make_engine()
    ids = pair_ids(engine)
    a, b = ids["A"][0], ids["B"][0]
    engine.flip(a)
    engine.flip(b)
    assert engine.state.input_locked
    assert engine.resolution_pending

    engine.flip(ids["A"][1])
    assert not engine.state.deck[ids["A"][1]].flipped

    scheduler.advance(0.6)
    assert engine.state.deck[a].flipped

    scheduler.advance(0.2)
    assert not engine.state.deck[a].flipped
    assert not engine.state.deck[b].flipped
    assert not engine.state.input_locked
    assert engine.state.move_count == 1


def test_engine_restart_cancels_pending_resolution():
    engine, scheduler = make_engine()
    ids = pair_ids(engine)
    engine.flip(ids["A"][0])
    engine.flip(ids["B"][0])
    engine.restart()
    assert scheduler.pending_count == 0
    assert engine.state.move_count == 0
    assert not engine.state.input_locked
    assert not any(c.flipped for c in engine.state.deck)


def test_engine_completion_status():
    engine, _ = make_engine()
    for first, second in pair_ids(engine).values():
        engine.flip(first)
        engine.flip(second)
    assert engine.is_complete
    assert engine.status_text == "You matched everything in 2 moves!"
