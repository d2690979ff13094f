"""Tests for the random source and the schedulers."""

import threading
import time

import pytest

from gameshub.rng import RandomSource
from gameshub.timers import ManualScheduler, Scheduler, ThreadingScheduler


def test_seeded_sources_agree():
    a, b = RandomSource(42), RandomSource(42)
    assert [a.randbelow(100) for _ in range(20)] == [b.randbelow(100) for _ in range(20)]


def test_shuffled_is_a_permutation_and_leaves_input_alone():
    items = list(range(10))
    out = RandomSource(3).shuffled(items)
    assert sorted(out) == items
    assert items == list(range(10))


def test_manual_scheduler_fires_in_due_order():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule(2.0, lambda: fired.append("late"))
    scheduler.schedule(1.0, lambda: fired.append("early"))
    scheduler.advance(1.5)
    assert fired == ["early"]
    scheduler.advance(1.0)
    assert fired == ["early", "late"]


def test_manual_scheduler_cancel():
    scheduler = ManualScheduler()
    fired = []
    handle = scheduler.schedule(1.0, lambda: fired.append(1))
    handle.cancel()
    handle.cancel()
    scheduler.advance(5)
    assert fired == []
    assert not handle.pending
    assert scheduler.pending_count == 0


def test_manual_scheduler_runs_nested_timers_within_window():
    scheduler = ManualScheduler()
    fired = []

    def first():
        fired.append("first")
        scheduler.schedule(0.5, lambda: fired.append("second"))

    scheduler.schedule(1.0, first)
    scheduler.advance(2.0)
    assert fired == ["first", "second"]


def test_threading_scheduler_waits_for_session_lock():
    lock = threading.RLock()
    scheduler = ThreadingScheduler(lock)
    done = threading.Event()

    with lock:
        scheduler.schedule(0.0, done.set)
        assert not done.wait(0.05)
    assert done.wait(2.0)


def test_threading_scheduler_cancel_after_expiry_is_respected():
    lock = threading.RLock()
    scheduler = ThreadingScheduler(lock)
    fired = []
    with lock:
        handle = scheduler.schedule(0.0, lambda: fired.append(1))
        time.sleep(0.05)
        handle.cancel()
    time.sleep(0.05)
    assert fired == []


def test_scheduler_interface_is_abstract():
    with pytest.raises(TypeError):
        Scheduler()
