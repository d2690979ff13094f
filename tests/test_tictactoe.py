"""Unit tests for Tic-Tac-Toe rules and the random opponent."""

import pytest

from gameshub.rng import RandomSource
from gameshub.tictactoe import (
    MODE_CPU,
    TicTacToeEngine,
    TicTacToeState,
    evaluate,
    move,
    opponent_move,
    reset,
    status_text,
)
from gameshub.timers import ManualScheduler


def board(text):
    return tuple(" " if c == "." else c for c in text)


def test_evaluate_top_row_win():
    assert evaluate(board("XXX......")) == "X"


def test_evaluate_column_and_diagonal():
    assert evaluate(board("O..O..O..")) == "O"
    assert evaluate(board("..X.X.X..")) == "X"


def test_evaluate_draw_on_full_board_without_line():
    assert evaluate(board("XOXXOOOXX")) == "draw"


def test_evaluate_empty_board_is_undecided():
    assert evaluate(board(".........")) is None


def test_move_places_mark_and_switches_turn():
    state = move(reset(), 4)
    assert state.board[4] == "X"
    assert state.next_mark == "O"


def test_move_on_occupied_cell_is_noop():
    state = move(reset(), 0)
    assert move(state, 0) == state


def test_move_after_win_is_noop():
    state = TicTacToeState(board=board("XXXOO...."), next_mark="O")
    assert move(state, 8) == state


def test_move_rejects_out_of_range_index():
    with pytest.raises(ValueError):
        move(reset(), 9)


def test_reset_returns_empty_board_with_x_to_move():
    state = reset(MODE_CPU)
    assert state.board == board(".........")
    assert state.next_mark == "X"
    assert state.mode == MODE_CPU


def test_opponent_move_picks_an_empty_cell():
    state = TicTacToeState(board=board("XO.XO...."), next_mark="O", mode=MODE_CPU)
    after = opponent_move(state, RandomSource(3))
    changed = [i for i in range(9) if after.board[i] != state.board[i]]
    assert len(changed) == 1
    assert state.board[changed[0]] == " "
    assert after.board[changed[0]] == "O"


def test_opponent_move_only_in_cpu_mode():
    state = TicTacToeState(board=board("X........"), next_mark="O")
    assert opponent_move(state, RandomSource(1)) is state


def test_status_text():
    assert status_text(reset()) == "X's turn"
    assert status_text(TicTacToeState(board=board("OOOXX.X.."))) == "Winner: O"
    assert status_text(TicTacToeState(board=board("XOXXOOOXX"))) == "Draw!"


def make_engine(mode="human"):
    scheduler = ManualScheduler()
    engine = TicTacToeEngine(
        rng=RandomSource(7), scheduler=scheduler, opponent_delay=0.42, mode=mode
    )
    return engine, scheduler


def test_human_mode_alternates_marks():
    engine, scheduler = make_engine()
    engine.play(0)
    engine.play(1)
    assert engine.state.board[:2] == ("X", "O")
    assert scheduler.pending_count == 0


def test_opponent_answers_after_delay():
    engine, scheduler = make_engine(MODE_CPU)
    engine.play(4)
    assert engine.state.next_mark == "O"
    assert engine.opponent_pending

    scheduler.advance(0.4)
    assert engine.state.next_mark == "O"

    scheduler.advance(0.05)
    assert engine.state.next_mark == "X"
    assert engine.state.board.count("O") == 1
    assert not engine.opponent_pending


def test_human_cannot_move_for_opponent():
    engine, scheduler = make_engine(MODE_CPU)
    engine.play(0)
    before = engine.state
    engine.play(1)
    assert engine.state is before


def test_reset_cancels_pending_opponent_move():
    engine, scheduler = make_engine(MODE_CPU)
    engine.play(0)
    engine.reset()
    scheduler.advance(5)
    assert engine.state.board == board(".........")
    assert engine.state.next_mark == "X"


def test_switching_to_cpu_on_o_turn_schedules_opponent():
    engine, scheduler = make_engine()
    engine.play(0)
    engine.set_mode(MODE_CPU)
    assert engine.opponent_pending
    scheduler.advance(1)
    assert engine.state.board.count("O") == 1


def test_switching_to_human_cancels_opponent():
    engine, scheduler = make_engine(MODE_CPU)
    engine.play(0)
    engine.set_mode("human")
    scheduler.advance(1)
    assert engine.state.board.count("O") == 0
    assert engine.state.next_mark == "O"


def test_set_mode_rejects_unknown_mode():
    engine, _ = make_engine()
    with pytest.raises(ValueError):
        engine.set_mode("robot")


def test_cpu_game_runs_to_completion():
    engine, scheduler = make_engine(MODE_CPU)
    for _ in range(9):
        if engine.outcome is not None:
            break
        empty = [i for i, c in enumerate(engine.state.board) if c == " "]
        engine.play(empty[0])
        scheduler.advance(1)
    assert engine.outcome in ("X", "O", "draw")
    assert scheduler.pending_count == 0


def test_closed_engine_ignores_timer_and_input():
    engine, scheduler = make_engine(MODE_CPU)
    engine.play(0)
    engine.close()
    scheduler.advance(1)
    assert engine.state.board.count("O") == 0
    assert engine.play(5).board[5] == " "


@pytest.mark.parametrize(
    "line",
    [(0, 1, 2), (3, 4, 5), (6, 7, 8), (0, 3, 6), (1, 4, 7), (2, 5, 8), (0, 4, 8), (2, 4, 6)],
)
@pytest.mark.parametrize("mark", ["X", "O"])
def test_evaluate_detects_every_line(line, mark):
    cells = [" "] * 9
    for i in line:
        cells[i] = mark
    assert evaluate(tuple(cells)) == mark


def test_opponent_does_not_move_on_decided_board():
    state = TicTacToeState(board=board("XXXOO...."), next_mark="O", mode=MODE_CPU)
    assert opponent_move(state, RandomSource(0)) is state


def test_engine_mode_lives_only_in_state():
    engine, _ = make_engine(MODE_CPU)
    assert engine.state.mode == MODE_CPU
    assert "mode" not in vars(engine)
    engine.set_mode("human")
    assert engine.state.mode == "human"
