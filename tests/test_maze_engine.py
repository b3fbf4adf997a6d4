import asyncio
import random

import pytest

from maze_engine import (
    MAX_STEPS_PER_SECOND,
    MIN_STEPS_PER_SECOND,
    MazeEngine,
    Marker,
    RunState,
)
from maze_grid import Tile

FAST = MAX_STEPS_PER_SECOND


def _engine(width=5, height=5, seed=1, **kwargs):
    return MazeEngine(width, height, rng=random.Random(seed), **kwargs)


def _ready_engine(width=5, height=5, start=(0, 0), goal=(4, 4), **kwargs):
    engine = _engine(width, height, **kwargs)
    engine.place_marker(Marker.PLAYER, start)
    engine.place_marker(Marker.GOAL, goal)
    return engine


def _enclosed_engine(**kwargs):
    engine = _engine(3, 3, **kwargs)
    engine.place_marker(Marker.PLAYER, (0, 0))
    engine.place_marker(Marker.GOAL, (1, 1))
    for pos in [(1, 0), (0, 1), (2, 1), (1, 2)]:
        engine.paint_tile(pos, Tile.WALL)
    return engine


# ---------------------------------------------------------------- edits


def test_place_marker_stamps_tile():
    engine = _ready_engine()

    assert engine.grid.get_tile((0, 0)) == Tile.PLAYER
    assert engine.grid.get_tile((4, 4)) == Tile.GOAL
    assert engine.player == (0, 0)
    assert engine.goal == (4, 4)


def test_moving_a_marker_clears_its_old_tile():
    engine = _ready_engine()
    assert engine.place_marker(Marker.PLAYER, (2, 3))

    assert engine.grid.get_tile((0, 0)) == Tile.EMPTY
    assert engine.grid.get_tile((2, 3)) == Tile.PLAYER
    assert engine.grid.count(Tile.PLAYER) == 1


def test_clear_marker_restores_empty():
    engine = _ready_engine()

    assert engine.clear_marker(Marker.GOAL)
    assert engine.goal is None
    assert engine.grid.get_tile((4, 4)) == Tile.EMPTY
    assert not engine.clear_marker(Marker.GOAL)


def test_place_marker_out_of_bounds_is_ignored():
    engine = _engine()

    assert not engine.place_marker(Marker.PLAYER, (5, 0))
    assert engine.player is None


def test_paint_tile_sets_walls_and_erases():
    engine = _engine()

    assert engine.paint_tile((2, 2), Tile.WALL)
    assert engine.grid.get_tile((2, 2)) == Tile.WALL
    assert engine.paint_tile((2, 2), Tile.EMPTY)
    assert engine.grid.get_tile((2, 2)) == Tile.EMPTY


def test_paint_tile_ignores_markers_and_out_of_bounds():
    engine = _ready_engine()

    assert not engine.paint_tile((0, 0), Tile.WALL)
    assert not engine.paint_tile((4, 4), Tile.WALL)
    assert not engine.paint_tile((-1, 2), Tile.WALL)
    assert not engine.paint_tile((2, 9), Tile.WALL)
    assert engine.grid.get_tile((0, 0)) == Tile.PLAYER
    assert engine.grid.count(Tile.WALL) == 0


@pytest.mark.parametrize("tile", [Tile.PLAYER, Tile.GOAL, Tile.PATH, Tile.VISITED])
def test_paint_tile_only_accepts_walls_and_empty(tile):
    engine = _engine()

    with pytest.raises(ValueError):
        engine.paint_tile((1, 1), tile)


def test_tile_changes_are_published():
    changes = []
    engine = _engine(tile_fn=lambda pos, tile: changes.append((pos, tile)))
    engine.paint_tile((1, 2), Tile.WALL)
    engine.place_marker(Marker.GOAL, (3, 3))

    assert changes == [((1, 2), Tile.WALL), ((3, 3), Tile.GOAL)]


# ---------------------------------------------------------------- grid lifecycle


def test_reset_clears_walls_and_keeps_markers():
    engine = _ready_engine()
    engine.paint_tile((1, 1), Tile.WALL)
    engine.paint_tile((3, 2), Tile.WALL)
    engine.reset()

    assert engine.grid.count(Tile.WALL) == 0
    assert engine.grid.get_tile((0, 0)) == Tile.PLAYER
    assert engine.grid.get_tile((4, 4)) == Tile.GOAL
    assert engine.state == RunState.IDLE


def test_reset_is_idempotent():
    engine = _ready_engine()
    engine.paint_tile((2, 2), Tile.WALL)
    engine.reset()
    once = engine.grid.to_lines()
    engine.reset()

    assert engine.grid.to_lines() == once


def test_configure_grid_keeps_markers_that_fit():
    engine = _ready_engine(start=(1, 1), goal=(4, 4))
    engine.paint_tile((0, 1), Tile.WALL)
    engine.configure_grid(3, 8)

    assert (engine.grid.width, engine.grid.height) == (3, 8)
    assert engine.player == (1, 1)
    assert engine.goal is None
    assert engine.grid.get_tile((1, 1)) == Tile.PLAYER
    assert engine.grid.count(Tile.WALL) == 0
    assert engine.grid.count(Tile.GOAL) == 0


def test_configure_grid_rejects_bad_size():
    engine = _engine()

    with pytest.raises(ValueError):
        engine.configure_grid(0, 4)


def test_load_layout_sets_markers():
    engine = _engine()
    engine.load_layout(["S.#", "..G"])

    assert (engine.grid.width, engine.grid.height) == (3, 2)
    assert engine.player == (0, 0)
    assert engine.goal == (2, 1)
    assert engine.grid.get_tile((2, 0)) == Tile.WALL


def test_speed_is_clamped():
    engine = _engine()
    engine.set_speed(0)
    assert engine.steps_per_second == MIN_STEPS_PER_SECOND
    engine.set_speed(10**9)
    assert engine.steps_per_second == MAX_STEPS_PER_SECOND
    engine.set_speed(20)
    assert engine.step_delay == pytest.approx(0.05)


# ---------------------------------------------------------------- runs


def test_run_without_markers_is_ignored():
    messages = []
    engine = _engine(log_fn=messages.append)
    engine.place_marker(Marker.PLAYER, (0, 0))

    assert asyncio.run(engine.run(steps_per_second=FAST)) is None
    assert engine.state == RunState.IDLE
    assert any("ignored" in m for m in messages)


def test_run_open_grid_reaches_goal():
    engine = _ready_engine()
    result = asyncio.run(engine.run(steps_per_second=FAST))

    assert result.status == "done"
    assert result.found
    assert result.path[-1] == (4, 4)
    assert len(result.path) >= 8
    assert engine.state == RunState.DONE
    assert engine.grid.get_tile((4, 4)) == Tile.REACHED_GOAL
    assert engine.grid.count(Tile.PATH) == len(result.path) - 1
    for pos in result.path[:-1]:
        assert engine.grid.get_tile(pos) == Tile.PATH


def test_run_enclosed_goal_finds_no_path():
    engine = _enclosed_engine()
    result = asyncio.run(engine.run(steps_per_second=FAST))

    assert result.status == "no_path"
    assert not result.found
    assert result.path == []
    assert engine.state == RunState.DONE
    assert engine.grid.count(Tile.REACHED_GOAL) == 0
    assert engine.grid.count(Tile.PATH) == 0
    assert engine.grid.get_tile((1, 1)) == Tile.GOAL


def test_markers_on_the_same_tile_give_zero_length_run():
    engine = _engine()
    engine.place_marker(Marker.PLAYER, (2, 2))
    engine.place_marker(Marker.GOAL, (2, 2))

    assert engine.grid.get_tile((2, 2)) == Tile.GOAL
    result = asyncio.run(engine.run(steps_per_second=FAST))

    assert result.status == "done"
    assert result.path == []
    assert engine.state == RunState.DONE
    assert engine.grid.get_tile((2, 2)) == Tile.GOAL
    assert engine.grid.count(Tile.PATH) == 0


def test_clearing_one_of_two_shared_markers_keeps_the_other():
    engine = _engine()
    engine.place_marker(Marker.GOAL, (2, 2))
    engine.place_marker(Marker.PLAYER, (2, 2))
    engine.clear_marker(Marker.GOAL)

    assert engine.grid.get_tile((2, 2)) == Tile.PLAYER


def test_states_without_search_animation():
    states = []
    engine = _ready_engine(state_fn=states.append)
    asyncio.run(engine.run(steps_per_second=FAST))

    assert states == [RunState.PLAYING, RunState.DONE]


def test_search_animation_marks_visited_tiles():
    states = []
    engine = _ready_engine(width=6, height=6, goal=(5, 5), state_fn=states.append)
    result = asyncio.run(engine.run(steps_per_second=FAST, show_search=True))

    assert result.found
    assert states == [RunState.SEARCHING, RunState.PLAYING, RunState.DONE]
    assert engine.grid.count(Tile.VISITED) == len(result.explored) - len(result.path)
    assert engine.grid.get_tile((5, 5)) == Tile.REACHED_GOAL


def test_search_animation_without_path_skips_playing():
    states = []
    engine = _enclosed_engine(state_fn=states.append)
    engine.paint_tile((2, 2), Tile.WALL)
    engine.paint_tile((0, 2), Tile.WALL)
    result = asyncio.run(engine.run(steps_per_second=FAST, show_search=True))

    assert result.status == "no_path"
    assert states == [RunState.SEARCHING, RunState.DONE]


def test_goal_is_the_last_tile_revealed():
    changes = []
    engine = _ready_engine(tile_fn=lambda pos, tile: changes.append((pos, tile)))
    changes.clear()
    result = asyncio.run(engine.run(steps_per_second=FAST))

    assert changes[-1] == ((4, 4), Tile.REACHED_GOAL)
    assert [pos for pos, _ in changes] == result.path


def test_second_run_is_rejected_while_playing():
    engine = _ready_engine()
    steps = engine.start_run()

    assert steps is not None
    assert engine.state == RunState.PLAYING
    assert engine.start_run() is None
    assert asyncio.run(engine.run()) is None
    assert not engine.paint_tile((2, 2), Tile.WALL)
    assert not engine.place_marker(Marker.GOAL, (3, 3))
    assert not engine.clear_marker(Marker.PLAYER)


def test_step_generator_reveals_one_tile_per_step():
    engine = _ready_engine()
    steps = engine.start_run()

    first = next(steps)
    assert engine.grid.count(Tile.PATH) == 0
    next(steps)
    assert engine.grid.get_tile(first) == Tile.PATH
    assert engine.grid.count(Tile.PATH) == 1

    for _ in steps:
        pass
    assert engine.state == RunState.DONE
    assert engine.last_result.found


def test_reset_stops_a_pending_reveal():
    engine = _ready_engine()
    steps = engine.start_run()
    next(steps)
    next(steps)
    pending = next(steps)

    engine.reset()

    assert list(steps) == []
    assert engine.grid.get_tile(pending) == Tile.EMPTY
    assert engine.grid.count(Tile.PATH) == 0
    assert engine.state == RunState.IDLE
    assert engine.last_result is None


def test_reset_cancels_an_async_run():
    engine = _ready_engine(width=10, height=10, goal=(9, 9))

    async def scenario():
        task = asyncio.ensure_future(engine.run(steps_per_second=100))
        await asyncio.sleep(0.035)
        engine.reset()
        return await task

    result = asyncio.run(scenario())

    assert result.status == "cancelled"
    assert engine.state == RunState.IDLE
    assert engine.grid.count(Tile.PATH) == 0
    assert engine.grid.count(Tile.REACHED_GOAL) == 0
    assert engine.grid.get_tile((9, 9)) == Tile.GOAL


def test_run_again_after_done_clears_previous_marks():
    engine = _ready_engine(width=7, height=7, goal=(6, 6))
    first = asyncio.run(engine.run(steps_per_second=FAST, show_search=True))
    second = asyncio.run(engine.run(steps_per_second=FAST))

    assert first.found and second.found
    assert engine.grid.count(Tile.REACHED_GOAL) == 1
    assert engine.grid.count(Tile.VISITED) == 0
    assert engine.grid.count(Tile.PATH) == len(second.path) - 1


def test_same_seed_gives_same_run():
    results = []
    for _ in range(2):
        engine = _ready_engine(width=8, height=8, goal=(7, 2), seed=99)
        engine.paint_tile((3, 0), Tile.WALL)
        engine.paint_tile((3, 1), Tile.WALL)
        results.append(asyncio.run(engine.run(steps_per_second=FAST)))

    assert results[0].path == results[1].path
    assert results[0].explored == results[1].explored


def test_completion_is_logged():
    messages = []
    engine = _ready_engine(log_fn=messages.append)
    asyncio.run(engine.run(steps_per_second=FAST))

    assert "Reached the goal!" in messages[-1]


def test_ignored_run_keeps_the_current_speed():
    engine = _ready_engine(steps_per_second=25)
    engine.start_run()

    assert asyncio.run(engine.run(steps_per_second=1)) is None
    assert engine.steps_per_second == 25


def test_run_out_of_bounds_start_is_ignored():
    messages = []
    engine = _ready_engine(log_fn=messages.append)

    assert engine.start_run(start=(-5, -5)) is None
    assert asyncio.run(engine.run(start=(5, 0), steps_per_second=FAST)) is None
    assert engine.state == RunState.IDLE
    assert "outside the grid" in messages[-1]


def test_reveal_delay_follows_live_speed(monkeypatch):
    delays = []
    engine = _engine(steps_per_second=25)
    engine.load_layout(["S...G"])

    async def fake_sleep(delay):
        delays.append(delay)
        if len(delays) == 2:
            engine.set_speed(50)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    result = asyncio.run(engine.run(steps_per_second=10))

    assert result.path == [(1, 0), (2, 0), (3, 0), (4, 0)]
    assert delays == pytest.approx([0.1, 0.1, 0.02, 0.02])
    assert engine.grid.get_tile((4, 0)) == Tile.REACHED_GOAL
