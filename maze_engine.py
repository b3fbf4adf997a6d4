from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from maze_grid import Grid, Position, Tile, parse_layout
from pathfinder import SearchResult, find_path

DEFAULT_WIDTH = 16
DEFAULT_HEIGHT = 16
DEFAULT_STEPS_PER_SECOND = 25
MIN_STEPS_PER_SECOND = 1
MAX_STEPS_PER_SECOND = 1000

PAINTABLE_TILES = (Tile.WALL, Tile.EMPTY)
RUN_MARKS = (Tile.VISITED, Tile.PATH)


class RunState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    PLAYING = "playing"
    DONE = "done"


class Marker(Enum):
    PLAYER = "player"
    GOAL = "goal"


@dataclass
class RunResult:
    status: str  # "done" | "no_path" | "cancelled"
    path: List[Position] = field(default_factory=list)
    explored: List[Position] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status == "done"


LogFn = Callable[[str], None]
TileFn = Callable[[Position, Tile], None]
StateFn = Callable[[RunState], None]


def clamp(v, a, b):
    return a if v < a else b if v > b else v


class MazeEngine:
    """
    UI-agnostic maze session: grid, markers and one pathfinder run at a time.

    Responsibilities:
    - Own the grid and the player/goal markers.
    - Apply user edits (walls, markers, grid size).
    - Search for a path and reveal it one tile per step.
    - Cancel an in-flight reveal on reset.

    A UI either drives the step generator from ``start_run`` on its own
    clock, or awaits ``run`` which sleeps ``1 / steps_per_second`` before
    each reveal.
    """

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        steps_per_second: float = DEFAULT_STEPS_PER_SECOND,
        rng: Optional[random.Random] = None,
        log_fn: Optional[LogFn] = None,
        tile_fn: Optional[TileFn] = None,
        state_fn: Optional[StateFn] = None,
    ) -> None:
        self.log_fn = log_fn or (lambda msg: None)
        self.tile_fn = tile_fn or (lambda pos, tile: None)
        self.state_fn = state_fn or (lambda state: None)
        self.rng = rng or random.Random()

        self.grid = Grid(width, height)
        self.markers: Dict[Marker, Optional[Position]] = {
            Marker.PLAYER: None,
            Marker.GOAL: None,
        }
        self.state = RunState.IDLE
        self.steps_per_second = float(DEFAULT_STEPS_PER_SECOND)
        self.set_speed(steps_per_second)

        self._run_id = 0
        self.last_result: Optional[RunResult] = None

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def player(self) -> Optional[Position]:
        return self.markers[Marker.PLAYER]

    @property
    def goal(self) -> Optional[Position]:
        return self.markers[Marker.GOAL]

    @property
    def is_running(self) -> bool:
        return self.state in (RunState.SEARCHING, RunState.PLAYING)

    @property
    def can_run(self) -> bool:
        return (
            not self.is_running
            and self.player is not None
            and self.goal is not None
        )

    @property
    def step_delay(self) -> float:
        return 1.0 / self.steps_per_second

    # ------------------------------------------------------------------ #
    # Grid setup
    # ------------------------------------------------------------------ #

    def log(self, msg: str) -> None:
        self.log_fn(str(msg))

    def set_speed(self, steps_per_second: float) -> None:
        self.steps_per_second = float(
            clamp(steps_per_second, MIN_STEPS_PER_SECOND, MAX_STEPS_PER_SECOND)
        )

    def configure_grid(self, width: int, height: int) -> None:
        """Rebuild the grid at a new size, keeping markers that still fit."""
        self.grid.resize(width, height)
        for kind, pos in self.markers.items():
            if pos is not None and not self.grid.in_bounds(pos):
                self.markers[kind] = None
        self.reset()

    def reset(self) -> None:
        """Cancel any run and blank the grid, re-stamping the markers."""
        self._cancel()
        self.grid.resize(self.grid.width, self.grid.height)
        self._stamp_markers()
        self._set_state(RunState.IDLE)
        self.log("Grid reset.")

    def load_layout(self, layout: str | Sequence[str]) -> None:
        """Replace the grid with a text layout (see ``maze_grid.parse_layout``)."""
        grid, player, goal = parse_layout(layout)
        self._cancel()
        self.grid = grid
        self.markers[Marker.PLAYER] = player
        self.markers[Marker.GOAL] = goal
        self._set_state(RunState.IDLE)
        self.log(f"Loaded {grid.width}x{grid.height} layout.")

    def _stamp_markers(self) -> None:
        for pos in (self.player, self.goal):
            if pos is not None:
                self._write(pos, self._marker_tile(pos))

    # ------------------------------------------------------------------ #
    # User edits
    # ------------------------------------------------------------------ #

    def paint_tile(self, pos: Position, tile: Tile) -> bool:
        if tile not in PAINTABLE_TILES:
            raise ValueError(f"Only walls and empty tiles can be painted, not {tile}.")
        if self.is_running or not self.grid.in_bounds(pos):
            return False
        if pos in (self.player, self.goal):
            return False
        self._write(pos, tile)
        return True

    def place_marker(self, kind: Marker, pos: Position) -> bool:
        if self.is_running or not self.grid.in_bounds(pos):
            return False
        old = self.markers[kind]
        self.markers[kind] = pos
        if old is not None and old != pos:
            self._write(old, self._marker_tile(old))
        self._write(pos, self._marker_tile(pos))
        return True

    def clear_marker(self, kind: Marker) -> bool:
        pos = self.markers[kind]
        if self.is_running or pos is None:
            return False
        self.markers[kind] = None
        self._write(pos, self._marker_tile(pos))
        return True

    def _marker_tile(self, pos: Position) -> Tile:
        # The goal wins a shared tile so a search from it is solved at once.
        if pos == self.goal:
            return Tile.GOAL
        if pos == self.player:
            return Tile.PLAYER
        return Tile.EMPTY

    # ------------------------------------------------------------------ #
    # Runs
    # ------------------------------------------------------------------ #

    def start_run(
        self, start: Optional[Position] = None, show_search: bool = False
    ) -> Optional[Iterator[Position]]:
        """
        Search now and return a step generator for the reveal, or ``None``
        when the request is ignored (a marker is unset, a run is active or
        ``start`` is outside the grid).

        Each ``next()`` first yields the position about to be revealed; the
        following ``next()`` reveals it, provided the run is still current.
        The caller waits between the two, so a reset during the wait stops
        the reveal before the grid is touched again.
        """
        if not self.can_run:
            self.log("Run ignored: place both markers and wait for the current run.")
            return None
        if start is not None and not self.grid.in_bounds(start):
            self.log(f"Run ignored: start {start} is outside the grid.")
            return None
        if self.state == RunState.DONE:
            self._clear_run_marks()

        start = self.player if start is None else start
        search = find_path(self.grid, start, self.rng)
        self._run_id += 1
        self.last_result = None
        self.log(
            f"Run started: {len(search.explored)} tiles explored, "
            f"path of {len(search.path)}."
        )
        self._set_state(RunState.SEARCHING if show_search else RunState.PLAYING)
        return self._playback(self._run_id, search, show_search)

    async def run(
        self,
        start: Optional[Position] = None,
        steps_per_second: Optional[float] = None,
        show_search: bool = False,
    ) -> Optional[RunResult]:
        """Run and reveal at ``steps_per_second``; ``None`` if ignored."""
        steps = self.start_run(start, show_search=show_search)
        if steps is None:
            return None
        if steps_per_second is not None:
            self.set_speed(steps_per_second)
        run_id = self._run_id
        for _ in steps:
            # Read on every step so speed changes apply mid-run.
            await asyncio.sleep(self.step_delay)
        if run_id != self._run_id or self.last_result is None:
            return RunResult(status="cancelled")
        return self.last_result

    def _playback(
        self, run_id: int, search: SearchResult, show_search: bool
    ) -> Iterator[Position]:
        if show_search:
            for pos in search.explored:
                if self.grid.get_tile(pos) != Tile.EMPTY:
                    continue
                yield pos
                if run_id != self._run_id:
                    return
                self._write(pos, Tile.VISITED)
            if search.found:
                self._set_state(RunState.PLAYING)

        for pos in search.path:
            yield pos
            if run_id != self._run_id:
                return
            if self.grid.get_tile(pos) == Tile.GOAL:
                self._write(pos, Tile.REACHED_GOAL)
            else:
                self._write(pos, Tile.PATH)

        self._finish(search)

    def _finish(self, search: SearchResult) -> None:
        status = "done" if search.found else "no_path"
        self.last_result = RunResult(
            status=status, path=list(search.path), explored=list(search.explored)
        )
        self._set_state(RunState.DONE)
        self.log("🎉 Reached the goal!" if search.found else "⛔️ No path found.")

    def _cancel(self) -> None:
        if self.is_running:
            self.log("Run cancelled.")
        # Any step generator still holding the old id stops before its next write.
        self._run_id += 1
        self.last_result = None

    def _clear_run_marks(self) -> None:
        for pos in self.grid.find(Tile.REACHED_GOAL):
            self._write(pos, Tile.GOAL)
        for tile in RUN_MARKS:
            for pos in self.grid.find(tile):
                self._write(pos, Tile.EMPTY)

    # ------------------------------------------------------------------ #
    # Notifications
    # ------------------------------------------------------------------ #

    def _write(self, pos: Position, tile: Tile) -> None:
        self.grid.set_tile(pos, tile)
        self.tile_fn(pos, tile)

    def _set_state(self, state: RunState) -> None:
        if state != self.state:
            self.state = state
            self.state_fn(state)
