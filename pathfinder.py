"""
Randomized backtracking search over a ``Grid``.

From the start, the four neighbours of a tile are shuffled, filtered to
those that are not a wall, not the player marker and not yet visited, and
all of them are marked visited before any is entered. Candidates are tried
in shuffled order; the first one that leads to a ``Goal`` tile becomes part
of the path and the rest are abandoned. Dead ends pop back to the previous
choice point.

The recursion is unrolled onto an explicit stack of
``(position, remaining candidates)`` frames so large grids cannot exhaust the
interpreter's call stack. The order of exploration depends on ``rng``; pass a
seeded ``random.Random`` for reproducible results.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple

from maze_grid import Grid, Position, Tile

BLOCKING_TILES = (Tile.WALL, Tile.PLAYER)


@dataclass
class SearchResult:
    found: bool
    path: List[Position] = field(default_factory=list)  # excludes start, ends at goal
    explored: List[Position] = field(default_factory=list)  # entry order


def neighbors(pos: Position, rng: random.Random) -> List[Position]:
    x, y = pos
    moves = [(x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1)]
    rng.shuffle(moves)
    return moves


def allowed(grid: Grid, pos: Position) -> bool:
    return grid.get_tile(pos) not in BLOCKING_TILES


def _expand(
    grid: Grid, pos: Position, visited: Set[Position], rng: random.Random
) -> Iterator[Position]:
    # Siblings are claimed up front so a deeper branch cannot re-enter them.
    moves = [p for p in neighbors(pos, rng) if allowed(grid, p) and p not in visited]
    visited.update(moves)
    return iter(moves)


def find_path(
    grid: Grid, start: Position, rng: Optional[random.Random] = None
) -> SearchResult:
    """
    Search from ``start`` to any ``Goal`` tile.

    A start tile that already holds the goal is solved with an empty path.
    An unreachable goal gives ``found=False`` and an empty path.
    """
    rng = rng or random.Random()
    if grid.get_tile(start) == Tile.GOAL:
        return SearchResult(found=True)

    visited: Set[Position] = {start}
    explored: List[Position] = []
    route: List[Position] = []
    stack: List[Tuple[Position, Iterator[Position]]] = [
        (start, _expand(grid, start, visited, rng))
    ]

    while stack:
        _, candidates = stack[-1]
        nxt = next(candidates, None)
        if nxt is None:
            # dead end
            stack.pop()
            if route:
                route.pop()
            continue

        route.append(nxt)
        explored.append(nxt)
        if grid.get_tile(nxt) == Tile.GOAL:
            return SearchResult(found=True, path=route, explored=explored)
        stack.append((nxt, _expand(grid, nxt, visited, rng)))

    return SearchResult(found=False, explored=explored)
