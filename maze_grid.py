from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

Position = Tuple[int, int]  # (x, y) = (column, row)


class OutOfBoundsError(IndexError):
    """Raised when a tile is written outside the grid."""

    pass


class Tile(Enum):
    EMPTY = "Empty"
    WALL = "Wall"
    PLAYER = "Player"
    GOAL = "Goal"
    VISITED = "Visited"
    PATH = "Path"
    REACHED_GOAL = "ReachedGoal"


# Characters used by text layouts. Parsing also accepts a space for EMPTY.
TILE_CHARS = {
    Tile.EMPTY: ".",
    Tile.WALL: "#",
    Tile.PLAYER: "S",
    Tile.GOAL: "G",
    Tile.VISITED: "o",
    Tile.PATH: "*",
    Tile.REACHED_GOAL: "!",
}
CHAR_TILES = {ch: tile for tile, ch in TILE_CHARS.items()}
CHAR_TILES[" "] = Tile.EMPTY


class Grid:
    """
    Rectangular tile matrix, stored row-major as ``tiles[y][x]``.

    Reads are total: anything outside ``[0, width) x [0, height)`` is a wall,
    so searches never leave the grid. Writes outside it are a programming
    error and raise ``OutOfBoundsError``.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = 0
        self.height = 0
        self.tiles: List[List[Tile]] = []
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"Grid size must be positive, got {width}x{height}.")
        self.width = width
        self.height = height
        self.tiles = [[Tile.EMPTY] * width for _ in range(height)]

    def in_bounds(self, pos: Position) -> bool:
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def get_tile(self, pos: Position) -> Tile:
        if not self.in_bounds(pos):
            return Tile.WALL
        x, y = pos
        return self.tiles[y][x]

    def set_tile(self, pos: Position, tile: Tile) -> None:
        if not self.in_bounds(pos):
            raise OutOfBoundsError(
                f"Position {pos} is outside the {self.width}x{self.height} grid."
            )
        x, y = pos
        self.tiles[y][x] = tile

    def positions(self) -> Iterable[Position]:
        for y in range(self.height):
            for x in range(self.width):
                yield (x, y)

    def find(self, tile: Tile) -> List[Position]:
        return [p for p in self.positions() if self.get_tile(p) == tile]

    def count(self, tile: Tile) -> int:
        return sum(row.count(tile) for row in self.tiles)

    def to_lines(self) -> List[str]:
        return ["".join(TILE_CHARS[t] for t in row) for row in self.tiles]

    def __repr__(self) -> str:
        return f"Grid({self.width}x{self.height})"


def parse_layout(
    layout: str | Sequence[str],
) -> Tuple[Grid, Optional[Position], Optional[Position]]:
    """
    Build a grid from a text layout and return ``(grid, player, goal)``.

    ``#`` is a wall, ``.`` or a space is empty, ``S`` marks the player and
    ``G`` the goal. Both markers are optional but may appear at most once.
    """
    if isinstance(layout, str):
        lines = [line for line in layout.splitlines() if line != ""]
    else:
        lines = [line.rstrip("\n") for line in layout]
    if not lines:
        raise ValueError("Layout is empty.")

    width = len(lines[0])
    for row in lines:
        if len(row) != width:
            raise ValueError("All layout rows must be the same width.")

    grid = Grid(width, len(lines))
    player: Optional[Position] = None
    goal: Optional[Position] = None
    for y, row in enumerate(lines):
        for x, ch in enumerate(row):
            tile = CHAR_TILES.get(ch)
            if tile is None:
                raise ValueError(f"Unknown layout character {ch!r} at ({x}, {y}).")
            if tile == Tile.PLAYER:
                if player is not None:
                    raise ValueError("Layout must contain at most one 'S'.")
                player = (x, y)
            elif tile == Tile.GOAL:
                if goal is not None:
                    raise ValueError("Layout must contain at most one 'G'.")
                goal = (x, y)
            grid.set_tile((x, y), tile)
    return grid, player, goal
