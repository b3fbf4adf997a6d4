import asyncio
import math

import pygame

from maze_engine import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    MazeEngine,
    Marker,
    RunState,
    clamp,
)
from maze_grid import Tile

# ----- layout -----
GRID_PX = 640
LEFT_W = 400
WIN_W = LEFT_W + GRID_PX + 28
WIN_H = GRID_PX + 28
FPS = 60
GRID_MIN, GRID_MAX = 2, 64
SPEED_STEP = 5

# ----- colors -----
BG = (26, 28, 35)
PANEL = (34, 37, 46)
BORDER = (60, 64, 75)
TEXT = (232, 235, 243)
MUTED = (170, 173, 184)
BTN = (45, 50, 62)
BTN_PRI = (52, 120, 246)
BTN_OFF = (38, 40, 48)

TILE_COLORS = {
    Tile.EMPTY: (238, 238, 238),
    Tile.WALL: (51, 51, 51),
    Tile.PLAYER: (235, 84, 84),
    Tile.GOAL: (44, 187, 93),
    Tile.VISITED: (170, 190, 230),
    Tile.PATH: (52, 90, 246),
    Tile.REACHED_GOAL: (230, 60, 230),
}

# ----- mazes -----
MAZES = [
    None,  # blank grid at the current size
    [
        "##############",
        "#S....#......#",
        "###.#.#.####.#",
        "#...#.#....#.#",
        "#.###.####.#.#",
        "#...#......#.#",
        "#.#.########.#",
        "#.#........#.#",
        "#.######.#.#G#",
        "##############",
    ],
    [
        "S.......#.......",
        ".######.#.#####.",
        ".#....#.#.#...#.",
        ".#.##.#...#.#.#.",
        ".#.#..#####.#.#.",
        ".#.#.##.....#.#.",
        ".#.#....#####.#.",
        ".#.######...#.#.",
        ".#........#.#.#.",
        ".##########.#.#.",
        "............#..G",
    ],
]

HELP = "LMB wall / drag marker, RMB erase, S/G place marker, SPACE run, R reset"


# ----- helpers -----
def pick_font(cands, size):
    avail = set(pygame.font.get_fonts())
    for n in cands:
        if n and n.lower() in avail:
            return pygame.font.SysFont(n, size)
    return pygame.font.Font(None, size)


# ----- logger (no overflow; clipped) -----
class Logger:
    def __init__(self, rect, font):
        self.rect = pygame.Rect(rect)
        self.font = font
        self.lines = []
        self.history_cap = 300

    def log(self, msg):
        self.lines.append(str(msg))
        if len(self.lines) > self.history_cap:
            self.lines = self.lines[-self.history_cap :]

    def draw(self, surf):
        pygame.draw.rect(surf, PANEL, self.rect, border_radius=8)
        pygame.draw.rect(surf, BORDER, self.rect, 1, border_radius=8)
        inner = self.rect.inflate(-12, -12)
        lh = self.font.get_linesize()
        max_vis = max(1, inner.h // lh)
        view = self.lines[-max_vis:]
        prev_clip = surf.get_clip()
        surf.set_clip(inner)
        y = inner.y
        for line in view:
            surf.blit(self.font.render(line, True, MUTED), (inner.x, y))
            y += lh
        surf.set_clip(prev_clip)


# ----- buttons -----
class Button:
    def __init__(self, rect, label, primary=False):
        self.rect = pygame.Rect(rect)
        self.label = label
        self.primary = primary
        self.enabled = True

    def draw(self, surf, font):
        if not self.enabled:
            color = BTN_OFF
        else:
            color = BTN_PRI if self.primary else BTN
        pygame.draw.rect(surf, color, self.rect, border_radius=6)
        pygame.draw.rect(surf, BORDER, self.rect, 1, border_radius=6)
        pad = 10
        label = self.label
        while font.size(label)[0] > self.rect.w - pad and len(label) > 1:
            label = label[:-2] + "…"
        text = font.render(label, True, TEXT if self.enabled else MUTED)
        surf.blit(text, text.get_rect(center=self.rect.center))

    def hit(self, pos):
        return self.enabled and self.rect.collidepoint(pos)


# ----- drawing -----
def grid_geometry(grid, area):
    x0, y0, w, h = area
    cell = max(1, min(w // grid.width, h // grid.height))
    offx = x0 + (w - grid.width * cell) // 2
    offy = y0 + (h - grid.height * cell) // 2
    return offx, offy, cell


def draw_grid(surf, grid, area):
    pygame.draw.rect(surf, PANEL, area, border_radius=8)
    pygame.draw.rect(surf, BORDER, area, 1, border_radius=8)
    offx, offy, cell = grid_geometry(grid, area)
    gap = 1 if cell > 4 else 0
    for y in range(grid.height):
        for x in range(grid.width):
            tile = grid.get_tile((x, y))
            r = pygame.Rect(offx + x * cell, offy + y * cell, cell - gap, cell - gap)
            if tile in (Tile.PLAYER, Tile.GOAL):
                pygame.draw.rect(surf, TILE_COLORS[Tile.EMPTY], r)
                draw_marker(surf, tile, r.center, cell)
            else:
                pygame.draw.rect(surf, TILE_COLORS[tile], r)


def draw_marker(surf, tile, center, cell):
    pygame.draw.circle(surf, TILE_COLORS[tile], center, max(2, math.floor(cell * 0.4)))


# ----- app -----
class App:
    def __init__(self):
        pygame.init()
        pygame.display.set_caption("Maze Pathfinder")
        self.screen = pygame.display.set_mode((WIN_W, WIN_H))
        self.clock = pygame.time.Clock()
        self.small = pick_font(
            [
                "consolas",
                "menlo",
                "dejavusansmono",
                "couriernew",
                "liberationmono",
                "monospace",
            ],
            16,
        )

        # controls
        y = 14
        self.btn_run = Button((14, y, 110, 34), "Run", primary=True)
        self.btn_reset = Button((132, y, 110, 34), "Reset")
        self.btn_search = Button((250, y, 136, 34), "Search: off")
        y += 44
        self.btn_w_m = Button((14, y, 52, 28), "W-")
        self.btn_w_p = Button((72, y, 52, 28), "W+")
        self.btn_h_m = Button((132, y, 52, 28), "H-")
        self.btn_h_p = Button((190, y, 52, 28), "H+")
        self.btn_maze = Button((250, y, 136, 28), "Maze")
        y += 38
        self.btn_spd_m = Button((14, y, 52, 28), "-")
        self.btn_spd_p = Button((72, y, 52, 28), "+")
        self.btn_clr_p = Button((132, y, 110, 28), "Clear S")
        self.btn_clr_g = Button((250, y, 136, 28), "Clear G")
        self.buttons = (
            self.btn_run,
            self.btn_reset,
            self.btn_search,
            self.btn_w_m,
            self.btn_w_p,
            self.btn_h_m,
            self.btn_h_p,
            self.btn_maze,
            self.btn_spd_m,
            self.btn_spd_p,
            self.btn_clr_p,
            self.btn_clr_g,
        )
        self.info_y = y + 42

        log_y = self.info_y + 70
        self.log = Logger((14, log_y, LEFT_W - 28, WIN_H - log_y - 14), self.small)

        # model
        self.engine = MazeEngine(
            DEFAULT_WIDTH, DEFAULT_HEIGHT, log_fn=self.log.log
        )
        self.grid_area = (LEFT_W, 14, WIN_W - LEFT_W - 14, WIN_H - 28)
        self.maze_idx = 0
        self.show_search = False
        self.holding = None  # marker being dragged
        self.task = None
        self.log.log("Ready.")

    # -- input helpers ------------------------------------------------ #

    def tile_at(self, pos):
        grid = self.engine.grid
        offx, offy, cell = grid_geometry(grid, self.grid_area)
        x = (pos[0] - offx) // cell
        y = (pos[1] - offy) // cell
        if not grid.in_bounds((x, y)):
            return None
        return (x, y)

    def start(self):
        if not self.engine.can_run:
            self.log.log("Place S and G first (or wait for the run).")
            return
        self.task = asyncio.ensure_future(
            self.engine.run(show_search=self.show_search)
        )

    def resize(self, dw, dh):
        grid = self.engine.grid
        w = clamp(grid.width + dw, GRID_MIN, GRID_MAX)
        h = clamp(grid.height + dh, GRID_MIN, GRID_MAX)
        self.engine.configure_grid(w, h)

    def change_maze(self, delta):
        self.maze_idx = (self.maze_idx + delta) % len(MAZES)
        layout = MAZES[self.maze_idx]
        if layout is None:
            self.engine.reset()
        else:
            self.engine.load_layout(layout)

    def handle_mouse(self, e):
        tile = self.tile_at(e.pos)
        if e.type == pygame.MOUSEBUTTONDOWN and e.button == 1 and tile is not None:
            if tile == self.engine.goal:
                self.holding = Marker.GOAL
            elif tile == self.engine.player:
                self.holding = Marker.PLAYER
        dropped = e.type == pygame.MOUSEBUTTONUP and e.button == 1
        if dropped and self.holding is not None:
            if tile is not None:
                self.engine.place_marker(self.holding, tile)
            self.holding = None
            return
        if self.holding is not None or tile is None:
            return
        buttons = pygame.mouse.get_pressed()
        if buttons[0]:
            self.engine.paint_tile(tile, Tile.WALL)
        elif buttons[2]:
            self.engine.paint_tile(tile, Tile.EMPTY)

    def handle_click(self, pos, button):
        if self.btn_run.hit(pos):
            self.start()
        elif self.btn_reset.hit(pos):
            self.engine.reset()
        elif self.btn_search.hit(pos):
            self.show_search = not self.show_search
            self.btn_search.label = f"Search: {'on' if self.show_search else 'off'}"
        elif self.btn_w_m.hit(pos):
            self.resize(-1, 0)
        elif self.btn_w_p.hit(pos):
            self.resize(+1, 0)
        elif self.btn_h_m.hit(pos):
            self.resize(0, -1)
        elif self.btn_h_p.hit(pos):
            self.resize(0, +1)
        elif self.btn_maze.hit(pos):
            self.change_maze(-1 if button == 3 else +1)
        elif self.btn_spd_m.hit(pos):
            self.engine.set_speed(self.engine.steps_per_second - SPEED_STEP)
        elif self.btn_spd_p.hit(pos):
            self.engine.set_speed(self.engine.steps_per_second + SPEED_STEP)
        elif self.btn_clr_p.hit(pos):
            self.engine.clear_marker(Marker.PLAYER)
        elif self.btn_clr_g.hit(pos):
            self.engine.clear_marker(Marker.GOAL)
        else:
            return False
        return True

    def handle_key(self, e):
        if e.key == pygame.K_SPACE:
            self.start()
        elif e.key == pygame.K_r:
            self.engine.reset()
        elif e.key in (pygame.K_s, pygame.K_g):
            tile = self.tile_at(pygame.mouse.get_pos())
            if tile is not None:
                kind = Marker.PLAYER if e.key == pygame.K_s else Marker.GOAL
                self.engine.place_marker(kind, tile)

    # -- main loop ---------------------------------------------------- #

    def draw(self):
        engine = self.engine
        self.screen.fill(BG)
        running = engine.is_running
        self.btn_run.enabled = engine.can_run
        always_on = (self.btn_run, self.btn_reset, self.btn_spd_m, self.btn_spd_p)
        for b in self.buttons:
            if b not in always_on:
                b.enabled = not running
            b.draw(self.screen, self.small)

        grid = engine.grid
        info = [
            f"Grid: {grid.width}x{grid.height}   Speed: {engine.steps_per_second:g} steps/s",
            f"Status: {engine.state.value.capitalize()}",
            HELP,
        ]
        for i, line in enumerate(info):
            text = self.small.render(line, True, MUTED)
            self.screen.blit(text, (14, self.info_y + i * 20))

        self.log.draw(self.screen)
        draw_grid(self.screen, grid, self.grid_area)
        if self.holding is not None:
            _, _, cell = grid_geometry(grid, self.grid_area)
            tile = Tile.PLAYER if self.holding == Marker.PLAYER else Tile.GOAL
            draw_marker(self.screen, tile, pygame.mouse.get_pos(), cell)
        pygame.display.flip()

    async def run(self):
        while True:
            self.clock.tick(FPS)
            for e in pygame.event.get():
                if e.type == pygame.QUIT:
                    self.engine.reset()
                    return
                if e.type == pygame.MOUSEBUTTONDOWN and self.handle_click(
                    e.pos, e.button
                ):
                    continue
                if e.type in (
                    pygame.MOUSEBUTTONDOWN,
                    pygame.MOUSEBUTTONUP,
                    pygame.MOUSEMOTION,
                ):
                    self.handle_mouse(e)
                elif e.type == pygame.KEYDOWN:
                    self.handle_key(e)

            if self.task is not None and self.task.done():
                try:
                    self.task.result()
                except Exception as e:
                    self.log.log(f"Error: {e}")
                self.task = None

            self.draw()
            # let the engine's run task advance between frames
            await asyncio.sleep(0)


# ----- entry -----
async def main():
    app = App()
    await app.run()


def cli():
    try:
        asyncio.run(main())
    finally:
        pygame.quit()


if __name__ == "__main__":
    cli()
