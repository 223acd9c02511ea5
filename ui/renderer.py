"""
Raidfloor — ui/renderer.py
TCOD Renderer: debug view of a generated floor and its actors.
==============================================================
Version:     0.2  (Phase 2 — raid viewer)
Stack:       Python 3.12 | tcod | NumPy
Status:      Debug tooling.

One console cell per tile. Walls '#', floor '.', start '<', exit '>',
cover overlay '+'. Everything is written through the console's (y, x)
NumPy views; nothing loops per cell.
"""

from __future__ import annotations
from typing import Iterable, Optional, Tuple
import numpy as np
import tcod

from world.generator import LevelMap, Tile

TileCoord = Tuple[int, int]
Color = Tuple[int, int, int]

GLYPH_WALL = ord("#")
GLYPH_FLOOR = ord(".")
GLYPH_START = ord("<")
GLYPH_EXIT = ord(">")
GLYPH_COVER = ord("+")

COLOR_WALL: Color = (90, 100, 120)
COLOR_FLOOR: Color = (45, 55, 70)
COLOR_START: Color = (61, 220, 151)
COLOR_EXIT: Color = (156, 211, 255)
COLOR_COVER: Color = (200, 170, 60)


class Renderer:
    """
    Manages the tcod root console and rendering loop.
    """
    def __init__(self, width: int, height: int, title: str = "Raidfloor"):
        self.width = width
        self.height = height
        self.title = title
        self.root_console = tcod.console.Console(width, height)
        self.context: Optional[tcod.context.Context] = None

    def clear(self) -> None:
        self.root_console.clear()

    def present(self, context: tcod.context.Context) -> None:
        context.present(self.root_console)

    def draw_level(self, level: LevelMap, cover_tiles: Iterable[TileCoord] = (),
                   origin: TileCoord = (0, 0), dest: TileCoord = (0, 0)) -> None:
        """
        Draws the window of the level whose top-left tile is origin at console
        cell dest, clipped to the console.
        """
        grid = level.as_grid()
        is_wall = grid == int(Tile.WALL)

        glyphs = np.where(is_wall, GLYPH_WALL, GLYPH_FLOOR).astype(np.int32)
        colors = np.empty(grid.shape + (3,), dtype=np.uint8)
        colors[is_wall] = COLOR_WALL
        colors[~is_wall] = COLOR_FLOOR

        for tx, ty in cover_tiles:
            glyphs[ty, tx] = GLYPH_COVER
            colors[ty, tx] = COLOR_COVER
        sx, sy = level.start
        ex, ey = level.exit
        glyphs[sy, sx], colors[sy, sx] = GLYPH_START, COLOR_START
        glyphs[ey, ex], colors[ey, ex] = GLYPH_EXIT, COLOR_EXIT

        ox, oy = max(0, origin[0]), max(0, origin[1])
        dx, dy = dest
        w = min(level.width - ox, self.width - dx)
        h = min(level.height - oy, self.height - dy)
        if w <= 0 or h <= 0:
            return

        self.root_console.ch[dy:dy + h, dx:dx + w] = glyphs[oy:oy + h, ox:ox + w]
        self.root_console.fg[dy:dy + h, dx:dx + w] = colors[oy:oy + h, ox:ox + w]

    def draw_actor(self, tile: TileCoord, glyph: str, fg: Color,
                   origin: TileCoord = (0, 0), dest: TileCoord = (0, 0)) -> None:
        cx = tile[0] - origin[0] + dest[0]
        cy = tile[1] - origin[1] + dest[1]
        if 0 <= cx < self.width and 0 <= cy < self.height:
            self.root_console.ch[cy, cx] = ord(glyph)
            self.root_console.fg[cy, cx] = fg

    def draw_text(self, x: int, y: int, text: str, fg: Color = (255, 255, 255)) -> None:
        self.root_console.print(x, y, text, fg=fg)
