"""
Raidfloor — world/generator.py
Procedural Generation: BSP room-and-corridor raid floors.
=========================================================
Version:     0.2  (Phase 1 — level core)
Stack:       Python 3.12 | NumPy
Status:      Production-ready.

Architecture notes
------------------
- generate_level() is deterministic: identical (floor, base_seed, viewport)
  always yields an identical LevelMap.
- Tiles are a flat row-major uint8 array, frozen (read-only) once the
  generator returns. Carving works on a 2D view of the same buffer.
- The outer 1-tile border is permanent wall. Rooms and corridors only ever
  clear tiles to floor; pillars are the only re-walling, and they happen
  before any corridor is carved.
- Fewer than 2 rooms may leave start == exit. This is accepted.

Design Variables
----------------
  TILE_SIZE              32     — world units per tile
  GRID_W_RANGE           52–92  — tiles, viewport tiles + 26
  GRID_H_RANGE           34–64  — tiles, viewport tiles + 18
  SPLIT_ATTEMPTS         140    — BSP split cap
  EXIT_SAMPLES           50     — start/exit separation draws
  EXIT_MIN_SEPARATION    0.35   — fraction of (w + h), Manhattan
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Sequence, Tuple

import numpy as np

from world.rng import MASK_32, XorShift32, make_rng

TILE_SIZE: int = 32
BORDER: int = 1
GRID_W_MIN: int = 52
GRID_W_MAX: int = 92
GRID_H_MIN: int = 34
GRID_H_MAX: int = 64
GRID_W_PAD: int = 26
GRID_H_PAD: int = 18
SPLIT_ATTEMPTS: int = 140
MIN_ROOM_SIDE: int = 6
EXIT_SAMPLES: int = 50
EXIT_MIN_SEPARATION: float = 0.35
FLOOR_SEED_MIX: int = 0x9E3779B9

TileCoord = Tuple[int, int]


class Tile(IntEnum):
    FLOOR = 0
    WALL = 1


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int

    @property
    def center(self) -> TileCoord:
        return (self.x + self.w // 2, self.y + self.h // 2)


@dataclass(frozen=True, eq=False)
class LevelMap:
    """
    Immutable result of one generation. Consumed by the navigation layer and
    by renderers; never mutated after construction.
    """
    seed: int
    width: int
    height: int
    tile_size: int
    tiles: np.ndarray               # flat, row-major, read-only
    start: TileCoord
    exit: TileCoord
    floor: int = 1
    rooms: Tuple[Rect, ...] = field(default_factory=tuple)

    def index(self, tx: int, ty: int) -> int:
        return ty * self.width + tx

    def in_bounds(self, tx: int, ty: int) -> bool:
        return 0 <= tx < self.width and 0 <= ty < self.height

    def tile_at(self, tx: int, ty: int) -> Tile:
        """Out-of-bounds coordinates read as wall."""
        if not self.in_bounds(tx, ty):
            return Tile.WALL
        return Tile(int(self.tiles[self.index(tx, ty)]))

    def as_grid(self) -> np.ndarray:
        """Read-only (height, width) view of the tile buffer."""
        return self.tiles.reshape(self.height, self.width)

    def same_layout(self, other: "LevelMap") -> bool:
        return (
            self.width == other.width
            and self.height == other.height
            and self.start == other.start
            and self.exit == other.exit
            and bool(np.array_equal(self.tiles, other.tiles))
        )

    @classmethod
    def from_rows(cls, rows: Sequence[str], start: TileCoord, exit: TileCoord,
                  tile_size: int = TILE_SIZE, seed: int = 0) -> "LevelMap":
        """Builds a map from '#'/'.' text rows. Handy for fixtures and debugging."""
        height = len(rows)
        width = len(rows[0]) if rows else 0
        tiles = np.full(width * height, Tile.WALL, dtype=np.uint8)
        for y, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"row {y} has length {len(row)}, expected {width}")
            for x, char in enumerate(row):
                if char != "#":
                    tiles[y * width + x] = Tile.FLOOR
        tiles.setflags(write=False)
        return cls(seed=seed, width=width, height=height, tile_size=tile_size,
                   tiles=tiles, start=start, exit=exit)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def grid_size_for_viewport(viewport_width: float, viewport_height: float) -> Tuple[int, int]:
    tiles_wide = math.ceil(viewport_width / TILE_SIZE)
    tiles_high = math.ceil(viewport_height / TILE_SIZE)
    width = int(_clamp(tiles_wide + GRID_W_PAD, GRID_W_MIN, GRID_W_MAX))
    height = int(_clamp(tiles_high + GRID_H_PAD, GRID_H_MIN, GRID_H_MAX))
    return width, height


def mix_seed(floor: int, base_seed: int) -> int:
    return (base_seed ^ (floor * FLOOR_SEED_MIX)) & MASK_32


class BSPLevelGenerator:
    """
    Binary space partitioning over a flat leaf list.
    Splits the interior into leaves, carves one room per large-enough leaf,
    then stitches rooms together with 3-wide L corridors.
    """
    def __init__(self, width: int, height: int, seed: int, floor: int = 1):
        self.width = width
        self.height = height
        self.seed = seed & MASK_32
        self.floor = floor
        self.rng: XorShift32 = make_rng(self.seed)
        self.tiles = np.full(width * height, Tile.WALL, dtype=np.uint8)
        self.grid = self.tiles.reshape(height, width)
        self.rooms: List[Rect] = []

        smaller = min(width, height)
        self.min_leaf = int(_clamp(math.floor(smaller * 0.18), 10, 16))
        self.max_leaf = int(_clamp(math.floor(smaller * 0.30), 18, 26))

    # --------------------------------------------------------
    # Partitioning
    # --------------------------------------------------------

    def _split_leaves(self) -> List[Rect]:
        leaves = [Rect(BORDER, BORDER, self.width - BORDER * 2, self.height - BORDER * 2)]

        for _ in range(SPLIT_ATTEMPTS):
            candidates = [r for r in leaves if r.w > self.max_leaf or r.h > self.max_leaf]
            if not candidates:
                break
            leaf = candidates[int(self.rng() * len(candidates))]
            leaves.remove(leaf)

            if leaf.w < leaf.h:
                split_horizontal = True
            elif leaf.h < leaf.w:
                split_horizontal = False
            else:
                split_horizontal = self.rng() < 0.5

            if split_horizontal:
                split = self._split_point(leaf.h)
                leaves.append(Rect(leaf.x, leaf.y, leaf.w, split))
                leaves.append(Rect(leaf.x, leaf.y + split, leaf.w, leaf.h - split))
            else:
                split = self._split_point(leaf.w)
                leaves.append(Rect(leaf.x, leaf.y, split, leaf.h))
                leaves.append(Rect(leaf.x + split, leaf.y, leaf.w - split, leaf.h))

        return leaves

    def _split_point(self, length: int) -> int:
        fraction = 0.35 + self.rng() * 0.30
        return math.floor(_clamp(length * fraction, self.min_leaf, length - self.min_leaf))

    # --------------------------------------------------------
    # Carving
    # --------------------------------------------------------

    def _carve_rect(self, rect: Rect) -> None:
        x0 = max(0, rect.x)
        y0 = max(0, rect.y)
        x1 = min(self.width, rect.x + rect.w)
        y1 = min(self.height, rect.y + rect.h)
        if x0 < x1 and y0 < y1:
            self.grid[y0:y1, x0:x1] = Tile.FLOOR

    def _set(self, x: int, y: int, value: Tile) -> None:
        if 0 <= x < self.width and 0 <= y < self.height:
            self.grid[y, x] = value

    def _carve_rooms(self, leaves: List[Rect]) -> None:
        for leaf in leaves:
            if leaf.w < self.min_leaf or leaf.h < self.min_leaf:
                continue
            room_w = math.floor(_clamp(leaf.w * (0.55 + self.rng() * 0.25), MIN_ROOM_SIDE, leaf.w - 2))
            room_h = math.floor(_clamp(leaf.h * (0.55 + self.rng() * 0.25), MIN_ROOM_SIDE, leaf.h - 2))
            room_x = leaf.x + 1 + math.floor(self.rng() * max(1, leaf.w - room_w - 1))
            room_y = leaf.y + 1 + math.floor(self.rng() * max(1, leaf.h - room_h - 1))
            room = Rect(room_x, room_y, room_w, room_h)
            self.rooms.append(room)
            self._carve_rect(room)

            # 0-2 single-tile pillars for cover variety
            pillars = math.floor(self.rng() * 3)
            for _ in range(pillars):
                px = room.x + 2 + math.floor(self.rng() * max(1, room.w - 4))
                py = room.y + 2 + math.floor(self.rng() * max(1, room.h - 4))
                self._set(px, py, Tile.WALL)

    def _carve_corridor(self, x1: int, y1: int, x2: int, y2: int) -> None:
        """Axis-aligned run, widened by one tile on each side across the direction of travel."""
        dx = (x2 > x1) - (x2 < x1)
        dy = (y2 > y1) - (y2 < y1)
        x, y = x1, y1
        self._set(x, y, Tile.FLOOR)
        while x != x2 or y != y2:
            if x != x2:
                x += dx
            if y != y2:
                y += dy
            self._set(x, y, Tile.FLOOR)
            if dx != 0:
                self._set(x, y - 1, Tile.FLOOR)
                self._set(x, y + 1, Tile.FLOOR)
            else:
                self._set(x - 1, y, Tile.FLOOR)
                self._set(x + 1, y, Tile.FLOOR)

    def _connect_rooms(self) -> None:
        # Cheap diagonal ordering, not a spanning tree.
        centers = sorted((room.center for room in self.rooms), key=lambda c: c[0] + c[1])
        for (ax, ay), (bx, by) in zip(centers, centers[1:]):
            if self.rng() < 0.5:
                self._carve_corridor(ax, ay, bx, ay)
                self._carve_corridor(bx, ay, bx, by)
            else:
                self._carve_corridor(ax, ay, ax, by)
                self._carve_corridor(ax, by, bx, by)

    # --------------------------------------------------------
    # Markers
    # --------------------------------------------------------

    def _random_room_center(self) -> TileCoord:
        return self.rooms[int(self.rng() * len(self.rooms))].center

    def _place_start_exit(self) -> Tuple[TileCoord, TileCoord]:
        if not self.rooms:
            center = (self.width // 2, self.height // 2)
            return center, center

        start = self._random_room_center()
        exit_ = self._random_room_center()
        threshold = (self.width + self.height) * EXIT_MIN_SEPARATION
        for _ in range(EXIT_SAMPLES):
            candidate = self._random_room_center()
            distance = abs(candidate[0] - start[0]) + abs(candidate[1] - start[1])
            if distance > threshold:
                exit_ = candidate
                break
        return start, exit_

    def generate(self) -> LevelMap:
        """Runs partitioning, carving and stitching, then freezes the result."""
        leaves = self._split_leaves()
        self._carve_rooms(leaves)
        self._connect_rooms()
        start, exit_ = self._place_start_exit()
        self._carve_rect(Rect(exit_[0] - 1, exit_[1] - 1, 3, 3))
        if not self.rooms:
            self._carve_rect(Rect(start[0] - 1, start[1] - 1, 3, 3))

        self.grid.setflags(write=False)
        self.tiles.setflags(write=False)
        return LevelMap(
            seed=self.seed,
            width=self.width,
            height=self.height,
            tile_size=TILE_SIZE,
            tiles=self.tiles,
            start=start,
            exit=exit_,
            floor=self.floor,
            rooms=tuple(self.rooms),
        )


def generate_level(floor: int, base_seed: int, viewport_width: float, viewport_height: float) -> LevelMap:
    """Entry point: sizes the grid from the viewport and mixes the floor into the seed."""
    width, height = grid_size_for_viewport(viewport_width, viewport_height)
    seed = mix_seed(floor, base_seed)
    gen = BSPLevelGenerator(width, height, seed, floor=floor)
    return gen.generate()
