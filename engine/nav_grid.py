"""
Raidfloor — engine/nav_grid.py
Navigation Grid: walkability, line of sight, A* and cover extraction.
=====================================================================
Version:     0.1  (Phase 1 — level core)
Stack:       Python 3.12 | NumPy | tcod.path
Status:      Production-ready.

Architecture notes
------------------
- Read-only view over one LevelMap. Every query is a pure function of the
  map; the only cached state is the cover-point tuple.
- Out-of-bounds reads as wall everywhere. Bounds are checked before every
  index into the flat buffer.
- A* tie-break: minimal f-score, then earliest insertion into the open set.
  The heap is keyed (f, open_seq) with lazy deletion; an open node whose
  g-score improves keeps its open_seq, which reproduces a linear scan of an
  insertion-ordered open list exactly.
- Line of sight is the integer Bresenham walk. A->B and B->A can differ by a
  cell at the endpoints; this is inherent to the algorithm.

Design Variables
----------------
  LOS_MAX_STEPS      4000   — hard cap on the Bresenham walk
"""

from __future__ import annotations

import heapq
import math
from typing import Dict, List, Optional, Tuple

import numpy as np
import tcod.path

from world.generator import LevelMap, Tile

LOS_MAX_STEPS: int = 4000
UNREACHABLE: int = int(np.iinfo(np.int32).max)

TileCoord = Tuple[int, int]
Point = Tuple[float, float]

# 4-connected, unit cost. Centre cell is the origin.
_CARDINAL_EDGES = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]], dtype=np.int32)


def manhattan(a: TileCoord, b: TileCoord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


class NavigationGrid:
    """
    Query layer over a LevelMap. Built once per level and shared read-only by
    every enemy's planning pass.
    """
    def __init__(self, level: LevelMap):
        self.level = level
        self.width = level.width
        self.height = level.height
        self.tile_size = level.tile_size
        self._tiles = level.tiles
        self._cover_points: Optional[Tuple[Point, ...]] = None

    # --------------------------------------------------------
    # Tile queries
    # --------------------------------------------------------

    def in_bounds(self, tx: int, ty: int) -> bool:
        return 0 <= tx < self.width and 0 <= ty < self.height

    def is_wall(self, tx: int, ty: int) -> bool:
        if not self.in_bounds(tx, ty):
            return True
        return self._tiles[ty * self.width + tx] == Tile.WALL

    def is_walkable(self, tx: int, ty: int) -> bool:
        if not self.in_bounds(tx, ty):
            return False
        return self._tiles[ty * self.width + tx] == Tile.FLOOR

    def to_world_center(self, tx: int, ty: int) -> Point:
        half = self.tile_size / 2
        return (tx * self.tile_size + half, ty * self.tile_size + half)

    def to_tile(self, x: float, y: float) -> TileCoord:
        return (math.floor(x / self.tile_size), math.floor(y / self.tile_size))

    def neighbors4(self, tx: int, ty: int) -> List[TileCoord]:
        """Up/down/left/right tiles, filtered to walkable. Order: +x, -x, +y, -y."""
        candidates = ((tx + 1, ty), (tx - 1, ty), (tx, ty + 1), (tx, ty - 1))
        return [c for c in candidates if self.is_walkable(*c)]

    # --------------------------------------------------------
    # Line of sight
    # --------------------------------------------------------

    def line_of_sight(self, a: TileCoord, b: TileCoord) -> bool:
        """Bresenham walk from a to b. False on the first wall or out-of-bounds cell."""
        x, y = a
        x1, y1 = b
        dx = abs(x1 - x)
        dy = abs(y1 - y)
        sx = 1 if x < x1 else -1
        sy = 1 if y < y1 else -1
        err = dx - dy

        for _ in range(LOS_MAX_STEPS):
            if self.is_wall(x, y):
                return False
            if x == x1 and y == y1:
                return True
            e2 = 2 * err
            if e2 > -dy:
                err -= dy
                x += sx
            if e2 < dx:
                err += dx
                y += sy
        return False

    def line_of_sight_world(self, a: Point, b: Point) -> bool:
        return self.line_of_sight(self.to_tile(*a), self.to_tile(*b))

    # --------------------------------------------------------
    # Pathfinding
    # --------------------------------------------------------

    def find_path_tiles(self, source: TileCoord, goal: TileCoord) -> List[TileCoord]:
        """
        4-direction A* on a uniform-cost grid.
        Returns tiles from source-excluded to goal-included; [] if either
        endpoint is not walkable or the goal is unreachable.
        """
        if not self.is_walkable(*source) or not self.is_walkable(*goal):
            return []
        if source == goal:
            return [goal]

        g_score: Dict[TileCoord, int] = {source: 0}
        f_score: Dict[TileCoord, int] = {source: manhattan(source, goal)}
        came_from: Dict[TileCoord, TileCoord] = {}
        open_seq: Dict[TileCoord, int] = {source: 0}
        counter = 1
        heap: List[Tuple[int, int, TileCoord]] = [(f_score[source], 0, source)]

        while heap:
            f, seq, current = heapq.heappop(heap)
            if open_seq.get(current) != seq or f_score[current] != f:
                continue  # stale entry
            del open_seq[current]

            if current == goal:
                return self._reconstruct(came_from, source, goal)

            tentative = g_score[current] + 1
            for nb in self.neighbors4(*current):
                if tentative < g_score.get(nb, UNREACHABLE):
                    came_from[nb] = current
                    g_score[nb] = tentative
                    f_score[nb] = tentative + manhattan(nb, goal)
                    if nb not in open_seq:
                        open_seq[nb] = counter
                        counter += 1
                    heapq.heappush(heap, (f_score[nb], open_seq[nb], nb))

        return []

    def _reconstruct(self, came_from: Dict[TileCoord, TileCoord],
                     source: TileCoord, goal: TileCoord) -> List[TileCoord]:
        path: List[TileCoord] = []
        node = goal
        while node != source:
            path.append(node)
            node = came_from[node]
        path.reverse()
        return path

    def find_path(self, source: TileCoord, goal: TileCoord) -> List[Point]:
        """A* between tiles, returned as world-space tile centres."""
        return [self.to_world_center(*t) for t in self.find_path_tiles(source, goal)]

    def find_path_world(self, origin: Point, target: Point) -> List[Point]:
        return self.find_path(self.to_tile(*origin), self.to_tile(*target))

    # --------------------------------------------------------
    # Derived layers
    # --------------------------------------------------------

    @property
    def cover_points(self) -> Tuple[Point, ...]:
        if self._cover_points is None:
            self._cover_points = self.compute_cover_points()
        return self._cover_points

    def compute_cover_points(self) -> Tuple[Point, ...]:
        """Interior floor tiles with at least one orthogonal wall, in row-major order."""
        grid = self.level.as_grid()
        walkable = grid == Tile.FLOOR
        walls = np.pad(~walkable, 1, constant_values=True)
        adjacent = (
            walls[1:-1, 2:] | walls[1:-1, :-2] | walls[2:, 1:-1] | walls[:-2, 1:-1]
        )
        mask = walkable & adjacent
        mask[0, :] = False
        mask[-1, :] = False
        mask[:, 0] = False
        mask[:, -1] = False

        ys, xs = np.nonzero(mask)
        return tuple(self.to_world_center(x, y) for y, x in zip(ys.tolist(), xs.tolist()))

    def distance_field(self, tx: int, ty: int) -> np.ndarray:
        """
        4-connected step counts from (tx, ty) to every tile, indexed [y, x].
        Unreachable tiles (and every tile, if the origin is a wall) hold UNREACHABLE.
        """
        dist = np.full((self.height, self.width), UNREACHABLE, dtype=np.int32)
        if not self.is_walkable(tx, ty):
            return dist
        cost = (self.level.as_grid() == Tile.FLOOR).astype(np.int32)
        dist[ty, tx] = 0
        tcod.path.dijkstra2d(dist, cost, edge_map=_CARDINAL_EDGES, out=dist)
        return dist

    def is_reachable(self, a: TileCoord, b: TileCoord) -> bool:
        if not self.is_walkable(*a) or not self.is_walkable(*b):
            return False
        return bool(self.distance_field(*a)[b[1], b[0]] != UNREACHABLE)
