"""Grid helpers shared by the builders.

All helpers operate on a (width, height) Fortran-ordered tile array indexed
``tiles[x, y]``. Helpers that carve corridors return the flat indices of the
tiles they opened, so routers can record corridors for later stages.
"""

from __future__ import annotations

from collections import deque
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np
import tcod.los
import tcod.path

from undercroft.environment.tile_types import TileTypeID, get_walkable_map

if TYPE_CHECKING:
    from undercroft.types import TileIndex, WorldTilePos
    from undercroft.util.coordinates import Rect

# Distance value for tiles a flood from the start never reached.
UNREACHABLE = int(np.iinfo(np.int32).max)

# Orthogonal neighbor offsets, clockwise from north.
CARDINAL_OFFSETS: tuple[tuple[int, int], ...] = ((0, -1), (1, 0), (0, 1), (-1, 0))


def flat_index(tiles: np.ndarray, x: int, y: int) -> TileIndex:
    return y * tiles.shape[0] + x


# =============================================================================
# CARVING
# =============================================================================


def carve_room(tiles: np.ndarray, room: Rect) -> None:
    tiles[room.x1 + 1 : room.x2, room.y1 + 1 : room.y2] = TileTypeID.FLOOR


def carve_circle(tiles: np.ndarray, room: Rect) -> None:
    """Carve the disc inscribed in ``room``, clipped to its interior."""
    radius = min(room.width, room.height) / 2
    cx, cy = room.center()
    xs = np.arange(room.x1 + 1, room.x2)[:, None]
    ys = np.arange(room.y1 + 1, room.y2)[None, :]
    inside = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
    tiles[room.x1 + 1 : room.x2, room.y1 + 1 : room.y2][inside] = TileTypeID.FLOOR


def carve_h_tunnel(tiles: np.ndarray, x1: int, x2: int, y: int) -> list[TileIndex]:
    carved = []
    for x in range(min(x1, x2), max(x1, x2) + 1):
        if tiles[x, y] != TileTypeID.FLOOR:
            tiles[x, y] = TileTypeID.FLOOR
            carved.append(flat_index(tiles, x, y))
    return carved


def carve_v_tunnel(tiles: np.ndarray, y1: int, y2: int, x: int) -> list[TileIndex]:
    carved = []
    for y in range(min(y1, y2), max(y1, y2) + 1):
        if tiles[x, y] != TileTypeID.FLOOR:
            tiles[x, y] = TileTypeID.FLOOR
            carved.append(flat_index(tiles, x, y))
    return carved


def carve_dogleg(
    tiles: np.ndarray,
    start: WorldTilePos,
    end: WorldTilePos,
    horizontal_first: bool,
) -> list[TileIndex]:
    """Carve a two-segment L path between two points."""
    (x1, y1), (x2, y2) = start, end
    if horizontal_first:
        return carve_h_tunnel(tiles, x1, x2, y1) + carve_v_tunnel(tiles, y1, y2, x2)
    return carve_v_tunnel(tiles, y1, y2, x1) + carve_h_tunnel(tiles, x1, x2, y2)


def draw_corridor(
    tiles: np.ndarray, start: WorldTilePos, end: WorldTilePos
) -> list[TileIndex]:
    """Walk from start to end one step at a time, closing x before y."""
    x, y = start
    end_x, end_y = end
    corridor: list[TileIndex] = []
    while (x, y) != (end_x, end_y):
        if x < end_x:
            x += 1
        elif x > end_x:
            x -= 1
        elif y < end_y:
            y += 1
        else:
            y -= 1
        if tiles[x, y] != TileTypeID.FLOOR:
            corridor.append(flat_index(tiles, x, y))
            tiles[x, y] = TileTypeID.FLOOR
    return corridor


def draw_line_corridor(
    tiles: np.ndarray, start: WorldTilePos, end: WorldTilePos
) -> list[TileIndex]:
    """Carve a rasterized straight line between two points.

    Diagonal steps also open the elbow tile so the line stays walkable with
    orthogonal movement.
    """
    corridor: list[TileIndex] = []
    prev_y = start[1]
    for x, y in tcod.los.bresenham(start, end).tolist():
        cells = [(x, prev_y), (x, y)] if y != prev_y else [(x, y)]
        for cx, cy in cells:
            if tiles[cx, cy] != TileTypeID.FLOOR:
                corridor.append(flat_index(tiles, cx, cy))
                tiles[cx, cy] = TileTypeID.FLOOR
        prev_y = y
    return corridor


# =============================================================================
# SYMMETRIC BRUSH PAINTING
# =============================================================================


class Symmetry(Enum):
    NONE = auto()
    HORIZONTAL = auto()
    VERTICAL = auto()
    BOTH = auto()


def _apply_paint(tiles: np.ndarray, brush_size: int, x: int, y: int) -> None:
    width, height = tiles.shape
    if brush_size == 1:
        if 0 < x < width - 1 and 0 < y < height - 1:
            tiles[x, y] = TileTypeID.FLOOR
        return

    half = brush_size // 2
    x_lo, x_hi = max(x - half, 2), min(x + half, width - 1)
    y_lo, y_hi = max(y - half, 2), min(y + half, height - 1)
    if x_lo < x_hi and y_lo < y_hi:
        tiles[x_lo:x_hi, y_lo:y_hi] = TileTypeID.FLOOR


def paint(
    tiles: np.ndarray, symmetry: Symmetry, brush_size: int, x: int, y: int
) -> None:
    """Stamp a brush of floor at (x, y), mirrored about the map center."""
    width, height = tiles.shape
    center_x, center_y = width // 2, height // 2
    match symmetry:
        case Symmetry.NONE:
            _apply_paint(tiles, brush_size, x, y)
        case Symmetry.HORIZONTAL:
            dist_x = abs(center_x - x)
            _apply_paint(tiles, brush_size, center_x + dist_x, y)
            _apply_paint(tiles, brush_size, center_x - dist_x, y)
        case Symmetry.VERTICAL:
            dist_y = abs(center_y - y)
            _apply_paint(tiles, brush_size, x, center_y + dist_y)
            _apply_paint(tiles, brush_size, x, center_y - dist_y)
        case Symmetry.BOTH:
            dist_x = abs(center_x - x)
            dist_y = abs(center_y - y)
            _apply_paint(tiles, brush_size, center_x + dist_x, y)
            _apply_paint(tiles, brush_size, center_x - dist_x, y)
            _apply_paint(tiles, brush_size, x, center_y + dist_y)
            _apply_paint(tiles, brush_size, x, center_y - dist_y)


def growth_capacity(width: int, height: int) -> int:
    """Number of tiles a walker confined to ``2 .. size - 2`` can stand on.

    Growth builders only promise floor targets up to this count; a brush may
    open more, but a walker can always find a wall while fewer are floor.
    """
    return max(width - 3, 0) * max(height - 3, 0)


# =============================================================================
# NEIGHBORHOODS
# =============================================================================


def count_blocked_neighbors(tiles: np.ndarray) -> np.ndarray:
    """Count non-walkable tiles in each interior tile's 8-neighborhood.

    Border tiles are reported as 0 and are never meant to be updated.
    """
    blocked = (~get_walkable_map(tiles)).astype(np.int8)
    counts = np.zeros(tiles.shape, dtype=np.int8, order="F")
    inner = counts[1:-1, 1:-1]
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            inner += blocked[
                1 + dx : blocked.shape[0] - 1 + dx, 1 + dy : blocked.shape[1] - 1 + dy
            ]
    return counts


def count_blocked_orthogonal(tiles: np.ndarray, x: int, y: int) -> int:
    width, height = tiles.shape
    walkable = get_walkable_map(tiles)
    count = 0
    for dx, dy in CARDINAL_OFFSETS:
        nx, ny = x + dx, y + dy
        if not (0 <= nx < width and 0 <= ny < height) or not walkable[nx, ny]:
            count += 1
    return count


# =============================================================================
# REACHABILITY
# =============================================================================


def distance_map(tiles: np.ndarray, start: WorldTilePos) -> np.ndarray:
    """Step distance from ``start`` to every tile over walkable tiles.

    Movement is orthogonal only. Unreached tiles hold UNREACHABLE.
    """
    cost = get_walkable_map(tiles).astype(np.int8)
    dist = tcod.path.maxarray(tiles.shape, dtype=np.int32)
    dist[start] = 0
    return tcod.path.dijkstra2d(dist, cost, 1, None, out=dist)


def farthest_reachable(dist: np.ndarray) -> tuple[WorldTilePos, int]:
    """The reachable tile with the greatest distance, lowest index on ties."""
    reachable = dist != UNREACHABLE
    best = int(dist[reachable].max())
    flat = np.flatnonzero((dist == best).ravel(order="F"))
    index = int(flat[0])
    width = dist.shape[0]
    return (index % width, index // width), best


def nearest_walkable(
    tiles: np.ndarray,
    target: WorldTilePos,
    exclude: WorldTilePos | None = None,
) -> WorldTilePos | None:
    """Walkable tile nearest ``target`` by squared distance.

    Ties go to the lowest flat index. Returns None if no tile qualifies.
    """
    walkable = get_walkable_map(tiles).copy()
    if exclude is not None:
        walkable[exclude] = False
    if not walkable.any():
        return None
    xs, ys = np.indices(tiles.shape)
    d2 = (xs - target[0]) ** 2 + (ys - target[1]) ** 2
    d2 = np.where(walkable, d2, np.iinfo(np.int64).max)
    index = int(np.argmin(d2.ravel(order="F")))
    width = tiles.shape[0]
    return (index % width, index // width)


def connected_regions(mask: np.ndarray) -> list[list[TileIndex]]:
    """Group True tiles of ``mask`` into 4-connected regions.

    Regions are ordered by their lowest flat index and list their tiles in
    discovery order.
    """
    width, height = mask.shape
    seen = np.zeros(mask.shape, dtype=bool)
    regions: list[list[TileIndex]] = []
    for index in np.flatnonzero(mask.ravel(order="F")).tolist():
        x, y = index % width, index // width
        if seen[x, y]:
            continue
        seen[x, y] = True
        region: list[TileIndex] = []
        queue: deque[tuple[int, int]] = deque([(x, y)])
        while queue:
            cx, cy = queue.popleft()
            region.append(cy * width + cx)
            for dx, dy in CARDINAL_OFFSETS:
                nx, ny = cx + dx, cy + dy
                if 0 <= nx < width and 0 <= ny < height:
                    if mask[nx, ny] and not seen[nx, ny]:
                        seen[nx, ny] = True
                        queue.append((nx, ny))
        regions.append(region)
    return regions
