"""Corridor routers connecting the rooms of a room list.

Every router records the tiles it opened, one list per corridor, in
``ctx.corridors`` for corridor spawners and door placement.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from undercroft.environment.generators.common import (
    carve_dogleg,
    draw_corridor,
    draw_line_corridor,
)
from undercroft.environment.generators.pipeline.layer import MetaBuilder

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np

    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import TileIndex, WorldTilePos
    from undercroft.util.coordinates import Rect
    from undercroft.util.rng import RNG


class DoglegCorridors(MetaBuilder):
    """Joins each room to the next one in list order with an L-shaped path.

    Whether the horizontal or the vertical leg comes first is rolled per pair.
    """

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        corridors: list[list[TileIndex]] = []
        for prev_room, room in zip(rooms, rooms[1:], strict=False):
            horizontal_first = rng.randint(1, 2) == 1
            corridors.append(
                carve_dogleg(
                    ctx.tiles, prev_room.center(), room.center(), horizontal_first
                )
            )
            ctx.take_snapshot()
        ctx.corridors = corridors


class _NearestNeighborRouter(MetaBuilder):
    """Joins every room to its nearest room not yet connected."""

    carve: Callable[[np.ndarray, WorldTilePos, WorldTilePos], list[TileIndex]]

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        connected: set[int] = set()
        corridors: list[list[TileIndex]] = []

        for i, room in enumerate(rooms):
            center = room.center()
            candidates = [
                (math.dist(center, other.center()), j)
                for j, other in enumerate(rooms)
                if j != i and j not in connected
            ]
            if candidates:
                _, nearest = min(candidates)
                corridors.append(
                    self.carve(ctx.tiles, center, rooms[nearest].center())
                )
                ctx.take_snapshot()
            connected.add(i)

        ctx.corridors = corridors


class NearestCorridors(_NearestNeighborRouter):
    """Nearest-neighbour routing with stepwise dogleg corridors."""

    carve = staticmethod(draw_corridor)


class StraightLineCorridors(_NearestNeighborRouter):
    """Nearest-neighbour routing with rasterized straight corridors."""

    carve = staticmethod(draw_line_corridor)


class BspCorridors(MetaBuilder):
    """Joins rooms in partition-tree order through random interior points."""

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        corridors: list[list[TileIndex]] = []
        for prev_room, room in zip(rooms, rooms[1:], strict=False):
            corridors.append(
                draw_corridor(
                    ctx.tiles,
                    _random_interior_point(rng, prev_room),
                    _random_interior_point(rng, room),
                )
            )
            ctx.take_snapshot()
        ctx.corridors = corridors


def _random_interior_point(rng: RNG, room: Rect) -> WorldTilePos:
    return (
        rng.randint(room.x1 + 1, room.x2 - 1),
        rng.randint(room.y1 + 1, room.y2 - 1),
    )
