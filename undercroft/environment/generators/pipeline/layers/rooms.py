"""Room-producing initial builders.

Rooms are recorded as Rects whose interiors are carved to floor. Room lists
produced here never contain two intersecting rectangles.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from undercroft import config
from undercroft.environment.generators.common import carve_room, draw_corridor
from undercroft.environment.generators.pipeline.layer import InitialBuilder
from undercroft.environment.tile_types import TileTypeID
from undercroft.util.coordinates import Rect

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class SimpleMapBuilder(InitialBuilder):
    """Scatters randomly sized rooms, discarding any that would overlap."""

    def __init__(
        self,
        max_rooms: int = config.MAX_NUM_ROOMS,
        min_room_size: int = config.MIN_ROOM_SIZE,
        max_room_size: int = config.MAX_ROOM_SIZE,
    ) -> None:
        self.max_rooms = max_rooms
        self.min_room_size = min_room_size
        self.max_room_size = max_room_size

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        rooms: list[Rect] = []

        for _ in range(self.max_rooms):
            w = rng.randint(self.min_room_size, self.max_room_size)
            h = rng.randint(self.min_room_size, self.max_room_size)
            x = rng.randint(1, ctx.width - w - 1)
            y = rng.randint(1, ctx.height - h - 1)
            new_room = Rect(x, y, w, h)

            if any(new_room.intersects(other) for other in rooms):
                continue

            carve_room(ctx.tiles, new_room)
            rooms.append(new_room)
            ctx.take_snapshot()

        logger.debug(f"Placed {len(rooms)} of {self.max_rooms} candidate rooms")
        ctx.rooms = rooms


def split_partition(
    rng: RNG, area: Rect, split_vertical: bool, min_size: int, gap: int
) -> tuple[Rect, Rect] | None:
    """Bisect ``area`` along one axis at a random point.

    Each half keeps at least ``min_size`` tiles along the split axis, and
    ``gap`` tiles separate the halves. Returns None if the area is too small.
    """
    if split_vertical:
        lo, hi = area.x1 + min_size, area.x2 - min_size - gap
        if lo > hi:
            return None
        cut = rng.randint(lo, hi)
        return (
            Rect.from_bounds(area.x1, area.y1, cut, area.y2),
            Rect.from_bounds(cut + gap, area.y1, area.x2, area.y2),
        )
    lo, hi = area.y1 + min_size, area.y2 - min_size - gap
    if lo > hi:
        return None
    cut = rng.randint(lo, hi)
    return (
        Rect.from_bounds(area.x1, area.y1, area.x2, cut),
        Rect.from_bounds(area.x1, cut + gap, area.x2, area.y2),
    )


def partition(
    rng: RNG, area: Rect, split_vertical: bool, min_size: int, gap: int
) -> list[Rect]:
    """Recursively bisect ``area``, alternating the split axis per level.

    When the preferred axis can no longer be split the other one is tried, so
    long thin areas still subdivide. Leaves come back in tree order.
    """
    halves = split_partition(rng, area, split_vertical, min_size, gap)
    if halves is None:
        halves = split_partition(rng, area, not split_vertical, min_size, gap)
        if halves is None:
            return [area]
        split_vertical = not split_vertical

    first, second = halves
    return partition(rng, first, not split_vertical, min_size, gap) + partition(
        rng, second, not split_vertical, min_size, gap
    )


class BspDungeonBuilder(InitialBuilder):
    """Binary space partition dungeon: one isolated room per leaf.

    Rooms sit strictly inside their leaf, so rooms from neighbouring leaves
    never share bounds. The room list keeps partition-tree order, which the
    partition-order corridor router relies on.
    """

    def __init__(
        self,
        min_room_size: int = config.MIN_ROOM_SIZE,
        max_room_size: int = config.MAX_ROOM_SIZE,
    ) -> None:
        if min_room_size > max_room_size:
            raise ValueError(
                f"min_room_size {min_room_size} exceeds max_room_size {max_room_size}"
            )
        self.min_room_size = min_room_size
        self.max_room_size = max_room_size

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        bounds = Rect.from_bounds(1, 1, ctx.width - 2, ctx.height - 2)
        # A leaf must fit a minimum room plus one tile of margin on each side
        leaves = partition(
            rng,
            bounds,
            split_vertical=rng.random() < 0.5,
            min_size=self.min_room_size + 2,
            gap=0,
        )

        rooms: list[Rect] = []
        for leaf in leaves:
            room = self._room_in(rng, leaf)
            if room is None:
                continue
            carve_room(ctx.tiles, room)
            rooms.append(room)
            ctx.take_snapshot()

        logger.debug(f"BSP produced {len(leaves)} leaves and {len(rooms)} rooms")
        ctx.rooms = rooms

    def _room_in(self, rng: RNG, leaf: Rect) -> Rect | None:
        max_w = min(self.max_room_size, leaf.width - 2)
        max_h = min(self.max_room_size, leaf.height - 2)
        if max_w < self.min_room_size or max_h < self.min_room_size:
            return None
        w = rng.randint(self.min_room_size, max_w)
        h = rng.randint(self.min_room_size, max_h)
        x = rng.randint(leaf.x1 + 1, leaf.x2 - 1 - w)
        y = rng.randint(leaf.y1 + 1, leaf.y2 - 1 - h)
        return Rect(x, y, w, h)


class BspInteriorBuilder(InitialBuilder):
    """Partitions the whole map into wall-separated chambers.

    Every partition is carved to floor, leaving a one-tile wall between
    neighbours, then consecutive partitions are joined by corridors punched
    through those walls. The chambers are not rooms: ``ctx.rooms`` stays None
    so room-dependent stages fail fast.
    """

    def __init__(self, min_partition_size: int = config.INTERIOR_MIN_PARTITION_SIZE):
        self.min_partition_size = min_partition_size

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        bounds = Rect.from_bounds(1, 1, ctx.width - 1, ctx.height - 1)
        chambers = partition(
            rng,
            bounds,
            split_vertical=rng.random() < 0.5,
            min_size=self.min_partition_size,
            gap=1,
        )

        for chamber in chambers:
            ctx.tiles[chamber.x1 : chamber.x2, chamber.y1 : chamber.y2] = (
                TileTypeID.FLOOR
            )
            ctx.take_snapshot()

        corridors = []
        for current, following in zip(chambers, chambers[1:], strict=False):
            start = (
                rng.randint(current.x1, current.x2 - 1),
                rng.randint(current.y1, current.y2 - 1),
            )
            end = (
                rng.randint(following.x1, following.x2 - 1),
                rng.randint(following.y1, following.y2 - 1),
            )
            corridors.append(draw_corridor(ctx.tiles, start, end))
        ctx.take_snapshot()

        logger.debug(f"Interior split into {len(chambers)} chambers")
        ctx.corridors = corridors
