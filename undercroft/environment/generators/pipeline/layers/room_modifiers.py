"""Meta builders that reorder or reshape an existing room list."""

from __future__ import annotations

import logging
import math
from enum import Enum, auto
from typing import TYPE_CHECKING

from undercroft import config
from undercroft.environment.generators.common import (
    Symmetry,
    carve_circle,
    carve_room,
    count_blocked_orthogonal,
    paint,
)
from undercroft.environment.generators.pipeline.layer import MetaBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.util.coordinates import Rect
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class RoomSort(Enum):
    LEFTMOST = auto()
    RIGHTMOST = auto()
    TOPMOST = auto()
    BOTTOMMOST = auto()
    CENTRAL = auto()


class RoomSorter(MetaBuilder):
    """Reorders ``ctx.rooms``; the grid is untouched."""

    def __init__(self, sort_by: RoomSort) -> None:
        self.sort_by = sort_by

    @property
    def name(self) -> str:
        return f"RoomSorter({self.sort_by.name.lower()})"

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        map_center = (ctx.width // 2, ctx.height // 2)

        def distance_to_center(room: Rect) -> float:
            cx, cy = room.center()
            return math.hypot(cx - map_center[0], cy - map_center[1])

        match self.sort_by:
            case RoomSort.LEFTMOST:
                rooms.sort(key=lambda r: r.x1)
            case RoomSort.RIGHTMOST:
                rooms.sort(key=lambda r: r.x2, reverse=True)
            case RoomSort.TOPMOST:
                rooms.sort(key=lambda r: r.y1)
            case RoomSort.BOTTOMMOST:
                rooms.sort(key=lambda r: r.y2, reverse=True)
            case RoomSort.CENTRAL:
                rooms.sort(key=distance_to_center)


class RoomExploder(MetaBuilder):
    """Roughens rooms by sending short random walks out from their centers."""

    def __init__(self, steps: int = config.ROOM_EXPLODER_STEPS) -> None:
        self.steps = steps

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        for room in ctx.require_rooms(self.name):
            start = room.center()
            n_diggers = rng.randint(1, 20) - 5
            if n_diggers < 1:
                continue
            for _ in range(n_diggers):
                x, y = start
                for _ in range(self.steps):
                    paint(ctx.tiles, Symmetry.NONE, 1, x, y)
                    match rng.randint(1, 4):
                        case 1:
                            x = max(x - 1, 2)
                        case 2:
                            x = min(x + 1, ctx.width - 2)
                        case 3:
                            y = max(y - 1, 2)
                        case _:
                            y = min(y + 1, ctx.height - 2)
            ctx.take_snapshot()


class RoomCornerRounder(MetaBuilder):
    """Walls in room corners that are boxed in on exactly two sides."""

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        for room in ctx.require_rooms(self.name):
            corners = (
                (room.x1 + 1, room.y1 + 1),
                (room.x2 - 1, room.y1 + 1),
                (room.x1 + 1, room.y2 - 1),
                (room.x2 - 1, room.y2 - 1),
            )
            for x, y in corners:
                if count_blocked_orthogonal(ctx.tiles, x, y) == 2:
                    ctx.tiles[x, y] = TileTypeID.WALL
            ctx.take_snapshot()


class RoomDrawer(MetaBuilder):
    """Redraws every room as a rectangle or as the circle inscribed in it.

    Each room interior is walled before it is redrawn, so this belongs
    before any corridor router. Room centers are always open either way.
    """

    def __init__(self, circle_chance: float = 0.25) -> None:
        self.circle_chance = circle_chance

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        circles = 0
        for room in rooms:
            ctx.tiles[room.x1 + 1 : room.x2, room.y1 + 1 : room.y2] = TileTypeID.WALL
            if rng.random() < self.circle_chance:
                carve_circle(ctx.tiles, room)
                circles += 1
            else:
                carve_room(ctx.tiles, room)
            ctx.take_snapshot()
        logger.debug(f"Drew {circles} of {len(rooms)} rooms as circles")
