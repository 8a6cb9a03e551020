"""Start and exit selection, and reachability culling."""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np

from undercroft.environment.generators.common import (
    UNREACHABLE,
    distance_map,
    farthest_reachable,
    nearest_walkable,
)
from undercroft.environment.generators.pipeline.context import (
    LevelRejectedError,
)
from undercroft.environment.generators.pipeline.layer import MetaBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import WorldTilePos
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class XHint(Enum):
    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()


class YHint(Enum):
    TOP = auto()
    CENTER = auto()
    BOTTOM = auto()


def hint_position(ctx: BuildContext, x_hint: XHint, y_hint: YHint) -> WorldTilePos:
    match x_hint:
        case XHint.LEFT:
            x = 1
        case XHint.CENTER:
            x = ctx.width // 2
        case XHint.RIGHT:
            x = ctx.width - 2
    match y_hint:
        case YHint.TOP:
            y = 1
        case YHint.CENTER:
            y = ctx.height // 2
        case YHint.BOTTOM:
            y = ctx.height - 2
    return (x, y)


class AreaStartingPosition(MetaBuilder):
    """Starts the player on the walkable tile nearest a hinted map area."""

    def __init__(self, x_hint: XHint, y_hint: YHint) -> None:
        self.x_hint = x_hint
        self.y_hint = y_hint

    @property
    def name(self) -> str:
        return f"AreaStart({self.x_hint.name.lower()}, {self.y_hint.name.lower()})"

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        target = hint_position(ctx, self.x_hint, self.y_hint)
        start = nearest_walkable(ctx.tiles, target, exclude=ctx.exit_position)
        if start is None:
            raise LevelRejectedError(
                f"{self.name} found no walkable tile to start on"
            )
        ctx.set_start(start)


class AreaEndingPosition(MetaBuilder):
    """Places the exit on the walkable tile nearest a hinted map area."""

    def __init__(self, x_hint: XHint, y_hint: YHint) -> None:
        self.x_hint = x_hint
        self.y_hint = y_hint

    @property
    def name(self) -> str:
        return f"AreaExit({self.x_hint.name.lower()}, {self.y_hint.name.lower()})"

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        target = hint_position(ctx, self.x_hint, self.y_hint)
        exit_pos = nearest_walkable(ctx.tiles, target, exclude=ctx.starting_position)
        if exit_pos is None:
            raise LevelRejectedError(
                f"{self.name} found no walkable tile for the exit"
            )
        ctx.set_exit(exit_pos)
        ctx.take_snapshot()


class RoomBasedStartingPosition(MetaBuilder):
    """Starts the player in the center of the first room."""

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        if not rooms:
            raise LevelRejectedError(f"{self.name} needs at least one room")
        ctx.set_start(rooms[0].center())


class RoomBasedStairs(MetaBuilder):
    """Places the exit in the center of the last usable room.

    A room is usable when its center is walkable and is not the start.
    """

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        for room in reversed(rooms):
            center = room.center()
            if center != ctx.starting_position and ctx.is_walkable(*center):
                ctx.set_exit(center)
                ctx.take_snapshot()
                return
        raise LevelRejectedError(
            f"{self.name} found no room whose center can hold the exit"
        )


class CullUnreachable(MetaBuilder):
    """Walls off every walkable tile that cannot be reached from the start.

    Spawn entries left on walled tiles are pruned, and an exit that was culled
    is forgotten so a later exit selector can place a fresh one.
    """

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        start = ctx.require_start(self.name)
        if not ctx.is_walkable(*start):
            raise LevelRejectedError(f"{self.name}: start {start} is blocked")

        dist = distance_map(ctx.tiles, start)
        unreachable = ctx.walkable_mask() & (dist == UNREACHABLE)
        culled = int(np.count_nonzero(unreachable))
        ctx.tiles[unreachable] = TileTypeID.WALL

        if ctx.exit_position is not None and unreachable[ctx.exit_position]:
            ctx.exit_position = None
        ctx.prune_spawns()

        logger.debug(f"Culled {culled} unreachable tiles")
        ctx.take_snapshot()


class DistantExit(MetaBuilder):
    """Places the exit on the reachable tile farthest from the start."""

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        start = ctx.require_start(self.name)
        dist = distance_map(ctx.tiles, start)
        exit_pos, steps = farthest_reachable(dist)
        if steps == 0:
            raise LevelRejectedError(
                f"{self.name}: nothing is reachable from the start at {start}"
            )
        ctx.set_exit(exit_pos)
        logger.debug(f"Exit placed {steps} steps from the start")
        ctx.take_snapshot()
