"""Spawn placement: rooms, regions, corridors and doors.

Spawn entries only name an archetype tag. What a tag turns into is decided
by the entity spawner that consumes the finished level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np

from undercroft import config
from undercroft.environment.generators.common import (
    UNREACHABLE,
    connected_regions,
    distance_map,
)
from undercroft.environment.generators.pipeline.context import (
    BuilderPreconditionError,
)
from undercroft.environment.generators.pipeline.layer import MetaBuilder
from undercroft.environment.tile_types import TileTypeID

from .voronoi import VoronoiDistance, nearest_seed_map, scatter_seeds

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import Depth, SpawnTag, TileIndex
    from undercroft.util.coordinates import Rect
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpawnTableEntry:
    tag: SpawnTag
    weight: float
    min_depth: Depth = 1
    max_depth: Depth = 100


class SpawnTable:
    """Weighted, depth-aware table of spawn tags."""

    def __init__(self, entries: list[SpawnTableEntry]) -> None:
        self.entries = entries

    def roll(self, rng: RNG, depth: Depth) -> SpawnTag | None:
        """Pick a tag for ``depth``, or None if nothing is eligible."""
        eligible = [e for e in self.entries if e.min_depth <= depth <= e.max_depth]
        if not eligible:
            return None
        return rng.choices(
            [e.tag for e in eligible], weights=[e.weight for e in eligible]
        )[0]


DEFAULT_SPAWN_TABLE = SpawnTable(
    [
        SpawnTableEntry("Goblin", 10),
        SpawnTableEntry("Orc", 6, min_depth=2),
        SpawnTableEntry("Health Potion", 7),
        SpawnTableEntry("Rations", 10),
        SpawnTableEntry("Magic Missile Scroll", 4),
        SpawnTableEntry("Confusion Scroll", 2, min_depth=2),
        SpawnTableEntry("Fireball Scroll", 2, min_depth=3),
        SpawnTableEntry("Magic Mapping Scroll", 2, min_depth=2),
        SpawnTableEntry("Dagger", 3),
        SpawnTableEntry("Shield", 3),
        SpawnTableEntry("Longsword", 1, min_depth=3),
        SpawnTableEntry("Tower Shield", 1, min_depth=3),
        SpawnTableEntry("Bear Trap", 5, min_depth=2),
    ]
)


def spawn_region(
    rng: RNG,
    ctx: BuildContext,
    area: list[TileIndex],
    table: SpawnTable,
    max_spawns: int = config.MAX_SPAWNS_PER_AREA,
) -> int:
    """Roll a spawn count for ``area`` and fill that many distinct tiles.

    Deeper levels roll more spawns. The start and exit tiles are never used.

    Returns:
        The number of entries added.
    """
    reserved = {
        ctx.index_of(*marker)
        for marker in (ctx.starting_position, ctx.exit_position)
        if marker is not None
    }
    candidates = [index for index in area if index not in reserved]

    count = min(
        len(candidates), rng.randint(1, max_spawns + 3) + (ctx.depth - 1) - 3
    )
    if count <= 0:
        return 0

    added = 0
    for index in rng.sample(candidates, count):
        tag = table.roll(rng, ctx.depth)
        if tag is not None:
            ctx.add_spawn(index, tag)
            added += 1
    return added


def _floor_indices(ctx: BuildContext, mask: np.ndarray) -> list[TileIndex]:
    return np.flatnonzero(
        (mask & (ctx.tiles == TileTypeID.FLOOR)).ravel(order="F")
    ).tolist()


def _starting_room(ctx: BuildContext, rooms: list[Rect]) -> Rect | None:
    if ctx.starting_position is None:
        return rooms[0] if rooms else None
    x, y = ctx.starting_position
    for room in rooms:
        if room.x1 < x < room.x2 and room.y1 < y < room.y2:
            return room
    return None


class RoomBasedSpawner(MetaBuilder):
    """One spawn roll per room, skipping the room the player starts in.

    Before a start is chosen the first room is treated as the starting room.
    A start outside every room interior skips nothing.
    """

    def __init__(self, table: SpawnTable = DEFAULT_SPAWN_TABLE) -> None:
        self.table = table

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        rooms = ctx.require_rooms(self.name)
        start_room = _starting_room(ctx, rooms)
        added = 0
        for room in rooms:
            if room is start_room:
                continue
            area = [
                ctx.index_of(x, y)
                for x, y in room.interior()
                if ctx.tiles[x, y] == TileTypeID.FLOOR
            ]
            added += spawn_region(rng, ctx, area, self.table)
        logger.debug(f"Room spawner added {added} entries")


class RegionMode(Enum):
    NEAREST_SEED = auto()  # Voronoi cells around seed points
    CONNECTED = auto()  # 4-connected components of floor


class RegionSpawner(MetaBuilder):
    """One spawn roll per region of reachable floor.

    With NEAREST_SEED, regions are the Voronoi cells of the seeds left by a
    Voronoi initial builder, or of freshly scattered seeds when there are
    none. Only tiles reachable from the start are used once a start exists.
    """

    def __init__(
        self,
        mode: RegionMode = RegionMode.NEAREST_SEED,
        n_seeds: int = config.REGION_SPAWN_SEED_COUNT,
        table: SpawnTable = DEFAULT_SPAWN_TABLE,
    ) -> None:
        self.mode = mode
        self.n_seeds = n_seeds
        self.table = table

    @property
    def name(self) -> str:
        return f"RegionSpawner({self.mode.name.lower()})"

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        usable = ctx.tiles == TileTypeID.FLOOR
        if ctx.starting_position is not None:
            usable &= distance_map(ctx.tiles, ctx.starting_position) != UNREACHABLE

        match self.mode:
            case RegionMode.NEAREST_SEED:
                seeds = ctx.region_seeds or scatter_seeds(
                    rng, ctx.width, ctx.height, self.n_seeds
                )
                owner = nearest_seed_map(
                    (ctx.width, ctx.height), seeds, VoronoiDistance.MANHATTAN
                )
                regions = [
                    _floor_indices(ctx, usable & (owner == seed_id))
                    for seed_id in range(len(seeds))
                ]
            case RegionMode.CONNECTED:
                regions = connected_regions(usable)

        added = 0
        for region in regions:
            if region:
                added += spawn_region(rng, ctx, region, self.table)
        logger.debug(
            f"Region spawner added {added} entries over {len(regions)} regions"
        )


class CorridorSpawner(MetaBuilder):
    """One spawn roll per recorded corridor."""

    def __init__(self, table: SpawnTable = DEFAULT_SPAWN_TABLE) -> None:
        self.table = table

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        if ctx.corridors is None:
            raise BuilderPreconditionError(
                f"{self.name} requires corridors, but no router recorded any"
            )
        floor = (ctx.tiles == TileTypeID.FLOOR).ravel(order="F")
        for corridor in ctx.corridors:
            area = [index for index in corridor if floor[index]]
            spawn_region(rng, ctx, area, self.table)


class DoorPlacement(MetaBuilder):
    """Adds "Door" spawn entries at corridor mouths.

    With recorded corridors a door goes on each corridor's first tile.
    Otherwise every floor tile squeezed between two opposite walls gets a
    door with a one-in-three chance. Tiles that already hold a spawn, and
    the start and exit, never get a door.
    """

    tag: SpawnTag = "Door"

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        occupied = ctx.spawned_indices()
        for marker in (ctx.starting_position, ctx.exit_position):
            if marker is not None:
                occupied.add(ctx.index_of(*marker))

        if ctx.corridors:
            for corridor in ctx.corridors:
                if not corridor:
                    continue
                index = corridor[0]
                x, y = ctx.position_of(index)
                if ctx.tiles[x, y] == TileTypeID.FLOOR and index not in occupied:
                    ctx.add_spawn(index, self.tag)
                    occupied.add(index)
            return

        for index in _floor_indices(ctx, self._chokepoints(ctx)):
            if index not in occupied and rng.randint(1, 3) == 1:
                ctx.add_spawn(index, self.tag)
                occupied.add(index)

    @staticmethod
    def _chokepoints(ctx: BuildContext) -> np.ndarray:
        """Floor tiles walled on both sides along one axis and open on the other."""
        floor = ctx.tiles == TileTypeID.FLOOR
        wall = ctx.tiles == TileTypeID.WALL
        mask = np.zeros(ctx.tiles.shape, dtype=bool)
        inner_floor = floor[1:-1, 1:-1]
        east_west_walls = wall[:-2, 1:-1] & wall[2:, 1:-1]
        north_south_open = floor[1:-1, :-2] & floor[1:-1, 2:]
        north_south_walls = wall[1:-1, :-2] & wall[1:-1, 2:]
        east_west_open = floor[:-2, 1:-1] & floor[2:, 1:-1]
        mask[1:-1, 1:-1] = inner_floor & (
            (east_west_walls & north_south_open) | (north_south_walls & east_west_open)
        )
        return mask
