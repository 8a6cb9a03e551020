"""Tests for spawn tables and the spawn placement stages."""

from __future__ import annotations

import random

import pytest

from undercroft.environment.generators.common import carve_room
from undercroft.environment.generators.pipeline import (
    BuildContext,
    BuilderPreconditionError,
    CorridorSpawner,
    DoglegCorridors,
    DoorPlacement,
    RegionSpawner,
    RoomBasedSpawner,
    VoronoiCellBuilder,
)
from undercroft.environment.generators.pipeline.layers import (
    RegionMode,
    SpawnTable,
    SpawnTableEntry,
)
from undercroft.environment.generators.pipeline.layers.spawners import (
    DEFAULT_SPAWN_TABLE,
    _starting_room,
    spawn_region,
)
from undercroft.environment.tile_types import TileTypeID
from undercroft.util.coordinates import Rect


def open_context(width: int = 30, height: int = 20, depth: int = 1) -> BuildContext:
    ctx = BuildContext.create(width, height, depth=depth)
    ctx.tiles[1:-1, 1:-1] = TileTypeID.FLOOR
    return ctx


def rooms_context() -> BuildContext:
    ctx = BuildContext.create(60, 30, depth=3)
    ctx.rooms = [Rect(2, 2, 8, 8), Rect(25, 10, 8, 8), Rect(45, 18, 8, 8)]
    for room in ctx.rooms:
        carve_room(ctx.tiles, room)
    return ctx


# =============================================================================
# Spawn tables
# =============================================================================


class TestSpawnTable:
    def test_depth_window(self) -> None:
        table = SpawnTable(
            [
                SpawnTableEntry("Rat", 1, max_depth=2),
                SpawnTableEntry("Dragon", 1, min_depth=5),
            ]
        )
        rng = random.Random(1)
        assert {table.roll(rng, 1) for _ in range(20)} == {"Rat"}
        assert {table.roll(rng, 6) for _ in range(20)} == {"Dragon"}
        assert table.roll(rng, 3) is None

    def test_default_table_at_first_depth(self) -> None:
        rng = random.Random(2)
        tags = {DEFAULT_SPAWN_TABLE.roll(rng, 1) for _ in range(500)}
        assert tags == {
            "Goblin",
            "Health Potion",
            "Rations",
            "Magic Missile Scroll",
            "Dagger",
            "Shield",
        }


class TestSpawnRegion:
    @pytest.mark.parametrize("seed", range(10))
    def test_distinct_tiles_avoiding_markers(self, seed: int) -> None:
        ctx = open_context()
        ctx.set_start((1, 1))
        ctx.set_exit((2, 1))
        area = [ctx.index_of(x, 1) for x in range(1, 8)]

        added = spawn_region(random.Random(seed), ctx, area, DEFAULT_SPAWN_TABLE)

        indices = [entry.index for entry in ctx.spawn_list]
        assert added == len(indices) <= 4
        assert len(set(indices)) == len(indices)
        assert set(indices) <= set(area) - {ctx.index_of(1, 1), ctx.index_of(2, 1)}

    def test_deeper_levels_spawn_more(self) -> None:
        area = list(range(31, 59))
        shallow = sum(
            spawn_region(random.Random(s), open_context(), area, DEFAULT_SPAWN_TABLE)
            for s in range(20)
        )
        deep = sum(
            spawn_region(
                random.Random(s), open_context(depth=8), area, DEFAULT_SPAWN_TABLE
            )
            for s in range(20)
        )
        assert deep > shallow

    def test_empty_area(self) -> None:
        ctx = open_context()
        assert spawn_region(random.Random(1), ctx, [], DEFAULT_SPAWN_TABLE) == 0


# =============================================================================
# Spawners
# =============================================================================


class TestRoomBasedSpawner:
    @pytest.mark.parametrize("seed", range(5))
    def test_first_room_stays_empty_without_a_start(self, seed: int) -> None:
        ctx = rooms_context()
        RoomBasedSpawner().transform(random.Random(seed), ctx)

        for entry in ctx.spawn_list:
            x, y = ctx.position_of(entry.index)
            assert not ctx.rooms[0].contains(x, y)
            assert ctx.tiles[x, y] == TileTypeID.FLOOR

    def test_skips_the_room_holding_the_start(self) -> None:
        populated_first_room = False
        for seed in range(10):
            ctx = rooms_context()
            ctx.set_start(ctx.rooms[-1].center())
            RoomBasedSpawner().transform(random.Random(seed), ctx)

            positions = [ctx.position_of(entry.index) for entry in ctx.spawn_list]
            assert not any(ctx.rooms[-1].contains(x, y) for x, y in positions)
            populated_first_room |= any(
                ctx.rooms[0].contains(x, y) for x, y in positions
            )
        assert populated_first_room

    def test_start_in_a_corridor_skips_no_room(self) -> None:
        ctx = rooms_context()
        ctx.tiles[15, 5] = TileTypeID.FLOOR
        ctx.set_start((15, 5))
        assert _starting_room(ctx, ctx.rooms) is None

    def test_requires_rooms(self) -> None:
        with pytest.raises(BuilderPreconditionError):
            RoomBasedSpawner().transform(random.Random(1), open_context())


class TestRegionSpawner:
    @pytest.mark.parametrize("mode", list(RegionMode))
    def test_only_reachable_floor_is_used(self, mode: RegionMode) -> None:
        ctx = open_context(40, 30, depth=4)
        ctx.tiles[20, :] = TileTypeID.WALL
        ctx.set_start((2, 2))

        RegionSpawner(mode=mode).transform(random.Random(3), ctx)

        assert ctx.spawn_list
        for entry in ctx.spawn_list:
            x, _ = ctx.position_of(entry.index)
            assert x < 20

    def test_reuses_voronoi_seeds(self) -> None:
        ctx = BuildContext.create(60, 40, depth=3)
        rng = random.Random(6)
        VoronoiCellBuilder(n_seeds=16).generate(rng, ctx)
        seeds = list(ctx.region_seeds)

        RegionSpawner().transform(rng, ctx)

        assert ctx.region_seeds == seeds
        assert ctx.spawn_list

    def test_name(self) -> None:
        assert RegionSpawner().name == "RegionSpawner(nearest_seed)"


class TestCorridorSpawner:
    def test_spawns_stay_in_corridors(self) -> None:
        ctx = rooms_context()
        rng = random.Random(4)
        DoglegCorridors().transform(rng, ctx)
        corridor_tiles = {index for c in ctx.corridors for index in c}

        CorridorSpawner().transform(rng, ctx)

        assert {entry.index for entry in ctx.spawn_list} <= corridor_tiles

    def test_requires_corridors(self) -> None:
        with pytest.raises(BuilderPreconditionError, match="corridors"):
            CorridorSpawner().transform(random.Random(1), rooms_context())


class TestDoorPlacement:
    def test_doors_at_corridor_mouths(self) -> None:
        ctx = rooms_context()
        DoglegCorridors().transform(random.Random(4), ctx)

        DoorPlacement().transform(random.Random(4), ctx)

        doors = [entry.index for entry in ctx.spawn_list if entry.tag == "Door"]
        assert doors == [corridor[0] for corridor in ctx.corridors]

    def test_occupied_tiles_get_no_door(self) -> None:
        ctx = rooms_context()
        DoglegCorridors().transform(random.Random(4), ctx)
        ctx.add_spawn(ctx.corridors[0][0], "Goblin")

        DoorPlacement().transform(random.Random(4), ctx)

        tags_at_mouth = [
            entry.tag for entry in ctx.spawn_list if entry.index == ctx.corridors[0][0]
        ]
        assert tags_at_mouth == ["Goblin"]

    def test_chokepoints_without_corridors(self) -> None:
        # Two open areas joined through a one-tile gap at (10, 5)
        ctx = open_context(21, 11)
        ctx.tiles[10, :] = TileTypeID.WALL
        ctx.tiles[10, 5] = TileTypeID.FLOOR

        doors = set()
        for seed in range(30):
            trial = BuildContext.create(21, 11)
            trial.tiles[:] = ctx.tiles
            DoorPlacement().transform(random.Random(seed), trial)
            doors |= {trial.position_of(e.index) for e in trial.spawn_list}

        assert doors == {(10, 5)}
