"""Tests for room sorting and reshaping."""

from __future__ import annotations

import random

import numpy as np
import pytest

from undercroft.environment.generators.common import carve_room
from undercroft.environment.generators.pipeline import (
    BuildContext,
    BuilderPreconditionError,
    RoomCornerRounder,
    RoomDrawer,
    RoomExploder,
    RoomSorter,
)
from undercroft.environment.generators.pipeline.layers import RoomSort
from undercroft.environment.tile_types import TileTypeID
from undercroft.util.coordinates import Rect

WEST = Rect(2, 20, 6, 6)
MIDDLE = Rect(36, 22, 8, 6)
EAST = Rect(70, 5, 6, 8)


def rooms_context(*rooms: Rect) -> BuildContext:
    ctx = BuildContext.create(80, 50)
    for room in rooms:
        carve_room(ctx.tiles, room)
    ctx.rooms = list(rooms)
    return ctx


class TestRoomSorter:
    @pytest.mark.parametrize(
        ("sort_by", "expected"),
        [
            (RoomSort.LEFTMOST, [WEST, MIDDLE, EAST]),
            (RoomSort.RIGHTMOST, [EAST, MIDDLE, WEST]),
            (RoomSort.TOPMOST, [EAST, WEST, MIDDLE]),
            (RoomSort.BOTTOMMOST, [MIDDLE, WEST, EAST]),
            (RoomSort.CENTRAL, [MIDDLE, WEST, EAST]),
        ],
    )
    def test_orders(self, sort_by: RoomSort, expected: list[Rect]) -> None:
        ctx = rooms_context(EAST, MIDDLE, WEST)
        before = ctx.tiles.copy()

        RoomSorter(sort_by).transform(random.Random(1), ctx)

        assert ctx.rooms == expected
        np.testing.assert_array_equal(ctx.tiles, before)

    def test_requires_rooms(self) -> None:
        with pytest.raises(BuilderPreconditionError, match="RoomSorter"):
            RoomSorter(RoomSort.LEFTMOST).transform(
                random.Random(1), BuildContext.create(20, 20)
            )


class TestRoomCornerRounder:
    def test_corners_are_walled(self) -> None:
        room = Rect(2, 2, 5, 5)
        ctx = rooms_context(room)

        RoomCornerRounder().transform(random.Random(1), ctx)

        for corner in ((3, 3), (6, 3), (3, 6), (6, 6)):
            assert ctx.tiles[corner] == TileTypeID.WALL
        assert ctx.tiles[4, 3] == TileTypeID.FLOOR
        assert ctx.tiles[4, 4] == TileTypeID.FLOOR

    def test_corner_open_to_a_corridor_is_kept(self) -> None:
        ctx = rooms_context(Rect(2, 2, 5, 5))
        ctx.tiles[2, 3] = TileTypeID.FLOOR

        RoomCornerRounder().transform(random.Random(1), ctx)

        assert ctx.tiles[3, 3] == TileTypeID.FLOOR

    def test_requires_rooms(self) -> None:
        with pytest.raises(BuilderPreconditionError):
            RoomCornerRounder().transform(random.Random(1), BuildContext.create(9, 9))


class TestRoomExploder:
    def test_only_opens_tiles_inside_the_border(self) -> None:
        ctx = rooms_context(
            WEST,
            MIDDLE,
            EAST,
            Rect(10, 2, 6, 6),
            Rect(50, 38, 6, 6),
            Rect(20, 38, 8, 6),
        )
        before = ctx.walkable_mask()

        RoomExploder().transform(random.Random(4), ctx)

        after = ctx.walkable_mask()
        assert np.all(after[before])
        assert after.sum() > before.sum()
        assert not after[0, :].any()
        assert not after[:, 0].any()
        assert not after[-1, :].any()
        assert not after[:, -1].any()

    def test_requires_rooms(self) -> None:
        with pytest.raises(BuilderPreconditionError):
            RoomExploder().transform(random.Random(1), BuildContext.create(9, 9))


class TestRoomDrawer:
    def test_circles_stay_inside_their_rooms(self) -> None:
        ctx = rooms_context(WEST, MIDDLE, EAST)
        RoomDrawer(circle_chance=1.0).transform(random.Random(2), ctx)

        # MIDDLE spans 37..43 x 23..27 inside; radius 3 around (40, 25)
        assert ctx.tiles[40, 25] == TileTypeID.FLOOR
        assert ctx.tiles[37, 25] == TileTypeID.FLOOR
        assert ctx.tiles[43, 25] == TileTypeID.FLOOR
        assert ctx.tiles[37, 23] == TileTypeID.WALL
        assert ctx.tiles[43, 27] == TileTypeID.WALL

        inside = np.zeros(ctx.tiles.shape, dtype=bool)
        for room in ctx.rooms:
            inside[room.x1 + 1 : room.x2, room.y1 + 1 : room.y2] = True
        assert not ctx.walkable_mask()[~inside].any()

    def test_centers_stay_open(self) -> None:
        ctx = rooms_context(WEST, MIDDLE, EAST)
        RoomDrawer(circle_chance=1.0).transform(random.Random(2), ctx)
        for room in ctx.rooms:
            assert ctx.tiles[room.center()] == TileTypeID.FLOOR

    def test_rectangles_match_the_carved_rooms(self) -> None:
        ctx = rooms_context(WEST, MIDDLE, EAST)
        before = ctx.tiles.copy()

        RoomDrawer(circle_chance=0.0).transform(random.Random(2), ctx)

        np.testing.assert_array_equal(ctx.tiles, before)
        assert len(ctx.history) == 3

    def test_requires_rooms(self) -> None:
        with pytest.raises(BuilderPreconditionError):
            RoomDrawer().transform(random.Random(1), BuildContext.create(9, 9))
