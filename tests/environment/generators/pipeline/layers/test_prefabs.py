"""Tests for template parsing, stamping and the prefab builder modes."""

from __future__ import annotations

import random

import numpy as np
import pytest

from undercroft.environment.generators.pipeline import (
    BuildContext,
    PrefabBuilder,
    PrefabParseError,
)
from undercroft.environment.generators.pipeline.layers.prefab_templates import (
    ROOM_VAULTS,
    SAMPLE_CAVERN,
    TOTALLY_NOT_A_TRAP,
    UNDERGROUND_FORT,
    PrefabTemplate,
)
from undercroft.environment.generators.pipeline.layers.prefabs import (
    StampPolicy,
    parse_template,
    section_anchor,
    stamp,
)
from undercroft.environment.tile_types import TileTypeID


def template(*rows: str, name: str = "test") -> PrefabTemplate:
    return PrefabTemplate(name=name, width=len(rows[0]), height=len(rows), rows=rows)


def open_context(width: int = 40, height: int = 30, depth: int = 1) -> BuildContext:
    ctx = BuildContext.create(width, height, depth=depth)
    ctx.tiles[1:-1, 1:-1] = TileTypeID.FLOOR
    return ctx


# =============================================================================
# Parsing
# =============================================================================


class TestParseTemplate:
    def test_glyphs_decode_to_tiles_and_spawns(self) -> None:
        parsed = parse_template(template("#@g", "~>!"))

        assert parsed.tiles[0, 0] == TileTypeID.WALL
        assert parsed.tiles[1, 0] == TileTypeID.FLOOR
        assert parsed.tiles[0, 1] == TileTypeID.SHALLOW_WATER
        assert parsed.tiles[1, 1] == TileTypeID.DOWN_STAIRS
        assert parsed.start == (1, 0)
        assert parsed.exit == (1, 1)
        assert parsed.spawns == [(2, 0, "Goblin"), (2, 1, "Health Potion")]

    def test_underscore_is_transparent(self) -> None:
        parsed = parse_template(template("_#", "  "))
        np.testing.assert_array_equal(parsed.stamp_mask, [[False, True], [True, True]])

    def test_row_count_mismatch(self) -> None:
        bad = PrefabTemplate(name="short", width=2, height=3, rows=("##", "##"))
        with pytest.raises(PrefabParseError, match="expected 3 rows"):
            parse_template(bad)

    def test_row_width_mismatch(self) -> None:
        bad = PrefabTemplate(name="ragged", width=3, height=2, rows=("###", "##"))
        with pytest.raises(PrefabParseError, match="row 1"):
            parse_template(bad)

    def test_unknown_glyph(self) -> None:
        with pytest.raises(PrefabParseError, match="unknown glyph"):
            parse_template(template("#X#"))

    @pytest.mark.parametrize(
        "fixed", [SAMPLE_CAVERN, UNDERGROUND_FORT, *ROOM_VAULTS], ids=lambda t: t.name
    )
    def test_shipped_templates_parse(self, fixed: PrefabTemplate) -> None:
        parsed = parse_template(fixed)
        assert (parsed.width, parsed.height) == (fixed.width, fixed.height)


# =============================================================================
# Stamping
# =============================================================================


class TestStamp:
    def test_vault_on_blocked_map_matches_template(self) -> None:
        ctx = BuildContext.create(80, 50)
        ctx.add_spawn(ctx.index_of(12, 12), "Orc")
        ctx.add_spawn(ctx.index_of(30, 30), "Orc")
        parsed = parse_template(TOTALLY_NOT_A_TRAP)

        stamp(ctx, parsed, (10, 10))

        np.testing.assert_array_equal(ctx.tiles[10:15, 10:15], parsed.tiles)
        tags = sorted((ctx.position_of(e.index), e.tag) for e in ctx.spawn_list)
        assert ((12, 12), "Orc") not in tags
        assert ((30, 30), "Orc") in tags
        assert ((12, 12), "Health Potion") in tags
        assert sum(tag == "Bear Trap" for _, tag in tags) == 8

    def test_tiles_outside_footprint_untouched(self) -> None:
        ctx = open_context()
        before = ctx.tiles.copy()
        stamp(ctx, parse_template(template("###", "###")), (5, 5))

        before[5:8, 5:7] = TileTypeID.WALL
        np.testing.assert_array_equal(ctx.tiles, before)

    def test_transparent_cells_keep_underlying_tile(self) -> None:
        ctx = BuildContext.create(10, 10)
        ctx.tiles[3, 3] = TileTypeID.SHALLOW_WATER
        stamp(ctx, parse_template(template("_ ", "  ")), (3, 3))

        assert ctx.tiles[3, 3] == TileTypeID.SHALLOW_WATER
        assert ctx.tiles[4, 3] == TileTypeID.FLOOR

    def test_preserve_floor_never_closes_open_tiles(self) -> None:
        ctx = open_context()
        stamp(
            ctx,
            parse_template(template("###", "#~#")),
            (5, 5),
            policy=StampPolicy.PRESERVE_FLOOR,
        )
        assert np.all(ctx.walkable_mask()[5:8, 5:7])
        assert ctx.tiles[6, 6] == TileTypeID.SHALLOW_WATER

    def test_overwritten_exit_is_forgotten(self) -> None:
        ctx = open_context()
        ctx.set_exit((6, 6))
        stamp(ctx, parse_template(template("###", "###")), (5, 5))
        assert ctx.exit_position is None

    def test_footprint_must_fit(self) -> None:
        ctx = BuildContext.create(10, 10)
        with pytest.raises(ValueError, match="does not fit"):
            stamp(ctx, parse_template(TOTALLY_NOT_A_TRAP), (7, 7))


# =============================================================================
# Builder modes
# =============================================================================


class TestPrefabBuilder:
    def test_constant_loads_level_with_markers(self) -> None:
        ctx = BuildContext.create(80, 50)
        PrefabBuilder.constant(SAMPLE_CAVERN).generate(random.Random(1), ctx)

        assert ctx.starting_position == (1, 1)
        assert ctx.exit_position is not None
        assert ctx.tiles[ctx.exit_position] == TileTypeID.DOWN_STAIRS
        assert ctx.spawn_list
        assert np.all(ctx.tiles[40:, :] == TileTypeID.WALL)
        assert np.all(ctx.tiles[:, 20:] == TileTypeID.WALL)

    def test_constant_rejects_oversized_template(self) -> None:
        ctx = BuildContext.create(30, 15)
        with pytest.raises(PrefabParseError, match="larger"):
            PrefabBuilder.constant(SAMPLE_CAVERN).generate(random.Random(1), ctx)

    def test_fort_section_anchors_right_center(self) -> None:
        assert section_anchor(UNDERGROUND_FORT, 80, 50) == (64, 3)

    def test_section_stamped_at_explicit_anchor(self) -> None:
        ctx = open_context()
        PrefabBuilder.sectional(TOTALLY_NOT_A_TRAP, anchor=(2, 3)).transform(
            random.Random(1), ctx
        )
        np.testing.assert_array_equal(
            ctx.tiles[2:7, 3:8], parse_template(TOTALLY_NOT_A_TRAP).tiles
        )

    def test_names(self) -> None:
        assert PrefabBuilder.vaults().name == "RoomVaults"
        assert (
            PrefabBuilder.constant(SAMPLE_CAVERN).name
            == "Prefab(constant:sample_cavern)"
        )

    def test_broken_template_fails_at_construction(self) -> None:
        with pytest.raises(PrefabParseError):
            PrefabBuilder.sectional(template("#Q"))

    def test_empty_template_list_rejected(self) -> None:
        with pytest.raises(ValueError):
            PrefabBuilder.vaults(())


class TestRoomVaults:
    def test_deep_levels_receive_vaults(self) -> None:
        ctx = open_context(depth=10)
        PrefabBuilder.vaults().transform(random.Random(2), ctx)

        assert ctx.spawn_list
        vault_tags = {"Bear Trap", "Health Potion", "Goblin", "Rations"}
        assert {e.tag for e in ctx.spawn_list} <= vault_tags

    def test_shallow_roll_places_nothing(self) -> None:
        ctx = open_context(depth=-10)
        PrefabBuilder.vaults().transform(random.Random(2), ctx)

        assert ctx.spawn_list == []
        assert np.all(ctx.tiles[1:-1, 1:-1] == TileTypeID.FLOOR)

    def test_vaults_avoid_start_and_exit(self) -> None:
        ctx = open_context(7, 7, depth=10)
        ctx.set_start((3, 3))
        PrefabBuilder.vaults((TOTALLY_NOT_A_TRAP,)).transform(random.Random(2), ctx)

        assert ctx.spawn_list == []
        assert ctx.starting_position == (3, 3)

    def test_vault_fills_exact_fit(self) -> None:
        ctx = open_context(7, 7, depth=10)
        PrefabBuilder.vaults((TOTALLY_NOT_A_TRAP,)).transform(random.Random(2), ctx)

        np.testing.assert_array_equal(
            ctx.tiles[1:6, 1:6], parse_template(TOTALLY_NOT_A_TRAP).tiles
        )

    def test_depth_window_filters_vaults(self) -> None:
        ctx = open_context(depth=1)
        deep_only = PrefabTemplate(
            name="deep", width=3, height=3, rows=(" g ",) * 3, first_depth=5
        )
        for seed in range(10):
            PrefabBuilder.vaults((deep_only,)).transform(random.Random(seed), ctx)
        assert ctx.spawn_list == []
