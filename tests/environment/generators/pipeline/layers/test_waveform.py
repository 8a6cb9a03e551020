"""Tests for chunk-based waveform collapse synthesis."""

from __future__ import annotations

import random

import numpy as np
import pytest

from undercroft.environment.generators.pipeline import (
    BuildContext,
    BuilderPreconditionError,
    WaveformCollapseBuilder,
)
from undercroft.environment.generators.pipeline.layers.prefab_templates import (
    SAMPLE_CAVERN,
)
from undercroft.environment.generators.pipeline.layers.waveform import (
    build_patterns,
    render_chunks,
)
from undercroft.environment.generators.wfc_solver import WFCSolver
from undercroft.environment.tile_types import TileTypeID


def floor_source(width: int, height: int) -> np.ndarray:
    return np.full((width, height), TileTypeID.FLOOR, dtype=np.uint8, order="F")


# =============================================================================
# Pattern extraction
# =============================================================================


class TestBuildPatterns:
    def test_uniform_source_yields_one_weighted_pattern(self) -> None:
        source = np.full((16, 8), TileTypeID.WALL, dtype=np.uint8, order="F")
        patterns = build_patterns(source, chunk_size=8, include_flipping=False)

        assert list(patterns) == [0]
        assert patterns[0].weight == 2.0
        assert all(patterns[0].valid_neighbors[d] == {0} for d in "NESW")

    def test_flipping_reads_four_orientations(self) -> None:
        source = floor_source(8, 8)
        patterns = build_patterns(source, chunk_size=8, include_flipping=True)
        assert patterns[0].weight == 4.0

    def test_stairs_are_demoted_to_floor(self) -> None:
        source = floor_source(8, 8)
        source[3, 3] = TileTypeID.DOWN_STAIRS
        patterns = build_patterns(source, chunk_size=4, include_flipping=False)

        for pattern in patterns.values():
            assert not np.any(pattern.payload == TileTypeID.DOWN_STAIRS)

    def test_observed_neighbours_are_allowed(self) -> None:
        source = floor_source(8, 4)
        source[4:, :] = TileTypeID.WALL
        patterns = build_patterns(source, chunk_size=4, include_flipping=False)

        # floor chunk 0 sits west of wall chunk 1 in the source
        assert 1 in patterns[0].valid_neighbors["E"]
        assert 0 in patterns[1].valid_neighbors["W"]

    def test_flips_are_cut_from_whole_chunks(self) -> None:
        # Column 4 lies past the last whole 2-wide chunk
        source = np.full((5, 2), TileTypeID.WALL, dtype=np.uint8, order="F")
        source[4, :] = TileTypeID.FLOOR
        patterns = build_patterns(source, chunk_size=2, include_flipping=True)

        assert list(patterns) == [0]
        assert np.all(patterns[0].payload == TileTypeID.WALL)
        assert patterns[0].weight == 8.0

    def test_each_chunk_is_mirrored_in_place(self) -> None:
        source = np.full((4, 2), TileTypeID.WALL, dtype=np.uint8, order="F")
        source[0, 0] = TileTypeID.FLOOR
        patterns = build_patterns(source, chunk_size=2, include_flipping=True)

        open_corners = {
            tuple(int(v) for v in np.argwhere(p.payload == TileTypeID.FLOOR)[0])
            for p in patterns.values()
            if p.payload.any()
        }
        assert open_corners == {(0, 0), (1, 0), (0, 1), (1, 1)}
        assert len(patterns) == 5

    def test_source_smaller_than_chunk_rejected(self) -> None:
        with pytest.raises(ValueError, match="cannot yield"):
            build_patterns(floor_source(5, 20), chunk_size=8)


class TestRenderChunks:
    def test_layout_is_clipped_to_map(self) -> None:
        source = floor_source(4, 2)
        source[2:, :] = TileTypeID.WALL
        patterns = build_patterns(source, chunk_size=2, include_flipping=False)

        tiles = render_chunks([[0], [1], [0]], patterns, 2, width=5, height=1)

        assert tiles.shape == (5, 1)
        floor, wall = TileTypeID.FLOOR, TileTypeID.WALL
        np.testing.assert_array_equal(tiles[:, 0], [floor, floor, wall, wall, floor])


# =============================================================================
# Builder
# =============================================================================


class TestWaveformCollapseBuilder:
    def test_open_source_synthesizes_open_map(self) -> None:
        ctx = BuildContext.create(80, 50)
        WaveformCollapseBuilder(source=floor_source(20, 20)).generate(
            random.Random(3), ctx
        )
        assert np.all(ctx.tiles == TileTypeID.FLOOR)

    def test_generate_requires_a_source(self) -> None:
        with pytest.raises(BuilderPreconditionError):
            WaveformCollapseBuilder().generate(
                random.Random(3), BuildContext.create(40, 30)
            )

    def test_success_clears_layout_state(self) -> None:
        ctx = BuildContext.create(32, 32)
        ctx.tiles[1:-1, 1:-1] = TileTypeID.FLOOR
        ctx.set_start((2, 2))
        ctx.set_exit((20, 20))
        ctx.add_spawn(ctx.index_of(5, 5), "Goblin")
        ctx.rooms = []

        builder = WaveformCollapseBuilder(floor_source(16, 16), chunk_size=4)
        builder.transform(random.Random(1), ctx)

        assert ctx.spawn_list == []
        assert ctx.starting_position is None
        assert ctx.exit_position is None
        assert ctx.rooms is None
        assert not np.any(ctx.tiles == TileTypeID.DOWN_STAIRS)

    def test_template_source_is_loaded_then_synthesized(self) -> None:
        ctx = BuildContext.create(80, 50)
        builder = WaveformCollapseBuilder(SAMPLE_CAVERN)
        builder.generate(random.Random(5), ctx)

        assert builder.name == "WaveformCollapse(sample_cavern)"
        assert ctx.history
        assert ctx.walkable_mask().any()

    def test_same_seed_same_synthesis(self) -> None:
        source = floor_source(24, 24)
        source[::6, :] = TileTypeID.WALL
        first = BuildContext.create(40, 40)
        second = BuildContext.create(40, 40)

        WaveformCollapseBuilder(source, chunk_size=4).generate(random.Random(8), first)
        WaveformCollapseBuilder(source, chunk_size=4).generate(
            random.Random(8), second
        )

        np.testing.assert_array_equal(first.tiles, second.tiles)

    def test_untileable_source_keeps_the_existing_layout(self) -> None:
        # One chunk whose open corner never meets a matching edge
        source = np.full((2, 2), TileTypeID.WALL, dtype=np.uint8, order="F")
        source[0, 0] = TileTypeID.FLOOR

        ctx = BuildContext.create(20, 20)
        ctx.tiles[1:-1, 1:-1] = TileTypeID.FLOOR
        ctx.add_spawn(ctx.index_of(5, 5), "Goblin")
        before = ctx.tiles.copy()
        spawns = list(ctx.spawn_list)

        builder = WaveformCollapseBuilder(
            source, chunk_size=2, include_flipping=False, max_attempts=2
        )
        builder.transform(random.Random(4), ctx)

        np.testing.assert_array_equal(ctx.tiles, before)
        assert ctx.spawn_list == spawns


class TestSolvedLayouts:
    def test_neighbouring_chunks_are_compatible(self) -> None:
        source = floor_source(24, 24)
        source[::6, :] = TileTypeID.WALL
        source[:, 3::7] = TileTypeID.WALL
        patterns = build_patterns(source, chunk_size=4, include_flipping=True)

        layout = None
        for seed in range(20):
            layout = WFCSolver(10, 8, patterns, random.Random(seed)).try_solve()
            if layout is not None:
                break
        assert layout is not None

        for x in range(10):
            for y in range(8):
                here = layout[x][y]
                if x + 1 < 10:
                    east = layout[x + 1][y]
                    assert east in patterns[here].valid_neighbors["E"]
                    assert here in patterns[east].valid_neighbors["W"]
                if y + 1 < 8:
                    south = layout[x][y + 1]
                    assert south in patterns[here].valid_neighbors["S"]
                    assert here in patterns[south].valid_neighbors["N"]
