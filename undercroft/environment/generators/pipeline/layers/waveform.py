"""Constraint-based synthesis ("waveform collapse") over tile chunks.

The source grid is cut into NxN chunks. Each distinct chunk becomes a WFC
pattern weighted by how often it occurs. Two chunks may sit side by side if
they were seen side by side in the source, or if their facing edges line up:
at least one open tile in the same slot, or no open tiles on either edge.
A chunk with no open edge tiles at all fits next to anything.

The output is tiled with ``ceil(width / N) x ceil(height / N)`` chunks and
clipped to the map.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from undercroft import config
from undercroft.environment.generators.pipeline.context import (
    BuilderPreconditionError,
)
from undercroft.environment.generators.pipeline.layer import (
    InitialBuilder,
    MetaBuilder,
)
from undercroft.environment.generators.wfc_solver import (
    DIRECTIONS,
    OPPOSITE_DIR,
    WFCPattern,
    WFCSolver,
)
from undercroft.environment.tile_types import TileTypeID, get_walkable_map

from .prefab_templates import PrefabTemplate
from .prefabs import PrefabBuilder, parse_template

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)

# Step to the neighbouring chunk in each direction, in chunk coordinates
_CHUNK_OFFSETS = {"N": (0, -1), "E": (1, 0), "S": (0, 1), "W": (-1, 0)}


def _edge(chunk: np.ndarray, direction: str) -> np.ndarray:
    match direction:
        case "N":
            return chunk[:, 0]
        case "S":
            return chunk[:, -1]
        case "W":
            return chunk[0, :]
        case _:
            return chunk[-1, :]


def _compatibility(chunks: list[np.ndarray], direction: str) -> np.ndarray:
    """compat[a, b]: chunk b may sit on the ``direction`` side of chunk a."""
    open_tiles = [get_walkable_map(chunk) for chunk in chunks]
    exits = np.array([_edge(t, direction) for t in open_tiles], dtype=np.int32)
    facing = np.array(
        [_edge(t, OPPOSITE_DIR[direction]) for t in open_tiles], dtype=np.int32
    )
    closed = np.array(
        [not any(_edge(t, d).any() for d in DIRECTIONS) for t in open_tiles]
    )

    overlapping = (exits @ facing.T) > 0
    sealed = exits.sum(axis=1) == 0
    facing_sealed = facing.sum(axis=1) == 0
    both_sealed = sealed[:, None] & facing_sealed[None, :]
    return overlapping | both_sealed | closed[:, None] | closed[None, :]


def build_patterns(
    source: np.ndarray, chunk_size: int, include_flipping: bool = True
) -> dict[int, WFCPattern[int]]:
    """Extract the chunk vocabulary and adjacency rules from ``source``.

    With ``include_flipping`` every chunk is also registered mirrored
    horizontally, vertically and both ways. Mirrors are taken per chunk, so
    source tiles past the last whole chunk are never read. Adjacency is
    only observed between chunks as they sit in the unflipped source.

    Raises:
        ValueError: If the source is smaller than one chunk.
    """
    width, height = source.shape
    if width < chunk_size or height < chunk_size:
        raise ValueError(
            f"A {width}x{height} source cannot yield {chunk_size}x{chunk_size} chunks"
        )

    source = np.where(source == TileTypeID.DOWN_STAIRS, TileTypeID.FLOOR, source)

    chunk_ids: dict[bytes, int] = {}
    chunks: list[np.ndarray] = []
    weights: list[int] = []

    def register(chunk: np.ndarray) -> int:
        chunk = np.array(chunk, dtype=np.uint8, order="F")
        key = chunk.tobytes(order="F")
        if key not in chunk_ids:
            chunk_ids[key] = len(chunks)
            chunks.append(chunk)
            weights.append(0)
        weights[chunk_ids[key]] += 1
        return chunk_ids[key]

    chunks_x, chunks_y = width // chunk_size, height // chunk_size
    layout = np.zeros((chunks_x, chunks_y), dtype=np.int32)
    for cy in range(chunks_y):
        for cx in range(chunks_x):
            chunk = source[
                cx * chunk_size : (cx + 1) * chunk_size,
                cy * chunk_size : (cy + 1) * chunk_size,
            ]
            layout[cx, cy] = register(chunk)
            if include_flipping:
                for flipped in (chunk[::-1, :], chunk[:, ::-1], chunk[::-1, ::-1]):
                    register(flipped)

    observed: set[tuple[int, str, int]] = set()
    for cy in range(chunks_y):
        for cx in range(chunks_x):
            here = int(layout[cx, cy])
            for direction, (dx, dy) in _CHUNK_OFFSETS.items():
                nx, ny = cx + dx, cy + dy
                if 0 <= nx < chunks_x and 0 <= ny < chunks_y:
                    observed.add((here, direction, int(layout[nx, ny])))

    compat = {direction: _compatibility(chunks, direction) for direction in DIRECTIONS}
    for here, direction, there in observed:
        compat[direction][here, there] = True

    patterns: dict[int, WFCPattern[int]] = {}
    for pattern_id, chunk in enumerate(chunks):
        valid_neighbors = {
            direction: set(np.flatnonzero(compat[direction][pattern_id]).tolist())
            for direction in DIRECTIONS
        }
        patterns[pattern_id] = WFCPattern(
            pattern_id=pattern_id,
            payload=chunk,
            weight=float(weights[pattern_id]),
            valid_neighbors=valid_neighbors,
        )

    logger.debug(
        f"Extracted {len(patterns)} distinct {chunk_size}x{chunk_size} chunks "
        f"from a {width}x{height} source"
    )
    return patterns


def render_chunks(
    layout: list[list[int]],
    patterns: dict[int, WFCPattern[int]],
    chunk_size: int,
    width: int,
    height: int,
) -> np.ndarray:
    """Assemble solved chunk IDs into a (width, height) tile grid."""
    tiles = np.full((width, height), TileTypeID.WALL, dtype=np.uint8, order="F")
    for cx, column in enumerate(layout):
        for cy, pattern_id in enumerate(column):
            x0, y0 = cx * chunk_size, cy * chunk_size
            w = min(chunk_size, width - x0)
            h = min(chunk_size, height - y0)
            tiles[x0 : x0 + w, y0 : y0 + h] = patterns[pattern_id].payload[:w, :h]
    return tiles


class WaveformCollapseBuilder(InitialBuilder, MetaBuilder):
    """Synthesizes a new layout from the chunks of a source layout.

    The source is an explicit tile array, a template, or (as a meta builder
    with no source configured) the current grid itself. Each attempt is a
    full restart; after ``max_attempts`` failures the pre-synthesis grid is
    kept unchanged.

    On success the grid is replaced and everything tied to the old layout
    (rooms, corridors, spawns, start and exit) is cleared.
    """

    def __init__(
        self,
        source: np.ndarray | PrefabTemplate | None = None,
        chunk_size: int = config.WFC_CHUNK_SIZE,
        include_flipping: bool = config.WFC_INCLUDE_FLIPPING,
        max_attempts: int = config.WFC_MAX_ATTEMPTS,
    ) -> None:
        self.source = source
        self.chunk_size = chunk_size
        self.include_flipping = include_flipping
        self.max_attempts = max_attempts

    @property
    def name(self) -> str:
        if isinstance(self.source, PrefabTemplate):
            return f"WaveformCollapse({self.source.name})"
        return "WaveformCollapse"

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        """Load the source as the starting layout, then synthesize over it."""
        if self.source is None:
            raise BuilderPreconditionError(
                "WaveformCollapse needs a source to run as an initial builder"
            )
        if isinstance(self.source, PrefabTemplate):
            PrefabBuilder.constant(self.source).generate(rng, ctx)
        else:
            w = min(self.source.shape[0], ctx.width)
            h = min(self.source.shape[1], ctx.height)
            ctx.tiles[:w, :h] = self.source[:w, :h]
            ctx.take_snapshot()
        self.transform(rng, ctx)

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        patterns = build_patterns(
            self._source_tiles(ctx), self.chunk_size, self.include_flipping
        )
        cells_x = math.ceil(ctx.width / self.chunk_size)
        cells_y = math.ceil(ctx.height / self.chunk_size)

        for attempt in range(1, self.max_attempts + 1):
            layout = WFCSolver(cells_x, cells_y, patterns, rng).try_solve()
            if layout is None:
                logger.debug(f"Synthesis attempt {attempt} hit a contradiction")
                continue

            ctx.tiles[:] = render_chunks(
                layout, patterns, self.chunk_size, ctx.width, ctx.height
            )
            ctx.rooms = None
            ctx.corridors = None
            ctx.region_seeds = None
            ctx.spawn_list = []
            ctx.clear_markers()
            ctx.take_snapshot()
            logger.debug(f"Synthesis converged on attempt {attempt}")
            return

        logger.info(
            f"Synthesis failed {self.max_attempts} times; keeping the existing layout"
        )

    def _source_tiles(self, ctx: BuildContext) -> np.ndarray:
        if self.source is None:
            return ctx.tiles.copy(order="F")
        if isinstance(self.source, PrefabTemplate):
            return parse_template(self.source).tiles
        return self.source
