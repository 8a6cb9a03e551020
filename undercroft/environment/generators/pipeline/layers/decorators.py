"""Cosmetic tile substitution.

Decorations only swap floor for other walkable tiles, so they never change
which tiles are reachable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from undercroft.environment.generators.common import count_blocked_neighbors
from undercroft.environment.generators.pipeline.layer import MetaBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.util.rng import RNG


class Decorator(MetaBuilder):
    """Scatters shallow puddles across open floor and rubble along walls."""

    def __init__(
        self,
        puddle_density: float = 0.04,
        puddle_growth_steps: int = 2,
        rubble_wall_neighbors: int = 5,
    ) -> None:
        """Initialize the decorator.

        Args:
            puddle_density: Chance that a floor tile seeds a puddle.
            puddle_growth_steps: Passes in which floor touching two or more
                puddle tiles floods as well.
            rubble_wall_neighbors: Floor tiles with at least this many blocked
                neighbours (of eight) become gravel.
        """
        self.puddle_density = puddle_density
        self.puddle_growth_steps = puddle_growth_steps
        self.rubble_wall_neighbors = rubble_wall_neighbors

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        floor = ctx.tiles == TileTypeID.FLOOR
        for marker in (ctx.starting_position, ctx.exit_position):
            if marker is not None:
                floor[marker] = False

        blocked = count_blocked_neighbors(ctx.tiles)
        rubble = floor & (blocked >= self.rubble_wall_neighbors)

        water = np.zeros(ctx.tiles.shape, dtype=bool)
        for y in range(ctx.height):
            for x in range(ctx.width):
                if floor[x, y] and rng.random() < self.puddle_density:
                    water[x, y] = True

        for _ in range(self.puddle_growth_steps):
            wet_neighbors = np.zeros(ctx.tiles.shape, dtype=np.int8)
            wet_neighbors[1:, :] += water[:-1, :]
            wet_neighbors[:-1, :] += water[1:, :]
            wet_neighbors[:, 1:] += water[:, :-1]
            wet_neighbors[:, :-1] += water[:, 1:]
            water |= floor & (wet_neighbors >= 2)

        ctx.tiles[water & ~rubble] = TileTypeID.SHALLOW_WATER
        ctx.tiles[rubble] = TileTypeID.GRAVEL
        ctx.take_snapshot()
