"""Cellular automaton caves."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from undercroft import config
from undercroft.environment.generators.common import count_blocked_neighbors
from undercroft.environment.generators.pipeline.context import LevelRejectedError
from undercroft.environment.generators.pipeline.layer import (
    InitialBuilder,
    MetaBuilder,
)
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class CellularAutomataBuilder(InitialBuilder, MetaBuilder):
    """Organic caves from random noise smoothed by a neighbour-count rule.

    As an initial builder it seeds the interior with independent random walls
    and runs ``iterations`` smoothing steps, reseeding until at least
    ``min_floor_percent`` of the map is floor. As a meta builder it runs one
    smoothing step over the existing layout, which erodes jagged edges.

    The rule: a tile becomes wall if more than four of its eight neighbours
    are blocked, or if none are (which breaks up large open plains); otherwise
    it becomes floor. Only wall and floor tiles are rewritten.
    """

    def __init__(
        self,
        wall_probability: float = config.CA_WALL_PROBABILITY,
        iterations: int = config.CA_ITERATIONS,
        min_floor_percent: float = config.CA_MIN_FLOOR_PERCENT,
        max_reseeds: int = config.CA_MAX_RESEEDS,
    ) -> None:
        self.wall_probability = wall_probability
        self.iterations = iterations
        self.min_floor_percent = min_floor_percent
        self.max_reseeds = max_reseeds

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        for attempt in range(1, self.max_reseeds + 1):
            self._randomize(rng, ctx)
            ctx.take_snapshot()

            for _ in range(self.iterations):
                self.step(ctx)
                ctx.take_snapshot()

            if ctx.floor_fraction() >= self.min_floor_percent:
                logger.debug(
                    f"Cave settled at {ctx.floor_fraction():.0%} floor "
                    f"after {attempt} seeding(s)"
                )
                return

        raise LevelRejectedError(
            f"Cellular automaton never reached {self.min_floor_percent:.0%} floor "
            f"in {self.max_reseeds} seedings"
        )

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        self.step(ctx)
        ctx.take_snapshot()

    def _randomize(self, rng: RNG, ctx: BuildContext) -> None:
        ctx.tiles[:] = TileTypeID.WALL
        for y in range(1, ctx.height - 1):
            for x in range(1, ctx.width - 1):
                if rng.random() >= self.wall_probability:
                    ctx.tiles[x, y] = TileTypeID.FLOOR

    @staticmethod
    def step(ctx: BuildContext) -> None:
        """Apply one smoothing iteration to the interior of the grid."""
        neighbors = count_blocked_neighbors(ctx.tiles)[1:-1, 1:-1]
        inner = ctx.tiles[1:-1, 1:-1]
        rewritable = (inner == TileTypeID.WALL) | (inner == TileTypeID.FLOOR)
        becomes_wall = (neighbors > 4) | (neighbors == 0)
        updated = np.where(becomes_wall, TileTypeID.WALL, TileTypeID.FLOOR)
        inner[rewritable] = updated[rewritable]
