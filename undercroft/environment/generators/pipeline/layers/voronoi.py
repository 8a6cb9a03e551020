"""Voronoi cell partitions."""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np

from undercroft import config
from undercroft.environment.generators.pipeline.layer import InitialBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import WorldTilePos
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class VoronoiDistance(Enum):
    PYTHAGORAS = auto()
    MANHATTAN = auto()
    CHEBYSHEV = auto()


def nearest_seed_map(
    shape: tuple[int, int],
    seeds: list[WorldTilePos],
    distance: VoronoiDistance = VoronoiDistance.PYTHAGORAS,
) -> np.ndarray:
    """Index of the nearest seed for every tile, lowest seed index on ties."""
    xs, ys = np.indices(shape)
    seed_xs = np.array([s[0] for s in seeds])[:, None, None]
    seed_ys = np.array([s[1] for s in seeds])[:, None, None]
    dx = np.abs(xs[None] - seed_xs)
    dy = np.abs(ys[None] - seed_ys)

    match distance:
        case VoronoiDistance.PYTHAGORAS:
            dist = dx * dx + dy * dy
        case VoronoiDistance.MANHATTAN:
            dist = dx + dy
        case VoronoiDistance.CHEBYSHEV:
            dist = np.maximum(dx, dy)
    return np.argmin(dist, axis=0)


def scatter_seeds(
    rng: RNG, width: int, height: int, count: int
) -> list[WorldTilePos]:
    """``count`` distinct random points inside the outer wall."""
    count = min(count, (width - 2) * (height - 2))
    seeds: list[WorldTilePos] = []
    taken: set[WorldTilePos] = set()
    while len(seeds) < count:
        point = (rng.randint(1, width - 2), rng.randint(1, height - 2))
        if point not in taken:
            taken.add(point)
            seeds.append(point)
    return seeds


class VoronoiCellBuilder(InitialBuilder):
    """Partitions the map into cells around random seeds.

    Every tile belongs to its nearest seed. A tile stays floor only if fewer
    than two of its orthogonal neighbours belong to a different seed, which
    leaves thin walls along the cell boundaries. The seeds are kept on the
    context as spawn-region centroids.
    """

    def __init__(
        self,
        n_seeds: int = config.VORONOI_SEED_COUNT,
        distance: VoronoiDistance = VoronoiDistance.PYTHAGORAS,
    ) -> None:
        self.n_seeds = n_seeds
        self.distance = distance

    @property
    def name(self) -> str:
        return f"Voronoi({self.distance.name.lower()})"

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        seeds = scatter_seeds(rng, ctx.width, ctx.height, self.n_seeds)
        owner = nearest_seed_map((ctx.width, ctx.height), seeds, self.distance)

        inner = owner[1:-1, 1:-1]
        foreign = (
            (inner != owner[:-2, 1:-1]).astype(np.int8)
            + (inner != owner[2:, 1:-1])
            + (inner != owner[1:-1, :-2])
            + (inner != owner[1:-1, 2:])
        )
        ctx.tiles[1:-1, 1:-1] = np.where(
            foreign < 2, TileTypeID.FLOOR, TileTypeID.WALL
        )
        ctx.region_seeds = seeds
        ctx.take_snapshot()
        logger.debug(
            f"Voronoi partition with {len(seeds)} seeds ({self.distance.name})"
        )
