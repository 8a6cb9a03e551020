"""Diffusion-limited aggregation growth."""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING

import tcod.los

from undercroft import config
from undercroft.environment.generators.common import (
    Symmetry,
    growth_capacity,
    paint,
)
from undercroft.environment.generators.pipeline.context import LevelRejectedError
from undercroft.environment.generators.pipeline.layer import InitialBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import WorldTilePos
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class DLAAlgorithm(Enum):
    WALK_INWARDS = auto()  # random point, wander until touching floor
    WALK_OUTWARDS = auto()  # from the center, wander until leaving floor
    CENTRAL_ATTRACTOR = auto()  # from a map edge, straight toward the center


class DLABuilder(InitialBuilder):
    """Grows a branching structure by sticking wandering particles to it.

    A plus-shaped seed is placed at the map center. Particles are released
    one at a time and their final footprint is painted as floor until
    ``floor_percent`` of the map is open. Particles move inside
    ``2 .. size - 2``, so a target beyond that area is refused up front, and
    a run that exhausts ``max_particles`` rejects the layout.
    """

    def __init__(
        self,
        algorithm: DLAAlgorithm,
        brush_size: int = 2,
        symmetry: Symmetry = Symmetry.NONE,
        floor_percent: float = config.DLA_FLOOR_PERCENT,
        max_particles: int = config.DLA_MAX_PARTICLES,
    ) -> None:
        if not 0.0 < floor_percent <= 0.8:
            raise ValueError(f"floor_percent must be in (0, 0.8], got {floor_percent}")
        self.algorithm = algorithm
        self.brush_size = brush_size
        self.symmetry = symmetry
        self.floor_percent = floor_percent
        self.max_particles = max_particles

    @classmethod
    def walk_inwards(cls) -> DLABuilder:
        return cls(DLAAlgorithm.WALK_INWARDS, brush_size=1)

    @classmethod
    def walk_outwards(cls) -> DLABuilder:
        return cls(DLAAlgorithm.WALK_OUTWARDS)

    @classmethod
    def central_attractor(cls) -> DLABuilder:
        return cls(DLAAlgorithm.CENTRAL_ATTRACTOR)

    @classmethod
    def insectoid(cls) -> DLABuilder:
        return cls(DLAAlgorithm.CENTRAL_ATTRACTOR, symmetry=Symmetry.HORIZONTAL)

    @classmethod
    def heavy_erosion(cls) -> DLABuilder:
        return cls(DLAAlgorithm.WALK_INWARDS, floor_percent=0.35)

    @property
    def name(self) -> str:
        return f"DLA({self.algorithm.name.lower()})"

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        cx, cy = ctx.width // 2, ctx.height // 2
        for dx, dy in ((0, 0), (-1, 0), (1, 0), (0, -1), (0, 1)):
            ctx.tiles[cx + dx, cy + dy] = TileTypeID.FLOOR
        ctx.take_snapshot()

        desired = int(self.floor_percent * ctx.width * ctx.height)
        capacity = growth_capacity(ctx.width, ctx.height)
        if desired > capacity:
            raise ValueError(
                f"{self.name} needs {desired} floor tiles, but particles on a "
                f"{ctx.width}x{ctx.height} map can reach only {capacity}"
            )

        particles = 0
        while ctx.floor_count() < desired:
            if particles >= self.max_particles:
                raise LevelRejectedError(
                    f"{self.name} stalled at {ctx.floor_fraction():.0%} floor "
                    f"after {particles} particles"
                )
            match self.algorithm:
                case DLAAlgorithm.WALK_INWARDS:
                    x, y = self._walk_inwards(rng, ctx)
                case DLAAlgorithm.WALK_OUTWARDS:
                    x, y = self._walk_outwards(rng, ctx, (cx, cy))
                case DLAAlgorithm.CENTRAL_ATTRACTOR:
                    x, y = self._central_attractor(rng, ctx, (cx, cy))
            paint(ctx.tiles, self.symmetry, self.brush_size, x, y)
            particles += 1
            if particles % 25 == 0:
                ctx.take_snapshot()

        ctx.take_snapshot()
        logger.debug(f"{particles} particles aggregated for {self.name}")

    @staticmethod
    def _step(rng: RNG, ctx: BuildContext, x: int, y: int) -> WorldTilePos:
        match rng.randint(1, 4):
            case 1:
                x = max(x - 1, 2)
            case 2:
                x = min(x + 1, ctx.width - 2)
            case 3:
                y = max(y - 1, 2)
            case _:
                y = min(y + 1, ctx.height - 2)
        return (x, y)

    def _walk_inwards(self, rng: RNG, ctx: BuildContext) -> WorldTilePos:
        x = rng.randint(2, ctx.width - 2)
        y = rng.randint(2, ctx.height - 2)
        prev = (x, y)
        while ctx.tiles[x, y] == TileTypeID.WALL:
            prev = (x, y)
            x, y = self._step(rng, ctx, x, y)
        return prev

    def _walk_outwards(
        self, rng: RNG, ctx: BuildContext, center: WorldTilePos
    ) -> WorldTilePos:
        x, y = center
        while ctx.tiles[x, y] != TileTypeID.WALL:
            x, y = self._step(rng, ctx, x, y)
        return (x, y)

    def _central_attractor(
        self, rng: RNG, ctx: BuildContext, center: WorldTilePos
    ) -> WorldTilePos:
        match rng.randint(1, 4):
            case 1:
                start = (2, rng.randint(2, ctx.height - 2))
            case 2:
                start = (ctx.width - 2, rng.randint(2, ctx.height - 2))
            case 3:
                start = (rng.randint(2, ctx.width - 2), 2)
            case _:
                start = (rng.randint(2, ctx.width - 2), ctx.height - 2)

        prev = start
        for x, y in tcod.los.bresenham(start, center).tolist():
            if ctx.tiles[x, y] != TileTypeID.WALL:
                break
            prev = (x, y)
        return prev
