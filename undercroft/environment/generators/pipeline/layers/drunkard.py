"""Random-walk ("drunkard's walk") growth."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np

from undercroft import config
from undercroft.environment.generators.common import (
    Symmetry,
    growth_capacity,
    paint,
)
from undercroft.environment.generators.pipeline.context import LevelRejectedError
from undercroft.environment.generators.pipeline.layer import InitialBuilder
from undercroft.environment.tile_types import TileTypeID
from undercroft.types import Direction

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import WorldTilePos
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)

STEPS: tuple[Direction, ...] = ((0, -1), (1, 0), (0, 1), (-1, 0))


class DrunkSpawnMode(Enum):
    """Where each new digger starts."""

    STARTING_POINT = auto()  # always the map center
    PREVIOUS_END = auto()  # where the previous digger stopped
    RANDOM_FLOOR = auto()  # any tile that is already floor


@dataclass(frozen=True)
class DrunkardSettings:
    """Configuration for a random-walk run.

    Attributes:
        spawn_mode: Where each digger is placed.
        lifetime: Steps each digger takes before it expires.
        floor_percent: Fraction of the map that must be floor before stopping.
        brush_size: Side length of the stamped floor brush.
        symmetry: Mirror every stamp about the map center.
        bias: Preferred step direction, or None for an unbiased walk.
        bias_chance: Probability that a step follows ``bias``.
        max_diggers: Diggers released before the layout is given up on.
    """

    spawn_mode: DrunkSpawnMode
    lifetime: int = config.DRUNKARD_LIFETIME
    floor_percent: float = config.DRUNKARD_FLOOR_PERCENT
    brush_size: int = 1
    symmetry: Symmetry = Symmetry.NONE
    bias: Direction | None = None
    bias_chance: float = 0.0
    max_diggers: int = config.DRUNKARD_MAX_DIGGERS


class DrunkardsWalkBuilder(InitialBuilder):
    """Grows open space by releasing diggers that stumble around the map.

    Diggers keep being released until the floor target is met, so the layout
    always reaches ``settings.floor_percent``. Each digger is confined to
    ``2 .. size - 2`` on both axes, which keeps a solid outer wall.
    A target larger than that confined area cannot be met and is refused.
    """

    def __init__(self, settings: DrunkardSettings) -> None:
        if not 0.0 < settings.floor_percent <= 0.8:
            raise ValueError(
                f"floor_percent must be in (0, 0.8], got {settings.floor_percent}"
            )
        self.settings = settings

    @classmethod
    def open_area(cls) -> DrunkardsWalkBuilder:
        return cls(DrunkardSettings(spawn_mode=DrunkSpawnMode.STARTING_POINT))

    @classmethod
    def open_halls(cls) -> DrunkardsWalkBuilder:
        return cls(DrunkardSettings(spawn_mode=DrunkSpawnMode.RANDOM_FLOOR))

    @classmethod
    def winding_passages(cls) -> DrunkardsWalkBuilder:
        return cls(
            DrunkardSettings(
                spawn_mode=DrunkSpawnMode.PREVIOUS_END,
                lifetime=100,
                floor_percent=0.4,
            )
        )

    @classmethod
    def fat_passages(cls) -> DrunkardsWalkBuilder:
        return cls(
            DrunkardSettings(
                spawn_mode=DrunkSpawnMode.RANDOM_FLOOR,
                lifetime=100,
                floor_percent=0.4,
                brush_size=2,
            )
        )

    @classmethod
    def fearful_symmetry(cls) -> DrunkardsWalkBuilder:
        return cls(
            DrunkardSettings(
                spawn_mode=DrunkSpawnMode.RANDOM_FLOOR,
                lifetime=100,
                floor_percent=0.4,
                symmetry=Symmetry.BOTH,
            )
        )

    @classmethod
    def eastward_drift(cls) -> DrunkardsWalkBuilder:
        """Long passages that lean east, for strung-out layouts."""
        return cls(
            DrunkardSettings(
                spawn_mode=DrunkSpawnMode.PREVIOUS_END,
                lifetime=150,
                floor_percent=0.35,
                bias=(1, 0),
                bias_chance=0.3,
            )
        )

    @property
    def name(self) -> str:
        return f"DrunkardsWalk({self.settings.spawn_mode.name.lower()})"

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        settings = self.settings
        center = (ctx.width // 2, ctx.height // 2)
        ctx.tiles[center] = TileTypeID.FLOOR

        desired = int(settings.floor_percent * ctx.width * ctx.height)
        capacity = growth_capacity(ctx.width, ctx.height)
        if desired > capacity:
            raise ValueError(
                f"{self.name} needs {desired} floor tiles, but diggers on a "
                f"{ctx.width}x{ctx.height} map can reach only {capacity}"
            )

        last_end = center
        diggers = 0
        while ctx.floor_count() < desired:
            if diggers >= settings.max_diggers:
                raise LevelRejectedError(
                    f"{self.name} stalled at {ctx.floor_fraction():.0%} floor "
                    f"after {diggers} diggers"
                )
            start = self._spawn_point(rng, ctx, center, last_end, diggers)
            last_end = self._walk(rng, ctx, start)
            diggers += 1
            ctx.take_snapshot()

        logger.debug(f"{diggers} diggers carved {ctx.floor_fraction():.0%} floor")

    def _spawn_point(
        self,
        rng: RNG,
        ctx: BuildContext,
        center: WorldTilePos,
        last_end: WorldTilePos,
        diggers: int,
    ) -> WorldTilePos:
        if diggers == 0:
            return center
        match self.settings.spawn_mode:
            case DrunkSpawnMode.STARTING_POINT:
                return center
            case DrunkSpawnMode.PREVIOUS_END:
                return last_end
            case DrunkSpawnMode.RANDOM_FLOOR:
                floors = np.flatnonzero(
                    (ctx.tiles == TileTypeID.FLOOR).ravel(order="F")
                ).tolist()
                return ctx.position_of(rng.choice(floors))

    def _walk(self, rng: RNG, ctx: BuildContext, start: WorldTilePos) -> WorldTilePos:
        settings = self.settings
        x, y = start
        for _ in range(settings.lifetime):
            paint(ctx.tiles, settings.symmetry, settings.brush_size, x, y)

            if settings.bias is not None and rng.random() < settings.bias_chance:
                dx, dy = settings.bias
            else:
                dx, dy = rng.choice(STEPS)
            x = min(max(x + dx, 2), ctx.width - 2)
            y = min(max(y + dy, 2), ctx.height - 2)
        return (x, y)
