"""Blending a second, independently generated layout into the current one."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from undercroft.environment.generators.pipeline.layer import MetaBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.environment.generators.pipeline.layer import InitialBuilder
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)


class OverlayMerger(MetaBuilder):
    """OR-s the open tiles of another builder's layout into the grid.

    The other builder runs on a scratch context of the same size, drawing
    from the same rng stream. Only its floor is taken; its rooms, spawns and
    markers are discarded. Tiles the overlay opens become plain floor, and
    nothing that is already open is closed.
    """

    def __init__(self, builder: InitialBuilder) -> None:
        self.builder = builder

    @property
    def name(self) -> str:
        return f"Overlay({self.builder.name})"

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        scratch = ctx.scratch()
        self.builder.generate(rng, scratch)

        opened = scratch.walkable_mask() & ~ctx.walkable_mask()
        ctx.tiles[opened] = TileTypeID.FLOOR
        logger.debug(f"{self.name} opened {int(np.count_nonzero(opened))} tiles")
        ctx.take_snapshot()
