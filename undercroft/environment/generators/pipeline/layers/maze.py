"""Perfect mazes carved by a recursive backtracker."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from undercroft.environment.generators.pipeline.layer import InitialBuilder
from undercroft.environment.tile_types import TileTypeID

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)

# Cell-grid offsets in the order neighbours are offered to the rng.
CELL_STEPS: tuple[tuple[int, int], ...] = ((0, -1), (1, 0), (0, 1), (-1, 0))


class MazeBuilder(InitialBuilder):
    """A maze with exactly one path between any two open tiles.

    The map is divided into a grid of cells on even tile coordinates,
    ``(width // 2 - 2) x (height // 2 - 2)`` of them. Cell (c, r) occupies
    tile ``(2c + 2, 2r + 2)``, and the odd tile between two neighbouring
    cells is opened when the walk passes between them. Every cell is
    visited, so the whole maze is a single connected region.
    """

    def __init__(self, snapshot_every: int = 50) -> None:
        self.snapshot_every = snapshot_every

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        cols = ctx.width // 2 - 2
        rows = ctx.height // 2 - 2
        if cols < 1 or rows < 1:
            raise ValueError(
                f"A {ctx.width}x{ctx.height} map is too small to hold a maze"
            )

        visited = np.zeros((cols, rows), dtype=bool)
        current = (0, 0)
        visited[current] = True
        ctx.tiles[2, 2] = TileTypeID.FLOOR
        backtrack: list[tuple[int, int]] = []
        steps = 0

        while True:
            c, r = current
            options = [
                (c + dc, r + dr)
                for dc, dr in CELL_STEPS
                if 0 <= c + dc < cols
                and 0 <= r + dr < rows
                and not visited[c + dc, r + dr]
            ]
            if options:
                nc, nr = rng.choice(options)
                visited[nc, nr] = True
                ctx.tiles[c + nc + 2, r + nr + 2] = TileTypeID.FLOOR
                ctx.tiles[2 * nc + 2, 2 * nr + 2] = TileTypeID.FLOOR
                backtrack.append(current)
                current = (nc, nr)
            elif backtrack:
                current = backtrack.pop()
            else:
                break

            steps += 1
            if steps % self.snapshot_every == 0:
                ctx.take_snapshot()

        ctx.take_snapshot()
        logger.debug(f"Maze of {cols}x{rows} cells carved in {steps} steps")
