"""Build context for the level generation pipeline.

The BuildContext is a mutable container that holds all state during level
generation. Each builder in the chain receives the same context and modifies
it in place. This avoids copying large numpy arrays between builders.

The tile grid is stored as a (width, height) array in Fortran order, so
``tiles[x, y]`` is the natural accessor and the flattened layout is row-major:
flat index ``y * width + x`` addresses the same tile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from undercroft import config
from undercroft.environment.generators.base import MapSnapshot, SpawnEntry
from undercroft.environment.tile_types import TileTypeID, get_walkable_map
from undercroft.types import Depth, SpawnTag, TileIndex, WorldTilePos
from undercroft.util.coordinates import Rect

logger = logging.getLogger(__name__)


class BuilderPreconditionError(RuntimeError):
    """A builder needs context state that no earlier stage produced."""


class LevelRejectedError(RuntimeError):
    """The layout rolled so far cannot hold a start, an exit or a route.

    Unlike a precondition failure this depends on the random layout, so a
    fresh recipe may succeed where this one did not.
    """


@dataclass
class BuildContext:
    """Mutable state container passed through the builder chain.

    Attributes:
        width: Map width in tiles.
        height: Map height in tiles.
        depth: Depth of the level being built.
        name: Descriptive name of the recipe.
        tiles: 2D numpy array of TileTypeID values. Shape: (width, height).
        rooms: Room rectangles, or None until a room-producing builder runs.
            Stages that need rooms must treat None as a precondition failure.
        corridors: Carved corridor tiles per corridor, as flat indices.
        spawn_list: Spawn points. Several entries may share an index.
        starting_position: Player entry tile, once a start selector has run.
        exit_position: Tile holding the single DOWN_STAIRS marker.
        region_seeds: Voronoi seed points, reused as spawn-region centroids.
        history: Append-only snapshots of the grid.
        record_history: When False, intermediate snapshots are skipped.
    """

    width: int
    height: int
    depth: Depth
    name: str
    tiles: np.ndarray
    rooms: list[Rect] | None = None
    corridors: list[list[TileIndex]] | None = None
    spawn_list: list[SpawnEntry] = field(default_factory=list)
    starting_position: WorldTilePos | None = None
    exit_position: WorldTilePos | None = None
    region_seeds: list[WorldTilePos] | None = None
    history: list[MapSnapshot] = field(default_factory=list)
    record_history: bool = True

    @classmethod
    def create(
        cls,
        width: int,
        height: int,
        depth: Depth = 1,
        name: str = "",
        record_history: bool = config.MAPGEN_RECORD_HISTORY,
    ) -> BuildContext:
        """Create a fully blocked context ready for the initial builder."""
        tiles = np.full(
            (width, height),
            fill_value=TileTypeID.WALL,
            dtype=np.uint8,
            order="F",
        )
        return cls(
            width=width,
            height=height,
            depth=depth,
            name=name,
            tiles=tiles,
            record_history=record_history,
        )

    def scratch(self) -> BuildContext:
        """A fresh blocked context with the same dimensions and depth."""
        return BuildContext.create(
            self.width, self.height, self.depth, self.name, record_history=False
        )

    # -------------------------------------------------------------------------
    # Grid access
    # -------------------------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index_of(self, x: int, y: int) -> TileIndex:
        """Flat row-major index of (x, y).

        Raises:
            IndexError: If the position lies outside the map.
        """
        if not self.in_bounds(x, y):
            raise IndexError(
                f"Tile ({x}, {y}) is outside the {self.width}x{self.height} map"
            )
        return y * self.width + x

    def position_of(self, index: TileIndex) -> WorldTilePos:
        if not 0 <= index < self.width * self.height:
            raise IndexError(f"Tile index {index} is outside the map")
        return (index % self.width, index // self.width)

    def get_tile(self, x: int, y: int) -> TileTypeID:
        self.index_of(x, y)
        return TileTypeID(self.tiles[x, y])

    def set_tile(self, x: int, y: int, tile: TileTypeID) -> None:
        self.index_of(x, y)
        self.tiles[x, y] = tile

    def walkable_mask(self) -> np.ndarray:
        return get_walkable_map(self.tiles)

    def is_walkable(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and bool(self.walkable_mask()[x, y])

    def floor_count(self) -> int:
        return int(np.count_nonzero(self.tiles == TileTypeID.FLOOR))

    def floor_fraction(self) -> float:
        return self.floor_count() / (self.width * self.height)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def take_snapshot(self, *, force: bool = False) -> None:
        """Append a read-only copy of the current grid to the history.

        Intermediate snapshots are skipped when history recording is off;
        ``force`` captures regardless, for the final layout.
        """
        if self.record_history or force:
            self.history.append(MapSnapshot.capture(self.tiles))

    # -------------------------------------------------------------------------
    # Start, exit and spawns
    # -------------------------------------------------------------------------

    def set_start(self, pos: WorldTilePos) -> None:
        self.index_of(*pos)
        self.starting_position = pos

    def set_exit(self, pos: WorldTilePos) -> None:
        """Mark ``pos`` as the level exit, demoting any previous exit to floor."""
        self.index_of(*pos)
        if self.exit_position is not None and self.exit_position != pos:
            old_x, old_y = self.exit_position
            if self.tiles[old_x, old_y] == TileTypeID.DOWN_STAIRS:
                self.tiles[old_x, old_y] = TileTypeID.FLOOR
        self.tiles[pos] = TileTypeID.DOWN_STAIRS
        self.exit_position = pos

    def clear_markers(self) -> None:
        """Forget start and exit, e.g. after the grid has been replaced."""
        self.starting_position = None
        self.exit_position = None

    def add_spawn(self, index: TileIndex, tag: SpawnTag) -> None:
        self.spawn_list.append(SpawnEntry(index=index, tag=tag))

    def spawned_indices(self) -> set[TileIndex]:
        return {entry.index for entry in self.spawn_list}

    def prune_spawns(self) -> int:
        """Drop spawn entries that no longer sit on a walkable tile.

        Returns:
            The number of entries removed.
        """
        walkable = self.walkable_mask().ravel(order="F")
        kept = [entry for entry in self.spawn_list if walkable[entry.index]]
        removed = len(self.spawn_list) - len(kept)
        if removed:
            logger.debug(f"Pruned {removed} spawn entries on blocked tiles")
        self.spawn_list = kept
        return removed

    def remove_spawns_in(self, x: int, y: int, width: int, height: int) -> int:
        """Delete spawn entries inside a width x height footprint at (x, y)."""
        kept = []
        for entry in self.spawn_list:
            sx, sy = self.position_of(entry.index)
            if not (x <= sx < x + width and y <= sy < y + height):
                kept.append(entry)
        removed = len(self.spawn_list) - len(kept)
        self.spawn_list = kept
        return removed

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def require_rooms(self, stage: str) -> list[Rect]:
        if self.rooms is None:
            raise BuilderPreconditionError(
                f"{stage} requires a room list, but no room-producing builder ran"
            )
        return self.rooms

    def require_start(self, stage: str) -> WorldTilePos:
        if self.starting_position is None:
            raise BuilderPreconditionError(
                f"{stage} requires a starting position, but none was selected"
            )
        return self.starting_position
