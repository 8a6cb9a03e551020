"""Data containers produced by level generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from undercroft.environment.tile_types import get_walkable_map

if TYPE_CHECKING:
    from undercroft.types import Depth, SpawnTag, TileIndex, WorldTilePos
    from undercroft.util.coordinates import Rect


@dataclass(frozen=True)
class SpawnEntry:
    """A spawn point handed to the entity spawner.

    Attributes:
        index: Flat grid index, ``y * width + x``.
        tag: Archetype tag, e.g. "Goblin". Several entries may share an index.
    """

    index: TileIndex
    tag: SpawnTag


@dataclass(frozen=True)
class MapSnapshot:
    """Read-only copy of a grid captured for step-by-step playback.

    Attributes:
        tiles: Tile IDs, shape (width, height). Not writeable.
        revealed: Visibility mask for the visualizer, always fully revealed.
    """

    tiles: np.ndarray
    revealed: np.ndarray

    @classmethod
    def capture(cls, tiles: np.ndarray) -> MapSnapshot:
        frozen_tiles = tiles.copy(order="F")
        frozen_tiles.setflags(write=False)
        revealed = np.ones(tiles.shape, dtype=bool, order="F")
        revealed.setflags(write=False)
        return cls(tiles=frozen_tiles, revealed=revealed)


@dataclass(frozen=True)
class GeneratedLevel:
    """Everything a finished pipeline hands to its collaborators.

    Attributes:
        width: Map width in tiles.
        height: Map height in tiles.
        depth: Depth the level was generated for.
        name: Descriptive name of the recipe that built it.
        tiles: 2D numpy array of tile type IDs, shape (width, height). Not writeable.
        spawn_list: Spawn points for the entity spawner.
        starting_position: Where the player enters the level.
        exit_position: The single down staircase.
        rooms: Room rectangles, or None if the layout has no discrete rooms.
        history: Snapshots in capture order; the last equals ``tiles``.
    """

    width: int
    height: int
    depth: Depth
    name: str
    tiles: np.ndarray
    spawn_list: tuple[SpawnEntry, ...]
    starting_position: WorldTilePos
    exit_position: WorldTilePos
    rooms: tuple[Rect, ...] | None
    history: tuple[MapSnapshot, ...]

    def position_of(self, index: TileIndex) -> WorldTilePos:
        return (index % self.width, index // self.width)

    def walkable_mask(self) -> np.ndarray:
        return get_walkable_map(self.tiles)
