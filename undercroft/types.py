from __future__ import annotations

from typing import Literal

# =============================================================================
# SPATIAL TYPES
# =============================================================================

type TileCoord = int  # Always integer tile position

# World coordinates - absolute positions on the level grid
type WorldTileCoord = TileCoord  # Example: x=5, y=3
type WorldTilePos = tuple[
    WorldTileCoord, WorldTileCoord
]  # Example: (5, 3) = tile 5,3 on map

# Flat grid index - row-major, so index = y * width + x
type TileIndex = int  # Example: 243 = tile 3,3 on an 80-wide map

# Directions - discrete grid steps
type UnitStep = Literal[-1, 0, 1]
type Direction = tuple[UnitStep, UnitStep]  # Example: (-1, 0) = westward step

# =============================================================================
# GENERATION TYPES
# =============================================================================

# Level depth, 1 = first floor below the surface
type Depth = int

# Archetype tag attached to a spawn point. Interpreted by the entity spawner,
# never by the generator itself.
type SpawnTag = str  # Example: "Goblin", "Health Potion", "Door"

type RandomSeed = int | str | None
