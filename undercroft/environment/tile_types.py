"""
Tile types for generated levels, using the flyweight pattern.

A level grid is a numpy array of `TileTypeID` values. The intrinsic
properties of each *type* of tile (walkable, transparent, display name and
ASCII glyph) live once in a structured array indexed by that ID, so property
maps for a whole grid are a single fancy-indexing lookup.
"""

from enum import IntEnum

import numpy as np


class TileTypeID(IntEnum):
    """Tile identifiers stored in level grids.

    WALL is 0 so that a freshly allocated grid is fully blocked.
    """

    WALL = 0
    FLOOR = 1
    DOWN_STAIRS = 2
    GRAVEL = 3
    SHALLOW_WATER = 4


# Defines the intrinsic data for a *type* of tile (flyweight).
TileTypeData = np.dtype(
    [
        ("walkable", bool),
        ("transparent", bool),  # FOV/line-of-sight for downstream lighting
        ("display_name", "U32"),  # Human-readable name (max 32 chars)
        ("glyph", "U1"),  # ASCII rendering for previews and templates
    ]
)


def make_tile_type_data(
    *,
    walkable: bool,
    transparent: bool,
    display_name: str,
    glyph: str,
) -> np.ndarray:
    """Create a TileTypeData instance."""
    return np.array((walkable, transparent, display_name, glyph), dtype=TileTypeData)


_TILE_TYPE_DATA: dict[TileTypeID, np.ndarray] = {
    TileTypeID.WALL: make_tile_type_data(
        walkable=False, transparent=False, display_name="Wall", glyph="#"
    ),
    TileTypeID.FLOOR: make_tile_type_data(
        walkable=True, transparent=True, display_name="Floor", glyph="."
    ),
    TileTypeID.DOWN_STAIRS: make_tile_type_data(
        walkable=True, transparent=True, display_name="Down Stairs", glyph=">"
    ),
    TileTypeID.GRAVEL: make_tile_type_data(
        walkable=True, transparent=True, display_name="Gravel", glyph=","
    ),
    TileTypeID.SHALLOW_WATER: make_tile_type_data(
        walkable=True, transparent=True, display_name="Shallow Water", glyph="~"
    ),
}

# Property lookup arrays, indexed by TileTypeID.
_tile_type_properties = np.array(
    [_TILE_TYPE_DATA[tile_id] for tile_id in TileTypeID], dtype=TileTypeData
)
_tile_type_properties_walkable = _tile_type_properties["walkable"]
_tile_type_properties_transparent = _tile_type_properties["transparent"]
_tile_type_properties_glyph = _tile_type_properties["glyph"]


def get_walkable_map(tile_type_ids_map: np.ndarray) -> np.ndarray:
    """Boolean map of walkable tiles for a grid of tile IDs."""
    return _tile_type_properties_walkable[tile_type_ids_map]


def get_transparent_map(tile_type_ids_map: np.ndarray) -> np.ndarray:
    """Boolean map of see-through tiles for a grid of tile IDs."""
    return _tile_type_properties_transparent[tile_type_ids_map]


def get_tile_type_name_by_id(tile_type_id: int) -> str:
    if 0 <= tile_type_id < len(_tile_type_properties):
        return str(_tile_type_properties["display_name"][tile_type_id])
    return f"Unknown Tile (ID: {tile_type_id})"


def is_walkable(tile_type_id: int) -> bool:
    return bool(_tile_type_properties_walkable[tile_type_id])


def render_ascii(tiles: np.ndarray) -> str:
    """Render a (width, height) tile grid as newline-separated rows."""
    glyphs = _tile_type_properties_glyph[tiles]
    return "\n".join("".join(row) for row in glyphs.T)
