"""Sample levels, sections and room vaults loaded from fixed templates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np

from undercroft.environment.generators.pipeline.layer import (
    InitialBuilder,
    MetaBuilder,
)
from undercroft.environment.tile_types import TileTypeID, get_walkable_map

from .prefab_templates import (
    ROOM_VAULTS,
    HorizontalPlacement,
    PrefabTemplate,
    VerticalPlacement,
)

if TYPE_CHECKING:
    from undercroft.environment.generators.pipeline.context import BuildContext
    from undercroft.types import SpawnTag, WorldTilePos
    from undercroft.util.rng import RNG

logger = logging.getLogger(__name__)

TRANSPARENT_GLYPH = "_"

GLYPH_TILES: dict[str, TileTypeID] = {
    " ": TileTypeID.FLOOR,
    "#": TileTypeID.WALL,
    "@": TileTypeID.FLOOR,
    ">": TileTypeID.DOWN_STAIRS,
    "~": TileTypeID.SHALLOW_WATER,
    "g": TileTypeID.FLOOR,
    "o": TileTypeID.FLOOR,
    "^": TileTypeID.FLOOR,
    "%": TileTypeID.FLOOR,
    "!": TileTypeID.FLOOR,
}

GLYPH_SPAWNS: dict[str, SpawnTag] = {
    "g": "Goblin",
    "o": "Orc",
    "^": "Bear Trap",
    "%": "Rations",
    "!": "Health Potion",
}


class PrefabParseError(ValueError):
    """A template is malformed, undersized or uses an unknown glyph."""


@dataclass
class ParsedPrefab:
    """A template decoded into tiles.

    Attributes:
        tiles: Tile IDs, shape (width, height).
        stamp_mask: False where the template is transparent.
        spawns: (x, y, tag) relative to the template's top-left corner.
        start: Relative player start, if the template has one.
        exit: Relative stairs position, if the template has one.
    """

    tiles: np.ndarray
    stamp_mask: np.ndarray
    spawns: list[tuple[int, int, SpawnTag]] = field(default_factory=list)
    start: WorldTilePos | None = None
    exit: WorldTilePos | None = None

    @property
    def width(self) -> int:
        return self.tiles.shape[0]

    @property
    def height(self) -> int:
        return self.tiles.shape[1]


def parse_template(template: PrefabTemplate) -> ParsedPrefab:
    """Decode a template through the glyph table.

    Raises:
        PrefabParseError: If the row count or any row length disagrees with
            the declared size, or a glyph is not in the table.
    """
    if len(template.rows) != template.height:
        raise PrefabParseError(
            f"{template.name}: expected {template.height} rows, "
            f"found {len(template.rows)}"
        )

    tiles = np.full(
        (template.width, template.height), TileTypeID.WALL, dtype=np.uint8, order="F"
    )
    stamp_mask = np.ones((template.width, template.height), dtype=bool, order="F")
    parsed = ParsedPrefab(tiles=tiles, stamp_mask=stamp_mask)

    for y, row in enumerate(template.rows):
        if len(row) != template.width:
            raise PrefabParseError(
                f"{template.name}: row {y} is {len(row)} wide, "
                f"expected {template.width}"
            )
        for x, glyph in enumerate(row):
            if glyph == TRANSPARENT_GLYPH:
                stamp_mask[x, y] = False
                continue
            if glyph not in GLYPH_TILES:
                raise PrefabParseError(
                    f"{template.name}: unknown glyph {glyph!r} at ({x}, {y})"
                )
            tiles[x, y] = GLYPH_TILES[glyph]
            if glyph in GLYPH_SPAWNS:
                parsed.spawns.append((x, y, GLYPH_SPAWNS[glyph]))
            elif glyph == "@":
                parsed.start = (x, y)
            elif glyph == ">":
                parsed.exit = (x, y)

    return parsed


class StampPolicy(Enum):
    """How a stamped fragment treats tiles that are already open."""

    OVERWRITE = auto()  # the template wins everywhere it is not transparent
    PRESERVE_FLOOR = auto()  # template walls never close existing open tiles


def stamp(
    ctx: BuildContext,
    prefab: ParsedPrefab,
    anchor: WorldTilePos,
    policy: StampPolicy = StampPolicy.OVERWRITE,
) -> None:
    """Write ``prefab`` into the grid with its top-left corner at ``anchor``.

    Spawn entries inside the footprint are deleted before the template's own
    spawns are added. Tiles outside the footprint are left untouched.

    Raises:
        ValueError: If the footprint does not fit inside the map.
    """
    ax, ay = anchor
    if not (
        0 <= ax
        and 0 <= ay
        and ax + prefab.width <= ctx.width
        and ay + prefab.height <= ctx.height
    ):
        raise ValueError(
            f"A {prefab.width}x{prefab.height} fragment at {anchor} does not fit "
            f"a {ctx.width}x{ctx.height} map"
        )

    removed = ctx.remove_spawns_in(ax, ay, prefab.width, prefab.height)
    if removed:
        logger.debug(f"Removed {removed} spawn entries under fragment at {anchor}")

    region = ctx.tiles[ax : ax + prefab.width, ay : ay + prefab.height]
    mask = prefab.stamp_mask.copy()
    if policy is StampPolicy.PRESERVE_FLOOR:
        mask &= ~(get_walkable_map(region) & (prefab.tiles == TileTypeID.WALL))
    region[mask] = prefab.tiles[mask]

    for x, y, tag in prefab.spawns:
        ctx.add_spawn(ctx.index_of(ax + x, ay + y), tag)

    # Markers overwritten by the fragment are no longer valid
    if ctx.exit_position is not None and ctx.tiles[ctx.exit_position] != (
        TileTypeID.DOWN_STAIRS
    ):
        ctx.exit_position = None
    if ctx.starting_position is not None and not ctx.is_walkable(
        *ctx.starting_position
    ):
        ctx.starting_position = None

    if prefab.start is not None:
        ctx.set_start((ax + prefab.start[0], ay + prefab.start[1]))
    if prefab.exit is not None:
        ctx.set_exit((ax + prefab.exit[0], ay + prefab.exit[1]))


def section_anchor(
    template: PrefabTemplate, width: int, height: int
) -> WorldTilePos:
    """Resolve a template's placement hint to a top-left corner."""
    horizontal, vertical = template.placement
    match horizontal:
        case HorizontalPlacement.LEFT:
            x = 0
        case HorizontalPlacement.CENTER:
            x = (width - template.width) // 2
        case HorizontalPlacement.RIGHT:
            x = width - template.width - 1
    match vertical:
        case VerticalPlacement.TOP:
            y = 0
        case VerticalPlacement.CENTER:
            y = (height - template.height) // 2
        case VerticalPlacement.BOTTOM:
            y = height - template.height - 1
    return (max(x, 0), max(y, 0))


class PrefabMode(Enum):
    CONSTANT = auto()
    SECTIONAL = auto()
    ROOM_VAULTS = auto()


class PrefabBuilder(InitialBuilder, MetaBuilder):
    """Loads hand-authored fragments into the level.

    Modes:
        CONSTANT: the template replaces the whole grid from (0, 0).
        SECTIONAL: the template is stamped at its placement hint, or at an
            explicit anchor, over whatever is already there.
        ROOM_VAULTS: depth-appropriate vaults are dropped onto open floor
            that has room for them, away from the start and exit.
    """

    def __init__(
        self,
        mode: PrefabMode,
        templates: tuple[PrefabTemplate, ...],
        anchor: WorldTilePos | None = None,
        policy: StampPolicy = StampPolicy.OVERWRITE,
    ) -> None:
        if not templates:
            raise ValueError("PrefabBuilder needs at least one template")
        self.mode = mode
        self.templates = templates
        self.anchor = anchor
        self.policy = policy
        # Parse eagerly: a broken template is a load-time failure
        self._parsed = [parse_template(t) for t in templates]

    @classmethod
    def constant(cls, template: PrefabTemplate) -> PrefabBuilder:
        return cls(PrefabMode.CONSTANT, (template,))

    @classmethod
    def sectional(
        cls,
        template: PrefabTemplate,
        anchor: WorldTilePos | None = None,
        policy: StampPolicy = StampPolicy.OVERWRITE,
    ) -> PrefabBuilder:
        return cls(PrefabMode.SECTIONAL, (template,), anchor=anchor, policy=policy)

    @classmethod
    def vaults(
        cls, templates: tuple[PrefabTemplate, ...] = ROOM_VAULTS
    ) -> PrefabBuilder:
        return cls(PrefabMode.ROOM_VAULTS, templates)

    @property
    def name(self) -> str:
        if self.mode is PrefabMode.ROOM_VAULTS:
            return "RoomVaults"
        return f"Prefab({self.mode.name.lower()}:{self.templates[0].name})"

    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        self.transform(rng, ctx)

    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        match self.mode:
            case PrefabMode.CONSTANT:
                self._load_level(ctx)
            case PrefabMode.SECTIONAL:
                self._place_section(ctx)
            case PrefabMode.ROOM_VAULTS:
                self._place_vaults(rng, ctx)

    def _load_level(self, ctx: BuildContext) -> None:
        ctx.tiles[:] = TileTypeID.WALL
        ctx.rooms = None
        ctx.corridors = None
        ctx.region_seeds = None
        ctx.spawn_list = []
        ctx.clear_markers()

        prefab = self._parsed[0]
        if prefab.width > ctx.width or prefab.height > ctx.height:
            raise PrefabParseError(
                f"{self.templates[0].name} is larger than the "
                f"{ctx.width}x{ctx.height} map"
            )
        stamp(ctx, prefab, (0, 0))
        ctx.take_snapshot()

    def _place_section(self, ctx: BuildContext) -> None:
        template = self.templates[0]
        anchor = self.anchor or section_anchor(template, ctx.width, ctx.height)
        stamp(ctx, self._parsed[0], anchor, self.policy)
        logger.debug(f"Stamped section {template.name} at {anchor}")
        ctx.take_snapshot()

    def _place_vaults(self, rng: RNG, ctx: BuildContext) -> None:
        if rng.randint(1, 6) + ctx.depth < 4:
            return

        eligible = [
            (template, parsed)
            for template, parsed in zip(self.templates, self._parsed, strict=True)
            if template.first_depth <= ctx.depth <= template.last_depth
        ]
        if not eligible:
            return

        used = np.zeros((ctx.width, ctx.height), dtype=bool, order="F")
        for _ in range(rng.randint(1, 3)):
            template, parsed = rng.choice(eligible)
            anchors = self._vault_anchors(ctx, parsed, used)
            if not anchors:
                continue

            x, y = anchors[rng.randrange(len(anchors))]
            stamp(ctx, parsed, (x, y))
            used[x : x + parsed.width, y : y + parsed.height] = True
            logger.debug(f"Placed vault {template.name} at ({x}, {y})")
            ctx.take_snapshot()

    @staticmethod
    def _vault_anchors(
        ctx: BuildContext, prefab: ParsedPrefab, used: np.ndarray
    ) -> list[WorldTilePos]:
        """Top-left corners whose whole footprint is unused plain floor."""
        if prefab.width > ctx.width or prefab.height > ctx.height:
            return []

        open_floor = (ctx.tiles == TileTypeID.FLOOR) & ~used
        for marker in (ctx.starting_position, ctx.exit_position):
            if marker is not None:
                open_floor[marker] = False

        windows = np.lib.stride_tricks.sliding_window_view(
            open_floor, (prefab.width, prefab.height)
        ).all(axis=(2, 3))
        span_x = windows.shape[0]
        return [
            (index % span_x, index // span_x)
            for index in np.flatnonzero(windows.ravel(order="F")).tolist()
        ]
