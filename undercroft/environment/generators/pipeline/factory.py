"""Factory functions for assembling builder chains.

Random composition works slot by slot: every slot of a recipe is an
independent weighted draw from a declarative table, so the tables below are
the whole combinatorial space. Two archetypes share the same ending:

- Room-oriented: a room-producing starter, then drawing, sort, corridor,
  modifier, start, exit and spawn slots that depend on the room list.
- Organic: a shape starter followed by a forced center start, a
  reachability cull, a start re-seeded at a hinted area, region spawns and
  the most distant exit.

Either archetype may then be resynthesized from its own chunks or have a
section (the underground fort or an orc camp) stamped over it. Both change
the layout enough that the organic tail takes over placement. A cave overlay
may also be merged in; it only opens tiles, so rooms stay valid. The shared
ending is an optional decorator pass, door placement, room vaults and a final
reachability cull.

Named fixed recipes for the CLI and tests:
- "rooms": BSP dungeon with dogleg corridors and room-based placement
- "caves": cellular automaton caves with the organic tail
- "synthesis": caves resynthesized by waveform collapse
- "random": a freshly rolled recipe
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from undercroft import config

from .context import LevelRejectedError
from .layers import (
    AreaStartingPosition,
    BspCorridors,
    BspDungeonBuilder,
    BspInteriorBuilder,
    CellularAutomataBuilder,
    CorridorSpawner,
    CullUnreachable,
    Decorator,
    DistantExit,
    DLABuilder,
    DoglegCorridors,
    DoorPlacement,
    DrunkardsWalkBuilder,
    MazeBuilder,
    NearestCorridors,
    OverlayMerger,
    PrefabBuilder,
    RegionSpawner,
    RoomBasedSpawner,
    RoomBasedStairs,
    RoomBasedStartingPosition,
    RoomCornerRounder,
    RoomDrawer,
    RoomExploder,
    RoomSort,
    RoomSorter,
    SimpleMapBuilder,
    StraightLineCorridors,
    VoronoiCellBuilder,
    VoronoiDistance,
    WaveformCollapseBuilder,
    XHint,
    YHint,
)
from .layers.prefab_templates import ORC_CAMP, SAMPLE_CAVERN, UNDERGROUND_FORT
from .pipeline import BuilderChain, LevelValidationError

if TYPE_CHECKING:
    from undercroft.environment.generators.base import GeneratedLevel
    from undercroft.types import Depth, TileCoord
    from undercroft.util.rng import RNG

    from .layer import InitialBuilder, MetaBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeightedOption[StageType]:
    """One entry of a slot table.

    Attributes:
        label: Short name used when logging the rolled recipe.
        weight: Relative chance of this option within its table.
        make: Builds a fresh stage, or returns None for "skip this slot".
    """

    label: str
    weight: int
    make: Callable[[], StageType | None]


type WeightedTable[StageType] = tuple[WeightedOption[StageType], ...]


def roll[StageType](rng: RNG, table: WeightedTable[StageType]) -> StageType | None:
    """Draw one option from ``table`` by weight and build its stage."""
    option = rng.choices(table, weights=[o.weight for o in table])[0]
    return option.make()


def _skip() -> None:
    return None


# =============================================================================
# SLOT TABLES
# =============================================================================

ROOM_STARTERS: WeightedTable[InitialBuilder] = (
    WeightedOption("simple", 1, SimpleMapBuilder),
    WeightedOption("bsp", 1, BspDungeonBuilder),
    WeightedOption("bsp_interior", 1, BspInteriorBuilder),
)

ROOM_DRAWING: WeightedTable[MetaBuilder] = (
    WeightedOption("as_carved", 1, _skip),
    WeightedOption("drawer", 1, RoomDrawer),
)

ROOM_SORTS: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 1, _skip),
    *(
        WeightedOption(sort.name.lower(), 1, lambda sort=sort: RoomSorter(sort))
        for sort in RoomSort
    ),
)

CORRIDORS: WeightedTable[MetaBuilder] = (
    WeightedOption("dogleg", 1, DoglegCorridors),
    WeightedOption("bsp", 1, BspCorridors),
    WeightedOption("nearest", 1, NearestCorridors),
    WeightedOption("straight", 1, StraightLineCorridors),
)

CORRIDOR_SPAWNS: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 1, _skip),
    WeightedOption("corridor_spawner", 1, CorridorSpawner),
)

ROOM_MODIFIERS: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 4, _skip),
    WeightedOption("exploder", 1, RoomExploder),
    WeightedOption("rounder", 1, RoomCornerRounder),
)

ROOM_START_STYLES: WeightedTable[str] = (
    WeightedOption("room", 1, lambda: "room"),
    WeightedOption("area", 1, lambda: "area"),
)

ROOM_EXITS: WeightedTable[MetaBuilder] = (
    WeightedOption("room_stairs", 1, RoomBasedStairs),
    WeightedOption("distant", 1, DistantExit),
)

ROOM_SPAWNS: WeightedTable[MetaBuilder] = (
    WeightedOption("room", 1, RoomBasedSpawner),
    WeightedOption("region", 1, RegionSpawner),
)

SHAPE_STARTERS: WeightedTable[InitialBuilder] = (
    WeightedOption("cellular", 4, CellularAutomataBuilder),
    WeightedOption("drunk_open_area", 1, DrunkardsWalkBuilder.open_area),
    WeightedOption("drunk_open_halls", 1, DrunkardsWalkBuilder.open_halls),
    WeightedOption("drunk_winding", 1, DrunkardsWalkBuilder.winding_passages),
    WeightedOption("drunk_fat", 1, DrunkardsWalkBuilder.fat_passages),
    WeightedOption("drunk_symmetry", 1, DrunkardsWalkBuilder.fearful_symmetry),
    WeightedOption("drunk_eastward", 1, DrunkardsWalkBuilder.eastward_drift),
    WeightedOption("dla_inwards", 1, DLABuilder.walk_inwards),
    WeightedOption("dla_outwards", 1, DLABuilder.walk_outwards),
    WeightedOption("dla_attractor", 1, DLABuilder.central_attractor),
    WeightedOption("dla_insectoid", 1, DLABuilder.insectoid),
    WeightedOption("dla_erosion", 1, DLABuilder.heavy_erosion),
    WeightedOption("maze", 1, MazeBuilder),
    *(
        WeightedOption(
            f"voronoi_{metric.name.lower()}",
            1,
            lambda metric=metric: VoronoiCellBuilder(distance=metric),
        )
        for metric in VoronoiDistance
    ),
    WeightedOption(
        "prefab_cavern", 1, lambda: PrefabBuilder.constant(SAMPLE_CAVERN)
    ),
    WeightedOption(
        "wfc_cavern", 1, lambda: WaveformCollapseBuilder(SAMPLE_CAVERN)
    ),
)

SYNTHESIS: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 2, _skip),
    WeightedOption("waveform", 1, WaveformCollapseBuilder),
)

SECTIONS: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 18, _skip),
    WeightedOption("fort", 1, lambda: PrefabBuilder.sectional(UNDERGROUND_FORT)),
    WeightedOption("orc_camp", 1, lambda: PrefabBuilder.sectional(ORC_CAMP)),
)

OVERLAY: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 9, _skip),
    WeightedOption(
        "cellular_overlay", 1, lambda: OverlayMerger(CellularAutomataBuilder())
    ),
)

DECORATION: WeightedTable[MetaBuilder] = (
    WeightedOption("none", 3, _skip),
    WeightedOption("decorator", 1, Decorator),
)


# =============================================================================
# RECIPE ASSEMBLY
# =============================================================================


def _with_optional(chain: BuilderChain, stage: MetaBuilder | None) -> bool:
    if stage is None:
        return False
    chain.with_(stage)
    return True


def _random_hint_start(rng: RNG) -> AreaStartingPosition:
    return AreaStartingPosition(rng.choice(list(XHint)), rng.choice(list(YHint)))


def _organic_tail(rng: RNG, chain: BuilderChain) -> None:
    """Center start, cull, hinted start, region spawns, distant exit."""
    chain.with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
    chain.with_(CullUnreachable())
    chain.with_(_random_hint_start(rng))
    chain.with_(RegionSpawner())
    chain.with_(DistantExit())


def _room_placement(rng: RNG, chain: BuilderChain) -> None:
    """Start, cull, exit and spawns chosen from the room slots."""
    if roll(rng, ROOM_START_STYLES) == "room":
        chain.with_(RoomBasedStartingPosition())
    else:
        chain.with_(_random_hint_start(rng))
    chain.with_(CullUnreachable())
    chain.with_(roll(rng, ROOM_EXITS))  # type: ignore[arg-type]
    chain.with_(roll(rng, ROOM_SPAWNS))  # type: ignore[arg-type]
    _with_optional(chain, roll(rng, CORRIDOR_SPAWNS))


def _shared_ending(rng: RNG, chain: BuilderChain) -> None:
    _with_optional(chain, roll(rng, DECORATION))
    chain.with_(DoorPlacement())
    chain.with_(PrefabBuilder.vaults())
    chain.with_(CullUnreachable())


def random_builder(
    depth: Depth,
    rng: RNG,
    width: TileCoord = config.MAP_WIDTH,
    height: TileCoord = config.MAP_HEIGHT,
) -> BuilderChain:
    """Roll a complete recipe and return the unbuilt chain.

    All composition draws come from ``rng`` before any stage runs, so
    the same rng state always yields the same recipe.
    """
    room_oriented = rng.randint(1, 2) == 1
    starter = roll(rng, ROOM_STARTERS if room_oriented else SHAPE_STARTERS)
    assert starter is not None

    chain = BuilderChain(width, height, depth, name=starter.name)
    chain.start_with(starter)

    has_rooms = isinstance(starter, (SimpleMapBuilder, BspDungeonBuilder))
    if has_rooms:
        _with_optional(chain, roll(rng, ROOM_DRAWING))
        _with_optional(chain, roll(rng, ROOM_SORTS))
        chain.with_(roll(rng, CORRIDORS))  # type: ignore[arg-type]
        _with_optional(chain, roll(rng, ROOM_MODIFIERS))

    # Both passes replace the layout that room placement would rely on
    reshaped = _with_optional(chain, roll(rng, SYNTHESIS))
    reshaped |= _with_optional(chain, roll(rng, SECTIONS))
    _with_optional(chain, roll(rng, OVERLAY))

    if has_rooms and not reshaped:
        _room_placement(rng, chain)
    else:
        _organic_tail(rng, chain)

    _shared_ending(rng, chain)
    logger.info(f"Rolled recipe for depth {depth}: {describe_recipe(chain)}")
    return chain


def describe_recipe(chain: BuilderChain) -> str:
    """Human-readable stage list, e.g. ``"BspDungeonBuilder -> ..."``."""
    return " -> ".join(chain.describe())


# =============================================================================
# FIXED RECIPES
# =============================================================================


def create_rooms_pipeline(
    depth: Depth = 1,
    width: TileCoord = config.MAP_WIDTH,
    height: TileCoord = config.MAP_HEIGHT,
) -> BuilderChain:
    """BSP rooms joined in left-to-right order by dogleg corridors."""
    return (
        BuilderChain(width, height, depth, name="rooms")
        .start_with(BspDungeonBuilder())
        .with_(RoomSorter(RoomSort.LEFTMOST))
        .with_(DoglegCorridors())
        .with_(RoomBasedStartingPosition())
        .with_(CullUnreachable())
        .with_(RoomBasedStairs())
        .with_(RoomBasedSpawner())
        .with_(DoorPlacement())
        .with_(CullUnreachable())
    )


def create_caves_pipeline(
    depth: Depth = 1,
    width: TileCoord = config.MAP_WIDTH,
    height: TileCoord = config.MAP_HEIGHT,
) -> BuilderChain:
    """Cellular automaton caves with region spawns and a distant exit."""
    return (
        BuilderChain(width, height, depth, name="caves")
        .start_with(CellularAutomataBuilder())
        .with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
        .with_(CullUnreachable())
        .with_(RegionSpawner())
        .with_(DistantExit())
        .with_(Decorator())
        .with_(CullUnreachable())
    )


def create_synthesis_pipeline(
    depth: Depth = 1,
    width: TileCoord = config.MAP_WIDTH,
    height: TileCoord = config.MAP_HEIGHT,
) -> BuilderChain:
    """Caves rebuilt by waveform collapse from their own chunks."""
    return (
        BuilderChain(width, height, depth, name="synthesis")
        .start_with(CellularAutomataBuilder())
        .with_(WaveformCollapseBuilder())
        .with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
        .with_(CullUnreachable())
        .with_(RegionSpawner())
        .with_(DistantExit())
        .with_(CullUnreachable())
    )


RECIPES = ("rooms", "caves", "synthesis", "random")


def create_pipeline(
    name: str,
    rng: RNG,
    depth: Depth = 1,
    width: TileCoord = config.MAP_WIDTH,
    height: TileCoord = config.MAP_HEIGHT,
) -> BuilderChain:
    """Create an unbuilt chain by recipe name.

    Args:
        name: One of RECIPES.
        rng: Only drawn from by the "random" recipe, to roll its slots.
        depth: Level depth; deeper levels get more spawns and vaults.
        width: Map width in tiles.
        height: Map height in tiles.

    Raises:
        ValueError: If the recipe name is not recognized.
    """
    match name:
        case "rooms":
            return create_rooms_pipeline(depth, width, height)
        case "caves":
            return create_caves_pipeline(depth, width, height)
        case "synthesis":
            return create_synthesis_pipeline(depth, width, height)
        case "random":
            return random_builder(depth, rng, width, height)
    raise ValueError(f"Unknown recipe name: {name!r}")


def generate_level(
    depth: Depth,
    rng: RNG,
    width: TileCoord = config.MAP_WIDTH,
    height: TileCoord = config.MAP_HEIGHT,
    recipe: str = "random",
    max_attempts: int = config.MAPGEN_MAX_RECIPE_ATTEMPTS,
) -> GeneratedLevel:
    """Build a playable level, rerolling recipes whose layout is rejected.

    Each attempt continues drawing from the same ``rng``, so a seed still
    fully determines the result. Only layout-dependent failures are retried;
    a BuilderPreconditionError means the recipe itself is miswired and
    propagates from the first attempt.

    Raises:
        BuilderPreconditionError: A stage is missing state no earlier stage
            could have produced.
        LevelRejectedError | LevelValidationError: The last failure, if every
            attempt was rejected.
    """
    last_error: LevelRejectedError | LevelValidationError | None = None
    for attempt in range(1, max_attempts + 1):
        chain = create_pipeline(recipe, rng, depth, width, height)
        try:
            return chain.build(rng)
        except (LevelRejectedError, LevelValidationError) as e:
            logger.warning(
                f"Recipe attempt {attempt} ({describe_recipe(chain)}) rejected: {e}"
            )
            last_error = e
    assert last_error is not None
    raise last_error
