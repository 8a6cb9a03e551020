"""Stage-based level generation.

A level is built by a BuilderChain: one InitialBuilder produces the first
layout, then MetaBuilders transform the shared BuildContext in order. The
finished chain hands back an immutable GeneratedLevel.

Example usage:
    from undercroft.environment.generators.pipeline import generate_level

    level = generate_level(depth=1, rng=random.Random(42))

Chains can also be assembled by hand:
    from undercroft.environment.generators.pipeline import (
        BuilderChain,
        CellularAutomataBuilder,
        AreaStartingPosition,
        CullUnreachable,
        DistantExit,
        XHint,
        YHint,
    )

    chain = (
        BuilderChain(80, 50, depth=1, name="caves")
        .start_with(CellularAutomataBuilder())
        .with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
        .with_(CullUnreachable())
        .with_(DistantExit())
    )
    level = chain.build(random.Random(42))
"""

from .context import BuildContext, BuilderPreconditionError, LevelRejectedError
from .layer import BuilderStage, InitialBuilder, MetaBuilder
from .layers import (
    AreaEndingPosition,
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
    PrefabParseError,
    RegionSpawner,
    RoomBasedSpawner,
    RoomBasedStairs,
    RoomBasedStartingPosition,
    RoomCornerRounder,
    RoomDrawer,
    RoomExploder,
    RoomSorter,
    SimpleMapBuilder,
    StraightLineCorridors,
    VoronoiCellBuilder,
    WaveformCollapseBuilder,
    XHint,
    YHint,
)
from .pipeline import (
    BuilderChain,
    ChainState,
    LevelValidationError,
    PipelineStateError,
    validate_level,
)
from .factory import (
    RECIPES,
    create_pipeline,
    describe_recipe,
    generate_level,
    random_builder,
)

__all__ = [
    "RECIPES",
    "AreaEndingPosition",
    "AreaStartingPosition",
    "BspCorridors",
    "BspDungeonBuilder",
    "BspInteriorBuilder",
    "BuildContext",
    "BuilderChain",
    "BuilderPreconditionError",
    "BuilderStage",
    "CellularAutomataBuilder",
    "ChainState",
    "CorridorSpawner",
    "CullUnreachable",
    "DLABuilder",
    "Decorator",
    "DistantExit",
    "DoglegCorridors",
    "DoorPlacement",
    "DrunkardsWalkBuilder",
    "InitialBuilder",
    "LevelRejectedError",
    "LevelValidationError",
    "MazeBuilder",
    "MetaBuilder",
    "NearestCorridors",
    "OverlayMerger",
    "PipelineStateError",
    "PrefabBuilder",
    "PrefabParseError",
    "RegionSpawner",
    "RoomBasedSpawner",
    "RoomBasedStairs",
    "RoomBasedStartingPosition",
    "RoomCornerRounder",
    "RoomDrawer",
    "RoomExploder",
    "RoomSorter",
    "SimpleMapBuilder",
    "StraightLineCorridors",
    "VoronoiCellBuilder",
    "WaveformCollapseBuilder",
    "XHint",
    "YHint",
    "create_pipeline",
    "describe_recipe",
    "generate_level",
    "random_builder",
    "validate_level",
]
