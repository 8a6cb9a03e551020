"""Builder chain that orchestrates stage-based level generation.

The BuilderChain runs one InitialBuilder followed by an ordered list of
MetaBuilders, each transforming a shared BuildContext. A single rng is
threaded through every stage in order, so the same seed and the same chain
always produce the same level.

Example:
    chain = (
        BuilderChain(80, 50, depth=1, name="caves")
        .start_with(CellularAutomataBuilder())
        .with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
        .with_(CullUnreachable())
        .with_(DistantExit())
    )
    level = chain.build(random.Random(42))
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np

from undercroft import config
from undercroft.environment.generators.base import GeneratedLevel
from undercroft.environment.generators.common import UNREACHABLE, distance_map
from undercroft.environment.tile_types import TileTypeID

from .context import BuildContext

if TYPE_CHECKING:
    from undercroft.types import Depth, TileCoord
    from undercroft.util.rng import RNG

    from .layer import InitialBuilder, MetaBuilder

logger = logging.getLogger(__name__)


class PipelineStateError(RuntimeError):
    """A BuilderChain was assembled or run out of order."""


class LevelValidationError(RuntimeError):
    """A finished level is not playable; nothing is handed back."""


class ChainState(Enum):
    EMPTY = auto()
    INITIALIZED = auto()
    TRANSFORMED = auto()
    FINALIZED = auto()


class BuilderChain:
    """Owns one initial builder, its meta builders and the build context.

    States advance ``EMPTY -> INITIALIZED -> TRANSFORMED -> FINALIZED``
    while build() runs. A chain builds exactly once; every stage runs once,
    in declared order.

    Attributes:
        starter: The initial builder, once set.
        builders: Meta builders in execution order.
        ctx: The context being built. Read-only after finalization.
        state: Current ChainState.
        stages_run: Meta builders applied so far.
        require_playable: Validate connectivity, start and exit before
            handing the level back. Only partial chains used for inspection
            should turn this off.
    """

    def __init__(
        self,
        map_width: TileCoord = config.MAP_WIDTH,
        map_height: TileCoord = config.MAP_HEIGHT,
        depth: Depth = 1,
        name: str = "",
        *,
        require_playable: bool = True,
        record_history: bool = config.MAPGEN_RECORD_HISTORY,
    ) -> None:
        self.starter: InitialBuilder | None = None
        self.builders: list[MetaBuilder] = []
        self.ctx = BuildContext.create(
            map_width, map_height, depth, name, record_history=record_history
        )
        self.state = ChainState.EMPTY
        self.stages_run = 0
        self.require_playable = require_playable
        self._built = False

    def start_with(self, starter: InitialBuilder) -> BuilderChain:
        if self.starter is not None:
            raise PipelineStateError(
                f"Chain already starts with {self.starter.name}; "
                f"cannot also start with {starter.name}"
            )
        self._check_open()
        self.starter = starter
        return self

    def with_(self, builder: MetaBuilder) -> BuilderChain:
        self._check_open()
        if any(stage is builder for stage in self.builders):
            raise PipelineStateError(
                f"{builder.name} is already in the chain; each stage runs once"
            )
        self.builders.append(builder)
        return self

    def describe(self) -> list[str]:
        """Stage names in execution order."""
        names = [self.starter.name] if self.starter is not None else []
        return names + [builder.name for builder in self.builders]

    def build(self, rng: RNG) -> GeneratedLevel:
        """Run every stage in order and return the finished level.

        Raises:
            PipelineStateError: If there is no initial builder or the chain
                was already built.
            BuilderPreconditionError: If a stage lacks state it depends on.
            LevelValidationError: If the result is not playable.
        """
        self._check_open()
        if self.starter is None:
            raise PipelineStateError("Cannot build a chain without an initial builder")
        self._built = True

        ctx = self.ctx
        logger.debug(f"Building '{ctx.name}': {' -> '.join(self.describe())}")

        self.starter.generate(rng, ctx)
        self.state = ChainState.INITIALIZED

        for builder in self.builders:
            logger.debug(f"Applying {builder.name}")
            builder.transform(rng, ctx)
            self.stages_run += 1
            self.state = ChainState.TRANSFORMED

        return self._finalize()

    def _check_open(self) -> None:
        if self._built:
            raise PipelineStateError("Chain has already been built")

    def _finalize(self) -> GeneratedLevel:
        ctx = self.ctx
        ctx.prune_spawns()
        if not ctx.history or not np.array_equal(ctx.history[-1].tiles, ctx.tiles):
            ctx.take_snapshot(force=True)

        if self.require_playable:
            validate_level(ctx)

        ctx.tiles.setflags(write=False)
        self.state = ChainState.FINALIZED

        level = GeneratedLevel(
            width=ctx.width,
            height=ctx.height,
            depth=ctx.depth,
            name=ctx.name,
            tiles=ctx.tiles,
            spawn_list=tuple(ctx.spawn_list),
            starting_position=ctx.starting_position,  # type: ignore[arg-type]
            exit_position=ctx.exit_position,  # type: ignore[arg-type]
            rooms=tuple(ctx.rooms) if ctx.rooms is not None else None,
            history=tuple(ctx.history),
        )
        logger.info(
            f"Built '{ctx.name}' depth {ctx.depth}: "
            f"{ctx.floor_count()} floor tiles, {len(ctx.spawn_list)} spawns, "
            f"{len(ctx.history)} snapshots"
        )
        return level


def validate_level(ctx: BuildContext) -> None:
    """Check that a context describes a playable level.

    Raises:
        LevelValidationError: Describing the first broken guarantee.
    """
    start = ctx.starting_position
    if start is None or not ctx.is_walkable(*start):
        raise LevelValidationError(f"'{ctx.name}' has no walkable start ({start})")

    exits = np.argwhere(ctx.tiles == TileTypeID.DOWN_STAIRS)
    if len(exits) != 1:
        raise LevelValidationError(
            f"'{ctx.name}' has {len(exits)} exit tiles, expected exactly one"
        )
    exit_pos = (int(exits[0][0]), int(exits[0][1]))
    if exit_pos != ctx.exit_position:
        raise LevelValidationError(
            f"'{ctx.name}' exit marker {exit_pos} disagrees with {ctx.exit_position}"
        )
    if exit_pos == start:
        raise LevelValidationError(f"'{ctx.name}' exit coincides with the start")

    dist = distance_map(ctx.tiles, start)
    stranded = ctx.walkable_mask() & (dist == UNREACHABLE)
    if stranded.any():
        raise LevelValidationError(
            f"'{ctx.name}' has {int(np.count_nonzero(stranded))} walkable tiles "
            "unreachable from the start"
        )
