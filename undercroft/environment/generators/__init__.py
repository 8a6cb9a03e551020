"""Level generators for Undercroft.

The pipeline package composes levels from builder stages:
- Initial builders: rooms, caves, random walks, diffusion, Voronoi cells,
  prefabs and waveform collapse
- Meta builders: corridors, room modifiers, placement, culling, spawning

And a reusable WFC solver for constraint-based synthesis:
- WFCSolver: Generic Wave Function Collapse solver
- WFCPattern: Pattern definition with adjacency rules
"""

from .base import GeneratedLevel, MapSnapshot, SpawnEntry
from .pipeline import (
    BuilderChain,
    BuildContext,
    BuilderPreconditionError,
    LevelRejectedError,
    LevelValidationError,
    PipelineStateError,
    create_pipeline,
    generate_level,
    random_builder,
)
from .wfc_solver import (
    WFCContradiction,
    WFCPattern,
    WFCSolver,
)

__all__ = [
    "BuildContext",
    "BuilderChain",
    "BuilderPreconditionError",
    "GeneratedLevel",
    "LevelRejectedError",
    "LevelValidationError",
    "MapSnapshot",
    "PipelineStateError",
    "SpawnEntry",
    "WFCContradiction",
    "WFCPattern",
    "WFCSolver",
    "create_pipeline",
    "generate_level",
    "random_builder",
]
