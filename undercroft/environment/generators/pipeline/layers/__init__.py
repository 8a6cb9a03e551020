"""Builder stages for the level pipeline.

Initial builders produce the first layout of a level:
- Rooms: SimpleMapBuilder, BspDungeonBuilder, BspInteriorBuilder
- Organic shapes: CellularAutomataBuilder, DrunkardsWalkBuilder, DLABuilder,
  VoronoiCellBuilder, MazeBuilder
- Authored and synthesized: PrefabBuilder, WaveformCollapseBuilder

Meta builders transform an existing layout:
- Room drawing, room modifiers and corridor routers
- Start and exit selection, reachability culling
- Spawners, door placement, decoration and overlays
"""

from .cellular import CellularAutomataBuilder
from .corridors import (
    BspCorridors,
    DoglegCorridors,
    NearestCorridors,
    StraightLineCorridors,
)
from .decorators import Decorator
from .dla import DLAAlgorithm, DLABuilder
from .drunkard import DrunkardSettings, DrunkardsWalkBuilder, DrunkSpawnMode
from .maze import MazeBuilder
from .overlay import OverlayMerger
from .placement import (
    AreaEndingPosition,
    AreaStartingPosition,
    CullUnreachable,
    DistantExit,
    RoomBasedStairs,
    RoomBasedStartingPosition,
    XHint,
    YHint,
)
from .prefabs import PrefabBuilder, PrefabMode, PrefabParseError, StampPolicy
from .room_modifiers import (
    RoomCornerRounder,
    RoomDrawer,
    RoomExploder,
    RoomSort,
    RoomSorter,
)
from .rooms import BspDungeonBuilder, BspInteriorBuilder, SimpleMapBuilder
from .spawners import (
    CorridorSpawner,
    DoorPlacement,
    RegionMode,
    RegionSpawner,
    RoomBasedSpawner,
    SpawnTable,
    SpawnTableEntry,
)
from .voronoi import VoronoiCellBuilder, VoronoiDistance
from .waveform import WaveformCollapseBuilder

__all__ = [
    "AreaEndingPosition",
    "AreaStartingPosition",
    "BspCorridors",
    "BspDungeonBuilder",
    "BspInteriorBuilder",
    "CellularAutomataBuilder",
    "CorridorSpawner",
    "CullUnreachable",
    "DLAAlgorithm",
    "DLABuilder",
    "Decorator",
    "DistantExit",
    "DoglegCorridors",
    "DoorPlacement",
    "DrunkSpawnMode",
    "DrunkardSettings",
    "DrunkardsWalkBuilder",
    "MazeBuilder",
    "NearestCorridors",
    "OverlayMerger",
    "PrefabBuilder",
    "PrefabMode",
    "PrefabParseError",
    "RegionMode",
    "RegionSpawner",
    "RoomBasedSpawner",
    "RoomBasedStairs",
    "RoomBasedStartingPosition",
    "RoomCornerRounder",
    "RoomDrawer",
    "RoomExploder",
    "RoomSort",
    "RoomSorter",
    "SimpleMapBuilder",
    "SpawnTable",
    "SpawnTableEntry",
    "StampPolicy",
    "StraightLineCorridors",
    "VoronoiCellBuilder",
    "VoronoiDistance",
    "WaveformCollapseBuilder",
    "XHint",
    "YHint",
]
