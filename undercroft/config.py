"""Tunable constants for level generation.

Every builder reads its defaults from here, so a single builder can still be
configured per instance by passing the value to its constructor.
"""

# =============================================================================
# GENERAL
# =============================================================================

RANDOM_SEED = "burrito1"

# Record a snapshot at every meaningful sub-step. When False only the final
# layout is kept, which is all the history-length contract requires.
MAPGEN_RECORD_HISTORY = True

# Random recipes whose stages reject the map are rerolled this many times
MAPGEN_MAX_RECIPE_ATTEMPTS = 5

# =============================================================================
# MAP GENERATION
# =============================================================================

MAP_WIDTH = 80
MAP_HEIGHT = 50

# Room generation
MAX_ROOM_SIZE = 10
MIN_ROOM_SIZE = 6
MAX_NUM_ROOMS = 30

# Partitioned interior leaves stop splitting below this size
INTERIOR_MIN_PARTITION_SIZE = 8

# Cellular automaton caves
CA_WALL_PROBABILITY = 0.45
CA_ITERATIONS = 15
CA_MIN_FLOOR_PERCENT = 0.25
CA_MAX_RESEEDS = 50

# Random-walk and diffusion growth targets
DRUNKARD_FLOOR_PERCENT = 0.5
DRUNKARD_LIFETIME = 400
DLA_FLOOR_PERCENT = 0.25

# Growth gives up on a layout after this many walkers or particles
DRUNKARD_MAX_DIGGERS = 5000
DLA_MAX_PARTICLES = 50000

# Voronoi partitions
VORONOI_SEED_COUNT = 64

# Room eroder
ROOM_EXPLODER_STEPS = 20

# =============================================================================
# CONSTRAINT SYNTHESIS (WAVEFORM COLLAPSE)
# =============================================================================

WFC_CHUNK_SIZE = 8
WFC_MAX_ATTEMPTS = 10
WFC_INCLUDE_FLIPPING = True

# =============================================================================
# SPAWNING
# =============================================================================

MAX_SPAWNS_PER_AREA = 4
REGION_SPAWN_SEED_COUNT = 32
