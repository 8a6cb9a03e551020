"""Hand-authored level fragments.

Glyphs:
    ' '  floor                 '#'  wall
    '@'  floor, player start   '>'  down stairs (exit)
    '~'  shallow water         '_'  transparent: keep the underlying tile
    'g'  Goblin                'o'  Orc
    '^'  Bear Trap             '%'  Rations
    '!'  Health Potion

Every row of a template must be exactly ``width`` characters long.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class HorizontalPlacement(Enum):
    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()


class VerticalPlacement(Enum):
    TOP = auto()
    CENTER = auto()
    BOTTOM = auto()


@dataclass(frozen=True)
class PrefabTemplate:
    """A fixed textual tile grid.

    Attributes:
        name: Identifier used in logs.
        width: Declared width; every row must match it.
        height: Declared height; the row count must match it.
        rows: The glyph rows, top to bottom.
        first_depth: Shallowest depth a vault may appear on.
        last_depth: Deepest depth a vault may appear on.
        placement: Default anchor when stamped as a section.
    """

    name: str
    width: int
    height: int
    rows: tuple[str, ...]
    first_depth: int = 0
    last_depth: int = 100
    placement: tuple[HorizontalPlacement, VerticalPlacement] = (
        HorizontalPlacement.CENTER,
        VerticalPlacement.CENTER,
    )


# =============================================================================
# WHOLE LEVELS
# =============================================================================

SAMPLE_CAVERN = PrefabTemplate(
    name="sample_cavern",
    width=40,
    height=20,
    rows=(
        "########################################",
        "#@     #          ####        #        #",
        "#      #   ##     ####   g    #   %    #",
        "#   ####   ##                 #        #",
        "#          ##          ####   ###  #####",
        "####   #########       ####            #",
        "#         #             ##        ##   #",
        "#   o     #    ~~~~            ####    #",
        "#         #   ~~~~~~~    #######       #",
        "###   #####    ~~~~~     #     #   #####",
        "#                        #  !  #       #",
        "#   ######        ###    #     #    g  #",
        "#   #    #        ###    ### ###       #",
        "#   #  ^ #                             #",
        "#   ##  ##    ##########       ####    #",
        "#             #        #       ####    #",
        "#######   #####   g    #               #",
        "#             #        ####    ###  ####",
        "#   %         ####             #      >#",
        "########################################",
    ),
)

# =============================================================================
# SECTIONS
# =============================================================================

UNDERGROUND_FORT = PrefabTemplate(
    name="underground_fort",
    width=15,
    height=43,
    rows=(
        "_____#         ",
        "__#######      ",
        "__#     #      ",
        "__#     #######",
        "__#  g        #",
        "__#     #######",
        "__#     #      ",
        "__### ###      ",
        "____# #        ",
        "____# #        ",
        "____# ##       ",
        "____^          ",
        "____^          ",
        "____# ##       ",
        "____# #        ",
        "____# #        ",
        "____# #        ",
        "____# #        ",
        "__### ###      ",
        "__#     #      ",
        "__#     #      ",
        "__#  g  #      ",
        "__#     #      ",
        "__#     #      ",
        "__### ###      ",
        "____# #        ",
        "____# #        ",
        "____# #        ",
        "____# ##       ",
        "____^          ",
        "____^          ",
        "____# ##       ",
        "____# #        ",
        "____# #        ",
        "____# #        ",
        "__### ###      ",
        "__#     #      ",
        "__#     #######",
        "__#  g        #",
        "__#     #######",
        "__#     #      ",
        "__#######      ",
        "_____#         ",
    ),
    placement=(HorizontalPlacement.RIGHT, VerticalPlacement.CENTER),
)

ORC_CAMP = PrefabTemplate(
    name="orc_camp",
    width=12,
    height=12,
    rows=(
        "            ",
        " ~~~~o~~~~~ ",
        " ~#      #~ ",
        " ~ g      ~ ",
        " ~        ~ ",
        " ~    g   ~ ",
        " o   o    o ",
        " ~        ~ ",
        " ~ g      ~ ",
        " ~    g   ~ ",
        " ~#      #~ ",
        " ~~~~o~~~~~ ",
    ),
)

# =============================================================================
# ROOM VAULTS
# =============================================================================

TOTALLY_NOT_A_TRAP = PrefabTemplate(
    name="totally_not_a_trap",
    width=5,
    height=5,
    rows=(
        "     ",
        " ^^^ ",
        " ^!^ ",
        " ^^^ ",
        "     ",
    ),
)

SILLY_SMILE = PrefabTemplate(
    name="silly_smile",
    width=6,
    height=6,
    rows=(
        "      ",
        " ^  ^ ",
        "  ##  ",
        "      ",
        " #### ",
        "      ",
    ),
)

CHECKERBOARD = PrefabTemplate(
    name="checkerboard",
    width=6,
    height=6,
    rows=(
        "      ",
        " #^#  ",
        " g#%# ",
        " #!#  ",
        " ^# # ",
        "      ",
    ),
    first_depth=2,
)

ROOM_VAULTS: tuple[PrefabTemplate, ...] = (
    TOTALLY_NOT_A_TRAP,
    SILLY_SMILE,
    CHECKERBOARD,
)
