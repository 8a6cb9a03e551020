"""Generate a level and print it as ASCII.

Usage:
    python -m undercroft --seed burrito1 --depth 3 --recipe random
    python -m undercroft --recipe caves --history
"""

from __future__ import annotations

import argparse
import logging

from undercroft import config
from undercroft.environment.generators.pipeline import RECIPES, generate_level
from undercroft.environment.tile_types import render_ascii
from undercroft.util import rng


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Generate an Undercroft level")
    parser.add_argument(
        "--seed",
        type=str,
        default=config.RANDOM_SEED,
        help=f"Master seed (default: {config.RANDOM_SEED})",
    )
    parser.add_argument("--depth", type=int, default=1, help="Level depth")
    parser.add_argument("--width", type=int, default=config.MAP_WIDTH)
    parser.add_argument("--height", type=int, default=config.MAP_HEIGHT)
    parser.add_argument(
        "--recipe",
        choices=RECIPES,
        default="random",
        help="Named recipe to build (default: random)",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Print every recorded snapshot before the final level",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    rng.init(args.seed)
    level = generate_level(
        args.depth,
        rng.get(f"map.level.{args.depth}"),
        args.width,
        args.height,
        recipe=args.recipe,
    )

    if args.history:
        for i, snapshot in enumerate(level.history[:-1]):
            print(f"--- snapshot {i + 1}/{len(level.history)} ---")
            print(render_ascii(snapshot.tiles))

    print(f"=== {level.name} (depth {level.depth}) ===")
    print(render_ascii(level.tiles))
    print(f"start {level.starting_position}  exit {level.exit_position}")
    for entry in level.spawn_list:
        print(f"  {level.position_of(entry.index)}: {entry.tag}")


if __name__ == "__main__":
    main()
