"""Seeded random streams, one per generation domain.

Every level is generated from one stream, threaded explicitly through each
builder call in stage order. Streams are derived from a master seed per
domain, so the same seed always yields the same level however many other
domains have drawn in between.

Usage:
    from undercroft.util import rng
    rng.init(config.RANDOM_SEED)

    level_rng = rng.get("map.level.3")
    level = generate_level(depth=3, rng=level_rng)

Domain naming convention (hierarchical):
    - "map.level.<depth>" for a whole level pipeline
    - "map.preview" for throwaway CLI generations
"""

from __future__ import annotations

import zlib
from random import Random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from undercroft.types import RandomSeed

# Every builder takes one of these: `def generate(self, rng: RNG, ctx) -> None`
type RNG = Random


class RNGProvider:
    """Hands out one Random per domain, derived from a master seed.

    Asking for the same domain twice returns the same instance, so draws
    continue where the last caller left off.
    """

    def __init__(self, master_seed: RandomSeed = None) -> None:
        self.master_seed = master_seed
        self._streams: dict[str, Random] = {}

    def get(self, domain: str) -> Random:
        if domain not in self._streams:
            if self.master_seed is None:
                self._streams[domain] = Random()
            else:
                # crc32 rather than hash(): hash() is salted per interpreter
                # session via PYTHONHASHSEED
                derived_seed = zlib.crc32(f"{self.master_seed}:{domain}".encode())
                self._streams[domain] = Random(derived_seed)
        return self._streams[domain]


_provider: RNGProvider | None = None


def init(master_seed: RandomSeed = None) -> None:
    """Replace every stream with fresh ones derived from ``master_seed``."""
    global _provider
    _provider = RNGProvider(master_seed)


def get(domain: str) -> Random:
    """The stream for ``domain``, unseeded if init() was never called."""
    global _provider
    if _provider is None:
        _provider = RNGProvider(None)
    return _provider.get(domain)
