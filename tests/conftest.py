from __future__ import annotations

from collections.abc import Iterator

import pytest

from undercroft import config
from undercroft.util import rng


@pytest.fixture(autouse=True)
def reset_global_rng() -> Iterator[None]:
    """Start every test from the default master seed."""
    rng.init(config.RANDOM_SEED)
    yield
    rng.init(config.RANDOM_SEED)
