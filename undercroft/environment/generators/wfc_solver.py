"""Generic Wave Function Collapse solver.

This module provides a reusable WFC solver that can be used with any pattern set.
The solver is pattern-agnostic - it takes any dict[PatternType, WFCPattern] and
solves the constraint satisfaction problem.

Usage:
    from undercroft.environment.generators.wfc_solver import WFCSolver, WFCPattern

    # Define patterns with adjacency rules
    patterns = {
        0: WFCPattern(0, payload=chunk_a, weight=3, valid_neighbors={...}),
        1: WFCPattern(1, payload=chunk_b, weight=1, valid_neighbors={...}),
    }

    # Create and run solver
    solver = WFCSolver(width, height, patterns, rng)
    result = solver.try_solve()  # Grid of pattern IDs, or None on contradiction

Representation:
    The wave is a boolean array of shape (width, height, num_patterns). For each
    direction a (num_patterns, num_patterns) compatibility matrix is precomputed,
    so propagating a cell is one boolean reduction:
    ``compat[direction][wave[x, y]].any(axis=0)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from undercroft.util.rng import RNG


class WFCContradiction(Exception):
    """Raised when WFC reaches an unsolvable state.

    This occurs when constraint propagation eliminates all possibilities
    for a cell, meaning no valid solution exists with the current choices.
    """

    pass


@dataclass
class WFCPattern[PatternType]:
    """A single WFC pattern with adjacency rules.

    Attributes:
        pattern_id: Unique identifier for this pattern.
        payload: What the pattern stands for when rendered, e.g. a tile chunk.
        weight: Relative probability weight for selection (higher = more common).
        valid_neighbors: Dict mapping direction ("N", "E", "S", "W") to sets of
            pattern IDs that can be adjacent in that direction.
    """

    pattern_id: PatternType
    payload: Any = None
    weight: float = 1.0
    valid_neighbors: dict[str, set[PatternType]] = field(default_factory=dict)


# Direction utilities
DIRECTIONS = ["N", "E", "S", "W"]
OPPOSITE_DIR = {"N": "S", "E": "W", "S": "N", "W": "E"}
DIR_OFFSETS = {"N": (0, -1), "E": (1, 0), "S": (0, 1), "W": (-1, 0)}


class WFCSolver[PatternType]:
    """Core Wave Function Collapse solver.

    This solver implements the WFC algorithm for constraint propagation:
    1. Initialize all cells with all possible patterns
    2. Find the unresolved cell with the fewest remaining candidates
    3. Collapse that cell to a single pattern (weighted random choice)
    4. Propagate constraints to neighbors, removing incompatible candidates
    5. Repeat until all cells are collapsed or a cell runs out of candidates

    One call to try_solve() is a single attempt. Callers own the retry policy.
    """

    def __init__(
        self,
        width: int,
        height: int,
        patterns: dict[PatternType, WFCPattern[PatternType]],
        rng: RNG,
    ):
        """Initialize the WFC solver.

        Args:
            width: Grid width in cells.
            height: Grid height in cells.
            patterns: Dict mapping pattern IDs to WFCPattern definitions.
            rng: Random number generator for deterministic results.
        """
        if not patterns:
            raise ValueError("WFCSolver needs at least one pattern")

        self.width = width
        self.height = height
        self.patterns = patterns
        self.rng = rng

        self.pattern_ids = list(patterns.keys())
        self.num_patterns = len(self.pattern_ids)
        self.pattern_to_index: dict[PatternType, int] = {
            pid: i for i, pid in enumerate(self.pattern_ids)
        }
        self.pattern_weights = [patterns[pid].weight for pid in self.pattern_ids]

        self.wave = np.ones((width, height, self.num_patterns), dtype=bool)
        self._precompute_compatibility()

    def _precompute_compatibility(self) -> None:
        """Build compat[direction][i, j]: pattern j may sit next to pattern i."""
        self.compatibility: dict[str, np.ndarray] = {}
        for direction in DIRECTIONS:
            matrix = np.zeros((self.num_patterns, self.num_patterns), dtype=bool)
            for i, pid in enumerate(self.pattern_ids):
                for neighbor_pid in self.patterns[pid].valid_neighbors.get(
                    direction, ()
                ):
                    matrix[i, self.pattern_to_index[neighbor_pid]] = True
            self.compatibility[direction] = matrix

    def _propagate(self, cells: list[tuple[int, int]]) -> bool:
        """Propagate constraints outward from ``cells``.

        Returns:
            False if some cell lost its last candidate, True otherwise.
        """
        stack = list(cells)
        in_stack = set(cells)

        iterations = 0
        max_iterations = self.width * self.height * self.num_patterns * 4 + len(cells)

        while stack:
            iterations += 1
            if iterations >= max_iterations:
                return False

            x, y = stack.pop()
            in_stack.discard((x, y))
            current = self.wave[x, y]

            for direction in DIRECTIONS:
                dx, dy = DIR_OFFSETS[direction]
                nx, ny = x + dx, y + dy
                if not (0 <= nx < self.width and 0 <= ny < self.height):
                    continue

                allowed = self.compatibility[direction][current].any(axis=0)
                neighbor = self.wave[nx, ny]
                new_candidates = neighbor & allowed

                if not np.array_equal(new_candidates, neighbor):
                    if not new_candidates.any():
                        return False
                    self.wave[nx, ny] = new_candidates
                    if (nx, ny) not in in_stack:
                        stack.append((nx, ny))
                        in_stack.add((nx, ny))

        return True

    def _observe(self) -> tuple[int, int] | None:
        """Pick the unresolved cell with the fewest candidates.

        Ties are broken by the rng. Returns None once every cell is resolved.
        """
        counts = self.wave.sum(axis=2)
        unresolved = counts > 1
        if not unresolved.any():
            return None
        lowest = counts[unresolved].min()
        xs, ys = np.nonzero(unresolved & (counts == lowest))
        pick = self.rng.randrange(len(xs))
        return int(xs[pick]), int(ys[pick])

    def _collapse(self, x: int, y: int) -> None:
        candidates = np.flatnonzero(self.wave[x, y]).tolist()
        weights = [self.pattern_weights[i] for i in candidates]
        chosen = self.rng.choices(candidates, weights=weights)[0]
        self.wave[x, y] = False
        self.wave[x, y, chosen] = True

    def try_solve(self) -> list[list[PatternType]] | None:
        """Run a single attempt to completion.

        Returns:
            Pattern IDs indexed ``result[x][y]``, or None on contradiction.
        """
        self.wave[:] = True
        all_cells = [(x, y) for y in range(self.height) for x in range(self.width)]
        if not self._propagate(all_cells):
            return None

        while (cell := self._observe()) is not None:
            self._collapse(*cell)
            if not self._propagate([cell]):
                return None

        indices = self.wave.argmax(axis=2)
        return [
            [self.pattern_ids[int(indices[x, y])] for y in range(self.height)]
            for x in range(self.width)
        ]

    def solve(self) -> list[list[PatternType]]:
        """Like try_solve(), but raises WFCContradiction on failure."""
        result = self.try_solve()
        if result is None:
            raise WFCContradiction(
                f"No consistent {self.width}x{self.height} assignment was found"
            )
        return result

    @property
    def wave_as_sets(self) -> list[list[set[PatternType]]]:
        """Convert the internal wave to sets for debugging/testing."""
        return [
            [
                {self.pattern_ids[i] for i in np.flatnonzero(self.wave[x, y])}
                for y in range(self.height)
            ]
            for x in range(self.width)
        ]
