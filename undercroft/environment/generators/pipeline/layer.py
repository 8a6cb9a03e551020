"""Abstract base classes for builder stages.

Every algorithm in the pipeline is a self-contained, configuration-holding
stage. The chain only knows these two contracts and never couples to a
concrete algorithm type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from undercroft.util.rng import RNG

    from .context import BuildContext


class BuilderStage(ABC):
    """Common base for anything the BuilderChain can run."""

    @property
    def name(self) -> str:
        """Human-readable stage name used in logs and recipe descriptions."""
        return type(self).__name__


class InitialBuilder(BuilderStage):
    """Produces the first layout of a level from a fully blocked context.

    Exactly one initial builder runs per chain, before any meta builder.
    Room-based algorithms must also populate ``ctx.rooms``.
    """

    @abstractmethod
    def generate(self, rng: RNG, ctx: BuildContext) -> None:
        """Populate the context's grid.

        Must be deterministic for a fixed rng state and configuration. All
        random decisions draw from ``rng``; nothing may be kept from ``ctx``
        after the call returns.
        """
        raise NotImplementedError


class MetaBuilder(BuilderStage):
    """Transforms an already initialized context in place.

    Implementations must raise BuilderPreconditionError, never silently
    no-op, when context state they depend on is absent.
    """

    @abstractmethod
    def transform(self, rng: RNG, ctx: BuildContext) -> None:
        raise NotImplementedError
