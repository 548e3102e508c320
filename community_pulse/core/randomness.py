"""Injectable random sources for the graph engine."""
from __future__ import annotations

import random
from typing import Any, MutableSequence, Optional, Protocol


class RandomSource(Protocol):
    """Subset of :class:`random.Random` used by the engine."""

    def random(self) -> float:
        ...

    def uniform(self, a: float, b: float) -> float:
        ...

    def randint(self, a: int, b: int) -> int:
        ...

    def shuffle(self, x: MutableSequence[Any]) -> None:
        ...


def default_random(seed: Optional[int] = None) -> RandomSource:
    return random.Random(seed)


__all__ = ["RandomSource", "default_random"]
