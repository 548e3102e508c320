"""Deterministic random source shared by the test modules."""
from __future__ import annotations

from typing import Any, List, MutableSequence, Optional, Sequence


class ScriptedRandom:
    """Replays fixed ``random()`` values.

    ``uniform`` and ``randint`` are derived from the scripted values so tests
    can reason about exact outputs; ``shuffle`` keeps the input order unless
    a permutation is supplied.
    """

    def __init__(
        self,
        values: Sequence[float] = (0.5,),
        *,
        permutation: Optional[Sequence[int]] = None,
    ) -> None:
        if not values:
            raise ValueError("values must not be empty")
        self._values: List[float] = [float(value) for value in values]
        self._index = 0
        self._permutation = list(permutation) if permutation is not None else None

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.random()

    def randint(self, a: int, b: int) -> int:
        return min(b, a + int(self.random() * (b - a + 1)))

    def shuffle(self, x: MutableSequence[Any]) -> None:
        if self._permutation is None:
            return
        original = list(x)
        order = [index for index in self._permutation if index < len(original)]
        order.extend(index for index in range(len(original)) if index not in order)
        for position, index in enumerate(order):
            x[position] = original[index]
