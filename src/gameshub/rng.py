"""Seedable uniform random source shared by the game engines."""

from __future__ import annotations

from typing import List, Optional, Sequence, TypeVar
import random

T = TypeVar("T")


class RandomSource:
    """Uniform integers, choices and permutations from a private generator.

    Engines never touch the global ``random`` module; passing a seed makes a
    whole game reproducible.
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def randbelow(self, n: int) -> int:
        """Uniform integer in ``[0, n)``."""
        if n <= 0:
            raise ValueError("Upper bound must be positive")
        return self._rng.randrange(n)

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.randbelow(len(items))]

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def shuffled(self, items: Sequence[T]) -> List[T]:
        """Return a Fisher-Yates permutation of ``items`` (input untouched)."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = self.randbelow(i + 1)
            out[i], out[j] = out[j], out[i]
        return out
