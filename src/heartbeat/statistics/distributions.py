"""
Seeded random source used by the emission loop.

One RandomSource is created at startup and only the loop thread draws from it,
so it carries no locking. Tests substitute a scripted source with the same
uniform()/choice() interface.
"""

import math
import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


class RandomSource:
    """Bounded-range pseudo-random generator (no cryptographic guarantees)."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def uniform(self, min_val: float, max_val: float) -> float:
        """Return a float in [min_val, max_val).

        random.uniform() may return max_val through rounding; scaling random()
        keeps the upper bound open.
        """
        if min_val > max_val:
            raise ValueError(f"min_val {min_val} is greater than max_val {max_val}")
        value = min_val + self._rng.random() * (max_val - min_val)
        if value >= max_val and max_val > min_val:
            return math.nextafter(max_val, min_val)
        return value

    def choice(self, seq: Sequence[T]) -> T:
        """Pick one element uniformly."""
        if not seq:
            raise ValueError("Cannot choose from an empty sequence")
        return seq[self._rng.randrange(len(seq))]
