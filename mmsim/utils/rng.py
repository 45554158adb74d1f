"""Seeded random number generator shared by the price path and the fill model.

The generator is Mulberry32: a 32-bit counter advanced by a fixed odd
constant, passed through an integer mixing function. Outputs for a given
seed and call sequence are bit-for-bit identical to any other Mulberry32
using the same constants. Normal draws go through the platform libm
(`log`, `cos`), so they can differ in the last bit from other runtimes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

MASK_32 = 0xFFFFFFFF
GOLDEN_GAMMA = 0x6D2B79F5
TWO_POW_32 = 4294967296.0
DEFAULT_SEED = 12345


def _imul(a: int, b: int) -> int:
    """Low 32 bits of an integer product."""

    return (a * b) & MASK_32


@dataclass
class SeededRNG:
    """Deterministic uniform/normal sampler."""

    seed: int = DEFAULT_SEED
    _state: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.seed = int(self.seed)
        self._state = self.seed & MASK_32

    @property
    def state(self) -> int:
        return self._state

    def reset(self) -> None:
        """Rewind to the configured seed."""

        self._state = self.seed & MASK_32

    def set_seed(self, seed: int) -> None:
        """Store a new seed and rewind to it."""

        self.seed = int(seed)
        self.reset()

    def next(self) -> float:
        """Return a uniform sample in ``[0, 1)``."""

        self._state = (self._state + GOLDEN_GAMMA) & MASK_32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK_32
        return ((t ^ (t >> 14)) & MASK_32) / TWO_POW_32

    def next_in_range(self, lo: float, hi: float) -> float:
        return lo + self.next() * (hi - lo)

    def next_normal(self, mean: float = 0.0, std_dev: float = 1.0) -> float:
        """Box-Muller transform over two uniform draws.

        The uniforms are exact; the result inherits libm rounding.
        """

        u1 = self.next()
        u2 = self.next()
        if u1 <= 0.0:
            u1 = 1.0 / TWO_POW_32
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z0 * std_dev


__all__ = ["SeededRNG", "DEFAULT_SEED"]
