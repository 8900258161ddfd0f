"""
Alea PRNG: the seeded random source behind every stochastic step.

Erosion seed/cascade selection, plate ordering and spectrum variation all draw
from an ``AleaPRNG`` instance that callers can inject, so a given seed always
reproduces the same coastline.
"""

from typing import List, MutableSequence, Sequence, TypeVar

T = TypeVar("T")

_MASH_SEED = 0xEFC8249D
_TWO_POW_32 = 0x100000000
_TWO_POW_NEG_32 = 2.3283064365386963e-10


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


def _make_mash():
    state = _MASH_SEED

    def mash(data) -> float:
        nonlocal state
        for char in str(data):
            state += ord(char)
            h = 0.02519603282416938 * state
            state = _uint32(h)
            h -= state
            h *= state
            state = _uint32(h)
            h -= state
            state += h * _TWO_POW_32
        return _uint32(state) * _TWO_POW_NEG_32

    return mash


class AleaPRNG:
    """Johannes Baagøe's Alea generator with a few sampling helpers."""

    def __init__(self, seed="default"):
        self.seed = seed
        self.call_count = 0

        if hasattr(seed, "__iter__") and not isinstance(seed, str):
            args = list(seed)
        else:
            args = [seed]

        mash = _make_mash()
        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        for arg in args:
            self.s0 = (self.s0 - mash(arg)) % 1.0
            self.s1 = (self.s1 - mash(arg)) % 1.0
            self.s2 = (self.s2 - mash(arg)) % 1.0

    def random(self) -> float:
        """Next float in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * _TWO_POW_NEG_32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def randint(self, low: int, high: int) -> int:
        """Random integer N with low <= N <= high."""
        if high < low:
            raise ValueError(f"Empty range for randint({low}, {high})")
        return low + int(self.random() * (high - low + 1))

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

    def shuffle(self, seq: MutableSequence[T]) -> None:
        """Fisher-Yates shuffle in place."""
        for i in range(len(seq) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            seq[i], seq[j] = seq[j], seq[i]

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        """k distinct elements of ``seq`` in random order."""
        if k < 0 or k > len(seq):
            raise ValueError(f"Sample size {k} out of range for population of {len(seq)}")
        pool = list(seq)
        self.shuffle(pool)
        return pool[:k]
