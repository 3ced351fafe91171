"""Seeded xorshift random stream shared by every placement pass.

The generator keeps a signed 32-bit state and emits floats quantised to
six decimal places, so identical seeds always replay identical layouts.
"""

import math
import random
from typing import List, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")

_UINT32_MASK = 0xFFFFFFFF
_SIGN_BIT = 0x80000000
_RESOLUTION = 1_000_000


class Rng(Protocol):
    def next(self) -> float:
        ...


def _to_int32(value: int) -> int:
    value &= _UINT32_MASK
    return value - 0x100000000 if value & _SIGN_BIT else value


def normalize_seed(seed: Optional[float]) -> int:
    """Return a positive integer seed, drawing one when *seed* is missing.

    Non-finite values are treated as missing.
    """
    if seed is None or not math.isfinite(seed):
        return math.floor(random.random() * 1e9) or 1
    return max(1, math.floor(abs(seed)))


class DeterministicRng:
    """Xorshift32 stream returning floats in ``[0, 1)``."""

    def __init__(self, seed: int):
        state = _to_int32(int(seed))
        # An all-zero xorshift state never advances.
        self._state = state or 1

    def next(self) -> float:
        s = self._state
        s ^= _to_int32(s << 13)
        s ^= s >> 17
        s ^= _to_int32(s << 5)
        self._state = s
        return ((s & _UINT32_MASK) % _RESOLUTION) / _RESOLUTION


def random_range(rng: Rng, low: float, high: float) -> float:
    return low + (high - low) * rng.next()


def choice_index(rng: Rng, count: int) -> int:
    return math.floor(rng.next() * count)


def shuffle(rng: Rng, items: Sequence[T]) -> List[T]:
    """Fisher-Yates from the tail; returns a new list."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = math.floor(rng.next() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
