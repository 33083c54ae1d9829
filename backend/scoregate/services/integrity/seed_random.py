"""Deterministic random numbers derived from a session seed.

The browser client places obstacles from the same seed, so both sides must
produce the same sequence: the seed is folded into a 32-bit state and then
advanced with the Mulberry32 recurrence.
"""

import math
from typing import Tuple

UINT32_MASK = 0xFFFFFFFF
UINT32_SCALE = float(UINT32_MASK) + 1.0
MULBERRY_INCREMENT = 0x6D2B79F5


def _imul(a: int, b: int) -> int:
    return (a * b) & UINT32_MASK


def _code_units(seed: str):
    # Fold over UTF-16 code units, which is what the client sees for a string.
    raw = seed.encode('utf-16-le', 'surrogatepass')
    for i in range(0, len(raw), 2):
        yield raw[i] | (raw[i + 1] << 8)


def derive(seed: str) -> int:
    """Fold ``seed`` into an unsigned 32-bit generator state."""
    h = 0
    for unit in _code_units(seed):
        h = (((h << 5) - h) + unit) & UINT32_MASK
    return h


def next_value(state: int) -> Tuple[float, int]:
    """Advance ``state`` one step; return ``(value in [0, 1), new_state)``."""
    state = (state + MULBERRY_INCREMENT) & UINT32_MASK
    t = _imul(state ^ (state >> 15), state | 1)
    t ^= (t + _imul(t ^ (t >> 7), state | 61)) & UINT32_MASK
    value = ((t ^ (t >> 14)) & UINT32_MASK) / UINT32_SCALE
    return value, state


def _scale(value: float, lo, hi, floating: bool):
    if floating:
        return lo + value * (hi - lo)
    return math.floor(lo + value * (hi - lo + 1))


class SeededRNG:
    """Stateful wrapper around :func:`derive` / :func:`next_value`.

    Each instance owns its state; instances are not shared between sessions.
    """

    def __init__(self, seed: str):
        self.seed = seed
        self._state = derive(seed)

    def random(self) -> float:
        value, self._state = next_value(self._state)
        return value

    def next(self, lo=0, hi=1, floating: bool = False):
        """Next draw in ``[lo, hi)`` when floating, else an int in ``[lo, hi]``."""
        return _scale(self.random(), lo, hi, floating)


def seeded_random(seed: str, lo=0, hi=1, floating: bool = False):
    """First draw of ``seed``, scaled like :meth:`SeededRNG.next`."""
    value, _ = next_value(derive(seed))
    return _scale(value, lo, hi, floating)
