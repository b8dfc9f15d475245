# --- tmap_lib/compose/rng.py ---
import math
import random
from typing import Callable, Optional

PositionRNG = Callable[[], float]


def create_seeded_rng(seed: float, x: int, y: int) -> PositionRNG:
    """
    Returns a generator of floats in [0, 1) that depends only on (seed, x, y).

    The recurrence is s <- sin(s) * 10000, yielding the fractional part of s.
    It is a cheap hash, not a statistically good generator; existing maps
    depend on these exact values.
    """
    state = seed + x * 12345 + y * 67890

    def rng() -> float:
        nonlocal state
        state = math.sin(state) * 10000
        return state - math.floor(state)

    return rng


def make_random(seed: Optional[int] = None) -> random.Random:
    """RNG handle for the structural strategies; unseeded when seed is None."""
    return random.Random(seed)
