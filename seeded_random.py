# seeded_random.py
"""
Reproducible pseudo-random source for the fund simulation.

A 32-bit linear congruential generator. The same seed and the same sequence of
calls always produce the same draws, which is what makes Monte Carlo batches
repeatable. Not cryptographically secure and not thread-safe: each draw reads
and mutates the state, so an instance must be owned by one thread of execution
(parallel batches give every run its own instance).
"""

import math
import time
from typing import Optional

MODULUS = 2 ** 32
MULTIPLIER = 1664525
INCREMENT = 1013904223


class SeededRandom:
    """Seeded uniform, Gaussian and integer draws from a single integer state."""

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = int(time.time() * 1000)
        self.seed = int(seed) % MODULUS

    def random(self) -> float:
        """Uniform draw in [0, 1)."""
        self.seed = (self.seed * MULTIPLIER + INCREMENT) % MODULUS
        return self.seed / MODULUS

    def gaussian(self, mean: float = 0.0, std_dev: float = 1.0) -> float:
        """Normal draw via Box-Muller. Consumes exactly two uniform draws."""
        u1 = self.random()
        u2 = self.random()
        # log(0) is undefined; use the smallest draw the generator can produce
        if u1 == 0.0:
            u1 = 1.0 / MODULUS
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * std_dev + mean

    def rand_int(self, min_value: int, max_value: int) -> int:
        """Uniform integer in the inclusive range [min_value, max_value]."""
        return math.floor(self.random() * (max_value - min_value + 1)) + min_value
