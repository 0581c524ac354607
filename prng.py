"""
Seedable Random Source
======================

Reproducible float stream used to drive expression synthesis.

The seed is first scrambled with a Knuth multiplicative hash (multiply by
2654435761, keep the low 32 bits) so that adjacent seeds such as 1, 2, 3
start from unrelated states. The scrambled value then seeds a Lehmer
(Park-Miller) generator:

    state' = 16807 * state mod (2**31 - 1)
    output = state' / (2**31 - 1)

Zero is an absorbing state of that recurrence. Any seed congruent to 0
modulo 2**32 hashes to 0, and so does nothing else, since the multiplier is
odd. Such seeds produce a constant stream of 0.0. This is kept on purpose so
that seed 0 renders the same image as the original gallery.
"""

from framework import RandomSource

HASH_MULTIPLIER = 2654435761
LEHMER_MULTIPLIER = 16807
LEHMER_MODULUS = 2147483647  # 2**31 - 1
UINT32_MASK = 0xFFFFFFFF


def hash_seed(seed: int) -> int:
    """
    Scrambles an integer seed into an unsigned 32-bit state.

    Negative and oversized seeds are reduced to their 32-bit two's complement
    pattern first, so -1 and 2**32 - 1 hash identically.
    """
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise ValueError(f"seed must be an integer, got {seed!r}")
    return ((seed & UINT32_MASK) * HASH_MULTIPLIER) & UINT32_MASK


class SeededRandom(RandomSource):
    """
    Lehmer generator seeded through `hash_seed`.

    One instance belongs to one synthesis run. Create a fresh instance per
    seed; never share one between two renders.
    """
    def __init__(self, seed: int):
        self.seed = seed
        self.state = hash_seed(seed)

    @property
    def is_degenerate(self) -> bool:
        """True once the stream is stuck at zero."""
        return self.state % LEHMER_MODULUS == 0

    def next(self) -> float:
        self.state = (LEHMER_MULTIPLIER * self.state) % LEHMER_MODULUS
        return self.state / LEHMER_MODULUS

    def take(self, n: int) -> list:
        return [self.next() for _ in range(n)]

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.seed}, state={self.state})"
