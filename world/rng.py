"""
Raidfloor — world/rng.py
Deterministic PRNG: xorshift32 stream and weighted choice.
=========================================================
Version:     0.1  (Phase 1 — level core)
Stack:       Python 3.12
Status:      Production-ready.

Architecture notes
------------------
- The stream is a pure function of its 32-bit state. No module-level
  generator exists; every consumer owns its own instance.
- Shift constants (13, 17, 5) and 32-bit wraparound match the reference
  stream bit-for-bit, including the sign-propagating 17-bit right shift.
  Seed 1 yields 270369 / 2**32 first.
- Seed 0 is a fixed point of xorshift and yields 0.0 forever.
"""

from __future__ import annotations

from typing import Callable, Sequence, Tuple, TypeVar

T = TypeVar("T")

MASK_32: int = 0xFFFFFFFF
TWO_POW_32: float = 4294967296.0

Rng = Callable[[], float]


class XorShift32:
    """Seedable xorshift32 generator. Calling the instance draws a float in [0, 1)."""

    def __init__(self, seed: int):
        self.state = seed & MASK_32

    def next_u32(self) -> int:
        s = self.state
        s ^= (s << 13) & MASK_32
        # The right shift is sign-propagating on the 32-bit signed view.
        signed = s - 0x100000000 if s & 0x80000000 else s
        s ^= (signed >> 17) & MASK_32
        s ^= (s << 5) & MASK_32
        self.state = s
        return s

    def __call__(self) -> float:
        return self.next_u32() / TWO_POW_32


def make_rng(seed: int) -> XorShift32:
    return XorShift32(seed)


def pick_weighted(rng: Rng, options: Sequence[Tuple[T, float]]) -> T:
    """
    Draws one item proportional to its weight.
    Weights are subtracted in input order from a single scaled draw; the last
    option is returned if float drift leaves a positive remainder.
    """
    if not options:
        raise ValueError("pick_weighted needs at least one option")

    total = sum(weight for _, weight in options)
    remainder = rng() * total
    for item, weight in options:
        remainder -= weight
        if remainder <= 0:
            return item
    return options[-1][0]
