"""
Raidfloor — tests/test_rng.py
Tests for the xorshift32 stream and weighted choice.
"""

import pytest

from world.rng import XorShift32, make_rng, pick_weighted, TWO_POW_32


def test_seed_one_first_value():
    rng = make_rng(1)
    assert rng.next_u32() == 270369

    rng = make_rng(1)
    assert rng() == 270369 / TWO_POW_32


def test_right_shift_propagates_sign():
    # High bit set: the 17-bit shift must fill with ones on the signed view.
    assert XorShift32(0x80000000).next_u32() == 0x8007C000


def test_same_seed_same_stream():
    a = make_rng(987654321)
    b = make_rng(987654321)
    assert [a() for _ in range(200)] == [b() for _ in range(200)]


def test_draws_in_unit_interval():
    rng = make_rng(42)
    for _ in range(5000):
        v = rng()
        assert 0.0 <= v < 1.0


def test_seed_zero_is_fixed_point():
    rng = make_rng(0)
    assert [rng() for _ in range(10)] == [0.0] * 10


def test_seed_is_masked_to_32_bits():
    a = make_rng(1 + (1 << 32))
    b = make_rng(1)
    assert a() == b()


def test_pick_weighted_walks_in_order():
    options = [("a", 1.0), ("b", 1.0), ("c", 2.0)]
    assert pick_weighted(lambda: 0.0, options) == "a"
    assert pick_weighted(lambda: 0.3, options) == "b"
    assert pick_weighted(lambda: 0.6, options) == "c"


def test_pick_weighted_falls_back_to_last():
    options = [("a", 1.0), ("b", 1.0), ("c", 2.0)]
    assert pick_weighted(lambda: 1.5, options) == "c"


def test_pick_weighted_distribution():
    rng = make_rng(12345)
    options = [("a", 1.0), ("b", 1.0), ("c", 2.0)]
    counts = {"a": 0, "b": 0, "c": 0}
    n = 40000
    for _ in range(n):
        counts[pick_weighted(rng, options)] += 1

    assert counts["a"] / n == pytest.approx(0.25, abs=0.02)
    assert counts["b"] / n == pytest.approx(0.25, abs=0.02)
    assert counts["c"] / n == pytest.approx(0.50, abs=0.02)


def test_pick_weighted_empty_raises():
    with pytest.raises(ValueError):
        pick_weighted(make_rng(1), [])
