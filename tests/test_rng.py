import math

import numpy as np
import pytest

from mmsim.utils.rng import SeededRNG


def _reference_mulberry32(seed: int, count: int) -> list[float]:
    state = np.array([seed], dtype=np.uint32)
    out = []
    for _ in range(count):
        state = state + np.uint32(0x6D2B79F5)
        t = state.copy()
        t = (t ^ (t >> 15)) * (t | 1)
        t ^= t + (t ^ (t >> 7)) * (t | 61)
        out.append(int((t ^ (t >> 14))[0]) / 4294967296.0)
    return out


@pytest.mark.parametrize("seed", [0, 1, 12345, 2**31 - 1, 2**32 - 1])
def test_matches_uint32_reference(seed: int) -> None:
    rng = SeededRNG(seed)
    assert [rng.next() for _ in range(200)] == _reference_mulberry32(seed, 200)


def test_same_seed_same_sequence() -> None:
    a = SeededRNG(42)
    b = SeededRNG(42)
    assert [a.next() for _ in range(50)] == [b.next() for _ in range(50)]
    assert SeededRNG(43).next() != SeededRNG(42).next()


def test_outputs_in_unit_interval() -> None:
    rng = SeededRNG(7)
    samples = [rng.next() for _ in range(5_000)]
    assert all(0.0 <= value < 1.0 for value in samples)
    assert 0.45 < sum(samples) / len(samples) < 0.55


def test_state_wraps_at_32_bits() -> None:
    rng = SeededRNG(0xFFFFFFFF)
    rng.next()
    assert rng.state == (0xFFFFFFFF + 0x6D2B79F5) & 0xFFFFFFFF


def test_reset_and_set_seed_rewind() -> None:
    rng = SeededRNG(99)
    first = [rng.next() for _ in range(5)]
    rng.reset()
    assert [rng.next() for _ in range(5)] == first
    rng.set_seed(100)
    assert rng.seed == 100
    assert rng.next() == SeededRNG(100).next()


def test_next_in_range_and_normal() -> None:
    rng = SeededRNG(5)
    values = [rng.next_in_range(-2.0, 3.0) for _ in range(1_000)]
    assert all(-2.0 <= value < 3.0 for value in values)
    normals = [rng.next_normal(10.0, 2.0) for _ in range(5_000)]
    assert all(math.isfinite(value) for value in normals)
    mean = sum(normals) / len(normals)
    assert mean == pytest.approx(10.0, abs=0.15)
