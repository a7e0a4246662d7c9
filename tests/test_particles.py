import numpy as np
import pytest

from curlglow.errors import NumericDegeneracy
from curlglow.particles import ParticleBuffer


def test_initial_positions_fill_the_spawn_cube():
    buf = ParticleBuffer(2400, 12.0, seed=0)
    pos = buf.positions
    assert len(buf) == 2400
    assert pos.shape == (2400, 3)
    assert pos.dtype == np.float32
    assert pos.flags["C_CONTIGUOUS"]
    assert np.all(np.abs(pos) <= 12.0)
    # a real cube, not a ball
    assert np.abs(pos).max() > 11.0


def test_same_seed_same_positions():
    a = ParticleBuffer(100, 5.0, seed=9)
    b = ParticleBuffer(100, 5.0, seed=9)
    c = ParticleBuffer(100, 5.0, seed=10)
    np.testing.assert_array_equal(a.positions, b.positions)
    assert not np.array_equal(a.positions, c.positions)


@pytest.mark.parametrize("count, half_width", [(0, 1.0), (-3, 1.0), (10, 0.0)])
def test_invalid_construction(count, half_width):
    with pytest.raises(ValueError):
        ParticleBuffer(count, half_width)


def test_coordinates_are_independent_draws():
    buf = ParticleBuffer(20000, 1.0, seed=4)
    r = np.linalg.norm(buf.positions, axis=1)
    # cube minus inscribed ball is 1 - pi/6 of the volume
    outside_ball = np.mean(r > 1.0)
    assert 0.44 < outside_ball < 0.51


def test_getitem_returns_a_copy():
    buf = ParticleBuffer(4, 1.0, seed=0)
    p = buf[2]
    p[:] = 99.0
    assert not np.any(buf.positions[2] == 99.0)


def test_setitem_stores_finite_values():
    buf = ParticleBuffer(4, 1.0, seed=0)
    buf[1] = (0.5, -0.25, 2.0)
    np.testing.assert_array_equal(buf[1], np.array([0.5, -0.25, 2.0], dtype=np.float32))


@pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
def test_setitem_rejects_non_finite(bad):
    buf = ParticleBuffer(4, 1.0, seed=0)
    before = buf.snapshot()
    with pytest.raises(NumericDegeneracy):
        buf[0] = (0.0, bad, 0.0)
    np.testing.assert_array_equal(buf.positions, before)


def test_numeric_degeneracy_is_an_arithmetic_error():
    assert issubclass(NumericDegeneracy, ArithmeticError)


def test_respawn_single_slot():
    buf = ParticleBuffer(10, 2.0, seed=1)
    buf[3] = (100.0, 100.0, 100.0)
    before = buf.snapshot()
    assert buf.respawn(3) == 1
    assert np.all(np.abs(buf[3]) <= 2.0)
    others = np.arange(10) != 3
    np.testing.assert_array_equal(buf.positions[others], before[others])


def test_respawn_by_mask_and_index_array():
    buf = ParticleBuffer(10, 2.0, seed=1)
    buf.positions[:] = 50.0
    mask = np.zeros(10, dtype=bool)
    mask[[0, 4, 9]] = True
    assert buf.respawn(mask) == 3
    assert np.all(np.abs(buf.positions[mask]) <= 2.0)
    assert np.all(buf.positions[~mask] == 50.0)

    assert buf.respawn(np.array([1, 2])) == 2
    assert np.all(np.abs(buf.positions[[1, 2]]) <= 2.0)


def test_respawn_nothing():
    buf = ParticleBuffer(5, 1.0, seed=0)
    before = buf.snapshot()
    assert buf.respawn(np.zeros(5, dtype=bool)) == 0
    assert buf.respawn(np.array([], dtype=np.int64)) == 0
    np.testing.assert_array_equal(buf.positions, before)


def test_respawn_mask_shape_is_checked():
    buf = ParticleBuffer(5, 1.0, seed=0)
    with pytest.raises(IndexError):
        buf.respawn(np.ones(4, dtype=bool))


def test_respawn_with_other_half_width():
    buf = ParticleBuffer(500, 1.0, seed=0)
    buf.respawn(np.ones(500, dtype=bool), half_width=30.0)
    assert np.abs(buf.positions).max() > 1.0
    assert np.all(np.abs(buf.positions) <= 30.0)


def test_snapshot_is_detached():
    buf = ParticleBuffer(3, 1.0, seed=0)
    snap = buf.snapshot()
    buf.positions[:] = 0.0
    assert np.any(snap != 0.0)
