import logging

import numpy as np
import pytest

from curlglow.advection import AdvectionStep
from curlglow.particles import ParticleBuffer

NOISE_SCALE = 0.1
FLOW = 0.003
BOUNDARY = 48.0
HALF_WIDTH = 12.0


class NaNCurl:
    """Curl stand-in that poisons the flow of selected slots."""

    def __init__(self, bad_slots):
        self.bad_slots = list(bad_slots)

    def curl_points(self, points, scratch=None):
        out = np.full(points.shape, 0.5)
        out[self.bad_slots] = np.nan
        return out


def _advance(buf, curl_op, **kw):
    args = dict(noise_scale=NOISE_SCALE, flow_strength=FLOW, boundary_radius=BOUNDARY,
                spawn_half_width=HALF_WIDTH)
    args.update(kw)
    return AdvectionStep().advance(buf, curl_op, **args)


def test_particle_at_origin_moves_by_scaled_curl(rolled_curl):
    # curl at the origin is -4.14719972352 * (1, 1, 1) for this table
    buf = ParticleBuffer(1, HALF_WIDTH, seed=0)
    buf[0] = (0.0, 0.0, 0.0)
    assert _advance(buf, rolled_curl) == 0
    expected = np.full(3, -4.14719972352 * FLOW, dtype=np.float32)
    np.testing.assert_allclose(buf[0], expected, rtol=1e-6)


def test_flow_is_sampled_at_scaled_position(curl_op):
    buf = ParticleBuffer(1, HALF_WIDTH, seed=0)
    buf[0] = (1.0, 2.0, 3.0)
    _advance(buf, curl_op)
    flow = curl_op.curl(1.0 * NOISE_SCALE, 2.0 * NOISE_SCALE, 3.0 * NOISE_SCALE) * FLOW
    expected = np.array([1.0, 2.0, 3.0], dtype=np.float32) + flow.astype(np.float32)
    np.testing.assert_allclose(buf[0], expected, rtol=1e-6)


def test_particle_outside_boundary_is_respawned(curl_op):
    buf = ParticleBuffer(1, 12.0, seed=0)
    buf[0] = (10.0, 0.0, 0.0)
    assert _advance(buf, curl_op, boundary_radius=5.0, spawn_half_width=12.0) == 1
    assert np.all(np.abs(buf[0]) <= 12.0)
    assert np.all(np.isfinite(buf[0]))


def test_boundary_uses_pre_update_position(curl_op):
    buf = ParticleBuffer(1, 1.0, seed=0)
    buf[0] = (4.999, 0.0, 0.0)
    start = buf[0]
    strength = 1e4
    assert _advance(buf, curl_op, flow_strength=strength, boundary_radius=5.0, spawn_half_width=1.0) == 0
    moved = buf[0]
    flow = (curl_op.curl(*(start.astype(np.float64) * NOISE_SCALE)) * strength).astype(np.float32)
    np.testing.assert_allclose(moved, start + flow, rtol=1e-5)
    assert np.linalg.norm(moved) > 5.0

    # caught on the following frame
    assert _advance(buf, curl_op, flow_strength=strength, boundary_radius=5.0, spawn_half_width=1.0) == 1
    assert np.all(np.abs(buf[0]) <= 1.0)


def test_only_outside_particles_are_respawned(curl_op):
    buf = ParticleBuffer(200, HALF_WIDTH, seed=3)
    buf.positions[::2] *= 10.0           # every other one well past the boundary
    outside = np.linalg.norm(buf.positions, axis=1) > BOUNDARY
    assert outside.any()
    inside_before = buf.snapshot()[~outside]

    n = _advance(buf, curl_op)
    assert n == int(outside.sum())
    assert np.all(np.abs(buf.positions[outside]) <= HALF_WIDTH)
    # the rest moved by a small amount only
    delta = np.abs(buf.positions[~outside] - inside_before)
    assert delta.max() < 100 * FLOW


def test_count_and_finiteness_hold_over_many_frames(curl_op):
    buf = ParticleBuffer(300, HALF_WIDTH, seed=5)
    step = AdvectionStep()
    total = 0
    for _ in range(200):
        total += step.advance(buf, curl_op, NOISE_SCALE, 2.0, 20.0, HALF_WIDTH)
        assert len(buf) == 300
        assert buf.positions.shape == (300, 3)
        assert np.all(np.isfinite(buf.positions))
    assert total > 0


def test_advance_is_deterministic(field, curl_op):
    a = ParticleBuffer(150, HALF_WIDTH, seed=21)
    b = ParticleBuffer(150, HALF_WIDTH, seed=21)
    step_a, step_b = AdvectionStep(), AdvectionStep()
    for _ in range(50):
        na = step_a.advance(a, curl_op, NOISE_SCALE, 1.5, 14.0, HALF_WIDTH)
        nb = step_b.advance(b, curl_op, NOISE_SCALE, 1.5, 14.0, HALF_WIDTH)
        assert na == nb
    np.testing.assert_array_equal(a.positions, b.positions)


def test_non_finite_flow_is_respawned_and_logged(caplog):
    buf = ParticleBuffer(6, 1.0, seed=0)
    buf.positions[:] = 0.0
    with caplog.at_level(logging.WARNING, logger="curlglow.advection"):
        n = _advance(buf, NaNCurl([1, 4]), flow_strength=1.0, spawn_half_width=1.0)
    assert n == 2
    assert np.all(np.isfinite(buf.positions))
    np.testing.assert_allclose(buf.positions[[0, 2, 3, 5]], 0.5)
    assert "non-finite" in caplog.text


def test_non_finite_position_is_respawned(curl_op):
    buf = ParticleBuffer(4, 2.0, seed=0)
    buf.positions[2] = np.nan
    buf.positions[3] = np.inf
    with np.errstate(invalid="ignore", over="ignore"):
        n = _advance(buf, curl_op, spawn_half_width=2.0)
    assert n == 2
    assert np.all(np.isfinite(buf.positions))
    assert np.all(np.abs(buf.positions[2:]) <= 2.0)


def test_scratch_is_reallocated_for_a_new_count(curl_op):
    step = AdvectionStep()
    step.advance(ParticleBuffer(10, 1.0, seed=0), curl_op, NOISE_SCALE, FLOW, BOUNDARY, 1.0)
    first = step._stencil
    step.advance(ParticleBuffer(10, 1.0, seed=1), curl_op, NOISE_SCALE, FLOW, BOUNDARY, 1.0)
    assert step._stencil is first
    step.advance(ParticleBuffer(20, 1.0, seed=0), curl_op, NOISE_SCALE, FLOW, BOUNDARY, 1.0)
    assert step._stencil.shape == (6, 20, 3)


@pytest.mark.parametrize("radius", [0.5, 48.0])
def test_positions_stay_float32(curl_op, radius):
    buf = ParticleBuffer(32, HALF_WIDTH, seed=0)
    _advance(buf, curl_op, boundary_radius=radius)
    assert buf.positions.dtype == np.float32
