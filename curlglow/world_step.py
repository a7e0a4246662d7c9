import logging
import time

import numpy as np

from .advection import AdvectionStep
from .backend import get_array_module, to_host
from .config import SimulationConfig
from .curl import CurlOperator
from .noise_field import NoiseField
from .particles import ParticleBuffer

logger = logging.getLogger(__name__)


class WorldStep:
    """Simulation context: owns the particles, the noise field and the flow parameters.

    One ``step()`` per displayed frame. Nothing here is module-global, so
    several independent worlds can coexist (the tests rely on that).
    """

    def __init__(self, config=None, **overrides):
        if config is None:
            config = SimulationConfig.from_dict(overrides)
        elif overrides:
            config = config.with_overrides(**overrides)
        self.config = config
        self.xp = get_array_module(config.backend)

        self.noise_scale = float(config.noise_scale)
        self.flow_strength = float(config.flow_strength)
        self.boundary_radius = float(config.boundary_radius)
        self.spawn_half_width = float(config.spawn_half_width)

        self.field = NoiseField(seed=config.seed, xp=self.xp)
        self.curl = CurlOperator(self.field, epsilon=config.epsilon)
        self.particles = ParticleBuffer(config.count, self.spawn_half_width, seed=config.seed, xp=self.xp)
        self.advection = AdvectionStep()

        self.frame = 0
        self.respawned_total = 0
        self.last_step_time = 0.0

        logger.info("World initialised: %d particles, spawn half-width %.3g, boundary %.3g, backend %s",
                    len(self.particles), self.spawn_half_width, self.boundary_radius, config.backend)

    @property
    def num_particles(self):
        return len(self.particles)

    def step(self):
        t0 = time.perf_counter()
        respawned = self.advection.advance(
            self.particles,
            self.curl,
            self.noise_scale,
            self.flow_strength,
            self.boundary_radius,
            self.spawn_half_width,
        )
        self.last_step_time = time.perf_counter() - t0
        self.respawned_total += respawned
        self.frame += 1
        return respawned

    def run(self, frames):
        for _ in range(int(frames)):
            self.step()

    # -------------------------
    # Vertex generation for rendering
    # -------------------------
    def build_point_vertices(self):
        """Host float32 array of shape (N, 3) for upload to a vertex buffer."""
        pts = to_host(self.particles.positions)
        if not pts.flags["C_CONTIGUOUS"] or pts.dtype != np.float32:
            pts = np.ascontiguousarray(pts, dtype=np.float32)
        return pts

    # -------------------------
    # Diagnostics / helpers
    # -------------------------
    def get_particle_stats(self):
        """min / max / mean distance from the origin, plus frame counters."""
        pts = to_host(self.particles.positions).astype(np.float64)
        dist = np.linalg.norm(pts, axis=1)
        return {
            "frame": self.frame,
            "count": int(pts.shape[0]),
            "min_radius": float(dist.min()),
            "max_radius": float(dist.max()),
            "mean_radius": float(dist.mean()),
            "respawned_total": int(self.respawned_total),
            "step_ms": self.last_step_time * 1000.0,
        }

    def log_particle_stats(self, level=logging.INFO):
        s = self.get_particle_stats()
        logger.log(level, "frame %d: %d particles, radius min=%.4g max=%.4g mean=%.4g, respawned=%d, step=%.2f ms",
                   s["frame"], s["count"], s["min_radius"], s["max_radius"], s["mean_radius"],
                   s["respawned_total"], s["step_ms"])
