"""Per-frame particle advection through the curl-noise flow."""
import logging

logger = logging.getLogger(__name__)


class AdvectionStep:
    """Moves every particle once along the curl flow and enforces containment.

    The containment test uses the position *before* the update: a particle
    that was already outside ``boundary_radius`` is reseeded this frame
    instead of being moved. Any slot whose updated position comes out
    non-finite is reseeded too, so NaN/inf never reaches the renderer.

    Work arrays are kept between calls and only reallocated if the particle
    count they were built for changes.
    """

    def __init__(self):
        self._count = None
        self._scaled = None
        self._stencil = None
        self._dist = None

    def _ensure_scratch(self, xp, count):
        if self._count == count and self._scaled is not None:
            return
        self._count = count
        self._scaled = xp.empty((count, 3), dtype=xp.float64)
        self._stencil = xp.empty((6, count, 3), dtype=xp.float64)
        self._dist = xp.empty((count,), dtype=xp.float64)

    def advance(self, buffer, curl_operator, noise_scale, flow_strength, boundary_radius, spawn_half_width):
        """Advance all particles in ``buffer`` by one frame.

        Returns the number of slots that were reseeded.
        """
        xp = buffer.xp
        pos = buffer.positions
        self._ensure_scratch(xp, len(buffer))

        scaled = self._scaled
        scaled[...] = pos
        dist = self._dist
        xp.sqrt(xp.sum(scaled * scaled, axis=1), out=dist)
        outside = ~(dist <= boundary_radius)   # NaN distance counts as outside

        xp.multiply(scaled, noise_scale, out=scaled)
        flow = curl_operator.curl_points(scaled, scratch=self._stencil)
        flow *= flow_strength

        updated = pos + flow.astype(pos.dtype, copy=False)
        degenerate = ~xp.isfinite(updated).all(axis=1)

        keep = ~(outside | degenerate)
        pos[keep] = updated[keep]

        n_bad = int(degenerate.sum())
        if n_bad:
            logger.warning("%d particle(s) produced non-finite positions; respawning", n_bad)
        respawned = buffer.respawn(~keep, half_width=spawn_half_width)
        if respawned:
            logger.debug("respawned %d of %d particles", respawned, len(buffer))
        return respawned
