"""Central-difference curl of a NoiseField."""
import numpy as np

# stencil order: +x, -x, +y, -y, +z, -z
_STENCIL = np.array([
    [1.0, 0.0, 0.0],
    [-1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, -1.0, 0.0],
    [0.0, 0.0, 1.0],
    [0.0, 0.0, -1.0],
])

DEFAULT_EPSILON = 1e-4


class CurlOperator:
    """Approximates curl(F) for F = field.sample with six samples per point.

    ``epsilon`` is fixed for the lifetime of the operator. Results carry the
    usual O(epsilon**2) truncation error, so the flow is only approximately
    divergence free.
    """

    def __init__(self, field, epsilon=DEFAULT_EPSILON):
        if epsilon == 0:
            raise ValueError("epsilon must be non-zero")
        self.field = field
        self.xp = field.xp
        self.epsilon = float(epsilon)
        self._offsets = self.xp.asarray(_STENCIL * self.epsilon)

    def stencil(self, points, out=None):
        """Return the (6, ..., 3) sample positions around ``points``.

        ``out`` may be a preallocated array of that shape; it is filled in
        place and returned.
        """
        xp = self.xp
        points = xp.asarray(points, dtype=xp.float64)
        shape = (6,) + points.shape
        if out is None or out.shape != shape:
            out = xp.empty(shape, dtype=xp.float64)
        for n in range(6):
            xp.add(points, self._offsets[n], out=out[n])
        return out

    def _samples(self, points, scratch):
        return self.field.sample_points(self.stencil(points, out=scratch))

    def jacobian_points(self, points, scratch=None):
        """J[..., i, j] = dF_i / dx_j at every point."""
        xp = self.xp
        f = self._samples(points, scratch)
        two_eps = 2.0 * self.epsilon
        # columns: derivative along x, y, z
        return xp.stack((
            (f[0] - f[1]) / two_eps,
            (f[2] - f[3]) / two_eps,
            (f[4] - f[5]) / two_eps,
        ), axis=-1)

    def curl_points(self, points, scratch=None):
        """Curl at an ``(..., 3)`` array of points.

        ``scratch`` is an optional reusable stencil buffer, see ``stencil``.
        """
        xp = self.xp
        f = self._samples(points, scratch)
        fx1, fx2, fy1, fy2, fz1, fz2 = f[0], f[1], f[2], f[3], f[4], f[5]
        two_eps = 2.0 * self.epsilon
        return xp.stack((
            (fy1[..., 2] - fy2[..., 2] - (fz1[..., 1] - fz2[..., 1])) / two_eps,
            (fz1[..., 0] - fz2[..., 0] - (fx1[..., 2] - fx2[..., 2])) / two_eps,
            (fx1[..., 1] - fx2[..., 1] - (fy1[..., 0] - fy2[..., 0])) / two_eps,
        ), axis=-1)

    def curl(self, x, y, z):
        xp = self.xp
        x, y, z = xp.broadcast_arrays(xp.asarray(x, dtype=xp.float64),
                                      xp.asarray(y, dtype=xp.float64),
                                      xp.asarray(z, dtype=xp.float64))
        return self.curl_points(xp.stack((x, y, z), axis=-1))

    def jacobian(self, x, y, z):
        xp = self.xp
        x, y, z = xp.broadcast_arrays(xp.asarray(x, dtype=xp.float64),
                                      xp.asarray(y, dtype=xp.float64),
                                      xp.asarray(z, dtype=xp.float64))
        return self.jacobian_points(xp.stack((x, y, z), axis=-1))
