"""Seeded 3D simplex noise and the vector field built from it.

``SimplexNoise.noise3d`` is the scalar gradient-noise function (Gustavson's
simplex formulation, output roughly in [-1, 1]). ``NoiseField.sample`` turns
it into a vector field by evaluating it three times with the input
coordinates cyclically permuted, so the three components are decorrelated.

Both work on scalars or on arrays of any (matching) shape; the heavy lifting
is vectorized so one call can evaluate every particle at once.
"""
import numpy as np

F3 = 1.0 / 3.0
G3 = 1.0 / 6.0

# the twelve cube-edge gradients
GRAD3 = (
    (1, 1, 0), (-1, 1, 0), (1, -1, 0), (-1, -1, 0),
    (1, 0, 1), (-1, 0, 1), (1, 0, -1), (-1, 0, -1),
    (0, 1, 1), (0, -1, 1), (0, 1, -1), (0, -1, -1),
)

# Simplex traversal order, one row per ordering of (x0, y0, z0):
# (i1, j1, k1, i2, j2, k2)
_SIMPLEX_OFFSETS = (
    (1, 0, 0, 1, 1, 0),  # x >= y >= z
    (1, 0, 0, 1, 0, 1),  # x >= z > y
    (0, 0, 1, 1, 0, 1),  # z > x >= y
    (0, 0, 1, 0, 1, 1),  # z > y > x
    (0, 1, 0, 0, 1, 1),  # y > z > x
    (0, 1, 0, 1, 1, 0),  # y > x >= z
)


class SimplexNoise:
    """3D simplex noise.

    The permutation table is drawn from ``seed`` unless ``perm`` (a
    permutation of range(256)) is given explicitly.
    """

    def __init__(self, seed=0, xp=np, perm=None):
        self.seed = int(seed)
        self.xp = xp

        if perm is None:
            p = np.random.RandomState(self.seed).permutation(256).astype(np.int64)
        else:
            p = np.asarray(perm, dtype=np.int64)
            if p.shape != (256,) or not np.array_equal(np.sort(p), np.arange(256)):
                raise ValueError("perm must be a permutation of range(256)")
        self.perm = xp.asarray(np.concatenate([p, p]))
        self.grad3 = xp.asarray(np.array(GRAD3, dtype=np.float64))
        self.offsets = xp.asarray(np.array(_SIMPLEX_OFFSETS, dtype=np.int64))

    def _corner(self, gi, x, y, z):
        xp = self.xp
        t = 0.6 - x * x - y * y - z * z
        g = self.grad3[gi]
        dot = g[..., 0] * x + g[..., 1] * y + g[..., 2] * z
        t2 = t * t
        return xp.where(t < 0.0, 0.0, t2 * t2 * dot)

    def noise3d(self, x, y, z):
        xp = self.xp
        x = xp.asarray(x, dtype=xp.float64)
        y = xp.asarray(y, dtype=xp.float64)
        z = xp.asarray(z, dtype=xp.float64)

        # skew into simplex cell space
        s = (x + y + z) * F3
        i = xp.floor(x + s)
        j = xp.floor(y + s)
        k = xp.floor(z + s)
        t = (i + j + k) * G3
        x0 = x - (i - t)
        y0 = y - (j - t)
        z0 = z - (k - t)

        order = xp.select(
            [
                (x0 >= y0) & (y0 >= z0),
                (x0 >= y0) & (x0 >= z0),
                x0 >= y0,
                y0 < z0,
                x0 < z0,
            ],
            [0, 1, 2, 3, 4],
            default=5,
        )
        o = self.offsets[order]
        i1, j1, k1 = o[..., 0], o[..., 1], o[..., 2]
        i2, j2, k2 = o[..., 3], o[..., 4], o[..., 5]

        x1 = x0 - i1 + G3
        y1 = y0 - j1 + G3
        z1 = z0 - k1 + G3
        x2 = x0 - i2 + 2.0 * G3
        y2 = y0 - j2 + 2.0 * G3
        z2 = z0 - k2 + 2.0 * G3
        x3 = x0 - 1.0 + 3.0 * G3
        y3 = y0 - 1.0 + 3.0 * G3
        z3 = z0 - 1.0 + 3.0 * G3

        perm = self.perm
        ii = i.astype(xp.int64) & 255
        jj = j.astype(xp.int64) & 255
        kk = k.astype(xp.int64) & 255
        gi0 = perm[ii + perm[jj + perm[kk]]] % 12
        gi1 = perm[ii + i1 + perm[jj + j1 + perm[kk + k1]]] % 12
        gi2 = perm[ii + i2 + perm[jj + j2 + perm[kk + k2]]] % 12
        gi3 = perm[ii + 1 + perm[jj + 1 + perm[kk + 1]]] % 12

        n = (self._corner(gi0, x0, y0, z0)
             + self._corner(gi1, x1, y1, z1)
             + self._corner(gi2, x2, y2, z2)
             + self._corner(gi3, x3, y3, z3))
        return 32.0 * n


class NoiseField:
    """Vector field F(x, y, z) = (n(y, z, x), n(z, x, y), n(x, y, z))."""

    def __init__(self, noise=None, seed=0, xp=np):
        self.noise = noise if noise is not None else SimplexNoise(seed=seed, xp=xp)
        self.xp = self.noise.xp

    @property
    def seed(self):
        return self.noise.seed

    def sample(self, x, y, z):
        n = self.noise.noise3d
        return self.xp.stack((n(y, z, x), n(z, x, y), n(x, y, z)), axis=-1)

    def sample_points(self, points):
        """Sample at an ``(..., 3)`` array of points."""
        return self.sample(points[..., 0], points[..., 1], points[..., 2])
