import numpy as np

from .backend import to_host
from .errors import NumericDegeneracy


class ParticleBuffer:
    """Fixed-size set of particle positions.

    Positions live in one C-contiguous ``(count, 3)`` float32 array that can
    be handed straight to a vertex buffer. The count is set at construction
    and never changes; respawning overwrites a slot in place.
    """

    def __init__(self, count, half_width, seed=None, xp=np):
        count = int(count)
        if count <= 0:
            raise ValueError(f"particle count must be positive, got {count}")
        if half_width <= 0:
            raise ValueError(f"spawn half-width must be positive, got {half_width}")

        self.xp = xp
        self.count = count
        self.half_width = float(half_width)
        self.rng = xp.random.RandomState(seed)
        self._positions = xp.empty((count, 3), dtype=xp.float32)
        self.seed_all()

    def __len__(self):
        return self.count

    def __getitem__(self, index):
        return self.xp.array(self._positions[index], copy=True)

    def __setitem__(self, index, value):
        value = self.xp.asarray(value, dtype=self.xp.float32)
        if not bool(self.xp.isfinite(value).all()):
            raise NumericDegeneracy(f"refusing to store non-finite position {value!r} at slot {index!r}")
        self._positions[index] = value

    @property
    def positions(self):
        """The live position array. Only AdvectionStep should write to it."""
        return self._positions

    def _uniform(self, n, half_width):
        return self.rng.uniform(-half_width, half_width, size=(n, 3)).astype(self.xp.float32)

    def seed_all(self):
        self._positions[...] = self._uniform(self.count, self.half_width)

    def respawn(self, index, half_width=None):
        """Reseed the selected slot(s) uniformly in the cube [-R, R]^3.

        ``index`` may be an int, an integer array or a boolean mask over all
        slots. Each coordinate is an independent draw. Returns how many
        slots were reseeded.
        """
        xp = self.xp
        half_width = self.half_width if half_width is None else float(half_width)
        index = xp.asarray(index)
        if index.dtype == bool:
            if index.shape != (self.count,):
                raise IndexError(f"respawn mask must have shape ({self.count},), got {index.shape}")
            index = xp.flatnonzero(index)
        index = index.reshape(-1)
        n = int(index.size)
        if n == 0:
            return 0
        self._positions[index] = self._uniform(n, half_width)
        return n

    def snapshot(self):
        """Host-side copy of the positions."""
        return np.array(to_host(self._positions), copy=True)
