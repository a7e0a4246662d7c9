import numpy as np


def make_circle_texture(size=64):
    """RGBA float32 texture: white disc, alpha 1 at the centre falling linearly to 0 at the edge.

    Equivalent of a canvas radial gradient from rgba(255,255,255,1) at the
    centre to rgba(255,255,255,0) at radius size/2.
    """
    size = int(size)
    c = np.arange(size, dtype=np.float64) + 0.5
    dx = c[None, :] - size / 2.0
    dy = c[:, None] - size / 2.0
    r = np.sqrt(dx * dx + dy * dy) / (size / 2.0)

    tex = np.ones((size, size, 4), dtype=np.float32)
    tex[..., 3] = np.clip(1.0 - r, 0.0, 1.0)
    return tex
