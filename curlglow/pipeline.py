"""
Render pipeline: base sprite pass -> bloom -> afterimage.

This is the NumPy reference implementation used by the offscreen host and
by snapshots. The GL viewer (viz_main.py) runs the same three stages in the
same order with shaders, reading its parameters from the same stage objects.

Images are float32 arrays of shape (height, width, 3), row 0 at the top,
linear colour, not clamped until ``to_rgb8``.
"""
import logging
import math

import numpy as np
from scipy.ndimage import gaussian_filter, zoom

from .backend import to_host
from .config import AfterimageConfig, BloomConfig, SpriteConfig
from .sprite import make_circle_texture

logger = logging.getLogger(__name__)

STAGE_ORDER = ("base", "bloom", "afterimage")

LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)

# sprites are clamped to a (2 * MAX_SPRITE_RADIUS) px edge so they stay round up close
MAX_SPRITE_RADIUS = 16


def project_points(positions, view_proj, width, height):
    """Project world positions to pixel coordinates.

    ``view_proj`` follows pyrr's row-vector convention (clip = p @ view_proj).
    Returns (sx, sy, w, visible) where sx/sy are pixel coordinates (origin
    top-left), w is the clip-space w (view depth) and visible marks points
    whose centre lies inside the clip volume.
    """
    pts = np.asarray(to_host(positions), dtype=np.float64).reshape(-1, 3)
    hom = np.empty((pts.shape[0], 4), dtype=np.float64)
    hom[:, :3] = pts
    hom[:, 3] = 1.0
    clip = hom @ np.asarray(view_proj, dtype=np.float64)
    w = clip[:, 3]

    visible = w > 1e-9
    safe_w = np.where(visible, w, 1.0)
    ndc = clip[:, :3] / safe_w[:, None]
    visible &= np.all(np.abs(ndc) <= 1.0, axis=1)

    sx = (ndc[:, 0] + 1.0) * 0.5 * width
    sy = (1.0 - ndc[:, 1]) * 0.5 * height
    return sx, sy, w, visible


def _gaussian_blur(img, radius, sigma):
    """Separable blur over the two image axes, edges clamped, support cut at ``radius``."""
    return gaussian_filter(img, sigma=(sigma, sigma, 0.0), mode="nearest", truncate=radius / sigma)


def _resize(img, height, width):
    """Bilinear resample of an (h, w, 3) image to (height, width)."""
    h, w = img.shape[:2]
    if (h, w) == (height, width):
        return img
    out = zoom(img, (height / h, width / w, 1.0), order=1, mode="nearest", grid_mode=True)
    return out[:height, :width]


def _downsample(img):
    h, w = img.shape[:2]
    return _resize(img, max(1, (h + 1) // 2), max(1, (w + 1) // 2))


class BasePass:
    """Rasterises each particle as an additive, soft-edged, screen-facing sprite.

    There is no depth buffer: overlapping sprites simply add up.
    """

    name = "base"

    def __init__(self, sprite=None):
        self.config = sprite or SpriteConfig()
        self.color = np.array(self.config.rgb, dtype=np.float32)
        self.opacity = float(self.config.opacity)
        self.size = float(self.config.size)
        self.texture = make_circle_texture(self.config.texture_size)
        self._alpha = self.texture[..., 3]

    def point_size_px(self, w, height):
        """Perspective-attenuated sprite edge length in pixels, in [1, 2 * MAX_SPRITE_RADIUS]."""
        size = self.size * (height / 2.0) / np.maximum(w, 1e-9)
        return np.clip(size, 1.0, 2.0 * MAX_SPRITE_RADIUS)

    def render(self, positions, view_proj, width, height):
        image = np.zeros((height, width, 3), dtype=np.float32)
        sx, sy, w, visible = project_points(positions, view_proj, width, height)
        if not visible.any():
            return image

        sx, sy = sx[visible], sy[visible]
        size_px = self.point_size_px(w[visible], height)
        k = int(math.ceil(float(size_px.max()) / 2.0))
        offs = np.arange(-k, k + 1)
        ox, oy = np.meshgrid(offs, offs, indexing="xy")
        ox = ox.reshape(1, -1)
        oy = oy.reshape(1, -1)

        px = np.floor(sx)[:, None].astype(np.int64) + ox
        py = np.floor(sy)[:, None].astype(np.int64) + oy
        # sprite texture coordinates of each covered pixel centre
        u = (px + 0.5 - sx[:, None]) / size_px[:, None] + 0.5
        v = (py + 0.5 - sy[:, None]) / size_px[:, None] + 0.5
        inside = (u >= 0.0) & (u < 1.0) & (v >= 0.0) & (v < 1.0)
        inside &= (px >= 0) & (px < width) & (py >= 0) & (py < height)
        if not inside.any():
            return image

        tsize = self._alpha.shape[0]
        tu = np.minimum((u[inside] * tsize).astype(np.int64), tsize - 1)
        tv = np.minimum((v[inside] * tsize).astype(np.int64), tsize - 1)
        alpha = self._alpha[tv, tu].astype(np.float64) * self.opacity

        flat = py[inside] * width + px[inside]
        for c in range(3):
            acc = np.bincount(flat, weights=alpha * float(self.color[c]), minlength=width * height)
            image[..., c] = acc.reshape(height, width)
        return image


class BloomStage:
    """Bright-pass, five-level blurred mip chain, additive composite."""

    name = "bloom"

    MIP_LEVELS = 5
    KERNEL_SIZES = (3, 5, 7, 9, 11)
    BLOOM_FACTORS = (1.0, 0.8, 0.6, 0.4, 0.2)
    SMOOTH_WIDTH = 0.01

    def __init__(self, config=None):
        self.config = config or BloomConfig()
        self.strength = float(self.config.strength)
        self.radius = float(self.config.radius)
        self.threshold = float(self.config.threshold)

    def mip_weights(self):
        r = self.radius
        return tuple(f * (1.0 - r) + (1.2 - f) * r for f in self.BLOOM_FACTORS)

    def high_pass(self, image):
        lum = image @ LUMA
        lo, hi = self.threshold, self.threshold + self.SMOOTH_WIDTH
        t = np.clip((lum - lo) / (hi - lo), 0.0, 1.0)
        alpha = t * t * (3.0 - 2.0 * t)
        return image * alpha[..., None]

    def apply(self, image):
        if self.strength == 0.0:
            return image
        h, w = image.shape[:2]
        current = self.high_pass(image)
        bloom = np.zeros_like(image)
        for level, weight in zip(range(self.MIP_LEVELS), self.mip_weights()):
            current = _downsample(current)
            kernel = self.KERNEL_SIZES[level]
            current = _gaussian_blur(current, kernel, float(kernel))
            bloom += weight * _resize(current, h, w)
        return image + self.strength * bloom


class AfterimageStage:
    """Trail effect: keeps the previous output, decays it and takes the per-channel max.

    Channels of the history at or below 0.1 are dropped to 0 so trails end
    instead of fading forever.
    """

    name = "afterimage"

    CUTOFF = 0.1

    def __init__(self, config=None):
        self.config = config or AfterimageConfig()
        self.damp = float(self.config.damp)
        self._history = None

    def reset(self):
        self._history = None

    def apply(self, image):
        old = self._history
        if old is None or old.shape != image.shape:
            old = np.zeros_like(image)
        decayed = np.where(old > self.CUTOFF, old * self.damp, 0.0).astype(image.dtype, copy=False)
        out = np.maximum(image, decayed)
        self._history = out
        return out


class RenderPipeline:
    """Fixed-order post-processing chain applied to every frame.

    The order base -> bloom -> afterimage is part of the contract: trails
    carry the already-bloomed image. It cannot be changed after
    construction.
    """

    def __init__(self, width, height, sprite=None, bloom=None, afterimage=None):
        self.width = int(width)
        self.height = int(height)
        self.base = BasePass(sprite)
        self.bloom = BloomStage(bloom)
        self.afterimage = AfterimageStage(afterimage)
        self._stages = (self.base, self.bloom, self.afterimage)
        self.last_frame = None

    @classmethod
    def from_config(cls, config):
        return cls(config.width, config.height, sprite=config.sprite, bloom=config.bloom,
                   afterimage=config.afterimage)

    @property
    def stages(self):
        return self._stages

    @property
    def aspect(self):
        return self.width / max(1, self.height)

    def resize(self, width, height):
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise ValueError(f"viewport must be positive, got {width}x{height}")
        if (width, height) == (self.width, self.height):
            return
        logger.debug("pipeline resize %dx%d -> %dx%d", self.width, self.height, width, height)
        self.width, self.height = width, height
        self.afterimage.reset()

    def render_base(self, positions, view_proj):
        return self.base.render(positions, view_proj, self.width, self.height)

    def render(self, positions, view_proj):
        frame = self.render_base(positions, view_proj)
        for stage in self._stages[1:]:
            frame = stage.apply(frame)
        self.last_frame = frame
        return frame

    @staticmethod
    def to_rgb8(image):
        return (np.clip(image, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
