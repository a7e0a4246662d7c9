"""
Frame orchestration.

A host is anything that provides:

    open()                 acquire the display surface (raise StartupFailure if it can't)
    should_close() -> bool
    present(positions)     render one frame from the current particle positions
    close()
    apply_pending()        optional; apply queued resizes etc. between frames
    paused                 optional attribute; while true the simulation is not stepped

``FrameLoop`` runs one simulation step and one present per refresh. It owns
no simulation state of its own.
"""
import logging
import time

from .pipeline import RenderPipeline
from .viz_camera import OrbitCamera

logger = logging.getLogger(__name__)


class FrameLoop:

    def __init__(self, world, host):
        self.world = world
        self.host = host
        self.frames = 0

    def tick(self):
        timings = {}

        apply_pending = getattr(self.host, "apply_pending", None)
        if apply_pending is not None:
            apply_pending()

        t0 = time.perf_counter()
        if not getattr(self.host, "paused", False):
            self.world.step()
        timings["advect"] = time.perf_counter() - t0

        t0 = time.perf_counter()
        self.host.present(self.world.particles.positions)
        timings["render"] = time.perf_counter() - t0

        self.frames += 1
        if logger.isEnabledFor(logging.DEBUG):
            total = sum(timings.values())
            logger.debug("frame %d: total=%.2f ms (%s)", self.frames, total * 1000,
                         ", ".join(f"{k}={v * 1000:.2f} ms" for k, v in timings.items()))
        return timings

    def run(self, max_frames=None):
        """Run until the host closes or ``max_frames`` frames were shown."""
        self.host.open()
        try:
            while not self.host.should_close():
                if max_frames is not None and self.frames >= max_frames:
                    break
                self.tick()
        finally:
            self.host.close()
        logger.info("frame loop finished after %d frames", self.frames)
        return self.frames


class OffscreenHost:
    """Host that renders with the NumPy pipeline and keeps the last frame in memory."""

    def __init__(self, config, camera=None, pipeline=None):
        self.config = config
        self.camera = camera or OrbitCamera(config.camera)
        self.pipeline = pipeline or RenderPipeline.from_config(config)
        self.frame = None
        self.frames_presented = 0
        self._pending_size = None
        self._open = False

    def open(self):
        self._open = True

    def should_close(self):
        return not self._open

    def resize(self, width, height):
        """Queue a viewport change; it takes effect at the next frame boundary."""
        self._pending_size = (int(width), int(height))

    def apply_pending(self):
        if self._pending_size is not None:
            self.pipeline.resize(*self._pending_size)
            self._pending_size = None

    def present(self, positions):
        self.camera.update()
        view_proj = self.camera.get_view_proj(self.pipeline.aspect)
        self.frame = self.pipeline.render(positions, view_proj)
        self.frames_presented += 1
        return self.frame

    def close(self):
        self._open = False
