import math

import numpy as np
import pyrr

from .config import CameraConfig


class OrbitCamera:
    """Orbit camera around a target with optional auto-rotation and damped dragging.

    Matrices use pyrr's row-vector layout, so ``clip = p @ view_proj`` and the
    arrays can be passed to glUniformMatrix4fv without transposing.
    """

    def __init__(self, config=None, target=(0.0, 0.0, 0.0)):
        self.config = config or CameraConfig()
        self.target = np.array(target, dtype=np.float32)
        self.distance = float(self.config.distance)
        # eye starts on +z looking at the target, y up
        self.yaw = math.pi / 2.0
        self.pitch = 0.0

        self.fov = float(self.config.fov)
        self.near = float(self.config.near)
        self.far = float(self.config.far)
        self.auto_rotate_speed = float(self.config.auto_rotate_speed)
        self.damping_factor = float(self.config.damping_factor)

        self._yaw_delta = 0.0
        self._pitch_delta = 0.0

        self.rotate_sens = 0.006
        self.pitch_limit = 1.55
        self.min_distance = 0.5
        self.max_distance = 2000.0

    def get_eye(self):
        x = self.distance * math.cos(self.pitch) * math.cos(self.yaw)
        y = self.distance * math.sin(self.pitch)
        z = self.distance * math.cos(self.pitch) * math.sin(self.yaw)
        return self.target + np.array([x, y, z], dtype=np.float32)

    def get_view_matrix(self):
        eye = self.get_eye()
        up = np.array([0.0, 1.0, 0.0], dtype=np.float32)
        return pyrr.matrix44.create_look_at(eye, self.target, up, dtype=np.float32)

    def get_projection_matrix(self, aspect):
        return pyrr.matrix44.create_perspective_projection(self.fov, aspect, self.near, self.far, dtype=np.float32)

    def get_view_proj(self, aspect):
        return pyrr.matrix44.multiply(self.get_view_matrix(), self.get_projection_matrix(aspect))

    def rotate(self, dx, dy):
        """Queue a drag of (dx, dy) pixels; applied gradually by update()."""
        self._yaw_delta += float(dx) * self.rotate_sens
        self._pitch_delta -= float(dy) * self.rotate_sens

    def zoom(self, steps):
        self.distance *= math.exp(-float(steps) * 0.12)
        self.distance = max(self.min_distance, min(self.max_distance, self.distance))

    def update(self):
        """Advance one frame: auto-rotate and bleed off queued drag."""
        # 0.8 speed -> one revolution every 75 s at 60 fps
        self.yaw -= 2.0 * math.pi / 60.0 / 60.0 * self.auto_rotate_speed

        self.yaw += self._yaw_delta * self.damping_factor
        self.pitch += self._pitch_delta * self.damping_factor
        self._yaw_delta *= 1.0 - self.damping_factor
        self._pitch_delta *= 1.0 - self.damping_factor
        self.pitch = max(-self.pitch_limit, min(self.pitch_limit, self.pitch))
