"""GLFW / OpenGL viewer.

Draws the particles as additive point sprites into an offscreen target,
then runs the pipeline stages (bloom, afterimage) as fullscreen passes in
the order given by ``RenderPipeline.stages`` and presents the result.

Controls:
- Left drag   : orbit (damped)
- Mouse wheel : zoom
- Space       : pause / unpause the simulation
- S           : log particle statistics
- Esc         : quit
"""
import logging

import glfw
import numpy as np
import OpenGL.GL as gl

from .backend import to_host
from .errors import StartupFailure
from .pipeline import MAX_SPRITE_RADIUS, RenderPipeline
from .viz_camera import OrbitCamera
from .viz_gl_helpers import (
    RenderTarget, _bind_texture, _compile_program, _create_sprite_texture, _draw_fullscreen,
    _setup_points, _uniforms, _upload_points,
)
from .viz_shaders import (
    AFTERIMAGE_FRAG, BLOOM_COMPOSITE_FRAG, BLUR_FRAG, COPY_FRAG, FS_TRI_VERT, HIGHPASS_FRAG,
    PRESENT_FRAG, SPRITE_FRAG, SPRITE_VERT,
)

logger = logging.getLogger(__name__)


class GLViewer:

    def __init__(self, config, count, camera=None, pipeline=None, title="curl noise particles"):
        self.config = config
        self.count = int(count)
        self.camera = camera or OrbitCamera(config.camera)
        self.pipeline = pipeline or RenderPipeline.from_config(config)
        self.title = title
        self.window = None
        self.paused = False
        self.on_stats = None

        self._dragging = False
        self._last_x = 0.0
        self._last_y = 0.0
        self._pending_size = None
        self._targets = []

    # ---------- lifecycle ----------

    def open(self):
        if not glfw.init():
            raise StartupFailure("Failed to init GLFW")

        glfw.window_hint(glfw.CONTEXT_VERSION_MAJOR, 3)
        glfw.window_hint(glfw.CONTEXT_VERSION_MINOR, 3)
        glfw.window_hint(glfw.OPENGL_PROFILE, glfw.OPENGL_CORE_PROFILE)
        glfw.window_hint(glfw.OPENGL_FORWARD_COMPAT, True)

        self.window = glfw.create_window(self.pipeline.width, self.pipeline.height, self.title, None, None)
        if not self.window:
            glfw.terminate()
            raise StartupFailure("Failed to create window")

        glfw.make_context_current(self.window)
        glfw.swap_interval(1)

        glfw.set_mouse_button_callback(self.window, self._on_mouse_button)
        glfw.set_cursor_pos_callback(self.window, self._on_cursor_pos)
        glfw.set_scroll_callback(self.window, self._on_scroll)
        glfw.set_key_callback(self.window, self._on_key)
        glfw.set_framebuffer_size_callback(self.window, self._on_framebuffer_size)

        try:
            self._init_gl()
        except StartupFailure:
            glfw.terminate()
            raise
        logger.info("GL viewer open: %s", gl.glGetString(gl.GL_RENDERER))

    def _init_gl(self):
        self.sprite_prog = _compile_program(SPRITE_VERT, SPRITE_FRAG)
        self.copy_prog = _compile_program(FS_TRI_VERT, COPY_FRAG)
        self.highpass_prog = _compile_program(FS_TRI_VERT, HIGHPASS_FRAG)
        self.blur_prog = _compile_program(FS_TRI_VERT, BLUR_FRAG)
        self.composite_prog = _compile_program(FS_TRI_VERT, BLOOM_COMPOSITE_FRAG)
        self.afterimage_prog = _compile_program(FS_TRI_VERT, AFTERIMAGE_FRAG)
        self.present_prog = _compile_program(FS_TRI_VERT, PRESENT_FRAG)

        self.u_sprite = _uniforms(self.sprite_prog, "uViewProj", "uSize", "uScale", "uMaxSize", "uColor", "uOpacity",
                                  "uSprite")
        self.u_highpass = _uniforms(self.highpass_prog, "uTex", "uThreshold", "uSmoothWidth")
        self.u_blur = _uniforms(self.blur_prog, "uTex", "uStep", "uRadius", "uSigma")
        self.u_composite = _uniforms(self.composite_prog, "uBase", "uMip0", "uMip1", "uMip2", "uMip3", "uMip4",
                                     "uWeights", "uStrength")
        self.u_afterimage = _uniforms(self.afterimage_prog, "uNew", "uOld", "uDamp", "uCutoff")

        self.sprite_tex = _create_sprite_texture(self.pipeline.base.texture)
        self.pts_vao, self.pts_vbo = _setup_points(self.count)
        self.fs_vao = gl.glGenVertexArrays(1)

        w, h = glfw.get_framebuffer_size(self.window)
        self._allocate_targets(max(1, w), max(1, h))

        gl.glEnable(gl.GL_PROGRAM_POINT_SIZE)
        gl.glDisable(gl.GL_DEPTH_TEST)

    def _allocate_targets(self, w, h):
        for target in self._targets:
            target.release()
        self.scene = RenderTarget(w, h)
        self.bright = RenderTarget(w, h)
        self.bloomed = RenderTarget(w, h)
        self.history = [RenderTarget(w, h), RenderTarget(w, h)]
        self.mips = []
        mw, mh = w, h
        for _ in range(self.pipeline.bloom.MIP_LEVELS):
            mw, mh = max(1, mw // 2), max(1, mh // 2)
            self.mips.append((RenderTarget(mw, mh), RenderTarget(mw, mh)))
        self._history_index = 0
        self._targets = [self.scene, self.bright, self.bloomed] + self.history + [t for pair in self.mips for t in pair]
        self.pipeline.resize(w, h)

    def should_close(self):
        return bool(glfw.window_should_close(self.window))

    def apply_pending(self):
        if self._pending_size is not None:
            w, h = self._pending_size
            self._pending_size = None
            if w > 0 and h > 0 and (w, h) != (self.pipeline.width, self.pipeline.height):
                self._allocate_targets(w, h)

    def close(self):
        if self.window is None:
            return
        for target in self._targets:
            target.release()
        self._targets = []
        glfw.terminate()
        self.window = None

    # ---------- GLFW callback handlers ----------

    def _on_mouse_button(self, window, button, action, mods):
        if button != glfw.MOUSE_BUTTON_LEFT:
            return
        if action == glfw.PRESS:
            self._dragging = True
            self._last_x, self._last_y = glfw.get_cursor_pos(window)
        elif action == glfw.RELEASE:
            self._dragging = False

    def _on_cursor_pos(self, window, xpos, ypos):
        if not self._dragging:
            return
        self.camera.rotate(xpos - self._last_x, ypos - self._last_y)
        self._last_x, self._last_y = float(xpos), float(ypos)

    def _on_scroll(self, window, xoff, yoff):
        self.camera.zoom(yoff)

    def _on_key(self, window, key, scancode, action, mods):
        if action != glfw.PRESS:
            return
        if key == glfw.KEY_ESCAPE:
            glfw.set_window_should_close(window, True)
        elif key == glfw.KEY_SPACE:
            self.paused = not self.paused
            logger.info("paused" if self.paused else "running")
        elif key == glfw.KEY_S and self.on_stats is not None:
            self.on_stats()

    def _on_framebuffer_size(self, window, w, h):
        # applied at the next frame boundary, never mid-frame
        self._pending_size = (int(w), int(h))

    # ---------- passes ----------

    def _run_base(self, positions):
        view_proj = self.camera.get_view_proj(self.pipeline.aspect)
        base = self.pipeline.base

        self.scene.bind()
        gl.glClearColor(0.0, 0.0, 0.0, 1.0)
        gl.glClear(gl.GL_COLOR_BUFFER_BIT)

        _upload_points(self.pts_vbo, positions)
        gl.glEnable(gl.GL_BLEND)
        gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE)
        gl.glDepthMask(gl.GL_FALSE)

        gl.glUseProgram(self.sprite_prog)
        u = self.u_sprite
        gl.glUniformMatrix4fv(u["uViewProj"], 1, gl.GL_FALSE, view_proj.astype(np.float32, copy=False))
        gl.glUniform1f(u["uSize"], base.size)
        gl.glUniform1f(u["uScale"], self.pipeline.height / 2.0)
        gl.glUniform1f(u["uMaxSize"], 2.0 * MAX_SPRITE_RADIUS)
        gl.glUniform3f(u["uColor"], *(float(c) for c in base.color))
        gl.glUniform1f(u["uOpacity"], base.opacity)
        gl.glUniform1i(u["uSprite"], 0)
        _bind_texture(0, self.sprite_tex)

        gl.glBindVertexArray(self.pts_vao)
        gl.glDrawArrays(gl.GL_POINTS, 0, int(positions.shape[0]))
        gl.glBindVertexArray(0)

        gl.glDepthMask(gl.GL_TRUE)
        gl.glDisable(gl.GL_BLEND)
        return self.scene.tex

    def _blur(self, target, scratch, radius):
        u = self.u_blur
        gl.glUseProgram(self.blur_prog)
        gl.glUniform1i(u["uTex"], 0)
        gl.glUniform1i(u["uRadius"], int(radius))
        gl.glUniform1f(u["uSigma"], float(radius))

        scratch.bind()
        gl.glUniform2f(u["uStep"], 1.0 / target.width, 0.0)
        _bind_texture(0, target.tex)
        _draw_fullscreen(self.fs_vao)

        target.bind()
        gl.glUniform2f(u["uStep"], 0.0, 1.0 / target.height)
        _bind_texture(0, scratch.tex)
        _draw_fullscreen(self.fs_vao)

    def _run_bloom(self, src_tex):
        bloom = self.pipeline.bloom
        if bloom.strength == 0.0:
            return src_tex

        self.bright.bind()
        gl.glUseProgram(self.highpass_prog)
        gl.glUniform1i(self.u_highpass["uTex"], 0)
        gl.glUniform1f(self.u_highpass["uThreshold"], bloom.threshold)
        gl.glUniform1f(self.u_highpass["uSmoothWidth"], bloom.SMOOTH_WIDTH)
        _bind_texture(0, src_tex)
        _draw_fullscreen(self.fs_vao)

        prev = self.bright.tex
        for (target, scratch), kernel in zip(self.mips, bloom.KERNEL_SIZES):
            target.bind()
            gl.glUseProgram(self.copy_prog)
            _bind_texture(0, prev)
            _draw_fullscreen(self.fs_vao)
            self._blur(target, scratch, kernel)
            prev = target.tex

        self.bloomed.bind()
        gl.glUseProgram(self.composite_prog)
        u = self.u_composite
        gl.glUniform1i(u["uBase"], 0)
        _bind_texture(0, src_tex)
        for i, (target, _) in enumerate(self.mips):
            gl.glUniform1i(u[f"uMip{i}"], i + 1)
            _bind_texture(i + 1, target.tex)
        gl.glUniform1fv(u["uWeights"], len(self.mips), np.array(bloom.mip_weights(), dtype=np.float32))
        gl.glUniform1f(u["uStrength"], bloom.strength)
        _draw_fullscreen(self.fs_vao)
        return self.bloomed.tex

    def _run_afterimage(self, src_tex):
        stage = self.pipeline.afterimage
        old = self.history[self._history_index]
        out = self.history[1 - self._history_index]

        out.bind()
        gl.glUseProgram(self.afterimage_prog)
        u = self.u_afterimage
        gl.glUniform1i(u["uNew"], 0)
        gl.glUniform1i(u["uOld"], 1)
        gl.glUniform1f(u["uDamp"], stage.damp)
        gl.glUniform1f(u["uCutoff"], stage.CUTOFF)
        _bind_texture(0, src_tex)
        _bind_texture(1, old.tex)
        _draw_fullscreen(self.fs_vao)

        self._history_index = 1 - self._history_index
        return out.tex

    def present(self, positions):
        glfw.poll_events()
        self.camera.update()

        pts = np.asarray(to_host(positions), dtype=np.float32)
        frame_tex = None
        for stage in self.pipeline.stages:
            if stage.name == "base":
                frame_tex = self._run_base(pts)
            elif stage.name == "bloom":
                frame_tex = self._run_bloom(frame_tex)
            elif stage.name == "afterimage":
                frame_tex = self._run_afterimage(frame_tex)

        gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, 0)
        gl.glViewport(0, 0, self.pipeline.width, self.pipeline.height)
        gl.glUseProgram(self.present_prog)
        gl.glUniform1i(gl.glGetUniformLocation(self.present_prog, "uTex"), 0)
        _bind_texture(0, frame_tex)
        _draw_fullscreen(self.fs_vao)
        glfw.swap_buffers(self.window)


def run_viewer(world, config=None, max_frames=None):
    """Open a window and animate ``world`` until it is closed."""
    from .frame_loop import FrameLoop

    config = config or world.config
    viewer = GLViewer(config, world.num_particles)
    viewer.on_stats = world.log_particle_stats
    return FrameLoop(world, viewer).run(max_frames=max_frames)
