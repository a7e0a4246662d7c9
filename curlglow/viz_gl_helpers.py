import ctypes

import numpy as np
import OpenGL.GL as gl
from OpenGL.GL.shaders import compileProgram, compileShader

from .errors import StartupFailure


def _compile_program(vert_src, frag_src):
    try:
        return compileProgram(compileShader(vert_src, gl.GL_VERTEX_SHADER),
                              compileShader(frag_src, gl.GL_FRAGMENT_SHADER))
    except RuntimeError as exc:
        raise StartupFailure(f"shader compilation failed: {exc}") from exc


def _uniforms(prog, *names):
    return {name: gl.glGetUniformLocation(prog, name) for name in names}


def _create_color_texture(w, h, data=None, internal=gl.GL_RGBA16F):
    tex = gl.glGenTextures(1)
    gl.glBindTexture(gl.GL_TEXTURE_2D, tex)
    gl.glPixelStorei(gl.GL_UNPACK_ALIGNMENT, 1)
    gl.glTexImage2D(gl.GL_TEXTURE_2D, 0, internal, w, h, 0, gl.GL_RGBA, gl.GL_FLOAT, data)
    gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MIN_FILTER, gl.GL_LINEAR)
    gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MAG_FILTER, gl.GL_LINEAR)
    gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_S, gl.GL_CLAMP_TO_EDGE)
    gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_T, gl.GL_CLAMP_TO_EDGE)
    gl.glBindTexture(gl.GL_TEXTURE_2D, 0)
    return tex


def _create_sprite_texture(rgba):
    rgba = np.ascontiguousarray(rgba, dtype=np.float32)
    h, w = rgba.shape[:2]
    return _create_color_texture(w, h, data=rgba, internal=gl.GL_RGBA32F)


class RenderTarget:
    """Colour texture plus the framebuffer object that renders into it."""

    def __init__(self, w, h):
        self.width = max(1, int(w))
        self.height = max(1, int(h))
        self.tex = _create_color_texture(self.width, self.height)
        self.fbo = gl.glGenFramebuffers(1)
        gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, self.fbo)
        gl.glFramebufferTexture2D(gl.GL_FRAMEBUFFER, gl.GL_COLOR_ATTACHMENT0, gl.GL_TEXTURE_2D, self.tex, 0)
        status = gl.glCheckFramebufferStatus(gl.GL_FRAMEBUFFER)
        if status != gl.GL_FRAMEBUFFER_COMPLETE:
            gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, 0)
            raise StartupFailure(f"framebuffer incomplete (status 0x{int(status):x}) for {self.width}x{self.height}")
        gl.glViewport(0, 0, self.width, self.height)
        gl.glClearColor(0.0, 0.0, 0.0, 1.0)
        gl.glClear(gl.GL_COLOR_BUFFER_BIT)
        gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, 0)

    def bind(self):
        gl.glBindFramebuffer(gl.GL_FRAMEBUFFER, self.fbo)
        gl.glViewport(0, 0, self.width, self.height)

    def release(self):
        gl.glDeleteFramebuffers(1, [self.fbo])
        gl.glDeleteTextures([self.tex])


def _bind_texture(unit, tex):
    gl.glActiveTexture(gl.GL_TEXTURE0 + unit)
    gl.glBindTexture(gl.GL_TEXTURE_2D, tex)


def _draw_fullscreen(vao):
    gl.glBindVertexArray(vao)
    gl.glDrawArrays(gl.GL_TRIANGLES, 0, 3)
    gl.glBindVertexArray(0)


def _setup_points(n):
    float_size = np.float32().nbytes
    stride = 3 * float_size

    vbo = gl.glGenBuffers(1)
    gl.glBindBuffer(gl.GL_ARRAY_BUFFER, vbo)
    gl.glBufferData(gl.GL_ARRAY_BUFFER, n * stride, None, gl.GL_DYNAMIC_DRAW)

    vao = gl.glGenVertexArrays(1)
    gl.glBindVertexArray(vao)
    gl.glBindBuffer(gl.GL_ARRAY_BUFFER, vbo)
    gl.glEnableVertexAttribArray(0)
    gl.glVertexAttribPointer(0, 3, gl.GL_FLOAT, gl.GL_FALSE, stride, ctypes.c_void_p(0))

    gl.glBindVertexArray(0)
    gl.glBindBuffer(gl.GL_ARRAY_BUFFER, 0)
    return vao, vbo


def _upload_points(vbo, pts_np):
    if pts_np.dtype != np.float32 or not pts_np.flags["C_CONTIGUOUS"]:
        pts_np = np.ascontiguousarray(pts_np, dtype=np.float32)
    gl.glBindBuffer(gl.GL_ARRAY_BUFFER, vbo)
    gl.glBufferSubData(gl.GL_ARRAY_BUFFER, 0, pts_np.nbytes, pts_np)
    gl.glBindBuffer(gl.GL_ARRAY_BUFFER, 0)
