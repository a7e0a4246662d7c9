"""
Snapshot export with matplotlib.

``save_frame_image`` writes a rendered pipeline frame to disk as-is;
``save_2d_snapshot`` plots the raw particle positions projected onto a plane,
which is handy for checking the flow without any glow.
"""
import logging

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from .pipeline import RenderPipeline

logger = logging.getLogger(__name__)

_PLANES = {"xy": (0, 1), "xz": (0, 2), "yz": (1, 2)}


def save_frame_image(image, filename="frame.png"):
    """Save a float (H, W, 3) pipeline frame as an 8-bit image."""
    rgb = RenderPipeline.to_rgb8(np.asarray(image))
    plt.imsave(filename, rgb)
    logger.info("Saved frame %dx%d to %s", rgb.shape[1], rgb.shape[0], filename)
    return filename


def save_2d_snapshot(world, filename="particles_2d.png", plane="xy", dpi=150, figsize=(8, 8)):
    """
    Scatter the particle positions of ``world`` onto one coordinate plane.

    Args:
        world: WorldStep simulation object
        filename: Output filename
        plane: 'xy', 'xz' or 'yz'
        dpi: Image resolution
        figsize: Figure size in inches (width, height)
    """
    if plane not in _PLANES:
        raise ValueError(f"plane must be one of {sorted(_PLANES)}, got {plane!r}")
    a, b = _PLANES[plane]

    positions = world.build_point_vertices()
    sprite = world.config.sprite

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    try:
        ax.scatter(positions[:, a], positions[:, b], s=2, c=[sprite.rgb], alpha=sprite.opacity,
                   edgecolors="none")
        lim = world.spawn_half_width * 1.5
        ax.set_xlim(-lim, lim)
        ax.set_ylim(-lim, lim)
        ax.set_xlabel(plane[0].upper())
        ax.set_ylabel(plane[1].upper())
        ax.set_aspect("equal")
        ax.set_title(f"Particle Distribution ({world.num_particles} particles, frame {world.frame})")
        ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)
        ax.set_facecolor("black")
        fig.savefig(filename, bbox_inches="tight")
    finally:
        plt.close(fig)
    logger.info("Saved 2D snapshot to %s", filename)
    return filename
