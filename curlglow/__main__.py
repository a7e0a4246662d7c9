"""Run the curl-noise particle visualization.

Usage:
    python -m curlglow                        # open a window
    python -m curlglow --headless --frames 300 --snapshot out.png
    python -m curlglow --count 5000 --bloom-strength 1.2 --afterimage-damp 0.9
"""
import argparse
import logging

from .config import SimulationConfig
from .errors import ConfigError, StartupFailure
from .logging_config import setup_logging
from .world_step import WorldStep

logger = logging.getLogger("curlglow")


def build_parser():
    p = argparse.ArgumentParser(prog="curlglow", description="Curl-noise particle flow with bloom and trails.")
    sim = p.add_argument_group("simulation")
    sim.add_argument("--count", type=int)
    sim.add_argument("--spawn-half-width", type=float)
    sim.add_argument("--noise-scale", type=float)
    sim.add_argument("--flow-strength", type=float)
    sim.add_argument("--boundary-radius", type=float)
    sim.add_argument("--epsilon", type=float)
    sim.add_argument("--seed", type=int)
    sim.add_argument("--backend", choices=("numpy", "cupy"))

    render = p.add_argument_group("rendering")
    render.add_argument("--width", type=int)
    render.add_argument("--height", type=int)
    render.add_argument("--bloom-strength", type=float)
    render.add_argument("--bloom-radius", type=float)
    render.add_argument("--bloom-threshold", type=float)
    render.add_argument("--afterimage-damp", type=float)
    render.add_argument("--sprite-size", type=float)
    render.add_argument("--sprite-color", type=lambda s: int(s, 16), help="hex colour, e.g. 66ccff")
    render.add_argument("--sprite-opacity", type=float)
    render.add_argument("--camera-fov", type=float)
    render.add_argument("--camera-distance", type=float)
    render.add_argument("--camera-auto-rotate-speed", type=float)

    run = p.add_argument_group("run")
    run.add_argument("--headless", action="store_true", help="render offscreen with the NumPy pipeline")
    run.add_argument("--frames", type=int, help="stop after this many frames")
    run.add_argument("--snapshot", help="write the last frame to this PNG")
    run.add_argument("--log-level", default="INFO", choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    run.add_argument("--log-file")
    return p


_RUN_OPTIONS = ("headless", "frames", "snapshot", "log_level", "log_file")


def config_from_args(args):
    values = {k: v for k, v in vars(args).items() if k not in _RUN_OPTIONS}
    return SimulationConfig.from_dict(values)


def run_headless(world, config, frames, snapshot=None):
    from .frame_loop import FrameLoop, OffscreenHost

    host = OffscreenHost(config)
    FrameLoop(world, host).run(max_frames=frames)
    if snapshot:
        from .viz_2d_snapshot import save_frame_image
        save_frame_image(host.frame, snapshot)
    return host


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    try:
        config = config_from_args(args)
        world = WorldStep(config)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    try:
        if args.headless:
            run_headless(world, config, args.frames if args.frames is not None else 120, args.snapshot)
        else:
            from .viz_main import run_viewer
            run_viewer(world, config, max_frames=args.frames)
            if args.snapshot:
                from .viz_2d_snapshot import save_2d_snapshot
                save_2d_snapshot(world, args.snapshot)
    except StartupFailure as e:
        logger.error("Startup failed: %s", e)
        return 1

    world.log_particle_stats()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
