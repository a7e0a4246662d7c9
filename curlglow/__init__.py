"""Curl-noise particle flow with additive glow, bloom and afterimage trails."""
from .advection import AdvectionStep
from .config import AfterimageConfig, BloomConfig, CameraConfig, SimulationConfig, SpriteConfig
from .curl import CurlOperator
from .errors import ConfigError, CurlGlowError, NumericDegeneracy, StartupFailure
from .frame_loop import FrameLoop, OffscreenHost
from .noise_field import NoiseField, SimplexNoise
from .particles import ParticleBuffer
from .pipeline import STAGE_ORDER, AfterimageStage, BasePass, BloomStage, RenderPipeline
from .world_step import WorldStep

__version__ = "0.1.0"

__all__ = [
    "AdvectionStep",
    "AfterimageConfig",
    "AfterimageStage",
    "BasePass",
    "BloomConfig",
    "BloomStage",
    "CameraConfig",
    "ConfigError",
    "CurlGlowError",
    "CurlOperator",
    "FrameLoop",
    "NoiseField",
    "NumericDegeneracy",
    "OffscreenHost",
    "ParticleBuffer",
    "RenderPipeline",
    "STAGE_ORDER",
    "SimplexNoise",
    "SimulationConfig",
    "SpriteConfig",
    "StartupFailure",
    "WorldStep",
]
