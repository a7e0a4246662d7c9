"""
Configuration for the curl-noise particle visualization.

All values are fixed at startup. Defaults reproduce the original scene:
2400 particles in a 24-unit spawn cube, reseeded once they drift more than
48 units from the origin.
"""
from dataclasses import asdict, dataclass, field, fields, replace

from .backend import BACKENDS
from .errors import ConfigError


def _require(condition, message):
    if not condition:
        raise ConfigError(message)


def hex_to_rgb(value):
    """0x66ccff -> (0.4, 0.8, 1.0)"""
    value = int(value)
    return (((value >> 16) & 0xFF) / 255.0, ((value >> 8) & 0xFF) / 255.0, (value & 0xFF) / 255.0)


@dataclass(frozen=True)
class BloomConfig:
    strength: float = 1.8
    radius: float = 0.8
    threshold: float = 0.0

    def __post_init__(self):
        _require(self.strength >= 0.0, f"bloom strength must be >= 0, got {self.strength}")
        _require(self.radius >= 0.0, f"bloom radius must be >= 0, got {self.radius}")
        _require(self.threshold >= 0.0, f"bloom threshold must be >= 0, got {self.threshold}")


@dataclass(frozen=True)
class AfterimageConfig:
    damp: float = 0.86

    def __post_init__(self):
        _require(0.0 <= self.damp < 1.0, f"afterimage damp must be in [0, 1), got {self.damp}")


@dataclass(frozen=True)
class SpriteConfig:
    size: float = 0.12            # world units, perspective attenuated
    color: int = 0x66CCFF
    opacity: float = 0.85
    texture_size: int = 64

    def __post_init__(self):
        _require(self.size > 0.0, f"sprite size must be > 0, got {self.size}")
        _require(0.0 <= self.opacity <= 1.0, f"sprite opacity must be in [0, 1], got {self.opacity}")
        _require(self.texture_size >= 2, f"sprite texture_size must be >= 2, got {self.texture_size}")

    @property
    def rgb(self):
        return hex_to_rgb(self.color)


@dataclass(frozen=True)
class CameraConfig:
    fov: float = 75.0             # degrees
    near: float = 0.1
    far: float = 1000.0
    distance: float = 20.0
    auto_rotate_speed: float = 0.8
    damping_factor: float = 0.05

    def __post_init__(self):
        _require(0.0 < self.fov < 180.0, f"camera fov must be in (0, 180), got {self.fov}")
        _require(0.0 < self.near < self.far, f"camera needs 0 < near < far, got {self.near}, {self.far}")
        _require(self.distance > 0.0, f"camera distance must be > 0, got {self.distance}")
        _require(0.0 < self.damping_factor <= 1.0,
                 f"camera damping_factor must be in (0, 1], got {self.damping_factor}")


@dataclass(frozen=True)
class SimulationConfig:
    count: int = 2400
    spawn_half_width: float = 12.0
    noise_scale: float = 0.1
    flow_strength: float = 0.003
    boundary_radius: float = 48.0
    epsilon: float = 1e-4
    seed: int = 0
    backend: str = "numpy"
    width: int = 1280
    height: int = 720
    bloom: BloomConfig = field(default_factory=BloomConfig)
    afterimage: AfterimageConfig = field(default_factory=AfterimageConfig)
    sprite: SpriteConfig = field(default_factory=SpriteConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)

    def __post_init__(self):
        _require(int(self.count) > 0, f"count must be > 0, got {self.count}")
        _require(self.spawn_half_width > 0.0, f"spawn_half_width must be > 0, got {self.spawn_half_width}")
        _require(self.boundary_radius > 0.0, f"boundary_radius must be > 0, got {self.boundary_radius}")
        _require(self.noise_scale > 0.0, f"noise_scale must be > 0, got {self.noise_scale}")
        _require(self.epsilon != 0.0, "epsilon must be non-zero")
        _require(self.backend in BACKENDS, f"unknown backend {self.backend!r}")
        _require(self.width > 0 and self.height > 0,
                 f"viewport must be positive, got {self.width}x{self.height}")

    @classmethod
    def from_dict(cls, data):
        """Build a config from a flat/nested dict, ignoring ``None`` values.

        Nested sections may be given either as dicts under their own key
        (``{"bloom": {"strength": 0.5}}``) or flattened with a prefix
        (``{"bloom_strength": 0.5}``).
        """
        nested = {
            "bloom": BloomConfig,
            "afterimage": AfterimageConfig,
            "sprite": SpriteConfig,
            "camera": CameraConfig,
        }
        top = {}
        sections = {name: {} for name in nested}
        for key, value in data.items():
            if value is None:
                continue
            if key in nested:
                if isinstance(value, nested[key]):
                    value = asdict(value)
                sections[key].update({k: v for k, v in value.items() if v is not None})
                continue
            prefix, _, rest = key.partition("_")
            if prefix in nested and rest in {f.name for f in fields(nested[prefix])}:
                sections[prefix][rest] = value
            elif key in {f.name for f in fields(cls)}:
                top[key] = value
            else:
                raise ConfigError(f"Unknown configuration key: {key!r}")
        for name, section_cls in nested.items():
            top[name] = section_cls(**sections[name])
        return cls(**top)

    def with_overrides(self, **changes):
        return replace(self, **changes)
