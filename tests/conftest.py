import numpy as np
import pytest

from curlglow.config import SimulationConfig, SpriteConfig
from curlglow.curl import CurlOperator
from curlglow.noise_field import NoiseField
from curlglow.viz_camera import OrbitCamera


@pytest.fixture
def field():
    return NoiseField(seed=7)


@pytest.fixture
def curl_op(field):
    return CurlOperator(field)


@pytest.fixture
def small_config():
    return SimulationConfig(count=64, seed=11, width=64, height=48,
                            sprite=SpriteConfig(size=4.0))


@pytest.fixture
def view_proj(small_config):
    cam = OrbitCamera(small_config.camera)
    return cam.get_view_proj(small_config.width / small_config.height)


@pytest.fixture
def rng():
    return np.random.RandomState(1234)


# identity permutation rolled by two: the lattice vertex at the origin hashes
# to gradient (1, 0, -1) and the skewed vertex (2, 2, 2) to (1, 1, 0)
ROLLED_PERM = (np.arange(256) + 2) % 256


@pytest.fixture
def rolled_noise():
    from curlglow.noise_field import SimplexNoise
    return SimplexNoise(perm=ROLLED_PERM)


@pytest.fixture
def rolled_curl(rolled_noise):
    return CurlOperator(NoiseField(noise=rolled_noise))
