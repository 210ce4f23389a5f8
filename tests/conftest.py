"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from attractorscope.config import CameraConfig, SimulationConfig

# Small enough to keep every test fast
TEST_WIDTH = 64
TEST_HEIGHT = 48


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible draws."""
    return np.random.default_rng(42)


@pytest.fixture
def small_config() -> SimulationConfig:
    """Tiny frame, few particles, NumPy kernels."""
    return SimulationConfig(
        width=TEST_WIDTH,
        height=TEST_HEIGHT,
        num_particles=1000,
        fragments=2,
        frames_per_fragment=30,
        seed=7,
        backend="numpy",
    )


@pytest.fixture
def camera_config() -> CameraConfig:
    return CameraConfig()


@pytest.fixture
def cloud(rng) -> tuple[np.ndarray, np.ndarray]:
    """
    A random particle cloud inside the initial cube.

    Returns:
        Tuple of (positions, velocities), both (2000, 3) float32.
    """
    pos = rng.uniform(-5.0, 5.0, (2000, 3)).astype(np.float32)
    vel = rng.normal(0.0, 3.0, (2000, 3)).astype(np.float32)
    return pos, vel
