"""Cinematic strange attractor particle renderer."""

from attractorscope.config import CameraConfig, SimulationConfig, load_camera_config
from attractorscope.core.attractors import Family
from attractorscope.pipeline import CinematicPipeline

__version__ = "0.1.0"
__all__ = [
    "CameraConfig",
    "SimulationConfig",
    "load_camera_config",
    "Family",
    "CinematicPipeline",
]
