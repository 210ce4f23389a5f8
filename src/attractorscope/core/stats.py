"""
Per-frame particle statistics for auto-framing.

Works on a fixed-stride subset of the population in the camera's view
frame: x/z rotated by the yaw angle, y left as is.
"""

import math
from dataclasses import dataclass

import numpy as np

SAMPLE_STRIDE = 100


@dataclass(frozen=True)
class FrameStats:
    """Centroid, mean absolute deviation and peak speed of the sample."""

    centroid_x: float
    centroid_y: float
    spread_x: float
    spread_y: float
    peak_speed: float
    sample_count: int


def yaw_angle(frame: int, rate: float = 0.005) -> float:
    return frame * rate


def collect_stats(
    positions: np.ndarray,
    velocities: np.ndarray,
    theta: float,
    stride: int = SAMPLE_STRIDE,
) -> FrameStats:
    """Statistics over particles 0, stride, 2*stride, ...

    The spread is the mean absolute deviation from the centroid, which is
    cheaper than a standard deviation and less sensitive to stray particles.
    """
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")
    sample = positions[::stride].astype(np.float64)
    if sample.shape[0] == 0:
        raise ValueError("cannot collect statistics from an empty population")
    sample_vel = velocities[::stride].astype(np.float64)

    cos_t, sin_t = math.cos(theta), math.sin(theta)
    rx = sample[:, 0] * cos_t - sample[:, 2] * sin_t
    ry = sample[:, 1]

    cx = float(rx.mean())
    cy = float(ry.mean())
    speed = np.sqrt((sample_vel * sample_vel).sum(axis=1))

    return FrameStats(
        centroid_x=cx,
        centroid_y=cy,
        spread_x=float(np.abs(rx - cx).mean()),
        spread_y=float(np.abs(ry - cy).mean()),
        peak_speed=float(speed.max()),
        sample_count=int(sample.shape[0]),
    )
