"""
Orthographic projection and additive splatting.

Every particle is rotated about the vertical axis by the frame's yaw,
mapped to a pixel with ``(r - center) * scale + half_size`` (no perspective
division) and added, speed-colored and depth-faded, into a shared float
accumulation buffer. Particles outside the grid are dropped.
"""

import math
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Iterator, NamedTuple

import numpy as np

from attractorscope.core.camera import CameraState
from attractorscope.core.kernels import splat_kernel
from attractorscope.render.colorgrade import heatmap

DEPTH_FADE = 0.01


class FrameAccumulator:
    """
    Per-pixel RGB sum shared by all particles of one frame.

    ``add`` is atomic per cell and channel: repeated (row, col) pairs inside
    a single call are all summed (unbuffered ``np.add.at``), and calls from
    concurrent writer threads are serialized, so no update is ever lost.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.buffer: np.ndarray = np.zeros((height, width, 3), dtype=np.float32)
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self.buffer.fill(0.0)

    def add(self, rows: np.ndarray, cols: np.ndarray, rgb: np.ndarray) -> None:
        """Add ``rgb[k]`` to pixel ``(rows[k], cols[k])`` for every k."""
        with self._lock:
            np.add.at(self.buffer, (rows, cols), rgb)

    @contextmanager
    def exclusive(self) -> Iterator[np.ndarray]:
        """Raw buffer access for a single writer (the compiled splat kernel)."""
        with self._lock:
            yield self.buffer

    def total(self) -> np.ndarray:
        """Channel sums, mostly useful for checking conservation."""
        return self.buffer.sum(axis=(0, 1), dtype=np.float64)


class ProjectionView(NamedTuple):
    """Frame-constant projection scalars, passed by value into the splat."""

    cos_t: float
    sin_t: float
    center_x: float
    center_y: float
    scale: float
    peak_speed: float

    @classmethod
    def from_camera(cls, camera: CameraState, theta: float) -> "ProjectionView":
        return cls(
            cos_t=math.cos(theta),
            sin_t=math.sin(theta),
            center_x=float(camera.center_x),
            center_y=float(camera.center_y),
            scale=float(camera.scale),
            peak_speed=float(camera.smoothed_peak_speed),
        )


def project(
    positions: np.ndarray, view: ProjectionView, width: int, height: int
):
    """Pixel-space x/y and rotated depth for each particle."""
    x, y, z = positions[:, 0], positions[:, 1], positions[:, 2]
    rx = x * view.cos_t - z * view.sin_t
    rz = x * view.sin_t + z * view.cos_t
    fx = (rx - view.center_x) * view.scale + width // 2
    fy = (y - view.center_y) * view.scale + height // 2
    return fx, fy, rz


def _splat_numpy(
    positions: np.ndarray,
    velocities: np.ndarray,
    view: ProjectionView,
    accumulator: FrameAccumulator,
) -> int:
    W, H = accumulator.width, accumulator.height
    with np.errstate(invalid="ignore"):
        fx, fy, rz = project(positions, view, W, H)
        on = (fx >= 0) & (fx < W) & (fy >= 0) & (fy < H)
    if not np.any(on):
        return 0

    cols = np.floor(fx[on]).astype(np.intp)
    rows = np.floor(fy[on]).astype(np.intp)
    v = velocities[on]
    speed = np.sqrt((v * v).sum(axis=1))
    rgb = heatmap(speed / np.float32(view.peak_speed))
    fade = 1.0 / (1.0 + np.abs(rz[on]) * np.float32(DEPTH_FADE))
    accumulator.add(rows, cols, rgb * fade[:, np.newaxis])
    return int(rows.size)


def rasterize(
    positions: np.ndarray,
    velocities: np.ndarray,
    view: ProjectionView,
    accumulator: FrameAccumulator,
    backend: str = "numba",
    workers: int = 1,
) -> int:
    """Splat every particle into ``accumulator``. Returns how many landed on screen."""
    if backend == "numba":
        with accumulator.exclusive() as buf:
            return int(splat_kernel(
                positions,
                velocities,
                view.cos_t,
                view.sin_t,
                view.center_x,
                view.center_y,
                view.scale,
                view.peak_speed,
                buf,
            ))

    if backend != "numpy":
        raise ValueError(f"Unknown backend {backend!r}")
    if workers <= 1:
        return _splat_numpy(positions, velocities, view, accumulator)

    # Contiguous particle ranges, one per worker thread
    edges = np.linspace(0, positions.shape[0], workers + 1).astype(np.intp)
    spans = list(zip(edges[:-1], edges[1:]))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        drawn = pool.map(
            lambda s: _splat_numpy(
                positions[s[0]:s[1]], velocities[s[0]:s[1]], view, accumulator
            ),
            spans,
        )
        return int(sum(drawn))
