"""
Numba-compiled per-particle kernels.

The physics kernel runs one independent iteration per particle under
``prange``; the splat kernel is serial over particles, so its additive
writes into the accumulation buffer are exact without atomics. Both mirror
the vectorised NumPy paths in ``particles`` and ``rasterizer`` and are
selected with ``backend="numba"``.
"""

import math

import numba
import numpy as np


@numba.njit(cache=True)
def _field(family, x, y, z, p):
    """Scalar velocity for one family. Branch order follows ``Family``."""
    if family == 0:
        dx = (z - p[1]) * x - p[3] * y
        dy = p[3] * x + (z - p[1]) * y
        dz = (
            p[2] + p[0] * z - (z * z * z) / 3.0
            - (x * x + y * y) * (1.0 + p[4] * z)
            + p[5] * z * x * x * x
        )
    elif family == 1:
        dx = math.sin(y) - p[1] * x
        dy = math.sin(z) - p[1] * y
        dz = math.sin(x) - p[1] * z
    elif family == 2:
        dx = p[0] * (y - x)
        dy = x * (p[1] - z) - y
        dz = x * y - p[2] * z
    elif family == 3:
        dx = -p[0] * x - 4.0 * y - 4.0 * z - y * y
        dy = -p[0] * y - 4.0 * z - 4.0 * x - z * z
        dz = -p[0] * z - 4.0 * x - 4.0 * y - x * x
    else:
        dx = p[0] * (y - x)
        dy = (p[2] - p[0]) * x - x * z + p[2] * y
        dz = x * y - p[1] * z
    return dx, dy, dz


@numba.njit(cache=True)
def _in_bounds(x, y, z, limit):
    # NaN fails every comparison
    return abs(x) <= limit and abs(y) <= limit and abs(z) <= limit


@numba.njit(parallel=True, cache=True)
def integrate_kernel(
    pos: np.ndarray,
    vel: np.ndarray,
    current: int,
    previous: int,
    params: np.ndarray,
    blend: float,
    dt: float,
    max_coord: float,
) -> int:
    """In-place blended Euler step. Returns the number of reinitialised particles."""
    n = pos.shape[0]
    resets = 0
    for i in numba.prange(n):
        x = float(pos[i, 0])
        y = float(pos[i, 1])
        z = float(pos[i, 2])

        cx, cy, cz = _field(current, x, y, z, params)
        px, py, pz = _field(previous, x, y, z, params)
        dx = px + (cx - px) * blend
        dy = py + (cy - py) * blend
        dz = pz + (cz - pz) * blend

        nx = x + dx * dt
        ny = y + dy * dt
        nz = z + dz * dt

        if not (_in_bounds(x, y, z, max_coord) and _in_bounds(nx, ny, nz, max_coord)):
            h = ((i * 1327) % 1000) / 1000.0
            s = (h - 0.5) * 4.0
            nx = s
            ny = s
            nz = s
            dx = 0.0
            dy = 0.0
            dz = 0.0
            resets += 1

        pos[i, 0] = nx
        pos[i, 1] = ny
        pos[i, 2] = nz
        vel[i, 0] = dx
        vel[i, 1] = dy
        vel[i, 2] = dz
    return resets


@numba.njit(cache=True)
def _heatmap(t):
    if t < 0.0:
        t = 0.0
    if t > 1.0:
        t = 1.0
    if t < 0.2:
        return 0.0, t * 5.0, 1.0
    if t < 0.5:
        s = (t - 0.2) / 0.3
        return s, 1.0, 1.0 - s
    if t < 0.8:
        return 1.0, 1.0 - (t - 0.5) / 0.3, 0.0
    s = (t - 0.8) / 0.2
    return 1.0, s, s


@numba.njit(cache=True)
def splat_kernel(
    pos: np.ndarray,
    vel: np.ndarray,
    cos_t: float,
    sin_t: float,
    center_x: float,
    center_y: float,
    scale: float,
    peak_speed: float,
    accum: np.ndarray,
) -> int:
    """Project and accumulate every particle. Returns the number drawn."""
    H = accum.shape[0]
    W = accum.shape[1]
    half_w = W // 2
    half_h = H // 2
    drawn = 0
    for i in range(pos.shape[0]):
        x = float(pos[i, 0])
        y = float(pos[i, 1])
        z = float(pos[i, 2])
        rx = x * cos_t - z * sin_t
        rz = x * sin_t + z * cos_t

        fx = (rx - center_x) * scale + half_w
        fy = (y - center_y) * scale + half_h
        if not (fx >= 0.0 and fx < W and fy >= 0.0 and fy < H):
            continue
        col = int(math.floor(fx))
        row = int(math.floor(fy))

        spd = math.sqrt(
            float(vel[i, 0]) ** 2 + float(vel[i, 1]) ** 2 + float(vel[i, 2]) ** 2
        )
        r, g, b = _heatmap(spd / peak_speed)
        fade = 1.0 / (1.0 + abs(rz) * 0.01)

        accum[row, col, 0] += r * fade
        accum[row, col, 1] += g * fade
        accum[row, col, 2] += b * fade
        drawn += 1
    return drawn
