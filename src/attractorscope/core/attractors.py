"""
Attractor velocity fields.

Five closed-form chaotic systems, each a pure function of position and a
six-slot coefficient vector (a, b, c, d, e, f). Unused slots are ignored.
All functions broadcast over numpy arrays, so the same code evaluates a
single particle or a whole population.
"""

import enum
from typing import Callable, Sequence, Tuple

import numpy as np

Vec3 = Tuple[np.ndarray, np.ndarray, np.ndarray]


class Family(enum.IntEnum):
    """The closed set of supported attractor families (cyclic order)."""

    AIZAWA = 0
    THOMAS = 1
    LORENZ = 2
    HALVORSEN = 3
    CHEN = 4

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    def successor(self) -> "Family":
        return Family((int(self) + 1) % NUM_FAMILIES)


NUM_FAMILIES = len(Family)


def aizawa(x, y, z, p: Sequence[float]) -> Vec3:
    a, b, c, d, e, f = p[0], p[1], p[2], p[3], p[4], p[5]
    dx = (z - b) * x - d * y
    dy = d * x + (z - b) * y
    dz = (
        c + a * z - (z * z * z) / 3.0
        - (x * x + y * y) * (1.0 + e * z)
        + f * z * x * x * x
    )
    return dx, dy, dz


def thomas(x, y, z, p: Sequence[float]) -> Vec3:
    b = p[1]
    return np.sin(y) - b * x, np.sin(z) - b * y, np.sin(x) - b * z


def lorenz(x, y, z, p: Sequence[float]) -> Vec3:
    # a=sigma, b=rho, c=beta
    sigma, rho, beta = p[0], p[1], p[2]
    return sigma * (y - x), x * (rho - z) - y, x * y - beta * z


def halvorsen(x, y, z, p: Sequence[float]) -> Vec3:
    a = p[0]
    dx = -a * x - 4.0 * y - 4.0 * z - y * y
    dy = -a * y - 4.0 * z - 4.0 * x - z * z
    dz = -a * z - 4.0 * x - 4.0 * y - x * x
    return dx, dy, dz


def chen(x, y, z, p: Sequence[float]) -> Vec3:
    a, b, c = p[0], p[1], p[2]
    return a * (y - x), (c - a) * x - x * z + c * y, x * y - b * z


# Indexed by Family value
VELOCITY_FIELDS: Tuple[Callable[..., Vec3], ...] = (
    aizawa,
    thomas,
    lorenz,
    halvorsen,
    chen,
)


def velocity(family: int, x, y, z, params: Sequence[float]) -> Vec3:
    """Evaluate the velocity field of ``family`` at (x, y, z)."""
    return VELOCITY_FIELDS[family](x, y, z, params)
