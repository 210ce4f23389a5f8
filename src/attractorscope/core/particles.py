"""
Particle state and the blended Euler integrator.

The population is allocated once and mutated in place every frame. During a
family switch the velocity is a linear mix of the outgoing and incoming
fields; the mix weight ramps from 0 to 1 over ``TRANSITION_FRAMES``.
Divergent particles are recovered locally by a deterministic reset.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from attractorscope.core.attractors import Family, velocity
from attractorscope.core.kernels import integrate_kernel

DT = 0.012
MAX_COORD = 80.0
TRANSITION_FRAMES = 120
INITIAL_EXTENT = 5.0

BACKENDS = ("numba", "numpy")


class ParticleStore:
    """Positions and velocities of N particles, float32, shape (N, 3)."""

    def __init__(
        self,
        num_particles: int,
        rng: Optional[np.random.Generator] = None,
        extent: float = INITIAL_EXTENT,
    ) -> None:
        if num_particles <= 0:
            raise ValueError(f"num_particles must be positive, got {num_particles}")
        rng = rng or np.random.default_rng()

        # MemoryError propagates: nothing can run without these arrays
        self.positions: np.ndarray = rng.uniform(
            -extent, extent, (num_particles, 3)
        ).astype(np.float32)
        self.velocities: np.ndarray = np.zeros((num_particles, 3), dtype=np.float32)

    def __len__(self) -> int:
        return self.positions.shape[0]


def reset_positions(indices: np.ndarray) -> np.ndarray:
    """Deterministic recovery position for each particle index, shape (k, 3)."""
    h = ((indices.astype(np.int64) * 1327) % 1000).astype(np.float32) / np.float32(1000.0)
    s = (h - np.float32(0.5)) * np.float32(4.0)
    return np.repeat(s[:, np.newaxis], 3, axis=1)


@dataclass
class TransitionState:
    """Outgoing/incoming family pair and the blend weight between them."""

    previous: Family
    current: Family
    blend: float = 1.0
    frames_since_switch: int = TRANSITION_FRAMES
    length: int = TRANSITION_FRAMES

    @classmethod
    def steady(cls, family: int, length: int = TRANSITION_FRAMES) -> "TransitionState":
        fam = Family(family)
        return cls(previous=fam, current=fam, blend=1.0,
                   frames_since_switch=length, length=length)

    @property
    def transitioning(self) -> bool:
        return self.blend < 1.0

    def switch(self) -> Family:
        """Start blending from the current family into its cyclic successor."""
        self.previous = self.current
        self.current = self.current.successor()
        self.blend = 0.0
        self.frames_since_switch = 0
        return self.current

    def advance(self) -> None:
        """Move the blend one frame forward; lands on exactly 1.0 after ``length`` calls."""
        if self.frames_since_switch < self.length:
            self.frames_since_switch += 1
        self.blend = min(1.0, self.frames_since_switch / self.length)
        if self.blend >= 1.0:
            self.previous = self.current


def blended_velocity(
    positions: np.ndarray,
    current: int,
    previous: int,
    params: np.ndarray,
    blend: float,
) -> np.ndarray:
    """Velocity field lerped from ``previous`` to ``current`` by ``blend``.

    Both families are evaluated with the same live parameter vector.
    """
    x, y, z = positions[:, 0], positions[:, 1], positions[:, 2]
    vel = np.empty_like(positions)
    cur = velocity(current, x, y, z, params)
    if previous == current:
        for axis in range(3):
            vel[:, axis] = cur[axis]
        return vel
    prev = velocity(previous, x, y, z, params)
    w = np.float32(blend)
    for axis in range(3):
        vel[:, axis] = prev[axis] + (cur[axis] - prev[axis]) * w
    return vel


def _integrate_numpy(
    pos: np.ndarray,
    vel: np.ndarray,
    current: int,
    previous: int,
    params: np.ndarray,
    blend: float,
    dt: float,
    max_coord: float,
) -> int:
    with np.errstate(over="ignore", invalid="ignore"):
        v = blended_velocity(pos, current, previous, params, blend)
        stepped = pos + v * np.float32(dt)
        ok = (np.abs(pos) <= max_coord).all(axis=1) & (
            np.abs(stepped) <= max_coord
        ).all(axis=1)

    pos[:] = stepped
    vel[:] = v
    bad = np.flatnonzero(~ok)
    if bad.size:
        pos[bad] = reset_positions(bad)
        vel[bad] = 0.0
    return int(bad.size)


def integrate(
    store: ParticleStore,
    transition: TransitionState,
    params: np.ndarray,
    dt: float = DT,
    max_coord: float = MAX_COORD,
    backend: str = "numba",
) -> int:
    """Advance every particle by one step. Returns the number of resets."""
    # Scalars are copied here so the kernels never see later mutations
    current = int(transition.current)
    previous = int(transition.previous)
    blend = float(transition.blend)

    if backend == "numba":
        return int(integrate_kernel(
            store.positions,
            store.velocities,
            current,
            previous,
            np.asarray(params, dtype=np.float64),
            blend,
            float(dt),
            float(max_coord),
        ))
    if backend == "numpy":
        return _integrate_numpy(
            store.positions,
            store.velocities,
            current,
            previous,
            np.asarray(params, dtype=np.float32),
            blend,
            dt,
            max_coord,
        )
    raise ValueError(f"Unknown backend {backend!r}; expected one of {BACKENDS}")
