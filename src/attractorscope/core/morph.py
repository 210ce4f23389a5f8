"""
Parameter morphing.

Every family switch draws a fresh target coefficient set (baseline constants
plus bounded uniform noise); every frame the live set relaxes toward that
target by a fixed fraction. The result is a first-order low-pass morph, so
the same family never looks quite the same twice.
"""

from typing import Dict, Optional, Tuple

import numpy as np

from attractorscope.core.attractors import Family

NUM_COEFFS = 6
MORPH_RATE = 0.02

# (a, b, c, d, e, f) baselines; unused slots stay zero
_BASELINES: Dict[Family, Tuple[float, ...]] = {
    Family.AIZAWA: (0.95, 0.7, 0.6, 3.5, 0.25, 0.1),
    Family.THOMAS: (0.0, 0.19, 0.0, 0.0, 0.0, 0.0),
    Family.LORENZ: (10.0, 28.0, 2.66, 0.0, 0.0, 0.0),
    Family.HALVORSEN: (1.4, 0.0, 0.0, 0.0, 0.0, 0.0),
    Family.CHEN: (40.0, 3.0, 28.0, 0.0, 0.0, 0.0),
}

# slot -> half-width of the uniform perturbation
_PERTURBATIONS: Dict[Family, Dict[int, float]] = {
    Family.AIZAWA: {3: 0.5},
    Family.THOMAS: {1: 0.02},
    Family.LORENZ: {1: 5.0},
    Family.HALVORSEN: {0: 0.2},
    Family.CHEN: {},
}


def baseline_params(family: int) -> np.ndarray:
    """Unperturbed coefficients for ``family`` as a float32 vector."""
    return np.array(_BASELINES[Family(family)], dtype=np.float32)


def target_params(family: int, rng: np.random.Generator) -> np.ndarray:
    """Baseline coefficients with each family's bounded uniform noise applied."""
    fam = Family(family)
    p = baseline_params(fam)
    for slot, half_width in _PERTURBATIONS[fam].items():
        p[slot] += np.float32(rng.uniform(-half_width, half_width))
    return p


class ParameterMorph:
    """Live coefficient set that chases a randomized target."""

    def __init__(
        self,
        family: int,
        rng: Optional[np.random.Generator] = None,
        rate: float = MORPH_RATE,
        perturb: bool = True,
    ) -> None:
        self.rng = rng or np.random.default_rng()
        self.rate = rate
        self.perturb = perturb
        self.target: np.ndarray = self._draw(family)
        self.current: np.ndarray = self.target.copy()

    def retarget(self, family: int) -> np.ndarray:
        """Draw a new target for ``family``; ``current`` is left to relax."""
        self.target = self._draw(family)
        return self.target.copy()

    def _draw(self, family: int) -> np.ndarray:
        if self.perturb:
            return target_params(family, self.rng)
        return baseline_params(family)

    def step(self) -> None:
        self.current += (self.target - self.current) * np.float32(self.rate)

    def snapshot(self) -> np.ndarray:
        """Copy of the live coefficients, safe to hand to parallel stages."""
        return self.current.copy()
