"""Simulation core: attractor fields, parameter morphing, particles, statistics."""

from attractorscope.core.attractors import Family, velocity
from attractorscope.core.morph import ParameterMorph
from attractorscope.core.particles import ParticleStore, TransitionState, integrate
from attractorscope.core.stats import FrameStats, collect_stats

__all__ = [
    "Family",
    "velocity",
    "ParameterMorph",
    "ParticleStore",
    "TransitionState",
    "integrate",
    "FrameStats",
    "collect_stats",
]
