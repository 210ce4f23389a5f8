"""
Hybrid auto-framing camera.

Each frame the controller derives an instantaneous target (scale and
center) from the particle statistics, then eases the actual camera toward
it. The target itself is sized by three multiplicative factors:

  base       per-family framing constant, eased on family switches
  dynamic    peak speed over smoothed peak speed, clamped to [0.85, 1.15]
  breathing  one sine cycle per fragment, amplitude from config
"""

import math
from dataclasses import dataclass

from attractorscope.config import CameraConfig
from attractorscope.core.stats import FrameStats

BASE_RATE = 0.02
TRACK_RATE = 0.005
PEAK_RATE = 0.005
DYNAMIC_RANGE = (0.85, 1.15)
MIN_TARGET_EXTENT = 1.0


def _lerp(current: float, target: float, factor: float) -> float:
    return current + (target - current) * factor


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


@dataclass
class CameraState:
    scale: float
    center_x: float = 0.0
    center_y: float = 0.0
    smoothed_base_multiplier: float = 1.0
    smoothed_peak_speed: float = 1.0


def breathing_factor(frame: int, fragment_length: int, amplitude: float) -> float:
    """1 + sin(2π · phase) · amplitude, phase = position inside the fragment."""
    if amplitude == 0.0:
        return 1.0
    phase = (frame % fragment_length) / fragment_length
    return 1.0 + math.sin(phase * 2.0 * math.pi) * amplitude


def dynamic_factor(peak_speed: float, smoothed_peak: float, adjustment: float) -> float:
    ratio = peak_speed / (smoothed_peak + 0.001)
    return _clamp(1.0 + (ratio - 1.0) * adjustment, *DYNAMIC_RANGE)


class CameraController:
    """Turns per-frame statistics into a smoothed scale and center."""

    def __init__(
        self,
        config: CameraConfig,
        start_family: int,
        width: int,
        height: int,
    ) -> None:
        self.cfg = config
        self.width = width
        self.height = height
        self.state = CameraState(
            scale=config.initial_scale,
            smoothed_base_multiplier=config.base_multipliers[int(start_family)],
        )
        # Last target, kept for status reporting and tests
        self.target_scale: float = self.state.scale

    def target_scale_for(self, spread_x: float, spread_y: float, multiplier: float) -> float:
        """Scale that fits the multiplied spread into the fill fraction of the screen."""
        cfg = self.cfg
        target_w = max(spread_x * multiplier, MIN_TARGET_EXTENT)
        target_h = max(spread_y * multiplier, MIN_TARGET_EXTENT)
        scale_w = self.width * cfg.screen_fill_factor / target_w
        scale_h = self.height * cfg.screen_fill_factor / target_h
        target = min(scale_w, scale_h)
        # NaN spreads fall back to the tightest zoom-out
        if math.isnan(target):
            target = cfg.min_zoom
        return _clamp(target, cfg.min_zoom, cfg.max_zoom)

    def update(
        self,
        stats: FrameStats,
        family: int,
        frame: int,
        fragment_length: int,
    ) -> CameraState:
        cfg = self.cfg
        st = self.state

        st.smoothed_base_multiplier = _lerp(
            st.smoothed_base_multiplier, cfg.base_multipliers[int(family)], BASE_RATE
        )

        combined = (
            st.smoothed_base_multiplier
            * dynamic_factor(stats.peak_speed, st.smoothed_peak_speed, cfg.dynamic_adjustment)
            * breathing_factor(frame, fragment_length, cfg.zoom_oscillation)
        )
        self.target_scale = self.target_scale_for(stats.spread_x, stats.spread_y, combined)

        st.scale = _clamp(
            _lerp(st.scale, self.target_scale, TRACK_RATE), cfg.min_zoom, cfg.max_zoom
        )
        st.center_x = _lerp(st.center_x, stats.centroid_x, TRACK_RATE)
        st.center_y = _lerp(st.center_y, stats.centroid_y, TRACK_RATE)

        st.smoothed_peak_speed = _lerp(
            st.smoothed_peak_speed, max(stats.peak_speed, 1.0), PEAK_RATE
        )
        return st
