"""
Run configuration.

Two immutable records are built once at startup and handed to the
components that need them: ``SimulationConfig`` (sizes, frame counts,
numerical constants) and ``CameraConfig`` (auto-framing knobs). The camera
knobs can also be read from a ``key = value`` text file.
"""

import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple, Union

from attractorscope.core.attractors import NUM_FAMILIES, Family
from attractorscope.core.particles import BACKENDS, DT, MAX_COORD
from attractorscope.core.stats import SAMPLE_STRIDE
from attractorscope.render.colorgrade import EXPOSURE, TONE_SCALE

DEFAULT_CAM_SCALE = 100.0


@dataclass(frozen=True)
class CameraConfig:
    """Auto-framing parameters."""

    # Indexed by Family: tight for Aizawa/Thomas, loose for Lorenz/Chen
    base_multipliers: Tuple[float, ...] = (0.8, 0.8, 2.5, 1.2, 2.5)
    screen_fill_factor: float = 0.07
    min_zoom: float = 60.0
    max_zoom: float = 2000.0
    initial_cam_scale: Optional[float] = None  # None = DEFAULT_CAM_SCALE
    zoom_oscillation: float = 0.0    # breathing amplitude, 0 disables
    dynamic_adjustment: float = 0.0  # velocity-reactive zoom, 0 disables

    def __post_init__(self) -> None:
        multipliers = tuple(float(m) for m in self.base_multipliers)
        if len(multipliers) != NUM_FAMILIES:
            raise ValueError(
                f"base_multipliers needs {NUM_FAMILIES} values, got {len(multipliers)}"
            )
        if any(m <= 0 for m in multipliers):
            raise ValueError("base_multipliers must all be positive")
        object.__setattr__(self, "base_multipliers", multipliers)

        if self.screen_fill_factor <= 0:
            raise ValueError("screen_fill_factor must be positive")
        if self.min_zoom <= 0 or self.max_zoom < self.min_zoom:
            raise ValueError(
                f"zoom bounds must satisfy 0 < min_zoom <= max_zoom, "
                f"got [{self.min_zoom}, {self.max_zoom}]"
            )
        if self.initial_cam_scale is not None and self.initial_cam_scale <= 0:
            object.__setattr__(self, "initial_cam_scale", None)

    @property
    def initial_scale(self) -> float:
        """Starting camera scale, kept inside the zoom bounds."""
        scale = self.initial_cam_scale or DEFAULT_CAM_SCALE
        return min(max(scale, self.min_zoom), self.max_zoom)


@dataclass(frozen=True)
class SimulationConfig:
    """Everything the frame loop needs besides camera tuning."""

    width: int = 1920
    height: int = 1080
    fps: int = 60
    num_particles: int = 2_000_000
    fragments: int = 20
    frames_per_fragment: int = 300
    start_family: int = Family.AIZAWA
    cycle_fragments: int = 6     # fragments between family switches
    sample_stride: int = SAMPLE_STRIDE
    seed: Optional[int] = None
    backend: str = "numba"       # numba | numpy
    workers: int = 1             # rasterizer threads (numpy backend)
    perturb_params: bool = True

    # Numerical constants
    dt: float = DT
    max_coord: float = MAX_COORD
    exposure: float = EXPOSURE
    tone_scale: float = TONE_SCALE

    def __post_init__(self) -> None:
        for name in (
            "width", "height", "fps", "num_particles", "fragments",
            "frames_per_fragment", "cycle_fragments", "sample_stride", "workers",
        ):
            value = getattr(self, name)
            if int(value) <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value}")
        if not 0 <= int(self.start_family) < NUM_FAMILIES:
            raise ValueError(
                f"start_family must be in [0, {NUM_FAMILIES - 1}], got {self.start_family}"
            )
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.dt <= 0 or self.max_coord <= 0:
            raise ValueError("dt and max_coord must be positive")

    @property
    def total_frames(self) -> int:
        return self.fragments * self.frames_per_fragment


# File keys for the per-family multipliers, in Family order
_MULTIPLIER_KEYS = tuple(f.name.lower() for f in Family)
_FLOAT_KEYS = (
    "screen_fill_factor",
    "min_zoom",
    "max_zoom",
    "zoom_oscillation",
    "dynamic_adjustment",
    "initial_cam_scale",
)


def parse_config_lines(lines, base: Optional[CameraConfig] = None) -> CameraConfig:
    """Apply ``key = value`` lines on top of ``base``.

    Comment lines (``#``), blank lines, unknown keys and values that do not
    parse as floats are skipped.
    """
    base = base or CameraConfig()
    multipliers = list(base.base_multipliers)
    overrides = {}

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        fields = value.split()
        if not fields:
            continue
        try:
            number = float(fields[0])
        except ValueError:
            continue

        if key in _MULTIPLIER_KEYS:
            multipliers[_MULTIPLIER_KEYS.index(key)] = number
        elif key in _FLOAT_KEYS:
            overrides[key] = number

    if "initial_cam_scale" in overrides and overrides["initial_cam_scale"] <= 0:
        overrides["initial_cam_scale"] = None
    return replace(base, base_multipliers=tuple(multipliers), **overrides)


def load_camera_config(
    path: Union[str, Path], base: Optional[CameraConfig] = None
) -> CameraConfig:
    """Read camera tuning from a text file.

    An unreadable file, or one whose values fail validation, leaves the
    defaults in place with a warning on stderr.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            cfg = parse_config_lines(f, base)
    except OSError:
        print(
            f"Warning: Could not open config file '{path}', using defaults",
            file=sys.stderr,
        )
        return base or CameraConfig()
    except ValueError as e:
        print(
            f"Warning: Invalid values in config file '{path}' ({e}), using defaults",
            file=sys.stderr,
        )
        return base or CameraConfig()

    m = dict(zip(_MULTIPLIER_KEYS, cfg.base_multipliers))
    print(f"Loaded config from '{path}'", file=sys.stderr)
    print(
        "  Multipliers: " + " ".join(f"{k}={v:.2f}" for k, v in m.items()),
        file=sys.stderr,
    )
    print(
        f"  screen_fill={cfg.screen_fill_factor:.3f} "
        f"min_zoom={cfg.min_zoom:.1f} max_zoom={cfg.max_zoom:.1f}",
        file=sys.stderr,
    )
    return cfg
