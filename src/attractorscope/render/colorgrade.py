"""
Color mapping and tone mapping.

Particles are colored by normalized speed through a four-band heatmap; the
additive accumulation buffer is compressed to 8-bit with a log curve.
"""

import numpy as np

EXPOSURE = 2.5
TONE_SCALE = 45.0

# Band edges of the speed heatmap
HEATMAP_BANDS = (0.2, 0.5, 0.8)


def heatmap(t: np.ndarray) -> np.ndarray:
    """
    Map normalized speed to saturated RGB.

    Bands: blue → cyan (0–0.2), cyan → yellow (0.2–0.5),
    yellow → red (0.5–0.8), red → white (0.8–1). Continuous at every
    band edge; inputs are clamped to [0, 1].

    Args:
        t: Array of any shape.

    Returns:
        float32 array of shape ``t.shape + (3,)`` in [0, 1].
    """
    shape = np.shape(t)
    t = np.clip(np.asarray(t, dtype=np.float32).reshape(-1), 0.0, 1.0)
    rgb = np.zeros((t.size, 3), dtype=np.float32)
    b0, b1, b2 = HEATMAP_BANDS

    m = t < b0
    rgb[m, 1] = t[m] * 5.0
    rgb[m, 2] = 1.0

    m = (t >= b0) & (t < b1)
    s = (t[m] - b0) / (b1 - b0)
    rgb[m, 0] = s
    rgb[m, 1] = 1.0
    rgb[m, 2] = 1.0 - s

    m = (t >= b1) & (t < b2)
    rgb[m, 0] = 1.0
    rgb[m, 1] = 1.0 - (t[m] - b1) / (b2 - b1)

    m = t >= b2
    s = (t[m] - b2) / (1.0 - b2)
    rgb[m, 0] = 1.0
    rgb[m, 1] = s
    rgb[m, 2] = s
    return rgb.reshape(shape + (3,))


def tone_map(
    accum: np.ndarray,
    exposure: float = EXPOSURE,
    scale: float = TONE_SCALE,
    out: np.ndarray = None,
) -> np.ndarray:
    """
    Logarithmic exposure: ``clip(log(1 + accum * exposure) * scale, 0, 255)``.

    Args:
        accum: (H, W, 3) non-negative float accumulation buffer.
        exposure: Linear gain applied before the log.
        scale: Output gain after the log.
        out: Optional preallocated (H, W, 3) uint8 buffer to overwrite.

    Returns:
        (H, W, 3) uint8 frame.
    """
    with np.errstate(over="ignore", invalid="ignore"):
        mapped = np.log1p(accum * np.float32(exposure)) * np.float32(scale)
    mapped = np.nan_to_num(mapped, nan=0.0, posinf=255.0, neginf=0.0)
    np.clip(mapped, 0.0, 255.0, out=mapped)
    if out is None:
        return mapped.astype(np.uint8)
    out[...] = mapped
    return out
