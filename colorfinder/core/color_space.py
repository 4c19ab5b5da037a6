"""
Color Space Helpers.

Handles:
- RGB <-> HSV conversion (scalar and vectorized, hue in [0, 1))
- Circular hue wrapping
- Clamping and color interpolation
"""

from __future__ import annotations

import colorsys
from typing import Tuple

import numpy as np
from numpy.typing import NDArray


RgbTuple = Tuple[float, float, float]


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value to the given range."""
    return max(min_val, min(max_val, value))


def clamp01(value: float) -> float:
    """Clamp a value to [0, 1]."""
    return clamp(value, 0.0, 1.0)


def wrap_hue(hue: float) -> float:
    """
    Wrap a hue into [0, 1).

    Python's modulo already maps negatives into range
    (-0.1 -> 0.9); the extra guard keeps float rounding from
    returning exactly 1.0.
    """
    wrapped = float(hue) % 1.0
    if wrapped >= 1.0:
        wrapped = 0.0
    return wrapped


def rgb_to_hsv(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert a single RGB color (components in [0, 1]) to HSV.

    Returns:
        Tuple of (h, s, v), all in [0, 1], hue in [0, 1)
    """
    h, s, v = colorsys.rgb_to_hsv(clamp01(r), clamp01(g), clamp01(b))
    return (wrap_hue(h), s, v)


def hsv_to_rgb(h: float, s: float, v: float) -> Tuple[float, float, float]:
    """Convert a single HSV color to RGB (components in [0, 1])."""
    return colorsys.hsv_to_rgb(wrap_hue(h), clamp01(s), clamp01(v))


def rgb_to_hsv_array(rgb: NDArray) -> NDArray[np.float32]:
    """
    Vectorized RGB -> HSV for an (..., 3) array.

    Uses the same formula as colorsys so the scalar and vectorized paths
    agree. OpenCV's own HSV conversion quantizes hue to 0..180, which is
    too coarse for tolerances of a few hundredths.

    Args:
        rgb: Array with RGB in the last axis. uint8 input is scaled by 1/255,
            float input is assumed to already be in [0, 1].

    Returns:
        float32 array of the same shape with (h, s, v) in the last axis
    """
    rgb = np.asarray(rgb)
    if rgb.dtype == np.uint8:
        rgb = rgb.astype(np.float32) * (1.0 / 255.0)
    else:
        rgb = np.clip(rgb.astype(np.float32), 0.0, 1.0)

    r = rgb[..., 0]
    g = rgb[..., 1]
    b = rgb[..., 2]

    maxc = np.max(rgb, axis=-1)
    minc = np.min(rgb, axis=-1)
    delta = maxc - minc

    v = maxc
    s = np.where(maxc > 0, delta / np.where(maxc > 0, maxc, 1.0), 0.0)

    safe_delta = np.where(delta > 0, delta, 1.0)
    rc = (maxc - r) / safe_delta
    gc = (maxc - g) / safe_delta
    bc = (maxc - b) / safe_delta

    h = np.where(
        r == maxc,
        bc - gc,
        np.where(g == maxc, 2.0 + rc - bc, 4.0 + gc - rc),
    )
    h = np.mod(h / 6.0, 1.0)
    h = np.where(delta > 0, h, 0.0)

    return np.stack([h, s, v], axis=-1).astype(np.float32)


def scale_color(color: RgbTuple, factor: float) -> RgbTuple:
    """Multiply an RGB color by a scalar."""
    return (color[0] * factor, color[1] * factor, color[2] * factor)


def lerp_color(a: RgbTuple, b: RgbTuple, t: float) -> RgbTuple:
    """Linear interpolation between two RGB colors (t clamped to [0, 1])."""
    t = clamp01(t)
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )
