"""
Color Segmentation Engine.

Handles:
- Per-pixel match scoring against a ColorProfile
- Vectorized mask computation at reduced resolution
- Bilinear upsampling back to frame size

Scoring (per pixel):
1. RGB -> HSV
2. Hard reject outside saturation_range / value_range
3. Normalized distances: circular hue, then saturation and value
4. d = sqrt(cw * (dh^2 + ds^2) + (1 - cw) * dv^2)
5. score = smoothstep(1, 1 - softness, d)
"""

from __future__ import annotations

import math
import time
from typing import Tuple, Union

import cv2
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from colorfinder.core.color_space import clamp01, rgb_to_hsv, rgb_to_hsv_array
from colorfinder.core.contracts import CameraFrame, ColorProfile


FrameLike = Union[CameraFrame, NDArray[np.uint8]]


# ============================================================
# SCALAR SCORING
# ============================================================

def _normalized_distance(delta: float, tolerance: float) -> float:
    if tolerance > 0:
        return delta / tolerance
    return 0.0 if delta == 0 else math.inf


def _smoothstep_score(distance: float, softness: float) -> float:
    if math.isnan(distance) or math.isinf(distance):
        return 0.0
    t = clamp01((1.0 - distance) / softness)
    return t * t * (3.0 - 2.0 * t)


def score_hsv(h: float, s: float, v: float, profile: ColorProfile) -> float:
    """
    Score an HSV pixel against a profile.

    Returns:
        Match confidence in [0, 1]
    """
    s_min, s_max = profile.saturation_range
    v_min, v_max = profile.value_range
    if s < s_min or s > s_max or v < v_min or v > v_max:
        return 0.0

    target = profile.target_hsv
    tol = profile.tolerance_hsv

    hue_delta = abs(h - target.h)
    hue_delta = min(hue_delta, 1.0 - hue_delta)

    dh = _normalized_distance(hue_delta, tol.h)
    ds = _normalized_distance(abs(s - target.s), tol.s)
    dv = _normalized_distance(abs(v - target.v), tol.v)

    cw = profile.chroma_weight
    squared = 0.0
    if cw > 0:
        squared += cw * (dh * dh + ds * ds)
    if cw < 1:
        squared += (1.0 - cw) * dv * dv

    return _smoothstep_score(math.sqrt(squared), profile.mask_softness)


def score(pixel_rgb: Tuple[float, float, float], profile: ColorProfile) -> float:
    """Score an RGB pixel (components in [0, 1]) against a profile."""
    h, s, v = rgb_to_hsv(*pixel_rgb)
    return score_hsv(h, s, v, profile)


# ============================================================
# VECTORIZED MASK
# ============================================================

def _score_hsv_array(hsv: NDArray[np.float32], profile: ColorProfile) -> NDArray[np.float32]:
    h = hsv[..., 0]
    s = hsv[..., 1]
    v = hsv[..., 2]

    target = profile.target_hsv
    tol = profile.tolerance_hsv

    def normalized(delta: NDArray, tolerance: float) -> NDArray:
        if tolerance > 0:
            return delta / tolerance
        return np.where(delta == 0, 0.0, np.inf)

    hue_delta = np.abs(h - target.h)
    hue_delta = np.minimum(hue_delta, 1.0 - hue_delta)

    dh = normalized(hue_delta, tol.h)
    ds = normalized(np.abs(s - target.s), tol.s)
    dv = normalized(np.abs(v - target.v), tol.v)

    cw = profile.chroma_weight
    squared = np.zeros_like(h)
    if cw > 0:
        squared = squared + cw * (dh * dh + ds * ds)
    if cw < 1:
        squared = squared + (1.0 - cw) * dv * dv

    distance = np.sqrt(squared)

    t = np.clip((1.0 - distance) / profile.mask_softness, 0.0, 1.0)
    result = t * t * (3.0 - 2.0 * t)

    s_min, s_max = profile.saturation_range
    v_min, v_max = profile.value_range
    in_range = (s >= s_min) & (s <= s_max) & (v >= v_min) & (v <= v_max)
    result = np.where(in_range & np.isfinite(distance), result, 0.0)

    return result.astype(np.float32)


def reduced_size(width: int, height: int, downsample: int, min_size: int = 64) -> Tuple[int, int]:
    """
    Evaluation resolution for a frame.

    Each side is divided by `downsample` but never drops below `min_size`
    (or the frame's own size, when the frame is smaller than that).
    """
    downsample = max(1, int(downsample))
    w = max(width // downsample, min(min_size, width))
    h = max(height // downsample, min(min_size, height))
    return (w, h)


def compute_mask(
    frame: FrameLike,
    profile: ColorProfile,
    downsample: int = 1,
    min_size: int = 64,
) -> NDArray[np.float32]:
    """
    Compute the match mask for a whole frame.

    Pure: the frame is only read. A zero-area frame yields an empty mask.

    Args:
        frame: CameraFrame or RGB uint8 array (H x W x 3)
        profile: Active color profile
        downsample: Resolution divisor for evaluation
        min_size: Minimum evaluation size per side

    Returns:
        float32 mask (H x W) in [0, 1] at the frame's resolution
    """
    image = frame.image if isinstance(frame, CameraFrame) else frame
    if image is None:
        return np.zeros((0, 0), dtype=np.float32)

    image = np.asarray(image)
    if image.ndim < 3 or image.shape[0] == 0 or image.shape[1] == 0:
        height = image.shape[0] if image.ndim >= 1 else 0
        width = image.shape[1] if image.ndim >= 2 else 0
        return np.zeros((height, width), dtype=np.float32)

    height, width = image.shape[:2]
    work_w, work_h = reduced_size(width, height, downsample, min_size)

    rgb = np.ascontiguousarray(image[..., :3])
    if (work_w, work_h) != (width, height):
        rgb = cv2.resize(rgb, (work_w, work_h), interpolation=cv2.INTER_AREA)

    with np.errstate(divide='ignore', invalid='ignore'):
        mask = _score_hsv_array(rgb_to_hsv_array(rgb), profile)

    if mask.shape != (height, width):
        mask = cv2.resize(mask, (width, height), interpolation=cv2.INTER_LINEAR)
        mask = np.clip(mask, 0.0, 1.0)

    return mask.astype(np.float32, copy=False)


# ============================================================
# ENGINE
# ============================================================

class ColorSegmenter:
    """
    Per-tick mask producer.

    Wraps compute_mask with the configured resolution and keeps timing
    stats for the status overlay.
    """

    def __init__(self, downsample: int = 2, min_size: int = 64):
        """
        Initialize segmenter.

        Args:
            downsample: Resolution divisor for evaluation
            min_size: Minimum evaluation size per side
        """
        self.downsample = max(1, int(downsample))
        self.min_size = max(1, int(min_size))

        self._last_ms: float = 0.0
        self._frames_processed: int = 0

    def segment(self, frame: FrameLike, profile: ColorProfile) -> NDArray[np.float32]:
        """Score a frame against the profile snapshot for this tick."""
        start = time.perf_counter()
        mask = compute_mask(frame, profile, self.downsample, self.min_size)
        self._last_ms = (time.perf_counter() - start) * 1000
        self._frames_processed += 1

        if self._frames_processed == 1:
            logger.debug(
                f"First mask computed: {mask.shape[1]}x{mask.shape[0]} "
                f"in {self._last_ms:.1f}ms"
            )
        return mask

    @property
    def last_ms(self) -> float:
        return self._last_ms

    @property
    def frames_processed(self) -> int:
        return self._frames_processed
