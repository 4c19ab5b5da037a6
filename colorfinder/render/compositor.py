"""
Presentation compositors.

The compositor turns the per-tick mask (advanced mode) or the basic styling
parameters (basic mode) into what the user sees. On the headset this is the
platform's passthrough layer; on desktop PreviewCompositor renders an OpenCV
preview of the same effects.

Frames in and images out are RGB uint8.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import cv2
import numpy as np
from numpy.typing import NDArray

from colorfinder.core.color_space import lerp_color
from colorfinder.core.contracts import (
    AdvancedCompositeInputs,
    BasicStylingParams,
    CameraFrame,
    ColorProfile,
    HighlightStyle,
)


class Compositor(ABC):
    """Abstract presentation backend."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether advanced (mask-driven) compositing is supported."""
        pass

    @abstractmethod
    def present_advanced(
        self,
        frame: CameraFrame,
        inputs: AdvancedCompositeInputs,
    ) -> Optional[NDArray[np.uint8]]:
        pass

    @abstractmethod
    def present_basic(
        self,
        style: HighlightStyle,
        profile: ColorProfile,
        params: BasicStylingParams,
        pulse: float = 0.0,
    ) -> Optional[NDArray[np.uint8]]:
        """Render heuristic styling. Basic mode never has a camera frame."""
        pass


class NullCompositor(Compositor):
    """Headless compositor. Records the last inputs and renders nothing."""

    def __init__(self, available: bool = True):
        self.available = available
        self.last_advanced: Optional[AdvancedCompositeInputs] = None
        self.last_basic: Optional[BasicStylingParams] = None
        self.advanced_calls = 0
        self.basic_calls = 0

    def is_available(self) -> bool:
        return self.available

    def present_advanced(self, frame, inputs):
        self.last_advanced = inputs
        self.advanced_calls += 1
        return None

    def present_basic(self, style, profile, params, pulse=0.0):
        self.last_basic = params
        self.basic_calls += 1
        return None


class PreviewCompositor(Compositor):
    """
    OpenCV preview of the passthrough effects.

    - BW except target: everything outside the mask is grayscale, matches
      keep their color and are brightened by the highlight boost
    - Glow overlay: the full-color feed with a pulsing accent glow hugging
      the matched regions
    - Basic styling: the heuristic params applied to an accent swatch, as
      basic mode has no camera frame
    """

    def __init__(self, swatch_size: Tuple[int, int] = (1280, 720)):
        self.swatch_size = swatch_size

    def is_available(self) -> bool:
        return True

    def present_advanced(
        self,
        frame: CameraFrame,
        inputs: AdvancedCompositeInputs,
    ) -> Optional[NDArray[np.uint8]]:
        if frame is None or frame.is_empty:
            return None

        rgb = frame.image[..., :3].astype(np.float32) * (1.0 / 255.0)
        mask = inputs.mask
        if mask.shape != rgb.shape[:2]:
            mask = cv2.resize(mask, (rgb.shape[1], rgb.shape[0]), interpolation=cv2.INTER_LINEAR)
        weight = np.clip(mask, 0.0, 1.0)[..., None]

        accent = np.asarray(inputs.accent_color, dtype=np.float32)

        if inputs.outside_desaturate:
            gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)[..., None]
            base = np.repeat(gray, 3, axis=2)
        else:
            base = rgb

        # Matched pixels: original color, brightened with a slow pulse
        boost = 1.0 + (inputs.highlight_boost - 1.0) * (0.75 + 0.25 * inputs.pulse)
        highlighted = np.clip(rgb * boost, 0.0, 1.0)
        output = base * (1.0 - weight) + highlighted * weight

        if inputs.style == HighlightStyle.GLOW_OVERLAY:
            sigma = max(1.0, inputs.glow_width_px * 4.0)
            halo = cv2.GaussianBlur(mask.astype(np.float32), (0, 0), sigma)
            glow = np.clip((halo - mask * 0.5) * inputs.glow_intensity * inputs.pulse, 0.0, 1.0)
            output = output + glow[..., None] * accent[None, None, :]

        return (np.clip(output, 0.0, 1.0) * 255).astype(np.uint8)

    def present_basic(
        self,
        style: HighlightStyle,
        profile: ColorProfile,
        params: BasicStylingParams,
        pulse: float = 0.0,
    ) -> Optional[NDArray[np.uint8]]:
        img = self._swatch(profile)

        img = (img - 0.5) * (1.0 + params.contrast) + 0.5 + params.brightness

        if params.posterize > 0:
            levels = max(2, int(round(2 + (1.0 - params.posterize) * 30)))
            img = np.round(np.clip(img, 0.0, 1.0) * (levels - 1)) / (levels - 1)

        img = img * np.asarray(params.color_scale, dtype=np.float32)
        img = img + np.asarray(params.color_offset, dtype=np.float32)
        img = np.clip(img, 0.0, 1.0)

        if params.edge_rendering:
            gray = cv2.cvtColor((img * 255).astype(np.uint8), cv2.COLOR_RGB2GRAY)
            edges = cv2.Canny(gray, 60, 160) > 0
            edge_color = lerp_color(params.edge_color_dim, params.edge_color_bright, pulse)
            img[edges] = np.asarray(edge_color, dtype=np.float32)

        return (img * 255).astype(np.uint8)

    def _swatch(self, profile: ColorProfile) -> NDArray[np.float32]:
        """Dark canvas with an accent disc, standing in for the unavailable camera."""
        w, h = self.swatch_size
        swatch = np.full((h, w, 3), 24, dtype=np.uint8)
        accent = tuple(int(c * 255) for c in profile.accent_color)
        cv2.circle(swatch, (w // 2, h // 2), min(w, h) // 6, accent, -1)
        return swatch.astype(np.float32) * (1.0 / 255.0)
