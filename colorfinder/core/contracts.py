"""
Core data contracts for Color Finder.

All components exchange these types. Profiles are immutable values; frames
and masks are per-tick and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import NamedTuple, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from colorfinder.core.color_space import RgbTuple, clamp, clamp01, wrap_hue
from colorfinder.core.errors import ColorFinderError


# ============================================================
# BOUNDS
# ============================================================

HUE_TOLERANCE_MIN = 0.001
HUE_TOLERANCE_MAX = 0.5
MASK_SOFTNESS_MIN = 0.001
MASK_SOFTNESS_MAX = 0.25


# ============================================================
# ENUMERATIONS
# ============================================================

class HighlightStyle(Enum):
    """How the compositor presents matching pixels."""
    BW_EXCEPT_TARGET = auto()
    GLOW_OVERLAY = auto()


class RuntimeMode(Enum):
    """Runtime presentation mode. Exactly one is active at a time."""
    UNINITIALIZED = auto()
    PROBING_PROVIDERS = auto()
    BASIC_STYLING = auto()
    ADVANCED_CAMERA_MASK = auto()


class ColorPreset(Enum):
    """Named entries of the color profile catalog, in catalog order."""
    RED = "red"
    BLUE = "blue"
    YELLOW = "yellow"
    GREEN = "green"
    BLACK = "black"
    WHITE = "white"


class ProbeOutcome(Enum):
    """Result of probing a single provider candidate."""
    PENDING = auto()
    PASSED = auto()
    FAILED = auto()
    TIMED_OUT = auto()


# ============================================================
# COLOR PROFILE
# ============================================================

class HsvTriple(NamedTuple):
    """Hue/saturation/value, each in [0, 1]. Hue is circular."""
    h: float
    s: float
    v: float


@dataclass(frozen=True)
class ColorProfile:
    """
    A target-color definition.

    Values are normalized on construction so every instance honors the
    documented bounds, whatever the caller passed in:
    - target hue wraps mod 1, target saturation/value clamp to [0, 1]
    - hue tolerance clamps to [0.001, 0.5], sat/val tolerance to [0, 1]
    - range bounds clamp to [0, 1]
    - chroma_weight clamps to [0, 1], mask_softness to [0.001, 0.25]

    Never mutate a profile; use the with_* transforms.
    """
    preset: ColorPreset
    display_name: str
    accent_color: RgbTuple
    target_hsv: HsvTriple
    tolerance_hsv: HsvTriple
    saturation_range: Tuple[float, float]
    value_range: Tuple[float, float]
    chroma_weight: float
    mask_softness: float
    highlight_boost: float

    def __post_init__(self):
        h, s, v = self.target_hsv
        object.__setattr__(
            self, "target_hsv", HsvTriple(wrap_hue(h), clamp01(s), clamp01(v))
        )

        th, ts, tv = self.tolerance_hsv
        object.__setattr__(
            self,
            "tolerance_hsv",
            HsvTriple(
                clamp(float(th), HUE_TOLERANCE_MIN, HUE_TOLERANCE_MAX),
                clamp01(ts),
                clamp01(tv),
            ),
        )

        object.__setattr__(
            self, "saturation_range",
            (clamp01(self.saturation_range[0]), clamp01(self.saturation_range[1])),
        )
        object.__setattr__(
            self, "value_range",
            (clamp01(self.value_range[0]), clamp01(self.value_range[1])),
        )
        object.__setattr__(self, "chroma_weight", clamp01(self.chroma_weight))
        object.__setattr__(
            self, "mask_softness",
            clamp(float(self.mask_softness), MASK_SOFTNESS_MIN, MASK_SOFTNESS_MAX),
        )
        object.__setattr__(
            self, "accent_color", tuple(clamp01(c) for c in self.accent_color)
        )

    def with_target_hue(self, hue: float) -> ColorProfile:
        """Return a copy targeting a new hue (wrapped into [0, 1))."""
        return replace(
            self,
            target_hsv=HsvTriple(wrap_hue(hue), self.target_hsv.s, self.target_hsv.v),
        )

    def with_target_hsv(self, hsv: Tuple[float, float, float]) -> ColorProfile:
        """Return a copy targeting a new HSV color."""
        h, s, v = hsv
        return replace(self, target_hsv=HsvTriple(wrap_hue(h), clamp01(s), clamp01(v)))

    def with_tolerances(self, hue_tol: float, sat_tol: float, val_tol: float) -> ColorProfile:
        """Return a copy with new tolerances (clamped to their bounds)."""
        return replace(
            self,
            tolerance_hsv=HsvTriple(
                clamp(float(hue_tol), HUE_TOLERANCE_MIN, HUE_TOLERANCE_MAX),
                clamp01(sat_tol),
                clamp01(val_tol),
            ),
        )


# ============================================================
# FRAMES
# ============================================================

@dataclass
class CameraFrame:
    """
    A borrowed handle to the current camera image.

    The bound provider owns the image. Consumers may only use it for the
    current tick: the provider may resize, replace or drop it afterwards.
    """
    image: NDArray[np.uint8]  # H x W x 3, RGB
    frame_id: int = 0
    timestamp: float = 0.0

    @property
    def width(self) -> int:
        return int(self.image.shape[1]) if self.image.ndim >= 2 else 0

    @property
    def height(self) -> int:
        return int(self.image.shape[0]) if self.image.ndim >= 1 else 0

    @property
    def is_empty(self) -> bool:
        return self.image is None or self.image.size == 0 or self.width <= 0 or self.height <= 0


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class InitResult:
    """Outcome of CameraSourceProvider.initialize(). Soft failures carry a reason."""
    success: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> InitResult:
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> InitResult:
        return cls(success=False, reason=reason)


@dataclass
class CalibrationResult:
    """Result from the calibration sampler."""
    hsv: Optional[HsvTriple] = None
    sample_count: int = 0

    success: bool = True
    error: Optional[ColorFinderError] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.status_message if self.error is not None else None

    @classmethod
    def failure(cls, error: ColorFinderError) -> CalibrationResult:
        return cls(success=False, error=error)


# ============================================================
# COMPOSITOR INPUTS
# ============================================================

@dataclass(frozen=True)
class BasicStylingParams:
    """
    Heuristic styling handed to the compositor in basic mode.

    Basic mode cannot segment by color. These values push contrast,
    posterization and a subtle tint so the chosen color feels more
    prominent. Deterministic per (style, profile).
    """
    brightness: float = 0.0
    contrast: float = 0.0
    posterize: float = 0.0
    edge_rendering: bool = False
    edge_color_dim: RgbTuple = (0.0, 0.0, 0.0)
    edge_color_bright: RgbTuple = (0.0, 0.0, 0.0)
    color_scale: RgbTuple = (1.0, 1.0, 1.0)
    color_offset: RgbTuple = (0.0, 0.0, 0.0)


@dataclass
class AdvancedCompositeInputs:
    """Per-tick inputs for the compositor in advanced camera mask mode."""
    mask: NDArray[np.float32]  # H x W, [0, 1]
    style: HighlightStyle
    accent_color: RgbTuple
    highlight_boost: float
    pulse: float  # [0, 1]

    glow_width_px: float = 1.0
    glow_intensity: float = 1.3
    outside_desaturate: bool = True


@dataclass
class TickOutput:
    """
    Summary of a single session tick.
    """
    tick_id: int
    mode: RuntimeMode
    style: HighlightStyle
    profile: ColorProfile
    status: str

    mask: Optional[NDArray[np.float32]] = None
    basic_params: Optional[BasicStylingParams] = None
    image: Optional[NDArray[np.uint8]] = None  # compositor preview, RGB
    frame_available: bool = False
    provider_name: Optional[str] = None
    segmentation_ms: float = 0.0
