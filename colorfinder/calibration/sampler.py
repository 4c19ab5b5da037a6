"""
Center-sample Calibration.

Derives a new target color from the middle of the live camera frame:
1. Require advanced mode with a bound provider and a frame
2. Scale-copy the frame into a small square buffer (OpenCV UMat, so the
   resize runs on the GPU when OpenCL is available)
3. Wait one tick for the copy to land
4. Read back the centered patch, average it, convert to HSV

The caller applies the result with apply_calibration().
"""

from __future__ import annotations

from typing import Callable, Generator, Optional

import cv2
import numpy as np
from loguru import logger

from colorfinder.capture.base import CameraSourceProvider
from colorfinder.core.color_space import clamp, rgb_to_hsv
from colorfinder.core.contracts import CalibrationResult, ColorProfile, HsvTriple
from colorfinder.core.errors import (
    CalibrationCancelled,
    CalibrationEmptySample,
    CalibrationNotActive,
    CalibrationReadbackFailed,
    FrameUnavailable,
)


# Calibrated tolerances are clamped into this band
CALIBRATION_HUE_TOLERANCE = (0.03, 0.12)
CALIBRATION_SV_TOLERANCE = (0.18, 0.45)


def apply_calibration(profile: ColorProfile, hsv: HsvTriple) -> ColorProfile:
    """
    Retarget a profile at a sampled color.

    The sampled HSV becomes the target (hue wrapped) and the existing
    tolerances are clamped into the calibration band.
    """
    tol = profile.tolerance_hsv
    sv_min, sv_max = CALIBRATION_SV_TOLERANCE
    return profile.with_target_hsv(hsv).with_tolerances(
        clamp(tol.h, *CALIBRATION_HUE_TOLERANCE),
        clamp(tol.s, sv_min, sv_max),
        clamp(tol.v, sv_min, sv_max),
    )


class CalibrationSampler:
    """
    One-shot center sampler.

    calibrate_center() is a routine for TickScheduler: it suspends exactly
    once and returns a CalibrationResult.
    """

    def __init__(self, buffer_size: int = 64, patch_radius: int = 8):
        """
        Args:
            buffer_size: Side of the square scale-copy buffer
            patch_radius: Half-size of the centered readback patch
        """
        self.buffer_size = buffer_size
        self.patch_radius = patch_radius

    def calibrate_center(
        self,
        provider: Optional[CameraSourceProvider],
        is_live: Callable[[], bool],
    ) -> Generator[None, None, CalibrationResult]:
        """
        Sample the center of the provider's current frame.

        Args:
            provider: Bound camera provider
            is_live: Returns True while advanced mode is active with this
                provider bound; checked before the copy and after the wait

        Returns:
            CalibrationResult with the averaged HSV, or the failure
        """
        if provider is None or not is_live():
            return CalibrationResult.failure(CalibrationNotActive())

        frame = provider.current_frame()
        if frame is None or frame.is_empty:
            return CalibrationResult.failure(FrameUnavailable())

        buffer = None
        try:
            buffer = cv2.resize(
                cv2.UMat(np.ascontiguousarray(frame.image[..., :3])),
                (self.buffer_size, self.buffer_size),
                interpolation=cv2.INTER_AREA,
            )

            yield

            if not is_live():
                logger.info("Calibration cancelled after mode change")
                return CalibrationResult.failure(CalibrationCancelled())

            pixels = buffer.get()
            center = self.buffer_size // 2
            r = self.patch_radius
            patch = pixels[max(0, center - r):center + r, max(0, center - r):center + r]
            if patch.size == 0:
                return CalibrationResult.failure(CalibrationEmptySample())

            samples = patch.reshape(-1, patch.shape[-1])[:, :3].astype(np.float64)
            mean_rgb = samples.mean(axis=0) / 255.0
            hsv = HsvTriple(*rgb_to_hsv(*mean_rgb))

            logger.debug(f"Calibration sampled {len(samples)} pixels, mean RGB {mean_rgb}")
            return CalibrationResult(hsv=hsv, sample_count=len(samples))

        except (cv2.error, ValueError, TypeError) as e:
            logger.warning(f"Calibration readback failed: {e}")
            return CalibrationResult.failure(CalibrationReadbackFailed(e))

        finally:
            buffer = None
