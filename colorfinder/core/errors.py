"""
Error taxonomy for Color Finder.

Every error here is recoverable: the owning component handles it locally by
downgrading the runtime mode or rejecting the requested action, and reports
it through the status line. Only CompositorUnavailable is durable, and even
that just pins the session to basic styling.
"""

from __future__ import annotations

from typing import Optional


class ColorFinderError(Exception):
    """
    Base class for all Color Finder errors.

    Attributes:
        status_message: Human-readable text describing cause and next step
    """

    default_message = "Color Finder error."

    def __init__(self, status_message: Optional[str] = None):
        self.status_message = status_message or self.default_message
        super().__init__(self.status_message)


class PermissionDenied(ColorFinderError):
    default_message = (
        "Camera permission denied. Using Basic styling. "
        "Grant headset camera permission for true color masking."
    )


class ProviderInitFailed(ColorFinderError):
    """A camera provider could not attach to its capability."""

    default_message = "Camera provider failed to start."

    def __init__(self, provider_name: str, reason: str):
        self.provider_name = provider_name
        self.reason = reason
        super().__init__(reason)


class ProviderTimedOut(ColorFinderError):
    """A provider initialized but never produced a frame in time."""

    def __init__(self, provider_name: str, timeout_seconds: float):
        self.provider_name = provider_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"{provider_name} started but no camera texture became available "
            f"within {timeout_seconds:.1f}s."
        )


class FrameUnavailable(ColorFinderError):
    default_message = "Camera texture is not ready for calibration."


class CalibrationNotActive(ColorFinderError):
    default_message = "Advanced mode is not active."


class CalibrationEmptySample(ColorFinderError):
    default_message = "Calibration sample was empty."


class CalibrationReadbackFailed(ColorFinderError):
    """Buffer copy or readback raised during calibration."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Calibration failed: {cause}")


class CalibrationCancelled(ColorFinderError):
    default_message = "Calibration cancelled: Advanced mode is no longer active."


class CompositorUnavailable(ColorFinderError):
    default_message = (
        "Advanced compositing is unavailable on this device. "
        "Session is limited to Basic styling."
    )
