"""
Local webcam provider.

Fallback camera source for desktop runs without a headset. Opens the first
device that responds at 1280x720 @ 30fps.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, List, Optional

import cv2
from loguru import logger

from colorfinder.capture.base import CameraSourceProvider
from colorfinder.core.contracts import CameraFrame, InitResult

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


class WebcamProvider(CameraSourceProvider):
    """Webcam camera source using OpenCV."""

    name = "webcam"

    def __init__(self, device_index: Optional[int] = None):
        self.device_index = device_index

        self._capture: Optional[cv2.VideoCapture] = None
        self._opened_index: Optional[int] = None
        self._frame: Optional[CameraFrame] = None
        self._frame_count = 0
        self._clock = None
        self._disposed = False

    def _candidate_indices(self, context: AppContext) -> List[int]:
        if self.device_index is not None:
            return [self.device_index]
        if context.config.webcam_device is not None:
            return [int(context.config.webcam_device)]
        return list(range(context.config.webcam_max_index + 1))

    def _open(self, index: int) -> cv2.VideoCapture:
        if os.name == 'nt':
            return cv2.VideoCapture(index, cv2.CAP_DSHOW)
        return cv2.VideoCapture(index)

    def initialize(self, context: AppContext) -> InitResult:
        config = context.config
        self._clock = context.clock
        indices = self._candidate_indices(context)
        capture = None

        try:
            for index in indices:
                capture = self._open(index)
                if not capture.isOpened():
                    capture.release()
                    capture = None
                    continue

                capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
                capture.set(cv2.CAP_PROP_FRAME_WIDTH, config.webcam_width)
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, config.webcam_height)
                capture.set(cv2.CAP_PROP_FPS, config.webcam_fps)

                w = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
                h = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
                fps = capture.get(cv2.CAP_PROP_FPS)
                logger.info(f"Webcam {index} opened: {w}x{h} @ {fps:.0f}fps")

                self._capture = capture
                self._opened_index = index
                return InitResult.ok()

        except Exception as e:
            if capture is not None:
                capture.release()
            return InitResult.failed(f"Webcam failed to start: {e}")

        return InitResult.failed(
            f"No webcam found (tried device indices {indices}). "
            "Connect a camera or use the headset stream."
        )

    def tick(self) -> None:
        if self._capture is None:
            return

        ret, frame = self._capture.read()
        if not ret or frame is None:
            self._frame = None
            return

        self._frame_count += 1
        self._frame = CameraFrame(
            image=cv2.cvtColor(frame, cv2.COLOR_BGR2RGB),
            frame_id=self._frame_count,
            timestamp=self._clock() if self._clock else 0.0,
        )

    def current_frame(self) -> Optional[CameraFrame]:
        return self._frame

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True

        if self._capture is not None:
            self._capture.release()
            self._capture = None
        self._frame = None
        logger.info("Webcam released")

    @property
    def opened_index(self) -> Optional[int]:
        return self._opened_index
