"""
Headset passthrough camera provider.

Attaches a registered camera-access capability, ranks its frame sources by
name and serves the best one that currently has a frame.

Ranking (lower wins, ties keep declaration order):
    base 100, "left" -25, "color" -20, "camera" -10, "texture" -5
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from loguru import logger

from colorfinder.capture.base import CameraSourceProvider
from colorfinder.capture.capabilities import (
    CameraAccessCapability,
    FrameSource,
    get_capability,
    list_capabilities,
)
from colorfinder.core.contracts import CameraFrame, InitResult

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


AFFINITY_BASE = 100
AFFINITY_KEYWORDS = (
    ("left", 25),
    ("color", 20),
    ("camera", 10),
    ("texture", 5),
)


def affinity_score(source_name: str) -> int:
    """Name affinity of a frame source; lower is a better match."""
    lowered = source_name.lower()
    score = AFFINITY_BASE
    for keyword, bonus in AFFINITY_KEYWORDS:
        if keyword in lowered:
            score -= bonus
    return score


def rank_frame_sources(
    sources: List[Tuple[str, FrameSource]],
) -> List[Tuple[str, FrameSource]]:
    """Order frame sources by affinity. sorted() is stable, so ties keep input order."""
    return sorted(sources, key=lambda item: affinity_score(item[0]))


class HeadsetCameraProvider(CameraSourceProvider):
    """Camera provider backed by a headset camera-access capability."""

    name = "headset"

    def __init__(self, capability_name: Optional[str] = None):
        self.capability_name = capability_name

        self._capability: Optional[CameraAccessCapability] = None
        self._ranked: List[Tuple[str, FrameSource]] = []
        self._active_source: Optional[str] = None
        self._frame: Optional[CameraFrame] = None
        self._frame_count = 0
        self._clock = None
        self._disposed = False

    def initialize(self, context: AppContext) -> InitResult:
        name = self.capability_name or context.config.headset_capability
        self._clock = context.clock

        factory = get_capability(name)
        if factory is None:
            available = ", ".join(list_capabilities()) or "none"
            return InitResult.failed(
                f"Passthrough camera access capability '{name}' not found "
                f"(registered: {available}). Headset camera path unavailable."
            )

        try:
            capability = factory(context)
            capability.start()
        except Exception as e:
            logger.warning(f"Camera capability '{name}' failed to attach: {e}")
            return InitResult.failed(f"Passthrough camera access failed to start: {e}")

        try:
            sources = list(capability.frame_sources().items())
        except Exception as e:
            logger.warning(f"Camera capability '{name}' could not list frame sources: {e}")
            capability.stop()
            return InitResult.failed(
                f"Passthrough camera access failed to list frame sources: {e}"
            )

        if not sources:
            capability.stop()
            return InitResult.failed(
                f"Passthrough camera access '{name}' exposes no frame sources."
            )

        self._capability = capability
        self._ranked = rank_frame_sources(sources)
        logger.info(
            f"Headset camera attached via '{name}', sources by preference: "
            f"{[source_name for source_name, _ in self._ranked]}"
        )
        return InitResult.ok()

    def tick(self) -> None:
        if self._capability is None:
            return

        self._capability.poll()

        for source_name, accessor in self._ranked:
            image = accessor()
            if image is None or image.size == 0:
                continue

            if source_name != self._active_source:
                logger.info(f"Headset frame source: {source_name}")
                self._active_source = source_name

            if self._frame is None or self._frame.image is not image:
                self._frame_count += 1
                self._frame = CameraFrame(
                    image=image,
                    frame_id=self._frame_count,
                    timestamp=self._clock() if self._clock else 0.0,
                )
            return

        self._frame = None

    def current_frame(self) -> Optional[CameraFrame]:
        return self._frame

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True

        if self._capability is not None:
            self._capability.stop()
            self._capability = None
        self._ranked = []
        self._frame = None
        logger.debug("Headset camera provider disposed")

    @property
    def active_source(self) -> Optional[str]:
        return self._active_source
