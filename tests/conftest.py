"""Shared fixtures: fake clock, fake providers, flat frames, context builder."""

from typing import Optional

import numpy as np
import pytest

from colorfinder.capture.base import CameraSourceProvider
from colorfinder.config import ColorFinderConfig
from colorfinder.core.context import AppContext
from colorfinder.core.contracts import CameraFrame, InitResult
from colorfinder.core.permissions import StaticPermissions


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def flat_image(rgb=(255, 0, 0), width: int = 32, height: int = 24) -> np.ndarray:
    """Uniform RGB uint8 image."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :] = rgb
    return image


class FakeProvider(CameraSourceProvider):
    """Scriptable provider that records its lifecycle calls.

    Args:
        name: Provider name
        init_reason: If set, initialize() fails with this reason
        frame_after_ticks: Ticks before a frame appears (None = never)
        image: Frame image to serve
    """

    def __init__(
        self,
        name: str = "fake",
        init_reason: Optional[str] = None,
        frame_after_ticks: Optional[int] = 0,
        image: Optional[np.ndarray] = None,
    ):
        self.name = name
        self.init_reason = init_reason
        self.frame_after_ticks = frame_after_ticks
        self.image = image if image is not None else flat_image()

        self.initialize_calls = 0
        self.tick_calls = 0
        self.dispose_calls = 0
        self.current_frame_calls = 0
        self.frames_enabled = True
        self._frame: Optional[CameraFrame] = None

    def initialize(self, context) -> InitResult:
        self.initialize_calls += 1
        if self.init_reason is not None:
            return InitResult.failed(self.init_reason)
        return InitResult.ok()

    def tick(self) -> None:
        self.tick_calls += 1
        ready = (
            self.frames_enabled
            and self.frame_after_ticks is not None
            and self.tick_calls > self.frame_after_ticks
        )
        self._frame = CameraFrame(self.image, frame_id=self.tick_calls) if ready else None

    def current_frame(self) -> Optional[CameraFrame]:
        self.current_frame_calls += 1
        return self._frame

    def dispose(self) -> None:
        self.dispose_calls += 1
        self._frame = None


class FaultyProvider(FakeProvider):
    """FakeProvider that raises from chosen calls."""

    def __init__(self, name="faulty", init_error=None, tick_error=None, tick_error_at=1,
                 frame_error=None, dispose_error=None, **kwargs):
        super().__init__(name, **kwargs)
        self.init_error = init_error
        self.tick_error = tick_error
        self.tick_error_at = tick_error_at
        self.frame_error = frame_error
        self.dispose_error = dispose_error

    def initialize(self, context) -> InitResult:
        result = super().initialize(context)
        if self.init_error is not None:
            raise self.init_error
        return result

    def tick(self) -> None:
        super().tick()
        if self.tick_error is not None and self.tick_calls >= self.tick_error_at:
            raise self.tick_error

    def current_frame(self) -> Optional[CameraFrame]:
        frame = super().current_frame()
        if self.frame_error is not None:
            raise self.frame_error
        return frame

    def dispose(self) -> None:
        super().dispose()
        if self.dispose_error is not None:
            raise self.dispose_error


def factory_for(provider: FakeProvider):
    """Provider factory returning a prebuilt fake."""
    return lambda: provider


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> ColorFinderConfig:
    return ColorFinderConfig()


@pytest.fixture
def make_context(clock, config):
    """Build an AppContext with the fake clock and a chosen permission answer."""

    def _make(granted: bool = True, **overrides) -> AppContext:
        for key, value in overrides.items():
            setattr(config, key, value)
        return AppContext(
            config=config,
            clock=clock,
            permissions=StaticPermissions(grant_on_request=granted),
        )

    return _make


@pytest.fixture
def red_frame() -> CameraFrame:
    return CameraFrame(flat_image((255, 0, 0), 96, 80))
