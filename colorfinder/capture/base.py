"""
Base class for camera source providers.

To add a new provider:
1. Create a new file in the capture/ directory
2. Inherit from CameraSourceProvider
3. Implement initialize(), tick(), current_frame() and dispose()
4. Register it in capture/registry.py PROVIDERS

Providers never raise out of initialize(): every failure is a soft failure
reported through InitResult so the Mode Controller can try the next
candidate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from colorfinder.core.contracts import CameraFrame, InitResult, ProbeOutcome

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


class CameraSourceProvider(ABC):
    """Abstract base class for camera sources.

    Lifecycle: initialize() once, tick() once per frame while bound,
    dispose() exactly once when unbound or abandoned. The frame returned by
    current_frame() is owned by the provider and valid for the current tick
    only.
    """

    name: str = "provider"

    @abstractmethod
    def initialize(self, context: AppContext) -> InitResult:
        """Attach to the underlying camera.

        Returns:
            InitResult; failure carries a human-readable reason
        """
        pass

    @abstractmethod
    def tick(self) -> None:
        """Advance the provider by one frame (poll device, decode, etc.)."""
        pass

    @abstractmethod
    def current_frame(self) -> Optional[CameraFrame]:
        """Get the latest frame, or None when nothing is available yet."""
        pass

    @abstractmethod
    def dispose(self) -> None:
        """Release all resources. Must be safe to call more than once."""
        pass

    @property
    def has_frame(self) -> bool:
        frame = self.current_frame()
        return frame is not None and not frame.is_empty


@dataclass
class ProviderCandidate:
    """A ranked provider under probe, with its outcome."""
    name: str
    rank: int
    provider: CameraSourceProvider
    outcome: ProbeOutcome = ProbeOutcome.PENDING
    failure_reason: Optional[str] = None
