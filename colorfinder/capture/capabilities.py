"""
Headset camera-access capabilities.

A capability is a platform adapter that exposes one or more named frame
sources (e.g. left eye color texture, full stereo texture). Adapters are
registered explicitly by name; the headset provider looks them up here
and never discovers them by scanning.

To add a capability:
1. Subclass CameraAccessCapability
2. Call register_capability("name", factory) from capture/registry.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

import numpy as np
from numpy.typing import NDArray
from loguru import logger

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


FrameSource = Callable[[], Optional[NDArray[np.uint8]]]


class CameraAccessCapability(ABC):
    """Platform adapter for headset passthrough camera access."""

    @abstractmethod
    def start(self) -> None:
        """Attach to the platform camera. Raises on failure."""
        pass

    @abstractmethod
    def poll(self) -> None:
        """Pump the platform for new frames. Must never block."""
        pass

    @abstractmethod
    def frame_sources(self) -> Dict[str, FrameSource]:
        """Named frame accessors, in declaration order.

        Each accessor returns an RGB uint8 image or None.
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


CapabilityFactory = Callable[["AppContext"], CameraAccessCapability]

# Registry of camera-access adapters
CAPABILITIES: Dict[str, CapabilityFactory] = {}


def register_capability(name: str, factory: CapabilityFactory):
    """Declare a camera-access adapter under a name."""
    if name in CAPABILITIES:
        logger.debug(f"Replacing camera capability '{name}'")
    CAPABILITIES[name] = factory


def unregister_capability(name: str):
    CAPABILITIES.pop(name, None)


def get_capability(name: str) -> Optional[CapabilityFactory]:
    return CAPABILITIES.get(name)


def list_capabilities() -> List[str]:
    return list(CAPABILITIES.keys())
