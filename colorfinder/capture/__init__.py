"""
Camera Capture Module.

Responsibilities:
- Camera source abstraction (headset passthrough, local webcam)
- Explicit provider and capability registration
- Per-tick frame acquisition
"""

from .base import CameraSourceProvider, ProviderCandidate
from .capabilities import CameraAccessCapability, register_capability
from .registry import PROVIDERS, get_provider, list_providers, configured_factories
