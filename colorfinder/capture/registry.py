"""
Provider and capability registry.

Providers are listed here explicitly; the configured order decides probing
priority. Camera-access capabilities are declared with register_capability.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from loguru import logger

from colorfinder.capture.base import CameraSourceProvider
from colorfinder.capture.capabilities import register_capability
from colorfinder.capture.headset_provider import HeadsetCameraProvider
from colorfinder.capture.quest_stream import QuestStreamCapability
from colorfinder.capture.webcam_provider import WebcamProvider
from colorfinder.config import ColorFinderConfig


ProviderFactory = Callable[[], CameraSourceProvider]

# Registry of available providers
PROVIDERS: Dict[str, ProviderFactory] = {
    "headset": HeadsetCameraProvider,
    "webcam": WebcamProvider,
}

register_capability("quest_stream", QuestStreamCapability.from_context)


def get_provider(name: str) -> CameraSourceProvider:
    """Create a provider instance by name.

    Raises:
        ValueError: If the provider name is not registered
    """
    if name not in PROVIDERS:
        available = ", ".join(PROVIDERS.keys())
        raise ValueError(f"Unknown provider '{name}'. Available: {available}")

    return PROVIDERS[name]()


def list_providers() -> List[str]:
    return list(PROVIDERS.keys())


def configured_factories(config: ColorFinderConfig) -> List[ProviderFactory]:
    """Provider factories in configured priority order. Unknown names are skipped."""
    factories = []
    for name in config.provider_order:
        if name not in PROVIDERS:
            logger.warning(f"Ignoring unknown provider '{name}' in config")
            continue
        factories.append(PROVIDERS[name])
    return factories
