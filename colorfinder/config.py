"""
Configuration for Color Finder.

Settings come from config/settings.yaml (sections: permissions, providers,
webcam, quest_stream, segmentation, calibration, session). Missing keys keep
the dataclass defaults; command-line flags in main.py override the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml
from loguru import logger


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"


@dataclass
class ColorFinderConfig:
    """Runtime configuration.

    Attributes:
        probe_timeout_seconds: How long an initialized provider may take to
            produce its first frame
        permission_timeout_seconds: How long to wait for a permission prompt
        permission_ids: Camera permissions to request; any grant counts
        grant_camera_permission: Desktop stand-in for the permission dialog
        providers: Provider names in priority order
        enable_webcam_fallback: Allow the local webcam provider
        headset_capability: Capability adapter name used by the headset provider
        mask_downsample: Segmentation resolution divisor
        frame_loss_timeout_seconds: Unbind after this long without frames
    """
    # Timeouts and permissions
    probe_timeout_seconds: float = 4.0
    permission_timeout_seconds: float = 8.0
    permission_ids: List[str] = field(default_factory=lambda: [
        "android.permission.CAMERA",
        "horizonos.permission.HEADSET_CAMERA",
    ])
    grant_camera_permission: bool = True

    # Providers
    providers: List[str] = field(default_factory=lambda: ["headset", "webcam"])
    enable_webcam_fallback: bool = True
    headset_capability: str = "quest_stream"

    # Quest passthrough stream (adb reverse tcp:9090 tcp:9090)
    quest_stream_host: str = "0.0.0.0"
    quest_stream_port: int = 9090

    # Webcam
    webcam_width: int = 1280
    webcam_height: int = 720
    webcam_fps: int = 30
    webcam_max_index: int = 4
    webcam_device: Optional[int] = None

    # Segmentation
    mask_downsample: int = 2
    mask_min_size: int = 64

    # Calibration
    calibration_buffer_size: int = 64
    calibration_patch_radius: int = 8

    # Session
    target_fps: int = 72
    frame_loss_timeout_seconds: float = 4.0
    default_preset: str = "red"

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> ColorFinderConfig:
        """Build a config from the nested settings.yaml structure."""
        data = data or {}
        config = cls()

        permissions = data.get('permissions', {})
        config.permission_timeout_seconds = float(
            permissions.get('timeout_seconds', config.permission_timeout_seconds)
        )
        config.permission_ids = list(permissions.get('ids', config.permission_ids))
        config.grant_camera_permission = bool(
            permissions.get('grant_camera', config.grant_camera_permission)
        )

        providers = data.get('providers', {})
        config.providers = list(providers.get('order', config.providers))
        config.probe_timeout_seconds = float(
            providers.get('probe_timeout_seconds', config.probe_timeout_seconds)
        )
        config.enable_webcam_fallback = bool(
            providers.get('enable_webcam_fallback', config.enable_webcam_fallback)
        )
        config.headset_capability = providers.get('headset_capability', config.headset_capability)

        stream = data.get('quest_stream', {})
        config.quest_stream_host = stream.get('host', config.quest_stream_host)
        config.quest_stream_port = int(stream.get('port', config.quest_stream_port))

        webcam = data.get('webcam', {})
        config.webcam_width = int(webcam.get('width', config.webcam_width))
        config.webcam_height = int(webcam.get('height', config.webcam_height))
        config.webcam_fps = int(webcam.get('fps', config.webcam_fps))
        config.webcam_max_index = int(webcam.get('max_index', config.webcam_max_index))
        config.webcam_device = webcam.get('device', config.webcam_device)

        segmentation = data.get('segmentation', {})
        config.mask_downsample = max(1, int(segmentation.get('downsample', config.mask_downsample)))
        config.mask_min_size = max(1, int(segmentation.get('min_size', config.mask_min_size)))

        calibration = data.get('calibration', {})
        config.calibration_buffer_size = int(
            calibration.get('buffer_size', config.calibration_buffer_size)
        )
        config.calibration_patch_radius = int(
            calibration.get('patch_radius', config.calibration_patch_radius)
        )

        session = data.get('session', {})
        config.target_fps = int(session.get('target_fps', config.target_fps))
        config.frame_loss_timeout_seconds = float(
            session.get('frame_loss_timeout_seconds', config.frame_loss_timeout_seconds)
        )
        config.default_preset = session.get('default_preset', config.default_preset)

        return config

    @property
    def provider_order(self) -> List[str]:
        """Configured provider names, minus the webcam when it is disabled."""
        return [
            name for name in self.providers
            if name != "webcam" or self.enable_webcam_fallback
        ]


def load_config(config_path: Optional[str] = None) -> ColorFinderConfig:
    """
    Load configuration from file.

    Falls back to config/settings.yaml next to the package, then to defaults.
    """
    candidates = []
    if config_path:
        candidates.append(Path(config_path))
    candidates.append(DEFAULT_CONFIG_PATH)

    for path in candidates:
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f)
            logger.info(f"Loaded config from {path}")
            return ColorFinderConfig.from_dict(data)

    if config_path:
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
    return ColorFinderConfig()
