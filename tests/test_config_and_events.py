"""Tests for configuration loading, the control bus and status reporting.

Verifies that:
- Nested settings.yaml sections map onto ColorFinderConfig fields
- Missing files fall back to defaults
- Queued control events are delivered in publish order on drain only
- Status updates reach listeners
"""

from colorfinder.config import ColorFinderConfig, load_config
from colorfinder.core.contracts import ColorPreset, HighlightStyle
from colorfinder.core.events import (
    CalibrateRequested,
    ControlBus,
    PresetSelected,
    StyleChanged,
)
from colorfinder.core.permissions import PermissionRequest, StaticPermissions
from colorfinder.core.status import StatusReporter


class TestConfig:
    """YAML configuration."""

    def test_defaults(self) -> None:
        config = ColorFinderConfig()
        assert config.probe_timeout_seconds == 4.0
        assert config.provider_order == ["headset", "webcam"]
        assert config.default_preset == "red"

    def test_from_dict_reads_sections(self) -> None:
        config = ColorFinderConfig.from_dict({
            "permissions": {"grant_camera": False, "ids": ["cam"]},
            "providers": {"order": ["webcam"], "probe_timeout_seconds": 2},
            "webcam": {"device": 1},
            "segmentation": {"downsample": 0},
            "session": {"default_preset": "green"},
        })
        assert config.grant_camera_permission is False
        assert config.permission_ids == ["cam"]
        assert config.providers == ["webcam"]
        assert config.probe_timeout_seconds == 2.0
        assert config.webcam_device == 1
        assert config.mask_downsample == 1
        assert config.default_preset == "green"
        assert config.quest_stream_port == 9090

    def test_from_empty(self) -> None:
        assert ColorFinderConfig.from_dict(None) == ColorFinderConfig()

    def test_webcam_fallback_disabled(self) -> None:
        config = ColorFinderConfig.from_dict({"providers": {"enable_webcam_fallback": False}})
        assert config.provider_order == ["headset"]

    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("calibration:\n  patch_radius: 4\nsession:\n  target_fps: 30\n")
        config = load_config(str(path))
        assert config.calibration_patch_radius == 4
        assert config.target_fps == 30

    def test_bundled_settings_load(self) -> None:
        config = load_config()
        assert config.providers == ["headset", "webcam"]
        assert config.headset_capability == "quest_stream"


class TestControlBus:
    """Event queueing and dispatch."""

    def test_delivered_on_drain_in_order(self) -> None:
        bus = ControlBus()
        seen = []
        bus.subscribe(PresetSelected, lambda e: seen.append(e.preset))
        bus.subscribe(StyleChanged, lambda e: seen.append(e.style))

        bus.publish(PresetSelected(ColorPreset.BLUE))
        bus.publish(StyleChanged(HighlightStyle.GLOW_OVERLAY))
        bus.publish(PresetSelected(ColorPreset.RED))
        assert seen == []
        assert bus.pending

        assert bus.drain() == 3
        assert seen == [ColorPreset.BLUE, HighlightStyle.GLOW_OVERLAY, ColorPreset.RED]
        assert not bus.pending

    def test_unhandled_event_is_consumed(self) -> None:
        bus = ControlBus()
        bus.publish(CalibrateRequested())
        assert bus.drain() == 1
        assert bus.drain() == 0

    def test_events_published_while_draining_are_delivered(self) -> None:
        bus = ControlBus()
        seen = []

        def relay(event):
            seen.append(event)
            if event.preset == ColorPreset.RED:
                bus.publish(PresetSelected(ColorPreset.BLUE))

        bus.subscribe(PresetSelected, relay)
        bus.publish(PresetSelected(ColorPreset.RED))
        assert bus.drain() == 2
        assert [e.preset for e in seen] == [ColorPreset.RED, ColorPreset.BLUE]


class TestStatusReporter:
    """Status line."""

    def test_listeners_notified(self) -> None:
        status = StatusReporter()
        heard = []
        status.add_listener(heard.append)
        status.info("Target color: Red")
        status.warning("Camera permission denied.")
        assert heard == ["Target color: Red", "Camera permission denied."]
        assert status.message == "Camera permission denied."


class TestPermissions:
    """Desktop permission collaborator."""

    def test_request_resolves_immediately(self) -> None:
        permissions = StaticPermissions(grant_on_request=True)
        assert not permissions.has_permission("cam")
        request = permissions.request_permission("cam")
        assert request.resolved and request.granted
        assert permissions.has_permission("cam")

    def test_denied(self) -> None:
        request = StaticPermissions().request_permission("cam")
        assert request.resolved
        assert not request.granted

    def test_resolves_once(self) -> None:
        request = PermissionRequest("cam")
        request.resolve(False)
        request.resolve(True)
        assert not request.granted
