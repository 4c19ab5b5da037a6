"""
Color Finder Session.

Owns the active profile and highlight style and runs the per-tick flow in
strict order:

1. Resume routines spawned on earlier ticks (startup/probing, calibration)
2. Drain control events (preset, style, tolerance, calibration, mode)
3. Mode controller upkeep (provider tick, frame-loss watch)
4. Snapshot the profile for this tick
5. Segment the borrowed frame (advanced mode only)
6. Present through the compositor

Every profile edit goes through _apply_profile(), on the tick thread, so a
tick never observes a half-applied profile.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from loguru import logger

from colorfinder.calibration.sampler import CalibrationSampler, apply_calibration
from colorfinder.core.contracts import (
    AdvancedCompositeInputs,
    CalibrationResult,
    ColorPreset,
    ColorProfile,
    HighlightStyle,
    RuntimeMode,
    TickOutput,
)
from colorfinder.core.events import (
    AdvancedPanelToggled,
    CalibrateRequested,
    ModeRequested,
    PresetSelected,
    QuitRequested,
    StyleChanged,
    ToleranceChanged,
)
from colorfinder.pipeline.mode_controller import ModeController
from colorfinder.profiles import catalog
from colorfinder.render.compositor import Compositor, NullCompositor
from colorfinder.segmentation.color_segmenter import ColorSegmenter

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


PULSE_RATE = 3.0
MIN_HIGHLIGHT_BOOST = 0.5

STYLE_MESSAGES = {
    HighlightStyle.BW_EXCEPT_TARGET: "Style 1 active: B/W except target.",
    HighlightStyle.GLOW_OVERLAY: "Style 2 active: Glow overlay.",
}


class ColorFinderSession:
    """
    Main session object.

    Wires the control bus to profile/style/mode changes and produces one
    TickOutput per rendered frame.
    """

    def __init__(
        self,
        context: AppContext,
        controller: ModeController,
        compositor: Optional[Compositor] = None,
        segmenter: Optional[ColorSegmenter] = None,
        sampler: Optional[CalibrationSampler] = None,
        preset: Optional[ColorPreset] = None,
    ):
        """
        Initialize session.

        Args:
            context: Shared application context
            controller: Mode controller (sole owner of mode and binding)
            compositor: Presentation backend (headless if omitted)
            segmenter: Mask producer (configured from context if omitted)
            sampler: Calibration sampler (configured from context if omitted)
            preset: Starting preset (config default_preset if omitted)
        """
        config = context.config
        self.context = context
        self.controller = controller
        self.compositor = compositor or NullCompositor()
        self.segmenter = segmenter or ColorSegmenter(config.mask_downsample, config.mask_min_size)
        self.sampler = sampler or CalibrationSampler(
            config.calibration_buffer_size, config.calibration_patch_radius
        )

        if preset is None:
            preset = self._default_preset(config.default_preset)
        self._profile: ColorProfile = catalog.get(preset)
        self._style = HighlightStyle.BW_EXCEPT_TARGET
        self._panel_shown = False
        self._quit_requested = False

        self._tick_id = 0
        self._started_at: Optional[float] = None
        self._last_output: Optional[TickOutput] = None

        bus = context.bus
        bus.subscribe(PresetSelected, self._on_preset_selected)
        bus.subscribe(StyleChanged, self._on_style_changed)
        bus.subscribe(ToleranceChanged, self._on_tolerance_changed)
        bus.subscribe(CalibrateRequested, self._on_calibrate_requested)
        bus.subscribe(AdvancedPanelToggled, self._on_panel_toggled)
        bus.subscribe(ModeRequested, self._on_mode_requested)
        bus.subscribe(QuitRequested, self._on_quit_requested)

        controller.add_mode_observer(self._on_mode_changed)

    @staticmethod
    def _default_preset(name: str) -> ColorPreset:
        try:
            return catalog.by_name(name)
        except ValueError as e:
            logger.warning(f"{e}. Falling back to {catalog.first().display_name}.")
            return catalog.first().preset

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def start(self):
        """Check the compositor and kick off camera discovery."""
        self._started_at = self.context.now()
        self.controller.set_compositor_available(self.compositor.is_available())
        self.context.status.info(f"Target color: {self._profile.display_name}")
        self.controller.start()

    def stop(self):
        self.context.scheduler.cancel_all()
        self.controller.shutdown()
        logger.info("Session stopped")

    # ============================================================
    # TICK
    # ============================================================

    def tick(self) -> TickOutput:
        """
        Run one frame of the session.

        Returns:
            TickOutput describing what was presented
        """
        self._tick_id += 1

        # Routines spawned while draining first resume on the next tick
        self.context.scheduler.tick()
        self.context.bus.drain()
        self.controller.tick()

        profile = self._profile
        style = self._style
        mode = self.controller.mode

        output = TickOutput(
            tick_id=self._tick_id,
            mode=mode,
            style=style,
            profile=profile,
            status=self.context.status.message,
            provider_name=self.controller.bound_provider_name,
        )

        if mode == RuntimeMode.ADVANCED_CAMERA_MASK:
            frame = self.controller.current_frame()
            if frame is not None:
                mask = self.segmenter.segment(frame, profile)
                output.mask = mask
                output.frame_available = True
                output.segmentation_ms = self.segmenter.last_ms
                output.image = self.compositor.present_advanced(
                    frame, self._advanced_inputs(mask, style, profile)
                )
        elif mode == RuntimeMode.BASIC_STYLING:
            params = self.controller.basic_params(style, profile)
            output.basic_params = params
            output.image = self.compositor.present_basic(
                style, profile, params, pulse=self.pulse()
            )
        else:
            output.basic_params = self.controller.neutral_params()

        self._last_output = output
        return output

    def pulse(self) -> float:
        """Highlight pulse phase in [0, 1]."""
        started = self._started_at if self._started_at is not None else 0.0
        elapsed = self.context.now() - started
        return 0.5 + 0.5 * math.sin(elapsed * PULSE_RATE)

    def _advanced_inputs(self, mask, style: HighlightStyle, profile: ColorProfile) -> AdvancedCompositeInputs:
        glow = style == HighlightStyle.GLOW_OVERLAY
        return AdvancedCompositeInputs(
            mask=mask,
            style=style,
            accent_color=profile.accent_color,
            highlight_boost=max(MIN_HIGHLIGHT_BOOST, profile.highlight_boost),
            pulse=self.pulse(),
            glow_width_px=2.0 if glow else 1.0,
            glow_intensity=2.2 if glow else 1.3,
            outside_desaturate=not glow,
        )

    # ============================================================
    # PROFILE
    # ============================================================

    def _apply_profile(self, profile: ColorProfile, reason: str):
        """Single entry point for profile edits. The next mask uses it."""
        self._profile = profile
        logger.debug(
            f"Profile applied ({reason}): target={tuple(round(x, 3) for x in profile.target_hsv)} "
            f"tol={tuple(round(x, 3) for x in profile.tolerance_hsv)}"
        )

    # ============================================================
    # EVENT HANDLERS
    # ============================================================

    def _on_preset_selected(self, event: PresetSelected):
        profile = catalog.get(event.preset)
        self._apply_profile(profile, "preset")
        self.context.status.info(f"Target color: {profile.display_name}")

    def _on_style_changed(self, event: StyleChanged):
        self._style = event.style
        self.context.status.info(STYLE_MESSAGES[event.style])

    def _on_tolerance_changed(self, event: ToleranceChanged):
        self._apply_profile(
            self._profile.with_tolerances(event.hue, event.saturation, event.value),
            "tolerance",
        )
        if self.controller.mode != RuntimeMode.ADVANCED_CAMERA_MASK:
            self.context.status.info(
                "Advanced thresholds apply only in Advanced Camera Mask mode."
            )

    def _on_calibrate_requested(self, event: CalibrateRequested):
        if self.controller.is_live:
            self.context.status.info("Calibrating from center sample...")
        self.controller.request_calibration(self.sampler, self._on_calibration_result)

    def _on_calibration_result(self, result: CalibrationResult):
        if not result.success or result.hsv is None:
            self.context.status.warning(result.error_message or "Calibration failed.")
            return

        calibrated = apply_calibration(self._profile, result.hsv)
        self._apply_profile(calibrated, "calibration")
        h, s, v = calibrated.target_hsv
        self.context.status.info(f"Calibrated hue={h:.2f}, sat={s:.2f}, val={v:.2f}")

    def _on_panel_toggled(self, event: AdvancedPanelToggled):
        self._panel_shown = event.shown
        logger.debug(f"Advanced panel {'shown' if event.shown else 'hidden'}")

    def _on_mode_requested(self, event: ModeRequested):
        self.controller.request_mode(event.mode)

    def _on_quit_requested(self, event: QuitRequested):
        self._quit_requested = True

    def _on_mode_changed(self, previous: RuntimeMode, current: RuntimeMode):
        if current == RuntimeMode.BASIC_STYLING and previous == RuntimeMode.ADVANCED_CAMERA_MASK:
            logger.info(f"Basic styling for {self._profile.display_name}")

    # ============================================================
    # STATE
    # ============================================================

    @property
    def profile(self) -> ColorProfile:
        return self._profile

    @property
    def style(self) -> HighlightStyle:
        return self._style

    @property
    def panel_shown(self) -> bool:
        return self._panel_shown

    @property
    def quit_requested(self) -> bool:
        return self._quit_requested

    @property
    def last_output(self) -> Optional[TickOutput]:
        return self._last_output
