#!/usr/bin/env python3
"""
Color Finder for Meta Quest 3 Passthrough

Main entry point. Highlights real-world objects of a chosen color in the
live camera feed, either by turning everything else black and white or by
drawing a pulsing glow around matching pixels.

Usage:
    python main.py [--config CONFIG_PATH] [--preset NAME] [--device INDEX]

Keyboard Controls:
    N       - Next color preset
    1-6     - Select preset (Red, Blue, Yellow, Green, Black, White)
    Tab     - Toggle style (B/W except target / Glow overlay)
    Enter   - Calibrate target from the center of the view
    A / B   - Request Advanced camera mask / Basic styling
    P       - Show/hide advanced panel
    [ / ]   - Narrow / widen hue tolerance
    Q / ESC - Quit

Headset setup (passthrough stream):
    adb reverse tcp:9090 tcp:9090
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from loguru import logger
from pynput import keyboard

from colorfinder.capture.registry import configured_factories
from colorfinder.config import ColorFinderConfig, load_config
from colorfinder.core.context import AppContext
from colorfinder.core.contracts import HighlightStyle, RuntimeMode, TickOutput
from colorfinder.core.events import (
    AdvancedPanelToggled,
    CalibrateRequested,
    ControlBus,
    ModeRequested,
    PresetSelected,
    QuitRequested,
    StyleChanged,
    ToleranceChanged,
)
from colorfinder.core.permissions import StaticPermissions
from colorfinder.pipeline.mode_controller import ModeController
from colorfinder.pipeline.session import ColorFinderSession
from colorfinder.profiles import catalog
from colorfinder.render.compositor import NullCompositor, PreviewCompositor


HUE_TOLERANCE_STEP = 0.01


# ============================================================
# LOGGING CONFIGURATION
# ============================================================

def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging."""
    logger.remove()  # Remove default handler

    # Console output with colors
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        colorize=True,
    )

    # File output
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {module}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )


# ============================================================
# KEYBOARD INPUT HANDLER
# ============================================================

class KeyboardHandler:
    """
    Maps quick-control keys to control events.

    Runs on the pynput listener thread, so it only publishes to the bus;
    the session applies events at the start of the next tick.
    """

    def __init__(self, bus: ControlBus, session: ColorFinderSession):
        self.bus = bus
        self.session = session
        self._panel_shown = False

    def on_press(self, key):
        """Handle key press events."""
        if key == keyboard.Key.esc:
            self.bus.publish(QuitRequested())
            return
        if key == keyboard.Key.tab:
            self._toggle_style()
            return
        if key == keyboard.Key.enter:
            self.bus.publish(CalibrateRequested())
            return

        char = getattr(key, 'char', None)
        if char:
            self.handle_char(char.lower())

    def handle_char(self, char: str):
        """Handle a character key."""
        presets = catalog.presets()

        if char == 'q':
            self.bus.publish(QuitRequested())
        elif char == 'n':
            self.bus.publish(PresetSelected(catalog.next_preset(self.session.profile.preset)))
        elif char.isdigit() and 1 <= int(char) <= len(presets):
            self.bus.publish(PresetSelected(presets[int(char) - 1]))
        elif char == 'a':
            self.bus.publish(ModeRequested(RuntimeMode.ADVANCED_CAMERA_MASK))
        elif char == 'b':
            self.bus.publish(ModeRequested(RuntimeMode.BASIC_STYLING))
        elif char == 'p':
            self._panel_shown = not self._panel_shown
            self.bus.publish(AdvancedPanelToggled(self._panel_shown))
        elif char in '[]':
            self._nudge_hue_tolerance(-HUE_TOLERANCE_STEP if char == '[' else HUE_TOLERANCE_STEP)

    def _toggle_style(self):
        if self.session.style == HighlightStyle.BW_EXCEPT_TARGET:
            self.bus.publish(StyleChanged(HighlightStyle.GLOW_OVERLAY))
        else:
            self.bus.publish(StyleChanged(HighlightStyle.BW_EXCEPT_TARGET))

    def _nudge_hue_tolerance(self, delta: float):
        tol = self.session.profile.tolerance_hsv
        self.bus.publish(ToleranceChanged(tol.h + delta, tol.s, tol.v))


# ============================================================
# OUTPUT RENDERER
# ============================================================

class OutputRenderer:
    """Renders the compositor preview with a status overlay."""

    def __init__(
        self,
        window_name: str = "Color Finder",
        display_info: bool = True,
        placeholder_size: tuple = (1280, 720),
    ):
        self.window_name = window_name
        self.display_info = display_info
        self.placeholder_size = placeholder_size

        # Create window
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)

    def render(self, output: TickOutput, fps: float = 0, panel_shown: bool = False):
        """Render a tick's image with overlay information."""
        if output.image is not None:
            # Convert RGB to BGR for OpenCV display
            display_frame = cv2.cvtColor(output.image, cv2.COLOR_RGB2BGR)
        else:
            display_frame = self._placeholder(output)

        if self.display_info:
            self._draw_info_overlay(display_frame, output, fps, panel_shown)

        cv2.imshow(self.window_name, display_frame)

    def _placeholder(self, output: TickOutput) -> np.ndarray:
        """Accent swatch shown while no image was presented (startup, probing, headless)."""
        w, h = self.placeholder_size
        frame = np.full((h, w, 3), 24, dtype=np.uint8)
        r, g, b = output.profile.accent_color
        cv2.circle(frame, (w // 2, h // 2), min(w, h) // 6, (int(b * 255), int(g * 255), int(r * 255)), -1)
        return frame

    def _draw_info_overlay(
        self,
        frame: np.ndarray,
        output: TickOutput,
        fps: float,
        panel_shown: bool,
    ):
        """Draw information overlay on frame."""
        h, w = frame.shape[:2]

        # Background for text
        overlay = frame.copy()
        panel_height = 160 if panel_shown else 100
        cv2.rectangle(overlay, (10, 10), (520, panel_height), (0, 0, 0), -1)
        cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

        if output.mode == RuntimeMode.ADVANCED_CAMERA_MASK:
            color = (0, 255, 0)  # Green when masking
        elif output.mode == RuntimeMode.BASIC_STYLING:
            color = (0, 200, 255)  # Orange in basic styling
        else:
            color = (200, 200, 200)

        style = "B/W" if output.style == HighlightStyle.BW_EXCEPT_TARGET else "Glow"
        cv2.putText(
            frame, f"{output.profile.display_name} | {style} | {output.mode.name}", (20, 35),
            cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 1
        )
        cv2.putText(
            frame, f"FPS: {fps:.1f}  Mask: {output.segmentation_ms:.1f}ms  "
                   f"Source: {output.provider_name or '-'}", (20, 60),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1
        )

        status = output.status[:70] + "..." if len(output.status) > 70 else output.status
        cv2.putText(
            frame, status, (20, 85),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 200, 100), 1
        )

        if panel_shown:
            tol = output.profile.tolerance_hsv
            target = output.profile.target_hsv
            cv2.putText(
                frame, f"Target h={target.h:.2f} s={target.s:.2f} v={target.v:.2f}", (20, 115),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1
            )
            cv2.putText(
                frame, f"Tolerance h={tol.h:.3f} s={tol.s:.2f} v={tol.v:.2f}  [ ] adjust hue", (20, 140),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1
            )

        # Help text at bottom
        help_text = "N/1-6:Color  Tab:Style  Enter:Calibrate  A/B:Mode  P:Panel  Q:Quit"
        cv2.putText(
            frame, help_text, (10, h - 10),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (200, 200, 200), 1
        )

    def close(self):
        """Close the renderer."""
        cv2.destroyAllWindows()


# ============================================================
# MAIN APPLICATION
# ============================================================

class ColorFinderApp:
    """Main application class."""

    def __init__(self, config: ColorFinderConfig, preset: Optional[str] = None, headless: bool = False):
        self.config = config
        self.headless = headless

        self.context = AppContext(
            config=config,
            permissions=StaticPermissions(grant_on_request=config.grant_camera_permission),
        )
        self.controller = ModeController(self.context, configured_factories(config))

        compositor = NullCompositor() if headless else PreviewCompositor()
        self.session = ColorFinderSession(
            self.context,
            self.controller,
            compositor=compositor,
            preset=catalog.by_name(preset) if preset else None,
        )

        self.keyboard_handler = KeyboardHandler(self.context.bus, self.session)
        self.renderer = None if headless else OutputRenderer()

    def run(self):
        """Run the main application loop."""
        logger.info("Starting Color Finder")
        logger.info("Press Q to quit, N for next color, Tab to switch style")

        # Start keyboard listener
        listener = keyboard.Listener(on_press=self.keyboard_handler.on_press)
        listener.start()

        self.session.start()

        frame_interval = 1.0 / max(1, self.config.target_fps)
        frame_count = 0
        start_time = time.time()

        try:
            while not self.session.quit_requested:
                tick_start = time.perf_counter()

                output = self.session.tick()

                # Calculate FPS
                frame_count += 1
                elapsed = time.time() - start_time
                fps = frame_count / elapsed if elapsed > 0 else 0

                if self.renderer is not None:
                    self.renderer.render(output, fps=fps, panel_shown=self.session.panel_shown)

                    # Handle OpenCV window events
                    key = cv2.waitKey(1) & 0xFF
                    if key == ord('q'):
                        break

                # Pace to the target frame rate
                remaining = frame_interval - (time.perf_counter() - tick_start)
                if remaining > 0:
                    time.sleep(remaining)

        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            listener.stop()
            self.session.stop()
            if self.renderer is not None:
                self.renderer.close()
            logger.info("Color Finder stopped")


# ============================================================
# ENTRY POINT
# ============================================================

def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Color Finder for Meta Quest 3 Passthrough",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--device", "-d",
        type=int,
        default=None,
        help="Webcam device index (default: first available)",
    )

    parser.add_argument(
        "--preset",
        type=str,
        default=None,
        choices=[p.value for p in catalog.presets()],
        help="Starting color preset",
    )

    parser.add_argument(
        "--no-webcam",
        action="store_true",
        help="Disable the local webcam fallback",
    )

    permission = parser.add_mutually_exclusive_group()
    permission.add_argument(
        "--grant-permission",
        dest="grant_permission",
        action="store_const",
        const=True,
        help="Grant camera permission when requested",
    )
    permission.add_argument(
        "--deny-permission",
        dest="grant_permission",
        action="store_const",
        const=False,
        help="Deny camera permission (forces Basic styling)",
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without a preview window",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default="logs/color_finder.log",
        help="Log file path (default: logs/color_finder.log)",
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging(args.log_level, args.log_file)

    config = load_config(args.config)
    if args.device is not None:
        config.webcam_device = args.device
    if args.no_webcam:
        config.enable_webcam_fallback = False
    if args.grant_permission is not None:
        config.grant_camera_permission = args.grant_permission

    # Create and run app
    app = ColorFinderApp(config, preset=args.preset, headless=args.headless)
    app.run()


if __name__ == "__main__":
    main()
