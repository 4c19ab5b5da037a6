"""
Runtime Mode Controller.

Sole owner of RuntimeMode and of provider binding.

State machine:
    UNINITIALIZED --permission denied--> BASIC_STYLING
    UNINITIALIZED --permission granted--> PROBING_PROVIDERS
    PROBING_PROVIDERS --frame within timeout--> ADVANCED_CAMERA_MASK
    PROBING_PROVIDERS --all candidates failed--> BASIC_STYLING
    ADVANCED_CAMERA_MASK --user request / frame loss--> BASIC_STYLING
    BASIC_STYLING --user request, permission granted--> PROBING_PROVIDERS

Probing is a cooperative routine: each candidate is initialized, then polled
once per tick until it produces a frame or its wall-clock timeout expires.
A candidate that does not end up bound is disposed exactly once, including
when probing is cancelled mid-way. An exception from a provider is a local failure:
the candidate is skipped, or a bound provider is dropped to basic styling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generator, List, Optional, Sequence

from loguru import logger

from colorfinder.calibration.sampler import CalibrationSampler
from colorfinder.capture.base import CameraSourceProvider, ProviderCandidate
from colorfinder.core.color_space import lerp_color, scale_color
from colorfinder.core.contracts import (
    BasicStylingParams,
    CalibrationResult,
    CameraFrame,
    ColorProfile,
    HighlightStyle,
    ProbeOutcome,
    RuntimeMode,
)
from colorfinder.core.errors import (
    CalibrationNotActive,
    CalibrationReadbackFailed,
    CompositorUnavailable,
    PermissionDenied,
    ProviderInitFailed,
    ProviderTimedOut,
)
from colorfinder.pipeline.scheduler import Routine

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


ProviderFactory = Callable[[], CameraSourceProvider]
ModeObserver = Callable[[RuntimeMode, RuntimeMode], None]

WHITE = (1.0, 1.0, 1.0)

BASIC_FALLBACK_MESSAGE = "Camera access unavailable. Using Basic styling."
ADVANCED_ENABLED_MESSAGE = "Advanced camera mask enabled."


class ModeController:
    """
    Drives provider discovery and mode transitions.

    All transitions happen on the tick thread: from routines stepped by the
    scheduler, from tick(), or from request_* calls made while draining
    control events.
    """

    def __init__(
        self,
        context: AppContext,
        provider_factories: Sequence[ProviderFactory],
    ):
        """
        Initialize mode controller.

        Args:
            context: Shared application context
            provider_factories: Candidate constructors in priority order
        """
        self.context = context
        self._factories = list(provider_factories)

        self._mode = RuntimeMode.UNINITIALIZED
        self._bound: Optional[CameraSourceProvider] = None
        self._bound_name: Optional[str] = None
        self._just_bound = False

        self._permission_granted: Optional[bool] = None
        self._compositor_pinned = False

        self._probe_routine: Optional[Routine] = None
        self._calibration_routine: Optional[Routine] = None

        self._frame_lost_since: Optional[float] = None

        self.candidates: List[ProviderCandidate] = []
        self.last_failure_reason: Optional[str] = None

        self._observers: List[ModeObserver] = []

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def start(self):
        """Begin startup: await camera permission, then probe providers."""
        if self._mode != RuntimeMode.UNINITIALIZED or self._probe_routine is not None:
            logger.debug("Mode controller already started")
            return

        logger.info("Mode controller starting")
        self._probe_routine = self.context.scheduler.spawn(
            "startup", self._startup(), on_done=self._on_probe_done
        )
        if self._probe_routine.done:
            self._probe_routine = None

    def shutdown(self):
        """Cancel routines and release the bound provider."""
        self._cancel_probe()
        if self._calibration_routine is not None:
            self._calibration_routine.cancel()
            self._calibration_routine = None
        self._unbind()
        logger.info("Mode controller stopped")

    def tick(self):
        """
        Per-tick upkeep while bound: advance the provider and watch for
        frame loss.
        """
        if self._mode != RuntimeMode.ADVANCED_CAMERA_MASK or self._bound is None:
            return

        try:
            if self._just_bound:
                # Probing already ticked the provider this frame
                self._just_bound = False
            else:
                self._bound.tick()
            frame = self._bound.current_frame()
        except Exception as e:
            self._drop_failed_provider(e)
            return

        now = self.context.now()

        if frame is None or frame.is_empty:
            if self._frame_lost_since is None:
                self._frame_lost_since = now
                self.context.status.warning(
                    f"Camera frame unavailable from {self._bound_name}. Waiting..."
                )
            elif now - self._frame_lost_since >= self.context.config.frame_loss_timeout_seconds:
                lost_for = now - self._frame_lost_since
                logger.warning(f"No frames from {self._bound_name} for {lost_for:.1f}s")
                self._unbind()
                self._enter_basic(
                    f"{BASIC_FALLBACK_MESSAGE} Camera stopped delivering frames."
                )
        elif self._frame_lost_since is not None:
            self._frame_lost_since = None
            self.context.status.info(ADVANCED_ENABLED_MESSAGE)

    # ============================================================
    # STARTUP / PROBING ROUTINES
    # ============================================================

    def _startup(self) -> Generator[None, None, None]:
        granted = yield from self._await_permission()
        self._permission_granted = granted

        if not granted:
            self._enter_basic(PermissionDenied().status_message)
            return

        if self._compositor_pinned:
            self._enter_basic(CompositorUnavailable().status_message)
            return

        yield from self._probe_providers()

    def _await_permission(self) -> Generator[None, None, bool]:
        permissions = self.context.permissions
        ids = self.context.config.permission_ids

        if any(permissions.has_permission(pid) for pid in ids):
            logger.info("Camera permission already granted")
            return True

        requests = [permissions.request_permission(pid) for pid in ids]
        deadline = self.context.now() + self.context.config.permission_timeout_seconds

        while True:
            if any(r.resolved and r.granted for r in requests):
                logger.info("Camera permission granted")
                return True
            if all(r.resolved for r in requests):
                logger.warning("Camera permission denied")
                return False
            if self.context.now() >= deadline:
                logger.warning("Camera permission request timed out")
                return False
            yield

    def _probe_providers(self) -> Generator[None, None, None]:
        self._set_mode(RuntimeMode.PROBING_PROVIDERS)
        self.candidates = []
        self.last_failure_reason = None
        timeout = self.context.config.probe_timeout_seconds

        for rank, factory in enumerate(self._factories):
            try:
                provider = factory()
            except Exception as e:
                error = ProviderInitFailed(
                    f"#{rank}", f"Camera provider #{rank} could not be created: {e}"
                )
                self.last_failure_reason = error.status_message
                logger.warning(error.status_message)
                continue

            candidate = ProviderCandidate(name=provider.name, rank=rank, provider=provider)
            self.candidates.append(candidate)
            bound = False

            try:
                logger.info(f"Probing camera provider '{candidate.name}'")
                result = provider.initialize(self.context)
                if not result.success:
                    error = ProviderInitFailed(candidate.name, result.reason)
                    self._fail_candidate(candidate, error)
                    continue

                deadline = self.context.now() + timeout
                while True:
                    provider.tick()
                    if provider.has_frame:
                        candidate.outcome = ProbeOutcome.PASSED
                        self._bind(candidate)
                        bound = True
                        return

                    if self.context.now() >= deadline:
                        error = ProviderTimedOut(candidate.name, timeout)
                        candidate.outcome = ProbeOutcome.TIMED_OUT
                        candidate.failure_reason = error.status_message
                        self.last_failure_reason = error.status_message
                        logger.warning(error.status_message)
                        break

                    yield

            except Exception as e:
                error = ProviderInitFailed(candidate.name, f"{candidate.name} failed to start: {e}")
                self._fail_candidate(candidate, error)

            finally:
                if not bound:
                    self._dispose_quietly(provider, candidate.name)

        reason = self.last_failure_reason or "No camera providers are configured."
        self._enter_basic(f"{BASIC_FALLBACK_MESSAGE} {reason}")

    def _fail_candidate(self, candidate: ProviderCandidate, error: ProviderInitFailed):
        candidate.outcome = ProbeOutcome.FAILED
        candidate.failure_reason = error.status_message
        self.last_failure_reason = error.status_message
        logger.warning(f"Provider '{candidate.name}' failed: {error.status_message}")

    @staticmethod
    def _dispose_quietly(provider: CameraSourceProvider, name: Optional[str]):
        try:
            provider.dispose()
        except Exception as e:
            logger.warning(f"Error disposing camera provider '{name}': {e}")

    def _on_probe_done(self, routine: Routine):
        if self._probe_routine is routine:
            self._probe_routine = None

        if routine.error is not None and self._mode in (
            RuntimeMode.UNINITIALIZED,
            RuntimeMode.PROBING_PROVIDERS,
        ):
            self.last_failure_reason = f"Provider probing failed: {routine.error}"
            self._enter_basic(f"{BASIC_FALLBACK_MESSAGE} {self.last_failure_reason}")

    def _begin_probing(self):
        self._probe_routine = self.context.scheduler.spawn(
            "probe", self._probe_providers(), on_done=self._on_probe_done
        )
        if self._probe_routine.done:
            self._probe_routine = None

    def _cancel_probe(self):
        if self._probe_routine is not None:
            self._probe_routine.cancel()
            self._probe_routine = None

    # ============================================================
    # BINDING
    # ============================================================

    def _bind(self, candidate: ProviderCandidate):
        self._bound = candidate.provider
        self._bound_name = candidate.name
        self._just_bound = True
        self._frame_lost_since = None
        logger.info(f"Bound camera provider '{candidate.name}'")
        self._set_mode(RuntimeMode.ADVANCED_CAMERA_MASK)
        self.context.status.info(ADVANCED_ENABLED_MESSAGE)

    def _unbind(self):
        if self._bound is None:
            return
        provider, name = self._bound, self._bound_name
        self._bound = None
        self._bound_name = None
        self._frame_lost_since = None
        self._dispose_quietly(provider, name)
        logger.info(f"Unbound camera provider '{name}'")

    def _drop_failed_provider(self, error: Exception):
        name = self._bound_name
        logger.error(f"Camera provider '{name}' raised while bound: {error}")
        self._unbind()
        self._enter_basic(f"{BASIC_FALLBACK_MESSAGE} Camera provider {name} failed: {error}")

    def _enter_basic(self, message: str):
        self._set_mode(RuntimeMode.BASIC_STYLING)
        self.context.status.warning(message)

    def _set_mode(self, mode: RuntimeMode):
        previous = self._mode
        if previous == mode:
            return
        self._mode = mode
        logger.info(f"Mode: {previous.name} -> {mode.name}")
        for observer in list(self._observers):
            observer(previous, mode)

    # ============================================================
    # REQUESTS
    # ============================================================

    def request_mode(self, mode: RuntimeMode) -> bool:
        """
        Handle an explicit user mode request.

        Returns:
            True if the request was accepted
        """
        if mode == RuntimeMode.BASIC_STYLING:
            return self._request_basic()
        if mode == RuntimeMode.ADVANCED_CAMERA_MASK:
            return self._request_advanced()

        logger.warning(f"Mode {mode.name} cannot be requested directly")
        return False

    def _request_basic(self) -> bool:
        if self._mode == RuntimeMode.BASIC_STYLING:
            return True

        self._cancel_probe()
        self._unbind()
        self._set_mode(RuntimeMode.BASIC_STYLING)
        self.context.status.info("Basic styling active.")
        return True

    def _request_advanced(self) -> bool:
        if self._compositor_pinned:
            self.context.status.warning(CompositorUnavailable().status_message)
            return False

        if self._mode in (RuntimeMode.ADVANCED_CAMERA_MASK, RuntimeMode.PROBING_PROVIDERS):
            return True

        if self._permission_granted is None:
            if self._probe_routine is not None:
                logger.info("Advanced mode requested before camera permission resolved")
                self.context.status.info("Waiting for camera permission...")
                return False
            # Startup was cancelled before permission resolved; ask again
            self._probe_routine = self.context.scheduler.spawn(
                "startup", self._startup(), on_done=self._on_probe_done
            )
            if self._probe_routine.done:
                self._probe_routine = None
            return True

        if not self._permission_granted:
            self.context.status.warning(PermissionDenied().status_message)
            return False

        self._begin_probing()
        return True

    def request_calibration(
        self,
        sampler: CalibrationSampler,
        on_result: Callable[[CalibrationResult], None],
    ) -> Optional[Routine]:
        """
        Start a center calibration against the bound provider.

        Rejected immediately, without touching any frame, unless advanced
        mode is active with a bound provider. Only one calibration runs at
        a time.
        """
        if not self.is_live:
            on_result(CalibrationResult.failure(CalibrationNotActive()))
            return None

        if self._calibration_routine is not None and not self._calibration_routine.done:
            logger.info("Calibration already in progress")
            return self._calibration_routine

        provider = self._bound

        def still_live() -> bool:
            return self._mode == RuntimeMode.ADVANCED_CAMERA_MASK and self._bound is provider

        def finished(routine: Routine):
            if self._calibration_routine is routine:
                self._calibration_routine = None
            if routine.error is not None:
                on_result(CalibrationResult.failure(CalibrationReadbackFailed(routine.error)))
            else:
                on_result(routine.result)

        routine = self.context.scheduler.spawn(
            "calibration",
            sampler.calibrate_center(provider, still_live),
            on_done=finished,
        )
        if not routine.done:
            self._calibration_routine = routine
        return routine

    def set_compositor_available(self, available: bool):
        """
        Record whether advanced compositing is possible.

        Unavailability is durable: the session is pinned to basic styling.
        """
        if available or self._compositor_pinned:
            return

        self._compositor_pinned = True
        logger.warning("Compositor cannot do advanced masking; pinning to basic styling")
        if self._mode in (RuntimeMode.PROBING_PROVIDERS, RuntimeMode.ADVANCED_CAMERA_MASK):
            self._cancel_probe()
            self._unbind()
            self._enter_basic(CompositorUnavailable().status_message)

    # ============================================================
    # BASIC STYLING
    # ============================================================

    @staticmethod
    def basic_params(style: HighlightStyle, profile: ColorProfile) -> BasicStylingParams:
        """Basic-mode styling for a (style, profile) pair."""
        accent = profile.accent_color

        if style == HighlightStyle.GLOW_OVERLAY:
            return BasicStylingParams(
                brightness=0.03,
                contrast=0.25,
                posterize=0.08,
                edge_rendering=True,
                edge_color_dim=scale_color(accent, 0.5),
                edge_color_bright=accent,
                color_scale=WHITE,
                color_offset=(0.0, 0.0, 0.0),
            )

        edge = scale_color(accent, 0.2)
        return BasicStylingParams(
            brightness=-0.02,
            contrast=0.35,
            posterize=0.18,
            edge_rendering=False,
            edge_color_dim=edge,
            edge_color_bright=edge,
            color_scale=lerp_color(WHITE, accent, 0.1),
            color_offset=(-0.03, -0.03, -0.03),
        )

    @staticmethod
    def neutral_params() -> BasicStylingParams:
        """Styling when basic presentation is inactive."""
        return BasicStylingParams()

    # ============================================================
    # OBSERVERS / STATE
    # ============================================================

    def add_mode_observer(self, observer: ModeObserver):
        self._observers.append(observer)

    def current_frame(self) -> Optional[CameraFrame]:
        """Borrow the bound provider's frame for this tick."""
        if self._mode != RuntimeMode.ADVANCED_CAMERA_MASK or self._bound is None:
            return None
        try:
            frame = self._bound.current_frame()
        except Exception as e:
            self._drop_failed_provider(e)
            return None
        if frame is None or frame.is_empty:
            return None
        return frame

    @property
    def mode(self) -> RuntimeMode:
        return self._mode

    @property
    def bound_provider(self) -> Optional[CameraSourceProvider]:
        return self._bound

    @property
    def bound_provider_name(self) -> Optional[str]:
        return self._bound_name

    @property
    def is_live(self) -> bool:
        return self._mode == RuntimeMode.ADVANCED_CAMERA_MASK and self._bound is not None

    @property
    def permission_granted(self) -> Optional[bool]:
        return self._permission_granted

    @property
    def compositor_pinned(self) -> bool:
        return self._compositor_pinned

    @property
    def calibrating(self) -> bool:
        return self._calibration_routine is not None and not self._calibration_routine.done
