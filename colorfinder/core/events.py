"""
Control Events and Control Bus.

Handles:
- Typed control messages emitted by the control surface
- Thread-safe queueing from input threads (keyboard listener)
- Draining and dispatch at the start of each tick
"""

from __future__ import annotations

import queue
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Type

from loguru import logger

from colorfinder.core.contracts import ColorPreset, HighlightStyle, RuntimeMode


# ============================================================
# EVENT TYPES
# ============================================================

@dataclass(frozen=True)
class ControlEvent:
    """Base class for control surface messages."""


@dataclass(frozen=True)
class PresetSelected(ControlEvent):
    preset: ColorPreset


@dataclass(frozen=True)
class StyleChanged(ControlEvent):
    style: HighlightStyle


@dataclass(frozen=True)
class ToleranceChanged(ControlEvent):
    hue: float
    saturation: float
    value: float


@dataclass(frozen=True)
class CalibrateRequested(ControlEvent):
    pass


@dataclass(frozen=True)
class AdvancedPanelToggled(ControlEvent):
    shown: bool


@dataclass(frozen=True)
class ModeRequested(ControlEvent):
    mode: RuntimeMode


@dataclass(frozen=True)
class QuitRequested(ControlEvent):
    pass


Handler = Callable[[ControlEvent], None]


# ============================================================
# CONTROL BUS
# ============================================================

class ControlBus:
    """
    Observer bus for control events.

    publish() may be called from any thread. Events are only delivered to
    subscribers when drain() runs on the tick thread, so handlers never
    race with per-tick processing.
    """

    def __init__(self):
        self._pending: "queue.SimpleQueue[ControlEvent]" = queue.SimpleQueue()
        self._subscribers: DefaultDict[Type[ControlEvent], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[ControlEvent], handler: Handler):
        """Register a handler for an event type (exact type match)."""
        self._subscribers[event_type].append(handler)

    def publish(self, event: ControlEvent):
        """Queue an event for delivery on the next drain."""
        self._pending.put(event)

    def drain(self) -> int:
        """
        Deliver all queued events in publish order.

        Returns:
            Number of events delivered
        """
        delivered = 0
        while True:
            try:
                event = self._pending.get_nowait()
            except queue.Empty:
                break

            handlers = self._subscribers.get(type(event), [])
            if not handlers:
                logger.debug(f"No handler for {type(event).__name__}")
            for handler in handlers:
                handler(event)
            delivered += 1

        return delivered

    @property
    def pending(self) -> bool:
        return not self._pending.empty()
