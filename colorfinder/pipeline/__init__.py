"""
Session pipeline.

Responsibilities:
- Cooperative tick scheduling of multi-frame routines
- Runtime mode state machine and provider binding
- Per-tick session flow
"""

from .scheduler import Routine, TickScheduler
from .mode_controller import ModeController
from .session import ColorFinderSession
