"""
Core types and services for Color Finder.

Per-tick flow (NEVER REORDER):
1. Resume routines spawned on earlier ticks (probing, calibration)
2. Drain queued control events (profile/style/mode edits)
3. Tick the bound provider and borrow its frame
4. Segment the frame against the active profile
5. Hand mask or basic styling to the compositor
"""

from .contracts import (
    HighlightStyle,
    RuntimeMode,
    ColorPreset,
    ColorProfile,
    HsvTriple,
    CameraFrame,
    InitResult,
)
