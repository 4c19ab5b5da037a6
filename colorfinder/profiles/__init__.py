"""
Color profile catalog.

Responsibilities:
- Built-in target color presets
- Preset ordering and cycling
"""

from .catalog import get, presets, first, next_preset, by_name
