"""
Color Finder for Meta Quest 3 Passthrough

Helps a headset wearer spot real-world objects of a chosen color by
overlaying the live passthrough feed with either a desaturate-except-target
effect or a glowing highlight on matching pixels.

Top Priorities (strict order):
1. Never leave the wearer without a usable view (fall back, never crash)
2. Deterministic, explainable color matching
3. Color classification only (no object detection, no shape recognition)
4. Smooth mask edges (no hard cutoffs, no flicker between ticks)
"""

__version__ = "0.1.0"
__author__ = "Color Finder Team"
