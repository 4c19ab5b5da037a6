"""
Color Segmentation Module.

Responsibilities:
- Per-pixel HSV match scoring against the active color profile
- Per-tick soft mask generation
"""

from .color_segmenter import ColorSegmenter, compute_mask, score, score_hsv
