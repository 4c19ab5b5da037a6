"""
Color Profile Catalog.

Static, ordered table of the built-in target colors. Chromatic presets match
mostly on hue; black and white lean on value (low chroma weight) with wide
hue tolerance since their hue is meaningless.
"""

from __future__ import annotations

from typing import Dict, List

from colorfinder.core.contracts import ColorPreset, ColorProfile, HsvTriple


_CATALOG: Dict[ColorPreset, ColorProfile] = {
    ColorPreset.RED: ColorProfile(
        preset=ColorPreset.RED,
        display_name="Red",
        accent_color=(1.0, 0.15, 0.15),
        target_hsv=HsvTriple(0.00, 0.90, 0.80),
        tolerance_hsv=HsvTriple(0.06, 0.40, 0.45),
        saturation_range=(0.20, 1.0),
        value_range=(0.15, 1.0),
        chroma_weight=1.0,
        mask_softness=0.05,
        highlight_boost=1.45,
    ),
    ColorPreset.BLUE: ColorProfile(
        preset=ColorPreset.BLUE,
        display_name="Blue",
        accent_color=(0.2, 0.55, 1.0),
        target_hsv=HsvTriple(0.60, 0.85, 0.75),
        tolerance_hsv=HsvTriple(0.06, 0.35, 0.45),
        saturation_range=(0.15, 1.0),
        value_range=(0.15, 1.0),
        chroma_weight=1.0,
        mask_softness=0.05,
        highlight_boost=1.45,
    ),
    ColorPreset.YELLOW: ColorProfile(
        preset=ColorPreset.YELLOW,
        display_name="Yellow",
        accent_color=(1.0, 0.92, 0.2),
        target_hsv=HsvTriple(0.16, 0.85, 0.90),
        tolerance_hsv=HsvTriple(0.05, 0.35, 0.40),
        saturation_range=(0.15, 1.0),
        value_range=(0.25, 1.0),
        chroma_weight=1.0,
        mask_softness=0.05,
        highlight_boost=1.45,
    ),
    ColorPreset.GREEN: ColorProfile(
        preset=ColorPreset.GREEN,
        display_name="Green",
        accent_color=(0.25, 0.95, 0.35),
        target_hsv=HsvTriple(0.33, 0.80, 0.65),
        tolerance_hsv=HsvTriple(0.06, 0.35, 0.45),
        saturation_range=(0.15, 1.0),
        value_range=(0.15, 0.95),
        chroma_weight=1.0,
        mask_softness=0.05,
        highlight_boost=1.45,
    ),
    ColorPreset.BLACK: ColorProfile(
        preset=ColorPreset.BLACK,
        display_name="Black",
        accent_color=(0.9, 0.9, 0.9),
        target_hsv=HsvTriple(0.0, 0.20, 0.12),
        tolerance_hsv=HsvTriple(0.50, 0.80, 0.22),
        saturation_range=(0.0, 1.0),
        value_range=(0.0, 0.28),
        chroma_weight=0.15,
        mask_softness=0.06,
        highlight_boost=1.6,
    ),
    ColorPreset.WHITE: ColorProfile(
        preset=ColorPreset.WHITE,
        display_name="White",
        accent_color=(1.0, 1.0, 1.0),
        target_hsv=HsvTriple(0.0, 0.05, 0.92),
        tolerance_hsv=HsvTriple(0.50, 0.25, 0.20),
        saturation_range=(0.0, 0.30),
        value_range=(0.68, 1.0),
        chroma_weight=0.05,
        mask_softness=0.05,
        highlight_boost=1.15,
    ),
}


def get(preset: ColorPreset) -> ColorProfile:
    """Look up the catalog profile for a preset."""
    return _CATALOG[preset]


def presets() -> List[ColorPreset]:
    """All presets in catalog order."""
    return list(_CATALOG.keys())


def first() -> ColorProfile:
    return _CATALOG[presets()[0]]


def next_preset(preset: ColorPreset) -> ColorPreset:
    """The preset after `preset`, wrapping around to the first."""
    order = presets()
    index = order.index(preset)
    return order[(index + 1) % len(order)]


def by_name(name: str) -> ColorPreset:
    """
    Resolve a preset from a config/CLI name (case-insensitive).

    Raises:
        ValueError: If the name is not a known preset
    """
    key = name.strip().lower()
    for preset in _CATALOG:
        if preset.value == key or _CATALOG[preset].display_name.lower() == key:
            return preset
    available = ", ".join(p.value for p in _CATALOG)
    raise ValueError(f"Unknown preset '{name}'. Available: {available}")
