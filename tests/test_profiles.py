"""Tests for color profiles and the preset catalog.

Verifies that:
- Construction and transforms normalize every field into its bounds
- Transforms return new values and leave the original untouched
- The catalog is ordered, cyclic and resolvable by name
"""

import dataclasses

import pytest

from colorfinder.core.color_space import wrap_hue
from colorfinder.core.contracts import ColorPreset, ColorProfile, HsvTriple
from colorfinder.profiles import catalog


def make_profile(**overrides) -> ColorProfile:
    fields = dict(
        preset=ColorPreset.RED,
        display_name="Test",
        accent_color=(1.0, 0.0, 0.0),
        target_hsv=HsvTriple(0.0, 0.9, 0.8),
        tolerance_hsv=HsvTriple(0.06, 0.4, 0.45),
        saturation_range=(0.2, 1.0),
        value_range=(0.15, 1.0),
        chroma_weight=1.0,
        mask_softness=0.05,
        highlight_boost=1.45,
    )
    fields.update(overrides)
    return ColorProfile(**fields)


class TestHueWrapping:
    """Target hue always lands in [0, 1)."""

    @pytest.mark.parametrize("hue,expected", [
        (1.2, 0.2),
        (-0.1, 0.9),
        (1.0, 0.0),
        (0.0, 0.0),
        (3.75, 0.75),
    ])
    def test_with_target_hue_wraps(self, hue, expected) -> None:
        profile = make_profile().with_target_hue(hue)
        assert profile.target_hsv.h == pytest.approx(expected)
        assert 0.0 <= profile.target_hsv.h < 1.0

    def test_wrap_hue_never_returns_one(self) -> None:
        assert wrap_hue(-1e-18) < 1.0

    def test_constructor_wraps_hue(self) -> None:
        profile = make_profile(target_hsv=HsvTriple(-0.25, 0.5, 0.5))
        assert profile.target_hsv.h == pytest.approx(0.75)


class TestClamping:
    """Out-of-range inputs are clamped, never rejected."""

    def test_tolerances_clamped(self) -> None:
        profile = make_profile().with_tolerances(0.9, -1.0, 2.0)
        assert profile.tolerance_hsv == HsvTriple(0.5, 0.0, 1.0)

    def test_hue_tolerance_floor(self) -> None:
        profile = make_profile().with_tolerances(0.0, 0.5, 0.5)
        assert profile.tolerance_hsv.h == pytest.approx(0.001)

    def test_target_saturation_value_clamped(self) -> None:
        profile = make_profile().with_target_hsv((0.3, 1.5, -0.2))
        assert profile.target_hsv.s == 1.0
        assert profile.target_hsv.v == 0.0

    def test_constructor_clamps_everything(self) -> None:
        profile = make_profile(
            tolerance_hsv=HsvTriple(5.0, 5.0, 5.0),
            saturation_range=(-1.0, 3.0),
            value_range=(-0.5, 1.5),
            chroma_weight=7.0,
            mask_softness=0.9,
        )
        assert profile.tolerance_hsv == HsvTriple(0.5, 1.0, 1.0)
        assert profile.saturation_range == (0.0, 1.0)
        assert profile.value_range == (0.0, 1.0)
        assert profile.chroma_weight == 1.0
        assert profile.mask_softness == 0.25

    def test_softness_floor(self) -> None:
        assert make_profile(mask_softness=0.0).mask_softness == pytest.approx(0.001)


class TestImmutability:
    """Profiles are values."""

    def test_transform_returns_new_profile(self) -> None:
        original = make_profile()
        changed = original.with_target_hue(0.5)
        assert changed is not original
        assert original.target_hsv.h == 0.0
        assert changed.target_hsv.h == 0.5

    def test_assignment_rejected(self) -> None:
        profile = make_profile()
        with pytest.raises(dataclasses.FrozenInstanceError):
            profile.chroma_weight = 0.5

    def test_transforms_keep_other_fields(self) -> None:
        original = make_profile()
        changed = original.with_tolerances(0.1, 0.2, 0.3)
        assert changed.target_hsv == original.target_hsv
        assert changed.accent_color == original.accent_color
        assert changed.preset == original.preset


class TestCatalog:
    """Catalog lookup, ordering and cycling."""

    def test_order(self) -> None:
        assert catalog.presets() == [
            ColorPreset.RED,
            ColorPreset.BLUE,
            ColorPreset.YELLOW,
            ColorPreset.GREEN,
            ColorPreset.BLACK,
            ColorPreset.WHITE,
        ]

    def test_first_is_red(self) -> None:
        assert catalog.first().preset == ColorPreset.RED

    def test_next_preset_cycles(self) -> None:
        assert catalog.next_preset(ColorPreset.RED) == ColorPreset.BLUE
        assert catalog.next_preset(ColorPreset.WHITE) == ColorPreset.RED

    def test_red_values(self) -> None:
        red = catalog.get(ColorPreset.RED)
        assert red.target_hsv == HsvTriple(0.0, 0.9, 0.8)
        assert red.tolerance_hsv == HsvTriple(0.06, 0.4, 0.45)
        assert red.chroma_weight == 1.0

    def test_achromatic_presets_lean_on_value(self) -> None:
        assert catalog.get(ColorPreset.BLACK).chroma_weight < 0.5
        assert catalog.get(ColorPreset.WHITE).chroma_weight < 0.5

    @pytest.mark.parametrize("name,expected", [
        ("red", ColorPreset.RED),
        ("Blue", ColorPreset.BLUE),
        ("  WHITE ", ColorPreset.WHITE),
    ])
    def test_by_name(self, name, expected) -> None:
        assert catalog.by_name(name) == expected

    def test_by_name_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown preset"):
            catalog.by_name("purple")

    def test_every_profile_within_bounds(self) -> None:
        for preset in catalog.presets():
            profile = catalog.get(preset)
            assert 0.001 <= profile.tolerance_hsv.h <= 0.5
            assert 0.001 <= profile.mask_softness <= 0.25
            assert 0.0 <= profile.chroma_weight <= 1.0
