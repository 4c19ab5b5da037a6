"""Tests for the segmentation engine.

Verifies that:
- An exact target match scores 1, out-of-range pixels score 0
- The red preset scenario holds (near hue ~1, opposite hue 0)
- Scores are continuous in hue and always within [0, 1]
- compute_mask handles zero-area and tiny frames and matches scalar scoring
"""

import dataclasses

import numpy as np
import pytest

from colorfinder.core.color_space import hsv_to_rgb, rgb_to_hsv, rgb_to_hsv_array
from colorfinder.core.contracts import CameraFrame, ColorPreset, HsvTriple
from colorfinder.profiles import catalog
from colorfinder.segmentation.color_segmenter import (
    ColorSegmenter,
    compute_mask,
    reduced_size,
    score,
    score_hsv,
)

from conftest import flat_image


@pytest.fixture
def red():
    return catalog.get(ColorPreset.RED)


class TestScoreHsv:
    """Scalar scoring."""

    def test_exact_target_scores_one(self, red) -> None:
        h, s, v = red.target_hsv
        assert score_hsv(h, s, v, red) == pytest.approx(1.0)

    def test_saturation_below_range_rejected(self, red) -> None:
        assert score_hsv(0.0, 0.1, 0.8, red) == 0.0

    def test_value_below_range_rejected(self, red) -> None:
        assert score_hsv(0.0, 0.9, 0.05, red) == 0.0

    def test_near_red_scores_one(self, red) -> None:
        assert score_hsv(0.01, 0.85, 0.78, red) == pytest.approx(1.0, abs=1e-6)

    def test_opposite_hue_scores_zero(self, red) -> None:
        assert score_hsv(0.50, 0.85, 0.78, red) == 0.0

    def test_hue_distance_is_circular(self, red) -> None:
        assert score_hsv(0.99, 0.9, 0.8, red) == pytest.approx(1.0)

    def test_zero_sat_tolerance_exact_match(self, red) -> None:
        profile = red.with_tolerances(0.06, 0.0, 0.45)
        assert score_hsv(0.0, 0.9, 0.8, profile) == pytest.approx(1.0)
        assert score_hsv(0.0, 0.85, 0.8, profile) == 0.0

    def test_zero_value_tolerance_ignored_when_fully_chromatic(self, red) -> None:
        profile = red.with_tolerances(0.06, 0.4, 0.0)
        assert profile.chroma_weight == 1.0
        assert score_hsv(0.0, 0.9, 0.5, profile) == pytest.approx(1.0)

    def test_soft_edge_between_zero_and_one(self, red) -> None:
        # d = dh = 0.0585 / 0.06 = 0.975, midway through the 0.05 soft band
        value = score_hsv(0.0585, 0.9, 0.8, red)
        assert 0.0 < value < 1.0

    def test_continuity_in_hue(self, red) -> None:
        hues = np.linspace(0.0, 0.08, 1601)
        scores = [score_hsv(h, 0.9, 0.8, red) for h in hues]
        steps = np.abs(np.diff(scores))
        assert steps.max() < 0.05

    def test_scores_bounded(self) -> None:
        rng = np.random.default_rng(7)
        for preset in catalog.presets():
            profile = catalog.get(preset)
            for h, s, v in rng.random((200, 3)):
                assert 0.0 <= score_hsv(h, s, v, profile) <= 1.0

    def test_black_preset_matches_dark_pixels(self) -> None:
        black = catalog.get(ColorPreset.BLACK)
        assert score_hsv(0.6, 0.2, 0.12, black) == pytest.approx(1.0)
        assert score_hsv(0.0, 0.2, 0.6, black) == 0.0


class TestScoreRgb:
    """RGB entry point."""

    def test_pure_red(self, red) -> None:
        assert score((0.8, 0.08, 0.08), red) == pytest.approx(1.0)

    def test_pure_blue_rejected_by_red(self, red) -> None:
        assert score((0.1, 0.2, 0.9), red) == 0.0

    def test_gray_rejected_by_saturation_range(self, red) -> None:
        assert score((0.5, 0.5, 0.5), red) == 0.0


class TestVectorizedHsv:
    """Vectorized conversion matches colorsys."""

    def test_matches_scalar(self) -> None:
        rng = np.random.default_rng(3)
        pixels = rng.integers(0, 256, size=(50, 3), dtype=np.uint8)
        vectorized = rgb_to_hsv_array(pixels)
        for rgb, hsv in zip(pixels, vectorized):
            expected = rgb_to_hsv(*(rgb / 255.0))
            assert tuple(float(x) for x in hsv) == pytest.approx(expected, abs=1e-5)

    def test_round_trip_target(self) -> None:
        rgb = hsv_to_rgb(0.6, 0.85, 0.75)
        h, s, v = rgb_to_hsv(*rgb)
        assert (h, s, v) == pytest.approx((0.6, 0.85, 0.75), abs=1e-9)


class TestComputeMask:
    """Whole-frame masks."""

    def test_zero_area_frame(self, red) -> None:
        empty = np.zeros((0, 0, 3), dtype=np.uint8)
        mask = compute_mask(empty, red)
        assert mask.shape == (0, 0)
        assert mask.dtype == np.float32

    def test_zero_width_frame(self, red) -> None:
        mask = compute_mask(np.zeros((10, 0, 3), dtype=np.uint8), red)
        assert mask.shape == (10, 0)

    def test_flat_red_frame(self, red) -> None:
        mask = compute_mask(CameraFrame(flat_image((204, 20, 20), 40, 30)), red)
        assert mask.shape == (30, 40)
        assert mask.min() == pytest.approx(1.0)

    def test_flat_blue_frame(self, red) -> None:
        mask = compute_mask(flat_image((25, 50, 230), 40, 30), red)
        assert mask.max() == 0.0

    def test_downsampled_mask_keeps_frame_size(self, red) -> None:
        image = flat_image((204, 20, 20), 320, 240)
        mask = compute_mask(image, red, downsample=4)
        assert mask.shape == (240, 320)
        assert mask.min() == pytest.approx(1.0)

    def test_split_frame(self, red) -> None:
        image = flat_image((25, 50, 230), 200, 100)
        image[:, :100] = (204, 20, 20)
        mask = compute_mask(image, red, downsample=2)
        assert mask[:, :40].min() == pytest.approx(1.0)
        assert mask[:, 160:].max() == pytest.approx(0.0)
        assert np.all((mask >= 0.0) & (mask <= 1.0))

    def test_matches_scalar_score(self, red) -> None:
        # Open ranges so float32 rounding at a range edge cannot flip a pixel
        profile = dataclasses.replace(red, saturation_range=(0.0, 1.0), value_range=(0.0, 1.0))
        rng = np.random.default_rng(11)
        image = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
        mask = compute_mask(image, profile)
        for y in range(8):
            for x in range(8):
                expected = score(tuple(image[y, x] / 255.0), profile)
                assert mask[y, x] == pytest.approx(expected, abs=1e-4)

    def test_frame_not_modified(self, red) -> None:
        image = flat_image((204, 20, 20), 64, 64)
        before = image.copy()
        compute_mask(image, red, downsample=2)
        assert np.array_equal(image, before)


class TestReducedSize:
    """Evaluation resolution never drops below the minimum side."""

    def test_halves_large_frames(self) -> None:
        assert reduced_size(1280, 720, 2) == (640, 360)

    def test_floor_at_min_size(self) -> None:
        assert reduced_size(100, 90, 4) == (64, 64)

    def test_small_frames_keep_their_size(self) -> None:
        assert reduced_size(40, 30, 2) == (40, 30)


class TestColorSegmenter:
    """Engine wrapper."""

    def test_tracks_timing(self, red) -> None:
        segmenter = ColorSegmenter(downsample=2)
        mask = segmenter.segment(CameraFrame(flat_image((204, 20, 20), 64, 48)), red)
        assert mask.shape == (48, 64)
        assert segmenter.frames_processed == 1
        assert segmenter.last_ms >= 0.0
