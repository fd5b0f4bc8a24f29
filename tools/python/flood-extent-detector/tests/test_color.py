"""Tests for RGB → HSV conversion."""

from __future__ import annotations

import itertools

import numpy as np
import pytest

from flood_extent_detector.color import HSV, rgb_to_hsv, rgb_to_hsv_array


# 0, 15, ..., 255: a coarse grid including both extremes.
_GRID = list(range(0, 256, 15))


class TestRgbToHsv:
    def test_pure_red(self) -> None:
        assert rgb_to_hsv(255, 0, 0) == HSV(0.0, 1.0, 1.0)

    def test_pure_green(self) -> None:
        h, s, v = rgb_to_hsv(0, 255, 0)
        assert h == pytest.approx(1 / 3)
        assert (s, v) == (1.0, 1.0)

    def test_pure_blue(self) -> None:
        h, s, v = rgb_to_hsv(0, 0, 255)
        assert h == pytest.approx(2 / 3)
        assert (s, v) == (1.0, 1.0)

    def test_white_is_achromatic(self) -> None:
        assert rgb_to_hsv(255, 255, 255) == HSV(0.0, 0.0, 1.0)

    def test_black(self) -> None:
        assert rgb_to_hsv(0, 0, 0) == HSV(0.0, 0.0, 0.0)

    def test_red_max_with_green_below_blue_wraps_into_upper_hue(self) -> None:
        """Red-dominant pixels with g < b land just below 1, not below 0."""
        h, _, _ = rgb_to_hsv(255, 0, 128)
        assert 0.9 < h < 1.0

    def test_muddy_brown(self) -> None:
        h, s, v = rgb_to_hsv(180, 140, 90)
        assert h == pytest.approx((50 / 90) / 6)
        assert s == pytest.approx(0.5)
        assert v == pytest.approx(180 / 255)

    @pytest.mark.parametrize(
        ("rgb", "expected_h"),
        [
            ((200, 200, 50), 1 / 6),   # r == g == max
            ((50, 200, 200), 0.5),     # g == b == max
            ((200, 50, 200), 5 / 6),   # r == b == max
        ],
    )
    def test_ties_for_max(self, rgb: tuple[int, int, int], expected_h: float) -> None:
        h, s, _ = rgb_to_hsv(*rgb)
        assert h == pytest.approx(expected_h)
        assert s == pytest.approx(150 / 200)

    def test_components_stay_in_unit_interval(self) -> None:
        for r, g, b in itertools.product(_GRID, repeat=3):
            h, s, v = rgb_to_hsv(r, g, b)
            assert 0.0 <= h < 1.0
            assert 0.0 <= s <= 1.0
            assert 0.0 <= v <= 1.0

    def test_grey_levels_have_zero_saturation(self) -> None:
        for level in range(256):
            h, s, v = rgb_to_hsv(level, level, level)
            assert h == 0.0
            assert s == 0.0
            assert v == pytest.approx(level / 255)


class TestRgbToHsvArray:
    def test_matches_scalar_exactly(self) -> None:
        triples = list(itertools.product(_GRID, repeat=3))
        rgb = np.array(triples, dtype=np.uint8)
        h, s, v = rgb_to_hsv_array(rgb)

        for i, (r, g, b) in enumerate(triples):
            assert (h[i], s[i], v[i]) == rgb_to_hsv(r, g, b)

    def test_preserves_leading_shape(self) -> None:
        rgb = np.zeros((4, 5, 3), dtype=np.uint8)
        h, s, v = rgb_to_hsv_array(rgb)
        assert h.shape == s.shape == v.shape == (4, 5)
        assert h.dtype == np.float64

    def test_no_warnings_for_black_pixels(self) -> None:
        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        with np.errstate(all="raise"):
            h, s, _ = rgb_to_hsv_array(rgb)
        assert not h.any()
        assert not s.any()
