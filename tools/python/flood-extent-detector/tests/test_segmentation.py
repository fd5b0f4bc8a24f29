"""
Tests for the segmentation engine
===================================
Test classes:
    TestRasterImage            Shape validation of the input raster.
    TestSegmentationScenario   Hand-checked small images.
    TestSegmentationInvariants Mask / masked-image / count invariants.
    TestThresholdMonotonicity  Widening a bound never loses water pixels.
    TestSegmentOptions         Policy selection and row blocks.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
import pytest

from flood_extent_detector.classifiers import (
    MultiCriteriaPolicy,
    ThresholdBox,
    ThresholdBoxPolicy,
)
from flood_extent_detector.segmentation import (
    RasterImage,
    SegmentationEngine,
    SegmentationStats,
    segment,
)
from shared.python.exceptions import ConfigurationError, InputShapeError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

MUDDY = [180, 140, 90]
BLUE = [10, 10, 200]


def _random_image(height: int = 24, width: int = 32, seed: int = 7) -> RasterImage:
    """Random pixels biased towards browns so both classes occur."""
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    browns = rng.random((height, width)) < 0.4
    jitter = rng.integers(-20, 21, size=(int(browns.sum()), 3))
    arr[browns] = (np.array(MUDDY) + jitter).astype(np.uint8)
    return RasterImage.from_array(arr)


def _as_pixels(result_bytes: bytes, channels: int) -> npt.NDArray[np.uint8]:
    return np.frombuffer(result_bytes, dtype=np.uint8).reshape(-1, channels)


# ---------------------------------------------------------------------------
# RasterImage
# ---------------------------------------------------------------------------


class TestRasterImage:
    def test_valid_buffer(self) -> None:
        image = RasterImage(2, 1, bytes(MUDDY + BLUE))
        assert image.pixel_count == 2
        assert image.as_array().shape == (1, 2, 3)

    def test_bytearray_is_frozen_to_bytes(self) -> None:
        image = RasterImage(1, 1, bytearray(MUDDY))
        assert isinstance(image.pixels, bytes)

    @pytest.mark.parametrize(("width", "height"), [(0, 1), (1, 0), (0, 0), (-1, 3)])
    def test_non_positive_dimensions_raise(self, width: int, height: int) -> None:
        with pytest.raises(InputShapeError, match="positive"):
            RasterImage(width, height, b"")

    def test_short_buffer_raises(self) -> None:
        with pytest.raises(InputShapeError, match="expected 2x2x3 = 12 bytes but got 11"):
            RasterImage(2, 2, bytes(11))

    def test_long_buffer_raises(self) -> None:
        with pytest.raises(InputShapeError):
            RasterImage(2, 2, bytes(13))

    def test_error_is_structured(self) -> None:
        with pytest.raises(InputShapeError) as excinfo:
            RasterImage(2, 2, bytes(5))
        assert excinfo.value.to_dict()["kind"] == "input_shape"
        assert excinfo.value.actual_length == 5

    def test_from_array_round_trip(self) -> None:
        arr = np.arange(2 * 3 * 3, dtype=np.uint8).reshape(2, 3, 3)
        image = RasterImage.from_array(arr)
        assert (image.width, image.height) == (3, 2)
        np.testing.assert_array_equal(image.as_array(), arr)

    def test_from_array_clips_out_of_range_values(self) -> None:
        arr = np.array([[[300, -5, 128]]], dtype=np.int32)
        image = RasterImage.from_array(arr)
        assert image.pixels == bytes([255, 0, 128])

    def test_from_array_clips_floats(self) -> None:
        arr = np.array([[[255.0, 256.5, 1e6]]])
        assert RasterImage.from_array(arr).pixels == bytes([255, 255, 255])

    def test_from_array_rejects_alpha(self) -> None:
        with pytest.raises(InputShapeError):
            RasterImage.from_array(np.zeros((2, 2, 4), dtype=np.uint8))

    def test_from_array_rejects_empty(self) -> None:
        with pytest.raises(InputShapeError):
            RasterImage.from_array(np.zeros((0, 5, 3), dtype=np.uint8))


# ---------------------------------------------------------------------------
# Hand-checked scenarios
# ---------------------------------------------------------------------------


class TestSegmentationScenario:
    def test_two_by_two_one_muddy_pixel(self) -> None:
        image = RasterImage(2, 2, bytes(MUDDY + BLUE + BLUE + BLUE))

        result = segment(image, policy="multi_criteria")

        assert result.stats.flood_pixel_count == 1
        assert result.stats.total_pixel_count == 4
        assert result.stats.flood_percentage == 25.0
        assert result.mask == bytes([255, 0, 0, 0])
        assert result.masked_image == bytes(MUDDY + [0] * 9)
        assert result.policy_name == "multi_criteria"
        assert result.thresholds is None

    def test_mask_follows_row_major_order(self) -> None:
        image = RasterImage(2, 2, bytes(BLUE + BLUE + BLUE + MUDDY))
        result = segment(image)
        assert result.mask == bytes([0, 0, 0, 255])
        assert result.mask_array()[1, 1] == 255

    def test_one_by_one(self) -> None:
        result = segment(RasterImage(1, 1, bytes(BLUE)))
        assert result.stats == SegmentationStats(0, 1, 0.0)
        assert result.mask == b"\x00"

    def test_all_water(self) -> None:
        image = RasterImage(3, 1, bytes(MUDDY * 3))
        result = segment(image)
        assert result.stats.flood_percentage == 100.0
        assert result.masked_image == image.pixels

    def test_threshold_box_records_bounds(self) -> None:
        box = ThresholdBox(h_min=0.0, h_max=0.3, s_min=0.0, s_max=1.0, v_min=0.0, v_max=1.0)
        result = segment(RasterImage(1, 1, bytes(MUDDY)), policy="threshold_box", thresholds=box)
        assert result.stats.flood_pixel_count == 1
        assert result.thresholds == box.as_dict()


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


class TestSegmentationInvariants:
    @pytest.fixture
    def image(self) -> RasterImage:
        return _random_image()

    @pytest.fixture(params=["multi_criteria", "threshold_box"])
    def result(self, request: pytest.FixtureRequest, image: RasterImage):
        return segment(image, policy=request.param)

    def test_counts_add_up(self, image: RasterImage, result) -> None:
        stats = result.stats
        assert stats.total_pixel_count == image.width * image.height
        assert stats.flood_pixel_count + stats.non_flood_pixel_count == stats.total_pixel_count
        assert stats.flood_pixel_count == result.mask.count(255)

    def test_percentage(self, result) -> None:
        stats = result.stats
        expected = stats.flood_pixel_count / stats.total_pixel_count * 100
        assert stats.flood_percentage == pytest.approx(expected)

    def test_mask_is_binary(self, image: RasterImage, result) -> None:
        assert len(result.mask) == image.pixel_count
        assert set(result.mask) <= {0, 255}

    def test_masked_image_keeps_or_zeroes(self, image: RasterImage, result) -> None:
        mask = np.frombuffer(result.mask, dtype=np.uint8)
        source = _as_pixels(image.pixels, 3)
        masked = _as_pixels(result.masked_image, 3)

        np.testing.assert_array_equal(masked[mask == 255], source[mask == 255])
        assert not masked[mask == 0].any()

    def test_random_image_has_both_classes(self, image: RasterImage) -> None:
        stats = segment(image, policy="multi_criteria").stats
        assert 0 < stats.flood_pixel_count < stats.total_pixel_count

    def test_deterministic(self, image: RasterImage) -> None:
        first = segment(image)
        second = segment(image)
        assert first.mask == second.mask
        assert first.masked_image == second.masked_image
        assert first.stats == second.stats

    def test_source_buffer_untouched(self, image: RasterImage) -> None:
        before = bytes(image.pixels)
        segment(image)
        assert image.pixels == before


# ---------------------------------------------------------------------------
# Monotonicity
# ---------------------------------------------------------------------------


class TestThresholdMonotonicity:
    BASE = {"h_min": 0.05, "h_max": 0.2, "s_min": 0.1, "s_max": 0.6, "v_min": 0.3, "v_max": 0.9}
    WIDENED = {"h_min": 0.0, "h_max": 0.5, "s_min": 0.0, "s_max": 1.0, "v_min": 0.0, "v_max": 1.0}

    @pytest.mark.parametrize("bound", list(BASE))
    def test_widening_one_bound_never_decreases_count(self, bound: str) -> None:
        image = _random_image(seed=11)
        narrow = ThresholdBox(**self.BASE)
        wide = ThresholdBox(**{**self.BASE, bound: self.WIDENED[bound]})

        narrow_count = segment(image, "threshold_box", narrow).stats.flood_pixel_count
        wide_count = segment(image, "threshold_box", wide).stats.flood_pixel_count

        assert wide_count >= narrow_count

    def test_full_box_accepts_everything(self) -> None:
        image = _random_image(seed=3)
        full = ThresholdBox(0.0, 1.0, 0.0, 1.0, 0.0, 1.0)
        assert segment(image, "threshold_box", full).stats.flood_percentage == 100.0


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class TestSegmentOptions:
    @pytest.mark.parametrize("row_block", [1, 5, 24, 1000])
    def test_row_blocks_give_identical_output(self, row_block: int) -> None:
        image = _random_image()
        whole = SegmentationEngine(MultiCriteriaPolicy()).segment(image)
        blocked = SegmentationEngine(MultiCriteriaPolicy(), row_block=row_block).segment(image)
        assert blocked.mask == whole.mask
        assert blocked.masked_image == whole.masked_image
        assert blocked.stats == whole.stats

    @pytest.mark.parametrize("row_block", [0, -2, 2.5])
    def test_invalid_row_block_raises(self, row_block) -> None:
        with pytest.raises(ConfigurationError, match="row_block"):
            SegmentationEngine(row_block=row_block)

    def test_engine_defaults_to_multi_criteria(self) -> None:
        assert SegmentationEngine().policy.name == "multi_criteria"

    def test_policy_instance_accepted(self) -> None:
        result = segment(RasterImage(1, 1, bytes(MUDDY)), ThresholdBoxPolicy())
        assert result.policy_name == "threshold_box"

    def test_policy_instance_plus_thresholds_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            segment(RasterImage(1, 1, bytes(MUDDY)), ThresholdBoxPolicy(), ThresholdBox())

    def test_unknown_policy_name_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            segment(RasterImage(1, 1, bytes(MUDDY)), "kmeans")
