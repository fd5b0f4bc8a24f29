"""
Flood Extent Detector — Segmentation Engine
=============================================
Turns a decoded RGB raster into a binary flood mask, a masked image and
pixel-count statistics.

The engine runs in a single row-major pass: every pixel is converted to
HSV, classified by the selected :class:`~flood_extent_detector.classifiers.ClassificationPolicy`,
and written to pre-allocated output buffers.  Water pixels get mask byte
255 and keep their RGB in the masked image; all other pixels get mask
byte 0 and RGB ``(0, 0, 0)``.

The output is a pure function of the image bytes and the policy, so
re-running on an unchanged image reproduces earlier flood counts exactly.

Classes:
    RasterImage          Immutable, tightly packed 8-bit RGB raster.
    SegmentationStats    Flood / total pixel counts and percentage.
    SegmentationResult   Mask, masked image and stats for one run.
    SegmentationEngine   Runs a policy over a raster.

Usage::

    from flood_extent_detector.segmentation import RasterImage, segment

    image = RasterImage(width=2, height=1, pixels=bytes([180, 140, 90, 10, 10, 200]))
    result = segment(image, policy="multi_criteria")
    print(result.stats)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import numpy.typing as npt

from flood_extent_detector.classifiers import (
    DEFAULT_POLICY,
    ClassificationPolicy,
    ThresholdBox,
    get_policy,
)
from flood_extent_detector.color import rgb_to_hsv, rgb_to_hsv_array
from shared.python.exceptions import ConfigurationError, InputShapeError
from shared.python.validators import Validators

logger = logging.getLogger("floodscope.flood_extent_detector.segmentation")

WATER = 255
NOT_WATER = 0


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RasterImage:
    """A decoded 3-channel RGB image.

    Pixels are packed row-major as ``R, G, B, R, G, B, ...`` with no row
    padding and no alpha channel.

    Attributes:
        width: Width in pixels, > 0.
        height: Height in pixels, > 0.
        pixels: Exactly ``width * height * 3`` bytes.

    Raises:
        InputShapeError: On construction, if the dimensions are not
            positive or the buffer length does not match them.
    """

    width: int
    height: int
    pixels: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.pixels, bytes):
            object.__setattr__(self, "pixels", bytes(self.pixels))
        Validators.assert_buffer_shape(self.width, self.height, len(self.pixels))

    @classmethod
    def from_array(cls, array: npt.ArrayLike) -> RasterImage:
        """Build a raster from a ``(height, width, 3)`` array of 0–255 values.

        Non-uint8 arrays are clipped to 0–255 before conversion, so 300
        becomes 255 rather than wrapping to 44.

        Raises:
            InputShapeError: If the array is not three-dimensional with
                three channels, or has a zero-length axis.
        """
        arr = np.asarray(array)
        if arr.ndim != 3 or arr.shape[2] != 3:
            height = arr.shape[0] if arr.ndim >= 1 else 0
            width = arr.shape[1] if arr.ndim >= 2 else 0
            raise InputShapeError(width, height, int(arr.size))
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255)
        height, width = int(arr.shape[0]), int(arr.shape[1])
        return cls(width, height, np.ascontiguousarray(arr, dtype=np.uint8).tobytes())

    def as_array(self) -> npt.NDArray[np.uint8]:
        """Read-only ``(height, width, 3)`` uint8 view of :attr:`pixels`."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            self.height, self.width, 3
        )

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class SegmentationStats:
    """Pixel counts for one segmentation.

    Attributes:
        flood_pixel_count: Pixels classified as water.
        total_pixel_count: ``width * height``.
        flood_percentage: ``flood_pixel_count / total_pixel_count * 100``,
            or ``0.0`` when there are no pixels.
    """

    flood_pixel_count: int
    total_pixel_count: int
    flood_percentage: float

    @classmethod
    def from_counts(cls, flood_pixels: int, total_pixels: int) -> SegmentationStats:
        percentage = (flood_pixels / total_pixels) * 100 if total_pixels else 0.0
        return cls(flood_pixels, total_pixels, percentage)

    @property
    def non_flood_pixel_count(self) -> int:
        return self.total_pixel_count - self.flood_pixel_count

    def __str__(self) -> str:
        return (
            f"flood={self.flood_pixel_count:,} / total={self.total_pixel_count:,} "
            f"({self.flood_percentage:.2f}%)"
        )


@dataclass(frozen=True)
class SegmentationResult:
    """Everything one segmentation produces.

    Attributes:
        width: Source width in pixels.
        height: Source height in pixels.
        mask: ``width * height`` bytes, each 0 or 255, row-major.
        masked_image: Source-shaped RGB bytes with non-water pixels zeroed.
        stats: The :class:`SegmentationStats`.
        policy_name: Registry name of the policy that was applied.
        thresholds: Threshold bounds used, or ``None`` for fixed-rule policies.
    """

    width: int
    height: int
    mask: bytes = field(repr=False)
    masked_image: bytes = field(repr=False)
    stats: SegmentationStats
    policy_name: str
    thresholds: dict[str, float] | None = None

    def mask_array(self) -> npt.NDArray[np.uint8]:
        """Read-only ``(height, width)`` view of :attr:`mask`."""
        return np.frombuffer(self.mask, dtype=np.uint8).reshape(self.height, self.width)

    def masked_array(self) -> npt.NDArray[np.uint8]:
        """Read-only ``(height, width, 3)`` view of :attr:`masked_image`."""
        return np.frombuffer(self.masked_image, dtype=np.uint8).reshape(
            self.height, self.width, 3
        )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class SegmentationEngine:
    """Apply a classification policy to every pixel of a :class:`RasterImage`.

    Args:
        policy: The policy to apply.  Defaults to the multi-criteria
                muddy-water policy.
        row_block: Optional number of rows classified per step.  Bounds
                   the size of the temporary HSV arrays for very large
                   rasters; the output is identical for any block size.

    Raises:
        ConfigurationError: If ``row_block`` is not a positive integer.
    """

    def __init__(
        self,
        policy: ClassificationPolicy | None = None,
        *,
        row_block: int | None = None,
    ) -> None:
        if row_block is not None and (not isinstance(row_block, int) or row_block <= 0):
            raise ConfigurationError(
                f"row_block must be a positive integer, got {row_block!r}"
            )
        self.policy: ClassificationPolicy = policy or get_policy(DEFAULT_POLICY)
        self.row_block: int | None = row_block

    def segment(self, image: RasterImage) -> SegmentationResult:
        """Classify every pixel of *image*.

        Args:
            image: The decoded raster.

        Returns:
            A :class:`SegmentationResult`.

        Raises:
            InputShapeError: If the buffer does not match the declared shape.
        """
        # Duck-typed images skip RasterImage.__post_init__.
        Validators.assert_buffer_shape(image.width, image.height, len(image.pixels))

        rgb = image.as_array()
        height, width = image.height, image.width
        mask = np.full((height, width), NOT_WATER, dtype=np.uint8)
        masked = np.zeros((height, width, 3), dtype=np.uint8)
        flood_pixels = 0

        step = self.row_block or height
        for top in range(0, height, step):
            block = rgb[top:top + step]
            water = self.policy.classify(block, rgb_to_hsv_array(block))
            mask[top:top + step][water] = WATER
            masked[top:top + step][water] = block[water]
            flood_pixels += int(np.count_nonzero(water))

        stats = SegmentationStats.from_counts(flood_pixels, image.pixel_count)
        logger.debug("Segmented %dx%d with %s: %s", width, height, self.policy.name, stats)

        return SegmentationResult(
            width=width,
            height=height,
            mask=mask.tobytes(),
            masked_image=masked.tobytes(),
            stats=stats,
            policy_name=self.policy.name,
            thresholds=self.policy.thresholds,
        )


def classify_pixel(r: int, g: int, b: int, policy: ClassificationPolicy) -> bool:
    """Classify a single 8-bit RGB pixel with *policy*."""
    return policy.is_water(r, g, b, rgb_to_hsv(r, g, b))


def segment(
    image: RasterImage,
    policy: str | ClassificationPolicy = DEFAULT_POLICY,
    thresholds: ThresholdBox | None = None,
    **engine_options: Any,
) -> SegmentationResult:
    """Segment *image* with a policy given by name or instance.

    Args:
        image: The decoded raster.
        policy: Policy name (see :data:`~flood_extent_detector.classifiers.POLICY_REGISTRY`)
                or a :class:`ClassificationPolicy` instance.
        thresholds: Bounds for the ``threshold_box`` policy.
        **engine_options: Passed to :class:`SegmentationEngine` (``row_block``).

    Raises:
        ConfigurationError: If the policy or thresholds are invalid.  No
            pixel is processed in that case.
        InputShapeError: If the image buffer is malformed.
    """
    if isinstance(policy, ClassificationPolicy):
        if thresholds is not None:
            raise ConfigurationError(
                "Pass thresholds either inside the policy instance or by name, not both."
            )
        resolved = policy
    else:
        resolved = get_policy(policy, thresholds)
    return SegmentationEngine(resolved, **engine_options).segment(image)
