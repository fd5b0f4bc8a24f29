"""
Flood Extent Detector — Change Detection
==========================================
Compares the flood pixel counts of two segmentations of the same scene
taken at different times.

Formula::

    change % = (post - pre) / pre * 100

A zero baseline cannot be divided by, so it is special-cased: any water
appearing from nothing counts as a 100 % increase, and nothing-to-nothing
counts as 0 %.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.python.exceptions import InputValidationError


@dataclass(frozen=True)
class ChangeResult:
    """Flood extent change between a *pre* and a *post* segmentation.

    Attributes:
        pre_flood_pixels: Flood pixel count of the earlier image.
        post_flood_pixels: Flood pixel count of the later image.
        flood_change_percentage: Relative change in percent.  Negative when
            water receded.
        flood_change_pixels: ``post_flood_pixels - pre_flood_pixels``.
    """

    pre_flood_pixels: int
    post_flood_pixels: int
    flood_change_percentage: float
    flood_change_pixels: int

    @property
    def interpretation(self) -> str:
        """Human-readable summary, e.g. ``"Water increased by 50.00%"``."""
        direction = "increased" if self.flood_change_percentage > 0 else "decreased"
        return f"Water {direction} by {abs(self.flood_change_percentage):.2f}%"

    def __str__(self) -> str:
        return f"{self.interpretation} ({self.flood_change_pixels:+,} px)"


def change_percentage(pre_count: int, post_count: int) -> float:
    """Relative change in flood pixels from *pre_count* to *post_count*.

    Returns ``100.0`` if the baseline is zero and water appeared, ``0.0``
    if both counts are zero.
    """
    if pre_count == 0:
        return 100.0 if post_count > 0 else 0.0
    return ((post_count - pre_count) / pre_count) * 100


def change_pixels(pre_count: int, post_count: int) -> int:
    """Signed pixel delta, ``post_count - pre_count``."""
    return post_count - pre_count


def detect_change(pre_count: int, post_count: int) -> ChangeResult:
    """Bundle :func:`change_percentage` and :func:`change_pixels`.

    Raises:
        InputValidationError: If either count is negative.
    """
    for label, count in (("pre", pre_count), ("post", post_count)):
        if count < 0:
            raise InputValidationError(
                f"Flood pixel counts must be non-negative, got {label}={count}."
            )
    return ChangeResult(
        pre_flood_pixels=pre_count,
        post_flood_pixels=post_count,
        flood_change_percentage=change_percentage(pre_count, post_count),
        flood_change_pixels=change_pixels(pre_count, post_count),
    )
