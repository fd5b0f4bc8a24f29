"""
Flood Extent Detector
======================
Classify pixels of RGB aerial/satellite photos as flood water using HSV
colour heuristics, and measure how flood extent changes between two
images of the same scene.

Public API::

    from flood_extent_detector import RasterImage, segment, detect_change
"""

from flood_extent_detector.change import (
    ChangeResult,
    change_percentage,
    change_pixels,
    detect_change,
)
from flood_extent_detector.classifiers import (
    DEFAULT_POLICY,
    POLICY_REGISTRY,
    PREVIEW_THRESHOLDS,
    ClassificationPolicy,
    MultiCriteriaPolicy,
    ThresholdBox,
    ThresholdBoxPolicy,
    get_policy,
)
from flood_extent_detector.color import HSV, rgb_to_hsv, rgb_to_hsv_array
from flood_extent_detector.segmentation import (
    RasterImage,
    SegmentationEngine,
    SegmentationResult,
    SegmentationStats,
    classify_pixel,
    segment,
)

__all__ = [
    "HSV",
    "rgb_to_hsv",
    "rgb_to_hsv_array",
    "ThresholdBox",
    "PREVIEW_THRESHOLDS",
    "ClassificationPolicy",
    "ThresholdBoxPolicy",
    "MultiCriteriaPolicy",
    "POLICY_REGISTRY",
    "DEFAULT_POLICY",
    "get_policy",
    "RasterImage",
    "SegmentationStats",
    "SegmentationResult",
    "SegmentationEngine",
    "classify_pixel",
    "segment",
    "ChangeResult",
    "change_percentage",
    "change_pixels",
    "detect_change",
]
__version__ = "1.0.0"
