"""
Flood Extent Detector — Result Records
========================================
JSON-serialisable records of a segmentation run and of a before/after
comparison.  A comparison is built from two saved segmentation records,
so the records are also the hand-off format between the two steps.

Classes:
    SegmentationRecord   One segmented image: counts, timing, policy.
    ComparisonRecord     Flood change between two segmentation records.
"""

from __future__ import annotations

import json
import logging
from dataclasses import MISSING, asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from flood_extent_detector.change import ChangeResult
from flood_extent_detector.segmentation import SegmentationResult
from shared.python.exceptions import InputValidationError, OutputWriteError

logger = logging.getLogger("floodscope.flood_extent_detector.records")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class SegmentationRecord:
    """Persistable summary of one segmentation.

    Attributes:
        source: Name of the segmented image file.
        width: Image width in pixels.
        height: Image height in pixels.
        flood_pixels: Pixels classified as water.
        total_pixels: ``width * height``.
        flood_percentage: Water share in percent.
        processing_time_ms: Wall-clock segmentation time, milliseconds.
        policy: Classification policy name.
        thresholds: Threshold bounds used, if the policy has any.
        mask_path: Where the binary mask PNG was written, if anywhere.
        masked_image_path: Where the masked image PNG was written, if anywhere.
        preview_path: Where the quick-look figure was written, if anywhere.
        created_at: UTC ISO-8601 timestamp.
    """

    source: str
    width: int
    height: int
    flood_pixels: int
    total_pixels: int
    flood_percentage: float
    processing_time_ms: float
    policy: str
    thresholds: dict[str, float] | None = None
    mask_path: str | None = None
    masked_image_path: str | None = None
    preview_path: str | None = None
    created_at: str = field(default_factory=_utc_now)

    @classmethod
    def from_result(
        cls,
        source: str,
        result: SegmentationResult,
        processing_time_ms: float,
        **paths: str | None,
    ) -> SegmentationRecord:
        """Build a record from a :class:`SegmentationResult`."""
        return cls(
            source=source,
            width=result.width,
            height=result.height,
            flood_pixels=result.stats.flood_pixel_count,
            total_pixels=result.stats.total_pixel_count,
            flood_percentage=result.stats.flood_percentage,
            processing_time_ms=processing_time_ms,
            policy=result.policy_name,
            thresholds=result.thresholds,
            **paths,
        )

    def summary(self) -> dict[str, Any]:
        """Short display dict with the percentage rounded to two decimals."""
        return {
            "source": self.source,
            "floodPixels": self.flood_pixels,
            "totalPixels": self.total_pixels,
            "floodPercentage": f"{self.flood_percentage:.2f}",
            "processingTime": f"{self.processing_time_ms:.0f}ms",
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SegmentationRecord:
        return cls(**_pick_fields(cls, data))

    def save(self, path: Path, indent: int = 2) -> Path:
        return _dump_json(self.to_dict(), path, indent)

    @classmethod
    def load(cls, path: Path) -> SegmentationRecord:
        return cls.from_dict(_load_json(path))

    def __str__(self) -> str:
        return (
            f"{self.source}: {self.flood_pixels:,} / {self.total_pixels:,} px "
            f"({self.flood_percentage:.2f}%) via {self.policy} "
            f"in {self.processing_time_ms:.0f}ms"
        )


@dataclass
class ComparisonRecord:
    """Persistable before/after flood comparison.

    Attributes:
        pre_source: Image name of the earlier segmentation.
        post_source: Image name of the later segmentation.
        pre_flood_pixels: Flood pixels before.
        post_flood_pixels: Flood pixels after.
        pre_flood_percentage: Water share before, percent.
        post_flood_percentage: Water share after, percent.
        flood_change_percentage: Relative change, percent.
        flood_change_pixels: Signed pixel delta.
        interpretation: Human-readable summary of the change.
        date_range: ``{"start": ..., "end": ...}`` from the two records'
            timestamps.
        created_at: UTC ISO-8601 timestamp.
    """

    pre_source: str
    post_source: str
    pre_flood_pixels: int
    post_flood_pixels: int
    pre_flood_percentage: float
    post_flood_percentage: float
    flood_change_percentage: float
    flood_change_pixels: int
    interpretation: str
    date_range: dict[str, str] = field(default_factory=dict)
    created_at: str = field(default_factory=_utc_now)

    @classmethod
    def from_change(
        cls,
        pre: SegmentationRecord,
        post: SegmentationRecord,
        change: ChangeResult,
    ) -> ComparisonRecord:
        return cls(
            pre_source=pre.source,
            post_source=post.source,
            pre_flood_pixels=pre.flood_pixels,
            post_flood_pixels=post.flood_pixels,
            pre_flood_percentage=pre.flood_percentage,
            post_flood_percentage=post.flood_percentage,
            flood_change_percentage=change.flood_change_percentage,
            flood_change_pixels=change.flood_change_pixels,
            interpretation=change.interpretation,
            date_range={"start": pre.created_at, "end": post.created_at},
        )

    def summary(self) -> dict[str, Any]:
        return {
            "preImage": {
                "name": self.pre_source,
                "floodPixels": self.pre_flood_pixels,
                "floodPercentage": f"{self.pre_flood_percentage:.2f}",
            },
            "postImage": {
                "name": self.post_source,
                "floodPixels": self.post_flood_pixels,
                "floodPercentage": f"{self.post_flood_percentage:.2f}",
            },
            "floodChangePercentage": f"{self.flood_change_percentage:.2f}",
            "floodChangePixels": self.flood_change_pixels,
            "interpretation": self.interpretation,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComparisonRecord:
        return cls(**_pick_fields(cls, data))

    def save(self, path: Path, indent: int = 2) -> Path:
        return _dump_json(self.to_dict(), path, indent)

    @classmethod
    def load(cls, path: Path) -> ComparisonRecord:
        return cls.from_dict(_load_json(path))

    def __str__(self) -> str:
        return (
            f"{self.pre_source} → {self.post_source}: {self.interpretation} "
            f"({self.flood_change_pixels:+,} px)"
        )


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _pick_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    """Keep only the keys *cls* declares; fail on missing required ones."""
    declared = fields(cls)
    picked = {f.name: data[f.name] for f in declared if f.name in data}
    missing = [
        f.name for f in declared
        if f.name not in picked and f.default is MISSING and f.default_factory is MISSING
    ]
    if missing:
        raise InputValidationError(
            f"Malformed {cls.__name__} data: missing field(s) {', '.join(missing)}"
        )
    return picked


def _dump_json(payload: dict[str, Any], path: Path, indent: int) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=indent, default=str)
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc
    logger.debug("Wrote record %s", path)
    return path


def _load_json(path: Path) -> dict[str, Any]:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as exc:
        raise InputValidationError(f"Record file not found: '{path}'.") from exc
    except json.JSONDecodeError as exc:
        raise InputValidationError(f"Record file '{path}' is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InputValidationError(f"Record file '{path}' does not contain a JSON object.")
    return data
