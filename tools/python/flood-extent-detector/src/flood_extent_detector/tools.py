"""
Flood Extent Detector — Tool Classes
======================================
File-level wrappers around the segmentation engine and the change
detector.  Both follow the shared Template Method pipeline
(validate → process → report) from :class:`~shared.python.FloodTool`.

Classes:
    SegmentationConfig     Configuration bundle for a segmentation run.
    FloodSegmentationTool  Image file → mask PNGs + JSON record.
    FloodComparisonTool    Two JSON records → comparison JSON record.

Usage::

    from pathlib import Path
    from flood_extent_detector.tools import FloodSegmentationTool, SegmentationConfig

    tool = FloodSegmentationTool(
        input_path=Path("data/before.png"),
        output_dir=Path("output/"),
        config=SegmentationConfig(policy="multi_criteria"),
    )
    tool.run()
    print(tool.record)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from flood_extent_detector.change import detect_change
from flood_extent_detector.classifiers import (
    DEFAULT_POLICY,
    PREVIEW_THRESHOLDS,
    ClassificationPolicy,
    ThresholdBox,
    get_policy,
)
from flood_extent_detector.imagery import (
    DEFAULT_MAX_FILE_SIZE,
    SUPPORTED_EXTENSIONS,
    read_rgb,
    write_mask,
    write_masked_image,
)
from flood_extent_detector.preview import save_segmentation_panel
from flood_extent_detector.records import ComparisonRecord, SegmentationRecord
from flood_extent_detector.segmentation import SegmentationEngine, SegmentationResult
from shared.python.base_tool import FloodTool
from shared.python.exceptions import ConfigurationError, OutputWriteError
from shared.python.validators import Validators

logger = logging.getLogger("floodscope.flood_extent_detector.tools")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class SegmentationConfig:
    """Configuration for :class:`FloodSegmentationTool`.

    Attributes:
        policy: Classification policy name, ``"multi_criteria"`` (default)
                or ``"threshold_box"``.
        thresholds: Bounds for ``threshold_box``; ``None`` uses the
                    clear-water defaults.
        row_block: Rows classified per step; ``None`` classifies the
                   whole image at once.
        write_masked_image: Also write the masked RGB PNG.
        write_preview: Also write the three-panel quick-look PNG.
        max_file_size: Largest accepted input file, bytes.  ``None`` for
                       no limit.
        indent: JSON indentation of the written record.
    """

    policy: str = DEFAULT_POLICY
    thresholds: ThresholdBox | None = None
    row_block: int | None = None
    write_masked_image: bool = True
    write_preview: bool = False
    max_file_size: int | None = DEFAULT_MAX_FILE_SIZE
    indent: int = 2

    def build_policy(self) -> ClassificationPolicy:
        """Resolve :attr:`policy` and :attr:`thresholds` into a policy object.

        Raises:
            ConfigurationError: If the combination is invalid.
        """
        return get_policy(self.policy, self.thresholds)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> SegmentationConfig:
        """Build a config from loosely typed key/value pairs.

        Threshold keys may use snake_case (``h_min``), record names
        (``hMin``) or calibration-form names (``hueMin``); values may be
        numeric strings.  Supplying any threshold without an explicit
        ``policy`` selects ``threshold_box``.

        Bounds left out fall back to the clear-water box, except in the
        calibration flow: when any form name is used, or ``calibrate`` is
        true, they fall back to :data:`PREVIEW_THRESHOLDS` instead.  A bare
        ``calibrate`` segments with the preview box itself.

        Raises:
            ConfigurationError: On unknown keys or unparsable values.
            ThresholdRangeError: If the thresholds are out of range.
        """
        option_keys = {
            "policy", "row_block", "write_masked_image", "write_preview", "max_file_size", "indent",
        }
        accepted = option_keys | {"calibrate"}
        unknown = [k for k in values if k not in accepted and not ThresholdBox.recognises(k)]
        if unknown:
            raise ConfigurationError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")

        calibrate = _to_bool(values.get("calibrate", False))
        has_thresholds = calibrate or any(ThresholdBox.recognises(k) for k in values)
        thresholds = None
        if has_thresholds:
            if calibrate or any(ThresholdBox.is_calibration_key(k) for k in values):
                thresholds = ThresholdBox.from_mapping(values, defaults=PREVIEW_THRESHOLDS)
            else:
                thresholds = ThresholdBox.from_mapping(values)
        policy = values.get("policy") or ("threshold_box" if has_thresholds else DEFAULT_POLICY)

        options = {k: values[k] for k in option_keys - {"policy"} if values.get(k) is not None}
        for key in ("row_block", "max_file_size", "indent"):
            if key in options:
                options[key] = _to_int(key, options[key])
        for key in ("write_masked_image", "write_preview"):
            if key in options:
                options[key] = _to_bool(options[key])
        return cls(policy=str(policy), thresholds=thresholds, **options)


def _to_int(name: str, raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{name}' must be an integer, got {raw!r}") from exc


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


# ---------------------------------------------------------------------------
# Segmentation tool
# ---------------------------------------------------------------------------


class FloodSegmentationTool(FloodTool):
    """Segment one image file and write the mask, masked image and record.

    Output files in ``output_dir`` for an input named ``scene.png``:

    * ``mask-scene.png`` — single-band 0/255 mask.
    * ``masked-scene.png`` — RGB with non-water pixels blacked out.
    * ``preview-scene.png`` — quick-look figure, only with ``write_preview``.
    * ``segmentation-scene.json`` — :class:`SegmentationRecord`.

    Args:
        input_path: Image to segment (JPEG, PNG or TIFF).
        output_dir: Directory for the output files; created if missing.
        config: A :class:`SegmentationConfig`.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        input_path: Path,
        output_dir: Path,
        config: SegmentationConfig | None = None,
        *,
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_dir, verbose=verbose)
        self.output_dir: Path = Path(output_dir)
        self.config: SegmentationConfig = config or SegmentationConfig()
        self._engine: SegmentationEngine | None = None
        self._result: SegmentationResult | None = None
        self._record: SegmentationRecord | None = None

    # ------------------------------------------------------------------
    # FloodTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check the input image and resolve the classification policy.

        Raises:
            InputValidationError: If the image is missing or unsupported.
            ConfigurationError: If the policy settings are invalid.
            OutputWriteError: If the output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path)
        Validators.assert_supported_extension(self.input_path, SUPPORTED_EXTENSIONS)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(self.output_dir), str(exc)) from exc
        self._engine = SegmentationEngine(
            self.config.build_policy(), row_block=self.config.row_block
        )
        logger.debug("Inputs validated; policy=%r", self._engine.policy)

    def process(self) -> None:
        """Decode, segment, and write all outputs.

        Raises:
            RasterError: If the image cannot be decoded.
            OutputWriteError: If an output file cannot be written.
        """
        image = read_rgb(self.input_path, self.config.max_file_size)

        start = time.perf_counter()
        result = self._engine.segment(image)
        processing_time_ms = (time.perf_counter() - start) * 1000
        logger.info("%s: %s", self.input_path.name, result.stats)

        stem = self.input_path.stem
        mask_path = self._add_output(write_mask(self.output_dir / f"mask-{stem}.png", result))
        masked_path = None
        if self.config.write_masked_image:
            masked_path = self._add_output(
                write_masked_image(self.output_dir / f"masked-{stem}.png", result)
            )
        preview_path = None
        if self.config.write_preview:
            preview_path = self._add_output(
                save_segmentation_panel(
                    self.output_dir / f"preview-{stem}.png",
                    image,
                    result,
                    title=self.input_path.name,
                )
            )

        record = SegmentationRecord.from_result(
            self.input_path.name,
            result,
            processing_time_ms,
            mask_path=str(mask_path),
            masked_image_path=str(masked_path) if masked_path else None,
            preview_path=str(preview_path) if preview_path else None,
        )
        self._add_output(record.save(self.record_path, indent=self.config.indent))

        self._result = result
        self._record = record

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def record_path(self) -> Path:
        return self.output_dir / f"segmentation-{self.input_path.stem}.json"

    @property
    def result(self) -> SegmentationResult | None:
        """The :class:`SegmentationResult` of the last run, or ``None``."""
        return self._result

    @property
    def record(self) -> SegmentationRecord | None:
        """The :class:`SegmentationRecord` of the last run, or ``None``."""
        return self._record


# ---------------------------------------------------------------------------
# Comparison tool
# ---------------------------------------------------------------------------


class FloodComparisonTool(FloodTool):
    """Compare two segmentation records of the same scene.

    Args:
        pre_record: JSON record of the earlier image.
        post_record: JSON record of the later image.
        output_path: Where to write the :class:`ComparisonRecord` JSON.
        indent: JSON indentation.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        pre_record: Path,
        post_record: Path,
        output_path: Path,
        *,
        indent: int = 2,
        verbose: bool = False,
    ) -> None:
        super().__init__(pre_record, output_path, verbose=verbose)
        self.pre_record_path: Path = Path(pre_record)
        self.post_record_path: Path = Path(post_record)
        self.indent = indent
        self._record: ComparisonRecord | None = None

    def validate_inputs(self) -> None:
        for path in (self.pre_record_path, self.post_record_path):
            Validators.assert_file_exists(path)
            Validators.assert_supported_extension(path, [".json"])
        Validators.assert_output_dir_writable(self.output_path)

    def process(self) -> None:
        pre = SegmentationRecord.load(self.pre_record_path)
        post = SegmentationRecord.load(self.post_record_path)
        if (pre.width, pre.height) != (post.width, post.height):
            logger.warning(
                "Comparing images of different size: %s is %dx%d, %s is %dx%d",
                pre.source, pre.width, pre.height, post.source, post.width, post.height,
            )

        change = detect_change(pre.flood_pixels, post.flood_pixels)
        record = ComparisonRecord.from_change(pre, post, change)
        self._add_output(record.save(self.output_path, indent=self.indent))
        logger.info("%s", record)
        self._record = record

    @property
    def record(self) -> ComparisonRecord | None:
        """The :class:`ComparisonRecord` of the last run, or ``None``."""
        return self._record
