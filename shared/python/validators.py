"""
FloodScope — Precondition Checks
==================================
Each check either returns ``None`` or raises a FloodScope exception, so a
tool's ``validate_inputs`` reads as a flat list of assertions::

    class MaskExporter(FloodTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_supported_extension(self.input_path, [".png"])

The threshold checks are also used by
:class:`~flood_extent_detector.classifiers.ThresholdBox` at construction time.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from shared.python.exceptions import (
    InputShapeError,
    InputValidationError,
    OutputWriteError,
    ThresholdRangeError,
)


class Validators:
    """Namespace of static precondition checks; never instantiated."""

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that *path* points to an existing regular file.

        Args:
            path: Path object to check.

        Raises:
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Assert that the parent directory of *output_path* is writable.

        Creates the parent directory (and any missing parents) if it does
        not yet exist.

        Raises:
            OutputWriteError: If the parent directory cannot be created.
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Allowed extensions, each starting with a dot
                        (e.g. ``[".png", ".jpg"]``).

        Raises:
            InputValidationError: If the file extension is not allowed.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    @staticmethod
    def assert_file_size_within(path: Path, max_bytes: int) -> None:
        """Assert that the file at *path* is no larger than *max_bytes*.

        Raises:
            InputValidationError: If the file exceeds the limit.
        """
        size = Path(path).stat().st_size
        if size > max_bytes:
            raise InputValidationError(
                f"File size exceeds maximum limit: '{Path(path).name}' is "
                f"{size:,} bytes, limit is {max_bytes:,} bytes."
            )

    # ------------------------------------------------------------------
    # Raster checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_buffer_shape(
        width: int,
        height: int,
        buffer_length: int,
        channels: int = 3,
    ) -> None:
        """Assert that a packed pixel buffer matches its declared shape.

        Args:
            width: Declared width in pixels.  Must be positive.
            height: Declared height in pixels.  Must be positive.
            buffer_length: Actual buffer length in bytes.
            channels: Bytes per pixel.

        Raises:
            InputShapeError: If either dimension is not positive or the
                buffer length differs from ``width * height * channels``.

        Example::

            Validators.assert_buffer_shape(2, 2, len(pixels))
        """
        if width <= 0 or height <= 0 or buffer_length != width * height * channels:
            raise InputShapeError(width, height, buffer_length, channels)

    # ------------------------------------------------------------------
    # Threshold checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_unit_interval(name: str, value: float) -> None:
        """Assert that *value* lies in the closed interval [0, 1].

        Raises:
            ThresholdRangeError: If *value* is outside [0, 1] or NaN.
        """
        # NaN fails both comparisons, so it is rejected here too.
        if not (0.0 <= value <= 1.0):
            raise ThresholdRangeError(name, f"{value!r} is outside [0, 1]")

    @staticmethod
    def assert_ordered_bounds(
        min_name: str,
        min_value: float,
        max_name: str,
        max_value: float,
    ) -> None:
        """Assert that a lower bound does not exceed its upper bound.

        Raises:
            ThresholdRangeError: If ``min_value > max_value``.

        Example::

            Validators.assert_ordered_bounds("hMin", 0.1, "hMax", 0.2)
        """
        if min_value > max_value:
            raise ThresholdRangeError(
                f"{min_name}/{max_name}",
                f"lower bound {min_value!r} is greater than upper bound {max_value!r}",
            )
