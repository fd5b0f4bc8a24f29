"""
FloodScope — Custom Exception Hierarchy
========================================
All FloodScope tools raise exceptions from this module so callers can
catch them at the right level of granularity.

Every exception carries a short machine-readable ``kind`` plus the
human-readable ``message``.  :meth:`FloodScopeError.to_dict` turns either
into the structured error result handed back to a calling layer (an HTTP
handler, a batch runner, the CLI).

Hierarchy::

    FloodScopeError                      ← catch-all base
    ├── InputValidationError             ← bad files, bad counts, etc.
    │   └── InputShapeError              ← pixel buffer ≠ width*height*3
    ├── ConfigurationError               ← bad classification settings
    │   ├── ThresholdRangeError          ← bound outside [0, 1] or min > max
    │   └── UnknownPolicyError           ← unrecognised policy selector
    ├── RasterError                      ← image cannot be decoded
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import InputShapeError

    raise InputShapeError(width=4, height=4, actual_length=47)
"""

from __future__ import annotations

from typing import Any


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class FloodScopeError(Exception):
    """Base exception for all FloodScope tools.

    Catch this to handle any tool-specific error without caring about
    the exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    kind: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def to_dict(self) -> dict[str, Any]:
        """Return the error as a ``{"kind": ..., "message": ...}`` dict."""
        return {"kind": self.kind, "message": self.message}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(FloodScopeError):
    """Raised when a tool's inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """

    kind = "input_validation"


class InputShapeError(InputValidationError):
    """Raised when a pixel buffer does not match its declared dimensions.

    Args:
        width: Declared image width in pixels.
        height: Declared image height in pixels.
        actual_length: Length of the buffer that was supplied, in bytes.
        channels: Expected number of channels per pixel.

    Example::

        raise InputShapeError(width=2, height=2, actual_length=11)
    """

    kind = "input_shape"

    def __init__(
        self,
        width: int,
        height: int,
        actual_length: int,
        channels: int = 3,
    ) -> None:
        if width <= 0 or height <= 0:
            detail = f"dimensions must be positive, got {width}x{height}"
        else:
            detail = (
                f"expected {width}x{height}x{channels} = "
                f"{width * height * channels} bytes but got {actual_length}"
            )
        super().__init__(f"Invalid raster shape: {detail}.")
        self.width: int = width
        self.height: int = height
        self.actual_length: int = actual_length
        self.channels: int = channels


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(FloodScopeError):
    """Raised when classification settings are malformed.

    Always raised before any pixel is processed, so no partial result
    exists when a caller sees it.
    """

    kind = "configuration"


class ThresholdRangeError(ConfigurationError):
    """Raised when an HSV threshold bound is out of range or inverted.

    Args:
        name: Name of the offending bound or bound pair (e.g. ``"hMin"``).
        reason: Short explanation.

    Example::

        raise ThresholdRangeError("sMax", "1.2 is outside [0, 1]")
    """

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Invalid threshold '{name}': {reason}")
        self.name: str = name
        self.reason: str = reason


class UnknownPolicyError(ConfigurationError):
    """Raised when a classification policy name is not recognised.

    Args:
        policy: The name that was requested.
        available: Names of the registered policies.
    """

    def __init__(self, policy: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{p}'" for p in available)
        super().__init__(
            f"Unknown classification policy '{policy}'. "
            f"Available policies: {available_str}"
        )
        self.policy: str = policy
        self.available: list[str] = available


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(FloodScopeError):
    """Raised when an image file cannot be opened or decoded by rasterio."""

    kind = "raster"


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(FloodScopeError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/mask.png", "Permission denied")
    """

    kind = "output_write"

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
