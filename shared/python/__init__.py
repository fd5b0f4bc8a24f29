"""
FloodScope — Shared Python Package
===================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import FloodTool, Validators
    from shared.python.exceptions import InputShapeError
"""

from shared.python.base_tool import FloodTool
from shared.python.exceptions import (
    ConfigurationError,
    FloodScopeError,
    InputShapeError,
    InputValidationError,
    OutputWriteError,
    RasterError,
    ThresholdRangeError,
    UnknownPolicyError,
)
from shared.python.validators import Validators

__all__ = [
    "FloodTool",
    "Validators",
    "FloodScopeError",
    "InputValidationError",
    "InputShapeError",
    "ConfigurationError",
    "ThresholdRangeError",
    "UnknownPolicyError",
    "RasterError",
    "OutputWriteError",
]
