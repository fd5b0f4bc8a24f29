"""
FloodScope — Tool Pipeline Base
================================
Every file-level FloodScope tool runs the same three steps: check its
inputs, do its work, then report which files it produced.  :class:`FloodTool`
fixes that order in :meth:`FloodTool.run`; subclasses supply the first two
steps.

Subclass sketch::

    from shared.python.base_tool import FloodTool

    class MaskExporter(FloodTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)

        def process(self) -> None:
            ...
            self._add_output(mask_path)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

from shared.python.exceptions import FloodScopeError

# Parent of every "floodscope.<tool>.<module>" logger.
logger = logging.getLogger("floodscope")

_LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"


class FloodTool(ABC):
    """Base class for FloodScope tools that read files and write files.

    Attributes:
        input_path: Primary input (an image, or the earlier of two records).
        output_path: Output file or directory.
        verbose: Log at DEBUG instead of INFO.
        elapsed: Wall-clock seconds of the last successful :meth:`run`.
        outputs: Files written by the last :meth:`run`, in write order.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_path: Path = Path(output_path)
        self.verbose: bool = verbose
        self.elapsed: float | None = None
        self.outputs: list[Path] = []

        _attach_console_handler()
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    @abstractmethod
    def validate_inputs(self) -> None:
        """Check every precondition; write nothing.

        Raises:
            InputValidationError: If an input file is missing or unusable.
            ConfigurationError: If the tool's settings are invalid.
        """

    @abstractmethod
    def process(self) -> None:
        """Do the work and write the outputs, registering each with
        :meth:`_add_output`."""

    def run(self) -> None:
        """Validate, process, then log a summary of the written files.

        A :class:`~shared.python.exceptions.FloodScopeError` from either
        step is logged with its ``kind`` and re-raised unchanged.
        """
        name = type(self).__name__
        logger.info("%s: %s", name, self.input_path.name)
        self.outputs = []
        start = time.perf_counter()

        try:
            self.validate_inputs()
            self.process()
        except FloodScopeError as exc:
            logger.error("%s failed (%s): %s", name, exc.kind, exc.message)
            raise

        self.elapsed = time.perf_counter() - start
        logger.info("%s finished in %.2fs, %d file(s) written", name, self.elapsed, len(self.outputs))
        for path in self.outputs:
            logger.debug("  %s", path)

    def _add_output(self, path: Path) -> Path:
        self.outputs.append(Path(path))
        return Path(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.input_path)!r} -> {str(self.output_path)!r})"


def _attach_console_handler() -> None:
    """Give the ``floodscope`` logger one stderr handler, once."""
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
