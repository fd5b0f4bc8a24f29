"""
Flood Extent Detector — Image Decode / Encode
===============================================
Reads photographs (JPEG, PNG, TIFF) into :class:`~flood_extent_detector.segmentation.RasterImage`
and writes masks back out as PNG, using :mod:`rasterio`.

Ordinary photos carry no georeferencing, so rasterio's
``NotGeoreferencedWarning`` is silenced for every read and write here.
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.enums import ColorInterp
from rasterio.errors import NotGeoreferencedWarning, RasterioIOError

from flood_extent_detector.segmentation import RasterImage, SegmentationResult
from shared.python.exceptions import InputValidationError, OutputWriteError, RasterError
from shared.python.validators import Validators

logger = logging.getLogger("floodscope.flood_extent_detector.imagery")

SUPPORTED_EXTENSIONS = [".jpg", ".jpeg", ".png", ".tif", ".tiff"]

# 10 MiB, the upload limit of the web front end.
DEFAULT_MAX_FILE_SIZE = 10_485_760


def read_rgb(path: Path, max_file_size: int | None = DEFAULT_MAX_FILE_SIZE) -> RasterImage:
    """Decode an image file into a tightly packed RGB raster.

    Only the first three bands are kept, so an alpha channel is dropped.
    Palette-indexed images are expanded to RGB through their colour table;
    plain single-band greyscale is rejected.
    Non-uint8 sources are clipped to 0–255 before conversion.

    Args:
        path: Image file to read.
        max_file_size: Reject files larger than this many bytes.  ``None``
                       disables the check.

    Returns:
        The decoded :class:`RasterImage`.

    Raises:
        InputValidationError: If the file is missing, has an unsupported
            extension, is too large, or has fewer than three bands
            and no colour table.
        RasterError: If rasterio cannot open or read the file.
    """
    path = Path(path)
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, SUPPORTED_EXTENSIONS)
    if max_file_size is not None:
        Validators.assert_file_size_within(path, max_file_size)

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with rasterio.open(path) as src:
                if src.count == 1 and src.colorinterp[0] == ColorInterp.palette:
                    data = _expand_palette(src.read(1), src.colormap(1))
                    logger.debug("Expanded palette image %s to RGB", path.name)
                elif src.count < 3:
                    raise InputValidationError(
                        f"Expected an RGB image but '{path.name}' has "
                        f"{src.count} band(s)."
                    )
                else:
                    data = src.read([1, 2, 3])
    except RasterioIOError as exc:
        raise RasterError(f"Could not open image '{path}': {exc}") from exc

    if data.dtype != np.uint8:
        logger.debug("Clipping %s from %s to uint8", path.name, data.dtype)

    image = RasterImage.from_array(np.transpose(data, (1, 2, 0)))
    logger.debug("Decoded %s: %dx%d", path.name, image.width, image.height)
    return image


def _expand_palette(
    indices: npt.NDArray, colormap: dict[int, tuple[int, ...]]
) -> npt.NDArray[np.uint8]:
    """Map a ``(height, width)`` index band to a ``(3, height, width)`` RGB stack.

    Indices missing from *colormap* map to black.
    """
    size = max(max(colormap, default=0), int(indices.max(initial=0))) + 1
    lut = np.zeros((size, 3), dtype=np.uint8)
    for index, entry in colormap.items():
        lut[index] = entry[:3]
    return np.transpose(lut[indices], (2, 0, 1))


def write_mask(path: Path, result: SegmentationResult) -> Path:
    """Write the binary mask of *result* as a single-band PNG."""
    return _write_png(path, result.mask_array()[np.newaxis, ...])


def write_masked_image(path: Path, result: SegmentationResult) -> Path:
    """Write the masked RGB image of *result* as a three-band PNG."""
    return _write_png(path, np.transpose(result.masked_array(), (2, 0, 1)))


def _write_png(path: Path, bands: npt.NDArray[np.uint8]) -> Path:
    """Write a ``(count, height, width)`` uint8 array to *path*.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    path = Path(path)
    Validators.assert_output_dir_writable(path)
    count, height, width = bands.shape
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with rasterio.open(
                path, "w",
                driver="PNG",
                height=height,
                width=width,
                count=count,
                dtype="uint8",
            ) as dst:
                dst.write(bands)
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc
    logger.debug("Wrote %s (%d band(s))", path, count)
    return path
