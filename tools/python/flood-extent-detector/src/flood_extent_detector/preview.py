"""
Flood Extent Detector — Quick-look Figure
===========================================
Three-panel PNG for eyeballing a segmentation: the source photo, the
binary mask, and the photo with detected water tinted cyan.
"""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib
matplotlib.use("Agg")                    # non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

from flood_extent_detector.segmentation import WATER, RasterImage, SegmentationResult
from shared.python.exceptions import OutputWriteError
from shared.python.validators import Validators

logger = logging.getLogger("floodscope.flood_extent_detector.preview")

_TINT = np.array([0.0, 1.0, 1.0])
_TINT_ALPHA = 0.45


def save_segmentation_panel(
    path: Path,
    image: RasterImage,
    result: SegmentationResult,
    title: str | None = None,
    dpi: int = 120,
) -> Path:
    """Write the quick-look figure for *result* to *path*.

    Raises:
        OutputWriteError: If the figure cannot be saved.
    """
    path = Path(path)
    Validators.assert_output_dir_writable(path)

    rgb = image.as_array().astype(np.float64) / 255.0
    water = result.mask_array() == WATER
    overlay = rgb.copy()
    overlay[water] = (1 - _TINT_ALPHA) * overlay[water] + _TINT_ALPHA * _TINT

    fig, axes = plt.subplots(1, 3, figsize=(18, 6))
    try:
        axes[0].imshow(rgb)
        axes[0].set_title("Source", fontsize=12, fontweight="bold")
        axes[1].imshow(water, cmap="gray", vmin=0, vmax=1)
        axes[1].set_title(
            f"Water mask ({result.policy_name})", fontsize=12, fontweight="bold",
        )
        axes[2].imshow(overlay)
        axes[2].set_title(
            f"Flood cover: {result.stats.flood_percentage:.2f}%",
            fontsize=12, fontweight="bold",
        )
        for ax in axes:
            ax.axis("off")
        if title:
            fig.suptitle(title, fontsize=14)

        plt.tight_layout()
        fig.savefig(str(path), dpi=dpi, bbox_inches="tight")
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc
    finally:
        plt.close(fig)

    logger.debug("Wrote preview %s", path)
    return path
