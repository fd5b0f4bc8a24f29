"""
Flood Extent Detector — CLI Entry Point
=========================================
Exposes the segmentation and comparison tools as the ``geo-flood``
command.

Usage::

    # Segment a before and an after image
    geo-flood segment data/before.png --output-dir output/
    geo-flood segment data/after.png  --output-dir output/

    # Calibrate with a custom HSV box instead of the muddy-water rules
    geo-flood segment data/after.png --h-min 0.02 --h-max 0.20 --s-min 0.05

    # Compare the two records
    geo-flood compare output/segmentation-before.json \\
                      output/segmentation-after.json \\
                      --output output/comparison.json

    # Quick arithmetic on known counts
    geo-flood change 1200 1800

Run ``geo-flood --help`` for the full option list.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from flood_extent_detector.change import detect_change
from flood_extent_detector.classifiers import DEFAULT_POLICY, POLICY_REGISTRY
from flood_extent_detector.imagery import DEFAULT_MAX_FILE_SIZE
from flood_extent_detector.tools import (
    FloodComparisonTool,
    FloodSegmentationTool,
    SegmentationConfig,
)
from shared.python.exceptions import FloodScopeError

logger = logging.getLogger("floodscope.flood_extent_detector.cli")

_THRESHOLD_OPTIONS = ("h_min", "h_max", "s_min", "s_max", "v_min", "v_max")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(exc: FloodScopeError) -> None:
    click.echo(f"Error: {exc.message}", err=True)
    sys.exit(1)


@click.group("geo-flood")
def cli() -> None:
    """Detect flood water in RGB imagery and measure how it changes."""


@cli.command("segment")
@click.argument(
    "image",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--policy",
    type=click.Choice(sorted(POLICY_REGISTRY), case_sensitive=False),
    default=None,
    help=f"Classification policy. Defaults to {DEFAULT_POLICY}, or threshold_box "
         "when any HSV bound is given.",
)
@click.option("--h-min", type=float, default=None, help="Hue lower bound, 0–1.")
@click.option("--h-max", type=float, default=None, help="Hue upper bound, 0–1.")
@click.option("--s-min", type=float, default=None, help="Saturation lower bound, 0–1.")
@click.option("--s-max", type=float, default=None, help="Saturation upper bound, 0–1.")
@click.option("--v-min", type=float, default=None, help="Value lower bound, 0–1.")
@click.option("--v-max", type=float, default=None, help="Value upper bound, 0–1.")
@click.option(
    "--calibrate",
    is_flag=True,
    default=False,
    help="Calibration mode: use the threshold_box policy and fill any bound not "
         "given from the wide preview box (hue 0.02–0.20, sat 0.05–1, val 0.10–0.95).",
)
@click.option(
    "--output-dir",
    "output_dir",
    default="output",
    show_default=True,
    envvar="FLOODSCOPE_OUTPUT_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the mask PNGs and the JSON record.",
)
@click.option(
    "--max-file-size",
    default=DEFAULT_MAX_FILE_SIZE,
    show_default=True,
    envvar="FLOODSCOPE_MAX_FILE_SIZE",
    type=int,
    help="Reject input images larger than this many bytes.",
)
@click.option(
    "--row-block",
    default=None,
    type=int,
    help="Classify this many rows at a time to bound memory use.",
)
@click.option(
    "--no-masked-image",
    is_flag=True,
    default=False,
    help="Only write the binary mask, not the masked RGB image.",
)
@click.option(
    "--preview",
    is_flag=True,
    default=False,
    help="Also write preview-<name>.png: source, mask and overlay side by side.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def segment_command(
    image: Path,
    policy: str | None,
    calibrate: bool,
    output_dir: Path,
    max_file_size: int,
    row_block: int | None,
    no_masked_image: bool,
    preview: bool,
    verbose: bool,
    **bounds: float | None,
) -> None:
    """Segment IMAGE into flood / non-flood pixels.

    Writes mask-<name>.png, masked-<name>.png and segmentation-<name>.json
    into OUTPUT_DIR.
    """
    _configure_logging(verbose)

    values: dict[str, object] = {
        key: bounds[key] for key in _THRESHOLD_OPTIONS if bounds.get(key) is not None
    }
    values.update(
        policy=policy,
        calibrate=calibrate,
        row_block=row_block,
        max_file_size=max_file_size,
        write_masked_image=not no_masked_image,
        write_preview=preview,
    )

    try:
        config = SegmentationConfig.from_mapping(values)
        tool = FloodSegmentationTool(image, output_dir, config, verbose=verbose)
        tool.run()
    except FloodScopeError as exc:
        _fail(exc)

    record = tool.record
    click.echo(f"\n{record}")
    click.echo(f"Record written to: {tool.record_path}")


@cli.command("compare")
@click.argument("pre_record", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("post_record", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output", "-o", "output_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Comparison JSON path. Defaults to comparison.json next to POST_RECORD.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def compare_command(
    pre_record: Path,
    post_record: Path,
    output_path: Path | None,
    verbose: bool,
) -> None:
    """Compare the flood extent of two segmentation records."""
    _configure_logging(verbose)
    output_path = output_path or post_record.parent / "comparison.json"

    tool = FloodComparisonTool(pre_record, post_record, output_path, verbose=verbose)
    try:
        tool.run()
    except FloodScopeError as exc:
        _fail(exc)

    click.echo(f"\n{tool.record}")
    click.echo(f"Comparison written to: {output_path}")


@cli.command("change", context_settings={"ignore_unknown_options": True})
@click.argument("pre_count", type=int)
@click.argument("post_count", type=int)
def change_command(pre_count: int, post_count: int) -> None:
    """Print the flood change between two flood pixel counts."""
    try:
        change = detect_change(pre_count, post_count)
    except FloodScopeError as exc:
        _fail(exc)

    click.echo(f"Change: {change.flood_change_percentage:.2f}%")
    click.echo(f"Pixels: {change.flood_change_pixels:+d}")
    click.echo(change.interpretation)


if __name__ == "__main__":
    cli()
