"""
Flood Extent Detector — Colour Conversion
==========================================
RGB → HSV conversion for 8-bit pixels.

Two forms are provided and they produce bit-identical results:

* :func:`rgb_to_hsv` — one pixel, plain Python floats.
* :func:`rgb_to_hsv_array` — a whole ``(..., 3)`` uint8 array, float64 numpy.

Both normalise each channel by 255, then apply the six-sector hue formula.
When two channels tie for the maximum the branch order is red, then green,
then blue.  Achromatic pixels (``max == min``) get ``h = 0`` and ``s = 0``.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
import numpy.typing as npt


class HSV(NamedTuple):
    """Hue, saturation and value, each in [0, 1]."""

    h: float
    s: float
    v: float


def rgb_to_hsv(r: int, g: int, b: int) -> HSV:
    """Convert one 8-bit RGB triple to :class:`HSV`.

    Args:
        r: Red channel, 0–255.
        g: Green channel, 0–255.
        b: Blue channel, 0–255.

    Returns:
        The pixel's :class:`HSV`.  Hue is folded into [0, 1).

    Example::

        >>> rgb_to_hsv(255, 0, 0)
        HSV(h=0.0, s=1.0, v=1.0)
    """
    rf = r / 255
    gf = g / 255
    bf = b / 255

    mx = max(rf, gf, bf)
    mn = min(rf, gf, bf)
    delta = mx - mn

    h = 0.0
    s = 0.0
    if delta != 0:
        s = delta / mx
        if mx == rf:
            h = ((gf - bf) / delta + (6 if gf < bf else 0)) / 6
        elif mx == gf:
            h = ((bf - rf) / delta + 2) / 6
        else:
            h = ((rf - gf) / delta + 4) / 6

    return HSV(h, s, mx)


def rgb_to_hsv_array(
    rgb: npt.NDArray[np.uint8],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Vectorised :func:`rgb_to_hsv` over an ``(..., 3)`` array.

    Args:
        rgb: Array whose last axis holds the R, G, B channels (0–255).

    Returns:
        ``(h, s, v)`` float64 arrays shaped like ``rgb[..., 0]``.
    """
    channels = np.asarray(rgb).astype(np.float64) / 255
    r = channels[..., 0]
    g = channels[..., 1]
    b = channels[..., 2]

    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    delta = mx - mn
    chromatic = delta != 0

    s = np.divide(delta, mx, out=np.zeros_like(delta), where=chromatic)

    # Achromatic pixels are overwritten below; a unit divisor keeps them finite.
    safe = np.where(chromatic, delta, 1.0)
    h_red = ((g - b) / safe + np.where(g < b, 6.0, 0.0)) / 6
    h_green = ((b - r) / safe + 2) / 6
    h_blue = ((r - g) / safe + 4) / 6

    is_red = mx == r
    is_green = ~is_red & (mx == g)
    h = np.select(
        [~chromatic, is_red, is_green],
        [0.0, h_red, h_green],
        default=h_blue,
    )
    return h, s, mx
