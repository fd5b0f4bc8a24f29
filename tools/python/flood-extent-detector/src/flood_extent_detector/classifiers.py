"""
Flood Extent Detector — Pixel Classification Policies
=======================================================
Decides, pixel by pixel, whether a colour looks like flood water.

Each policy is a :class:`ClassificationPolicy` subclass following the
Strategy design pattern.  The segmentation engine accepts any policy and
never needs to know which one it was given.

Policies:
    - threshold_box    Pixel is water when H, S and V all fall inside a box.
    - multi_criteria   Three brown/tan/sediment colour rules combined with OR,
                       tuned for muddy flood water that a blue-water box misses.

Every policy offers two equivalent entry points: :meth:`~ClassificationPolicy.is_water`
for a single pixel and :meth:`~ClassificationPolicy.classify` for a whole
array.  They are required to agree on every input.

Usage::

    from flood_extent_detector.classifiers import ThresholdBox, get_policy

    policy = get_policy("threshold_box", ThresholdBox(h_min=0.05, h_max=0.25))
    policy.is_water(180, 140, 90, rgb_to_hsv(180, 140, 90))
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Mapping

import numpy as np
import numpy.typing as npt

from flood_extent_detector.color import HSV
from shared.python.exceptions import ConfigurationError, UnknownPolicyError
from shared.python.validators import Validators

logger = logging.getLogger("floodscope.flood_extent_detector.classifiers")

HSVArrays = tuple[
    npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]
]

# Accepted spellings for each ThresholdBox field.  The camelCase names are
# the ones stored in result records; hue/sat/val come from the calibration
# preview form.  The form names are always the last alias.
_THRESHOLD_ALIASES: dict[str, tuple[str, ...]] = {
    "h_min": ("h_min", "hMin", "hueMin"),
    "h_max": ("h_max", "hMax", "hueMax"),
    "s_min": ("s_min", "sMin", "satMin"),
    "s_max": ("s_max", "sMax", "satMax"),
    "v_min": ("v_min", "vMin", "valMin"),
    "v_max": ("v_max", "vMax", "valMax"),
}


# ---------------------------------------------------------------------------
# Threshold box
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThresholdBox:
    """Inclusive HSV bounds for the threshold-box policy.

    The defaults are tuned for clear, blue-ish water reflectance.  Every
    bound must lie in [0, 1] and each minimum must not exceed its maximum;
    out-of-range values are rejected, never clamped.

    Attributes:
        h_min: Lowest accepted hue.
        h_max: Highest accepted hue.
        s_min: Lowest accepted saturation.
        s_max: Highest accepted saturation.
        v_min: Lowest accepted value (brightness).
        v_max: Highest accepted value.

    Raises:
        ThresholdRangeError: On construction, if a bound is invalid.
    """

    h_min: float = 0.063
    h_max: float = 0.212
    s_min: float = 0.021
    s_max: float = 0.408
    v_min: float = 0.623
    v_max: float = 1.0

    def __post_init__(self) -> None:
        for key, value in self.as_dict().items():
            Validators.assert_unit_interval(key, value)
        Validators.assert_ordered_bounds("hMin", self.h_min, "hMax", self.h_max)
        Validators.assert_ordered_bounds("sMin", self.s_min, "sMax", self.s_max)
        Validators.assert_ordered_bounds("vMin", self.v_min, "vMax", self.v_max)

    def contains(self, h: float, s: float, v: float) -> bool:
        """Return ``True`` when ``(h, s, v)`` lies inside the box."""
        return (
            self.h_min <= h <= self.h_max
            and self.s_min <= s <= self.s_max
            and self.v_min <= v <= self.v_max
        )

    def as_dict(self) -> dict[str, float]:
        """Bounds keyed by the camelCase names used in result records."""
        return {
            "hMin": self.h_min,
            "hMax": self.h_max,
            "sMin": self.s_min,
            "sMax": self.s_max,
            "vMin": self.v_min,
            "vMax": self.v_max,
        }

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, Any],
        defaults: ThresholdBox | None = None,
    ) -> ThresholdBox:
        """Build a box from any mix of snake_case, camelCase or form names.

        Missing bounds are taken from *defaults*, the clear-water box when
        ``None``.  Values may be numeric strings.

        Raises:
            ConfigurationError: If a value is not a number.
            ThresholdRangeError: If the resulting box is invalid.
        """
        kwargs: dict[str, float] = {}
        for field_name, aliases in _THRESHOLD_ALIASES.items():
            for alias in aliases:
                if alias in values and values[alias] is not None:
                    kwargs[field_name] = _to_float(alias, values[alias])
                    break
        return replace(defaults or cls(), **kwargs)

    @staticmethod
    def recognises(key: str) -> bool:
        """Return ``True`` if *key* names one of the six bounds."""
        return any(key in aliases for aliases in _THRESHOLD_ALIASES.values())

    @staticmethod
    def is_calibration_key(key: str) -> bool:
        """Return ``True`` if *key* is a calibration-form name such as ``hueMin``."""
        return any(key == aliases[-1] for aliases in _THRESHOLD_ALIASES.values())


def _to_float(name: str, raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Threshold '{name}' must be a number, got {raw!r}"
        ) from exc


# Defaults of the interactive calibration preview: a deliberately wide box
# that is narrowed by hand while inspecting the mask.
PREVIEW_THRESHOLDS = ThresholdBox(
    h_min=0.02, h_max=0.20, s_min=0.05, s_max=1.0, v_min=0.10, v_max=0.95
)


# ---------------------------------------------------------------------------
# Policy ABC + concrete implementations
# ---------------------------------------------------------------------------


class ClassificationPolicy(ABC):
    """Abstract base for a water / non-water pixel classifier."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name of the policy (e.g. ``"threshold_box"``)."""

    @abstractmethod
    def is_water(self, r: int, g: int, b: int, hsv: HSV) -> bool:
        """Classify one pixel from its raw RGB and its :class:`HSV`."""

    @abstractmethod
    def classify(
        self, rgb: npt.NDArray[np.uint8], hsv: HSVArrays
    ) -> npt.NDArray[np.bool_]:
        """Classify every pixel of an ``(..., 3)`` uint8 array.

        Args:
            rgb: Pixel array, last axis R, G, B.
            hsv: ``(h, s, v)`` arrays from
                 :func:`~flood_extent_detector.color.rgb_to_hsv_array`.

        Returns:
            Boolean array shaped like ``rgb[..., 0]``, ``True`` for water.
        """

    @property
    def thresholds(self) -> dict[str, float] | None:
        """Parameters worth recording with a result, or ``None``."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ThresholdBoxPolicy(ClassificationPolicy):
    """Water iff hue, saturation and value all fall inside a :class:`ThresholdBox`.

    Args:
        box: Bounds to use.  Defaults to the clear-water box.
    """

    def __init__(self, box: ThresholdBox | None = None) -> None:
        self.box: ThresholdBox = box or ThresholdBox()

    @property
    def name(self) -> str:
        return "threshold_box"

    @property
    def thresholds(self) -> dict[str, float]:
        return self.box.as_dict()

    def is_water(self, r: int, g: int, b: int, hsv: HSV) -> bool:
        return self.box.contains(hsv.h, hsv.s, hsv.v)

    def classify(
        self, rgb: npt.NDArray[np.uint8], hsv: HSVArrays
    ) -> npt.NDArray[np.bool_]:
        h, s, v = hsv
        box = self.box
        return (
            (h >= box.h_min) & (h <= box.h_max)
            & (s >= box.s_min) & (s <= box.s_max)
            & (v >= box.v_min) & (v <= box.v_max)
        )

    def __repr__(self) -> str:
        return f"ThresholdBoxPolicy({self.box!r})"


class MultiCriteriaPolicy(ClassificationPolicy):
    """Muddy flood-water heuristic: any of three colour rules marks water.

    Sediment-laden water is brown, tan or ochre rather than blue, so it
    falls outside a clear-water HSV box.  Each rule covers one brightness
    and turbidity regime:

    1. Bright muddy water: brown/tan hue with clearly suppressed blue.
    2. Dark, sediment-heavy water: low value, blue well below red/green.
    3. Beige/tan water: lighter, moderately saturated.

    Besides HSV the rules use differences of the raw 0–255 channels::

        rg_diff     = |r - g|
        rb_diff     = r - b
        gb_diff     = g - b
        chrominance = sqrt(rb_diff**2 + gb_diff**2)

    The thresholds are empirically calibrated constants.  Changing any of
    them changes historical flood counts.
    """

    @property
    def name(self) -> str:
        return "multi_criteria"

    def is_water(self, r: int, g: int, b: int, hsv: HSV) -> bool:
        r, g, b = int(r), int(g), int(b)
        h, s, v = hsv
        rg_diff = abs(r - g)
        rb_diff = r - b
        gb_diff = g - b
        chrominance = math.sqrt(rb_diff * rb_diff + gb_diff * gb_diff)

        bright_muddy = (
            0.02 <= h <= 0.20
            and s >= 0.08
            and 0.15 <= v <= 0.95
            and rb_diff >= 15
            and gb_diff >= 10
            and rg_diff <= 50
            and b <= 140
            and chrominance >= 15
        )
        sediment_heavy = (
            0.0 <= h <= 0.25
            and 0.10 <= v <= 0.60
            and r >= 60
            and g >= 50
            and b <= max(r, g) * 0.7
            and rb_diff >= 10
            and gb_diff >= 5
            and s >= 0.05
        )
        beige = (
            0.05 <= h <= 0.15
            and s >= 0.12
            and 0.40 <= v <= 0.90
            and r >= 100
            and g >= 90
            and b <= 110
            and rb_diff >= 20
            and gb_diff >= 15
        )
        return bright_muddy or sediment_heavy or beige

    def classify(
        self, rgb: npt.NDArray[np.uint8], hsv: HSVArrays
    ) -> npt.NDArray[np.bool_]:
        h, s, v = hsv
        channels = np.asarray(rgb).astype(np.int32)
        r = channels[..., 0]
        g = channels[..., 1]
        b = channels[..., 2]

        rg_diff = np.abs(r - g)
        rb_diff = r - b
        gb_diff = g - b
        chrominance = np.sqrt((rb_diff * rb_diff + gb_diff * gb_diff).astype(np.float64))

        bright_muddy = (
            (h >= 0.02) & (h <= 0.20)
            & (s >= 0.08)
            & (v >= 0.15) & (v <= 0.95)
            & (rb_diff >= 15)
            & (gb_diff >= 10)
            & (rg_diff <= 50)
            & (b <= 140)
            & (chrominance >= 15)
        )
        sediment_heavy = (
            (h >= 0.0) & (h <= 0.25)
            & (v >= 0.10) & (v <= 0.60)
            & (r >= 60)
            & (g >= 50)
            & (b <= np.maximum(r, g) * 0.7)
            & (rb_diff >= 10)
            & (gb_diff >= 5)
            & (s >= 0.05)
        )
        beige = (
            (h >= 0.05) & (h <= 0.15)
            & (s >= 0.12)
            & (v >= 0.40) & (v <= 0.90)
            & (r >= 100)
            & (g >= 90)
            & (b <= 110)
            & (rb_diff >= 20)
            & (gb_diff >= 15)
        )
        return bright_muddy | sediment_heavy | beige


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

DEFAULT_POLICY = "multi_criteria"

POLICY_REGISTRY: dict[str, type[ClassificationPolicy]] = {
    "threshold_box": ThresholdBoxPolicy,
    "multi_criteria": MultiCriteriaPolicy,
}


def _normalise_name(name: str) -> str:
    return name.strip().lower().replace("-", "_")


def get_policy(
    name: str = DEFAULT_POLICY,
    thresholds: ThresholdBox | None = None,
) -> ClassificationPolicy:
    """Resolve a policy by registry name.

    Args:
        name: ``"threshold_box"`` or ``"multi_criteria"``.  Case and
              ``-``/``_`` are ignored.
        thresholds: Bounds for ``threshold_box``.  ``None`` uses the
                    default box.

    Returns:
        A ready-to-use :class:`ClassificationPolicy`.

    Raises:
        UnknownPolicyError: If *name* is not registered.
        ConfigurationError: If *thresholds* is given for a policy that
            does not take any.
    """
    key = _normalise_name(name)
    if key not in POLICY_REGISTRY:
        raise UnknownPolicyError(name, list(POLICY_REGISTRY))

    if key == "threshold_box":
        policy: ClassificationPolicy = ThresholdBoxPolicy(thresholds)
    elif thresholds is not None:
        raise ConfigurationError(
            f"Policy '{key}' has fixed rules and does not accept thresholds."
        )
    else:
        policy = POLICY_REGISTRY[key]()

    logger.debug("Resolved classification policy %r", policy)
    return policy
