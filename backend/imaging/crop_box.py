"""
Crop rectangle geometry.

Repairs crop rectangles suggested by the vision model so they always fit
inside the source image, and computes ratio-driven center crops and output
sizes for the analyze contract.
"""

import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Tuple, Union

from backend.errors import InvalidParameterError
from config.constants import (
    DEFAULT_CENTER_CROP_FACTOR,
    EDGE_SAFETY_MARGIN,
    MAX_OUTPUT_WIDTH,
    MIN_CROP_SIZE,
)

logger = logging.getLogger(__name__)

_RATIO_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)\s*$")


@dataclass
class CropBox:
    """Crop rectangle in source pixels, origin at the top-left corner."""

    x: int
    y: int
    width: int
    height: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def fits_within(self, image_width: int, image_height: int) -> bool:
        """True if the box lies entirely inside an image of the given size."""
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= image_width
            and self.y + self.height <= image_height
        )


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _coerce(value: Any, default: int) -> int:
    """Floor a loosely typed coordinate; zero, missing or junk gives the default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number == 0:
        return default
    return math.floor(number)


def validate_and_fix_crop_params(
    params: Union[Mapping[str, Any], CropBox],
    original_width: int,
    original_height: int,
) -> Tuple[CropBox, List[str]]:
    """
    Repair a suggested crop rectangle so it fits the source image.

    Args:
        params: Mapping (or CropBox) with x, y, width, height
        original_width: Source image width in pixels
        original_height: Source image height in pixels

    Returns:
        Tuple of (repaired CropBox, list of repair messages). An empty
        list means the suggestion was used as-is.
    """
    if isinstance(params, CropBox):
        params = params.to_dict()

    errors: List[str] = []
    raw = {key: params.get(key) for key in ("x", "y", "width", "height")}

    if all(_is_integer(value) for value in raw.values()):
        x, y, width, height = (int(raw[key]) for key in ("x", "y", "width", "height"))
    else:
        errors.append("Crop coordinates must be integers")
        x = _coerce(raw["x"], 0)
        y = _coerce(raw["y"], 0)
        width = _coerce(raw["width"], MIN_CROP_SIZE)
        height = _coerce(raw["height"], MIN_CROP_SIZE)

    if width < MIN_CROP_SIZE:
        errors.append(f"Width must be at least {MIN_CROP_SIZE}px")
        width = MIN_CROP_SIZE
    if height < MIN_CROP_SIZE:
        errors.append(f"Height must be at least {MIN_CROP_SIZE}px")
        height = MIN_CROP_SIZE

    if x < 0:
        errors.append("x must not be negative")
        x = 0
    if y < 0:
        errors.append("y must not be negative")
        y = 0
    if x > original_width - MIN_CROP_SIZE:
        errors.append("x is outside the safe range")
        x = max(0, original_width - MIN_CROP_SIZE)
    if y > original_height - MIN_CROP_SIZE:
        errors.append("y is outside the safe range")
        y = max(0, original_height - MIN_CROP_SIZE)

    if x + width > original_width:
        errors.append("Crop width exceeds image bounds")
        width = original_width - x
    if y + height > original_height:
        errors.append("Crop height exceeds image bounds")
        height = original_height - y

    if width < MIN_CROP_SIZE or height < MIN_CROP_SIZE:
        errors.append("Crop still too small after repair, using centered default")
        default_size = min(original_width, original_height) * DEFAULT_CENTER_CROP_FACTOR
        x = math.floor((original_width - default_size) / 2)
        y = math.floor((original_height - default_size) / 2)
        width = max(1, math.floor(default_size))
        height = max(1, math.floor(default_size))

    if errors:
        logger.debug(f"Crop params repaired for {original_width}x{original_height}: {errors}")

    return CropBox(x=x, y=y, width=width, height=height), errors


def clamp_to_image(
    box: CropBox,
    image_width: int,
    image_height: int,
    margin: int = EDGE_SAFETY_MARGIN,
) -> CropBox:
    """Final clamp applied right before pixels are extracted."""
    x = max(0, min(box.x, image_width - margin))
    y = max(0, min(box.y, image_height - margin))
    width = max(1, min(box.width, image_width - x))
    height = max(1, min(box.height, image_height - y))
    return CropBox(x=x, y=y, width=width, height=height)


def parse_ratio(ratio: str) -> float:
    """
    Parse an aspect ratio string such as "16:9" or "2.35:1".

    Raises:
        InvalidParameterError: If the string is malformed or non-positive
    """
    match = _RATIO_PATTERN.match(ratio or "")
    if not match:
        raise InvalidParameterError(f"Invalid ratio: {ratio!r}. Expected format W:H")

    ratio_w, ratio_h = float(match.group(1)), float(match.group(2))
    if ratio_w <= 0 or ratio_h <= 0:
        raise InvalidParameterError(f"Invalid ratio: {ratio!r}. Both sides must be positive")

    return ratio_w / ratio_h


def center_crop_for_ratio(image_width: int, image_height: int, ratio: float) -> CropBox:
    """Largest centered crop with the target aspect ratio."""
    if image_width / image_height > ratio:
        height = image_height
        width = max(1, math.floor(height * ratio))
        x = math.floor((image_width - width) / 2)
        y = 0
    else:
        width = image_width
        height = max(1, math.floor(width / ratio))
        x = 0
        y = math.floor((image_height - height) / 2)
    return CropBox(x=x, y=y, width=width, height=height)


def output_size_for(
    box: CropBox, ratio: float, max_width: int = MAX_OUTPUT_WIDTH
) -> Tuple[int, int]:
    """Output size for a crop, capped at max_width and never upscaled."""
    output_width = min(box.width, max_width)
    output_height = max(1, math.floor(output_width / ratio))
    return output_width, output_height
