"""
Imaging module for crop geometry and Pillow-based image processing.
"""

from .crop_box import (
    CropBox,
    center_crop_for_ratio,
    clamp_to_image,
    output_size_for,
    parse_ratio,
    validate_and_fix_crop_params,
)
from .formats import FORMAT_CONFIG, resolve_format
from .image_processor import CropOutput, ImageProcessor

__all__ = [
    "CropBox",
    "CropOutput",
    "ImageProcessor",
    "FORMAT_CONFIG",
    "resolve_format",
    "validate_and_fix_crop_params",
    "clamp_to_image",
    "center_crop_for_ratio",
    "output_size_for",
    "parse_ratio",
]
