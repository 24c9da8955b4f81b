"""
Image validation, inspection and cropping with Pillow.

HEIC/HEIF uploads are opened through pi-heif; BMP and TIFF are read
natively by Pillow. Cropped output keeps the upload's format where the
format table allows it.
"""

import base64
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pi_heif
from PIL import Image, UnidentifiedImageError

from backend.errors import BadImageFormatError, CropProcessingError, ImageTooLargeError
from backend.imaging.crop_box import CropBox, clamp_to_image
from backend.imaging.formats import file_extension, resolve_format
from config.constants import (
    ALLOWED_IMAGE_EXTENSIONS,
    ALLOWED_IMAGE_TYPES,
    MAX_IMAGE_SIZE,
)

logger = logging.getLogger(__name__)

# Formats the vision model accepts as data URLs
MODEL_READABLE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}

# Modes that must be converted before encoding
NON_RGB_MODES = {"CMYK", "YCbCr", "LAB", "HSV", "I", "I;16", "F"}


@dataclass
class CropOutput:
    """Encoded crop plus the metadata returned to clients."""

    data: bytes
    format: str
    extension: str
    mime_type: str
    quality: int
    original_size: Tuple[int, int]
    crop_area: CropBox
    operations: List[str] = field(default_factory=list)

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "original": {"width": self.original_size[0], "height": self.original_size[1]},
            "cropped": {"width": self.crop_area.width, "height": self.crop_area.height},
            "crop_area": self.crop_area.to_dict(),
            "operations": list(self.operations),
        }


class ImageProcessor:
    """Validate uploads, read dimensions and perform crops."""

    def __init__(
        self,
        max_size: int = MAX_IMAGE_SIZE,
        allowed_types: Optional[List[str]] = None,
        allowed_extensions: Optional[List[str]] = None,
    ):
        self.max_size = max_size
        self.allowed_types = allowed_types or ALLOWED_IMAGE_TYPES
        self.allowed_extensions = allowed_extensions or ALLOWED_IMAGE_EXTENSIONS

        pi_heif.register_heif_opener()

    def validate_upload(
        self, filename: Optional[str], content_type: Optional[str], size: int
    ) -> None:
        """
        Check an upload before any decoding.

        Raises:
            ImageTooLargeError: If the upload exceeds the size limit
            BadImageFormatError: If the type, extension or filename is not allowed
        """
        if size <= 0:
            raise BadImageFormatError("No image file provided")

        if size > self.max_size:
            raise ImageTooLargeError(size, self.max_size)

        if content_type not in self.allowed_types:
            raise BadImageFormatError(
                f"Image type {content_type} is not allowed. "
                f"Allowed types: {', '.join(self.allowed_types)}"
            )

        name = filename or ""
        if ".." in name or "/" in name or "\\" in name:
            raise BadImageFormatError("Invalid file name contains path traversal characters")

        extension = file_extension(name)
        if extension not in self.allowed_extensions:
            raise BadImageFormatError(
                f"Only image files are supported: {', '.join(self.allowed_extensions)}"
            )

    def open_image(self, data: bytes) -> Image.Image:
        """Decode image bytes fully, raising BadImageFormatError on failure."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise BadImageFormatError(
                "Unable to decode image", details=str(e)
            ) from e

        if image.width <= 0 or image.height <= 0:
            raise BadImageFormatError(f"Invalid image dimensions: {image.size}")

        return image

    def read_dimensions(self, data: bytes) -> Tuple[int, int]:
        """Return (width, height) of the encoded image."""
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise BadImageFormatError(
                "Unable to determine image dimensions", details=str(e)
            ) from e

        if not width or not height:
            raise BadImageFormatError("Unable to determine image dimensions")

        return width, height

    def analysis_payload(self, data: bytes, mime_type: Optional[str]) -> Tuple[str, str]:
        """
        Base64 payload and MIME type to send to the vision model.

        BMP/TIFF are re-encoded as PNG and HEIC/HEIF/AVIF as JPEG, since the
        model only reads web formats.
        """
        mime_type = (mime_type or "").lower()
        if mime_type in MODEL_READABLE_TYPES:
            return base64.b64encode(data).decode("utf-8"), mime_type

        image = self.open_image(data)
        if mime_type in ("image/bmp", "image/tiff"):
            target_format, target_mime = "PNG", "image/png"
        else:
            target_format, target_mime = "JPEG", "image/jpeg"

        image = self._prepare_for_format(image, target_format)
        with io.BytesIO() as output:
            image.save(output, format=target_format)
            converted = output.getvalue()

        logger.info(
            f"Converted {mime_type or 'unknown'} to {target_mime} for analysis "
            f"({len(data)} -> {len(converted)} bytes)"
        )
        return base64.b64encode(converted).decode("utf-8"), target_mime

    def perform_smart_crop(
        self,
        data: bytes,
        box: CropBox,
        filename: Optional[str],
        mime_type: Optional[str],
    ) -> CropOutput:
        """
        Crop the image and encode it in the resolved output format.

        Raises:
            BadImageFormatError: If the image cannot be decoded
            CropProcessingError: If extraction or encoding fails
        """
        resolved = resolve_format(filename, mime_type)
        image = self.open_image(data)
        operations: List[str] = []

        if image.mode in NON_RGB_MODES:
            logger.info(f"Converting color mode {image.mode} to RGB")
            image = image.convert("RGB")
            operations.append("converted_to_srgb")

        area = clamp_to_image(box, image.width, image.height)

        try:
            cropped = image.crop((area.x, area.y, area.x + area.width, area.y + area.height))
            cropped = self._prepare_for_format(cropped, resolved.pil_format)

            with io.BytesIO() as output:
                cropped.save(output, format=resolved.pil_format, **self._save_params(resolved))
                encoded = output.getvalue()
        except (OSError, ValueError, KeyError) as e:
            raise CropProcessingError(
                f"Failed to crop image as {resolved.pil_format}", details=str(e)
            ) from e

        operations.append("cropped")
        return CropOutput(
            data=encoded,
            format=resolved.pil_format.lower(),
            extension=resolved.extension,
            mime_type=resolved.mime_type,
            quality=resolved.quality,
            original_size=(image.width, image.height),
            crop_area=area,
            operations=operations,
        )

    def _prepare_for_format(self, image: Image.Image, target_format: str) -> Image.Image:
        """Drop alpha for JPEG (white background) and fix modes GIF cannot hold."""
        if target_format == "JPEG" and image.mode in ("RGBA", "LA", "P"):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            return background
        if target_format == "JPEG" and image.mode != "RGB" and image.mode != "L":
            return image.convert("RGB")
        if target_format == "GIF" and image.mode not in ("P", "L"):
            return image.convert("RGBA").quantize(method=Image.Quantize.FASTOCTREE)
        return image

    def _save_params(self, resolved) -> Dict[str, Any]:
        if resolved.pil_format == "JPEG":
            return {"quality": resolved.quality, "optimize": True}
        if resolved.pil_format in ("WEBP", "AVIF"):
            return {"quality": resolved.quality}
        if resolved.pil_format == "PNG":
            return {"optimize": True}
        return {}
