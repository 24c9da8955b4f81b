"""Output format resolution for cropped images."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class FormatConfig:
    """Pillow encoder settings for one output format."""

    pil_format: str
    mime_type: str
    quality: int
    output_extension: Optional[str] = None


# Keyed by lowercase file extension
FORMAT_CONFIG: Dict[str, FormatConfig] = {
    # Standard formats keep their original encoding
    "jpeg": FormatConfig("JPEG", "image/jpeg", 95),
    "jpg": FormatConfig("JPEG", "image/jpeg", 95),
    "png": FormatConfig("PNG", "image/png", 100),
    "webp": FormatConfig("WEBP", "image/webp", 90),
    "gif": FormatConfig("GIF", "image/gif", 100),
    "avif": FormatConfig("AVIF", "image/avif", 85),
    # HEIC/HEIF are delivered as JPEG
    "heic": FormatConfig("JPEG", "image/jpeg", 85, output_extension="jpg"),
    "heif": FormatConfig("JPEG", "image/jpeg", 85, output_extension="jpg"),
    # BMP/TIFF are delivered as PNG
    "bmp": FormatConfig("PNG", "image/png", 100, output_extension="png"),
    "tiff": FormatConfig("PNG", "image/png", 100, output_extension="png"),
    "tif": FormatConfig("PNG", "image/png", 100, output_extension="png"),
}

MIME_TO_EXTENSION: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/avif": "avif",
    "image/heic": "heic",
    "image/heif": "heif",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


@dataclass(frozen=True)
class ResolvedFormat:
    """Format chosen for an output file."""

    pil_format: str
    extension: str
    config: FormatConfig

    @property
    def mime_type(self) -> str:
        return self.config.mime_type

    @property
    def quality(self) -> int:
        return self.config.quality


def file_extension(filename: Optional[str]) -> str:
    """Lowercase extension without the dot ("" when there is none)."""
    return Path(filename or "").suffix.lower().lstrip(".")


def resolve_format(filename: Optional[str], mime_type: Optional[str]) -> ResolvedFormat:
    """
    Pick the output format for an upload.

    The filename extension wins, then the MIME type; anything unknown is
    written as PNG.
    """
    extension = file_extension(filename)
    if extension in FORMAT_CONFIG:
        config = FORMAT_CONFIG[extension]
        return ResolvedFormat(config.pil_format, config.output_extension or extension, config)

    mime_extension = MIME_TO_EXTENSION.get((mime_type or "").lower())
    if mime_extension:
        config = FORMAT_CONFIG[mime_extension]
        return ResolvedFormat(
            config.pil_format, config.output_extension or mime_extension, config
        )

    return ResolvedFormat("PNG", "png", FORMAT_CONFIG["png"])
