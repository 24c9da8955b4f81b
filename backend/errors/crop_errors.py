"""
Crop service error types.

Each error carries the machine-readable code used in API error envelopes
and the HTTP status the routers answer with.
"""

from typing import Any, Dict, Optional


class CropServiceError(Exception):
    """Base exception for crop service errors."""

    error_code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to the API error body."""
        body = {"code": self.error_code, "message": str(self)}
        if self.details:
            body["details"] = self.details
        return body


class BadImageFormatError(CropServiceError):
    """Raised when an upload is missing, unreadable or not an allowed image."""

    error_code = "BAD_IMAGE_FORMAT"
    status_code = 400


class ImageTooLargeError(BadImageFormatError):
    """Raised when an upload exceeds the size limit."""

    status_code = 413

    def __init__(self, size_bytes: int, max_bytes: int):
        size_mb = size_bytes / 1024 / 1024
        max_mb = max_bytes / 1024 / 1024
        super().__init__(
            f"Image size {size_mb:.1f}MB exceeds maximum allowed size of {max_mb:.0f}MB"
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class InvalidParameterError(CropServiceError):
    """Raised when a request parameter (ratio, scene, language) is invalid."""

    error_code = "INVALID_PARAMS"
    status_code = 400


class RateLimitExceededError(CropServiceError):
    """Raised when the windowed request limit is exhausted."""

    error_code = "RATE_LIMIT"
    status_code = 429


class QuotaExceededError(CropServiceError):
    """Raised when the daily free quota or the vision budget is used up."""

    error_code = "QUOTA_EXCEEDED"
    status_code = 429


class AITimeoutError(CropServiceError):
    """Raised when the vision model does not answer in time."""

    error_code = "AI_TIMEOUT"
    status_code = 504


class AIParseError(CropServiceError):
    """Raised when the vision model reply has no usable crop solution."""

    error_code = "AI_PARSE_ERROR"
    status_code = 502


class CropProcessingError(CropServiceError):
    """Raised when pixel extraction or encoding fails."""

    error_code = "INTERNAL"
    status_code = 500


class OutputNotFoundError(CropServiceError):
    """Raised when a requested output file does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404


class UnauthorizedOriginError(CropServiceError):
    """Raised when a request comes from an origin outside the allow-list."""

    error_code = "UNAUTHORIZED"
    status_code = 403
