"""
Backend error handling modules.

Domain errors raised by the crop pipeline and mapped to HTTP responses
by the API layer.
"""

from .crop_errors import (
    AIParseError,
    AITimeoutError,
    BadImageFormatError,
    CropProcessingError,
    CropServiceError,
    ImageTooLargeError,
    InvalidParameterError,
    OutputNotFoundError,
    QuotaExceededError,
    RateLimitExceededError,
    UnauthorizedOriginError,
)

__all__ = [
    "CropServiceError",
    "BadImageFormatError",
    "ImageTooLargeError",
    "InvalidParameterError",
    "RateLimitExceededError",
    "QuotaExceededError",
    "AITimeoutError",
    "AIParseError",
    "CropProcessingError",
    "OutputNotFoundError",
    "UnauthorizedOriginError",
]
