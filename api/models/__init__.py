"""
API Models - Pydantic request/response models.
"""

from api.models.requests import SizeValidationRequest
from api.models.responses import (
    CropSolution,
    DebugAnalysisResponse,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    PlatformListResponse,
    PlatformSpecResponse,
    SizeValidationResponse,
    UsageStatusResponse,
)

__all__ = [
    "SizeValidationRequest",
    "CropSolution",
    "DebugAnalysisResponse",
    "ErrorResponse",
    "HealthResponse",
    "HistoryResponse",
    "PlatformListResponse",
    "PlatformSpecResponse",
    "SizeValidationResponse",
    "UsageStatusResponse",
]
