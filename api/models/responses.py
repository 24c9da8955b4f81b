"""
Response Models - Pydantic models for API responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    timestamp: datetime
    uptime: float
    redis_connected: bool
    vision_configured: bool
    vision_model: str


class ErrorBody(BaseModel):
    """Machine-readable error."""

    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error envelope used by every endpoint."""

    error: ErrorBody
    request_id: str


class CropBoxModel(BaseModel):
    x: int
    y: int
    width: int
    height: int


class SolutionCropParams(BaseModel):
    original_size: List[int]
    crop_box: CropBoxModel
    output_size: List[int]
    crop_ratio: str


class SolutionMetadata(BaseModel):
    scene: str
    model: str
    prompt_version: str
    source: Literal["model", "cache", "fallback"]
    request_id: str


class CropSolution(BaseModel):
    """Analyze contract v1 response."""

    version: Literal["1"] = "1"
    reason: str
    details: str
    crop_params: SolutionCropParams
    metadata: SolutionMetadata


class UsageStatus(BaseModel):
    used: int
    limit: int
    remaining: int
    reset_time: str
    reset_in: str
    should_warn: bool
    allowed: bool
    warning_threshold: int


class UsageStatusResponse(BaseModel):
    """Daily usage for the caller."""

    status: str = "success"
    data: UsageStatus
    timestamp: datetime


class HistoryItem(BaseModel):
    filename: str
    size: int
    created: str
    download_url: str


class HistoryResponse(BaseModel):
    history: List[HistoryItem]


class PlatformSpecResponse(BaseModel):
    scene: str
    name: str
    ratio: str
    recommended_size: List[int]
    min_size: List[int]
    max_size: Optional[List[int]] = None
    description: str = ""
    safe_area: Dict[str, int] = {}
    official_source: Optional[str] = None


class PlatformListResponse(BaseModel):
    platforms: List[PlatformSpecResponse]
    categories: Dict[str, List[str]]


class SizeValidationResponse(BaseModel):
    scene: str
    width: int
    height: int
    valid: bool
    error: Optional[str] = None
    is_recommended_size: bool = False
    recommendation: Optional[str] = None


class DebugAnalysisResponse(BaseModel):
    """Result of a debug prompt run."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = {}
