"""
Request Models - Pydantic models for API requests.
"""

from pydantic import BaseModel, Field


class SizeValidationRequest(BaseModel):
    """Output size to check against a platform."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
