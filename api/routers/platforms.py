"""Platforms router - social platform size specifications."""

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_platform_registry
from api.models.requests import SizeValidationRequest
from api.models.responses import (
    PlatformListResponse,
    PlatformSpecResponse,
    SizeValidationResponse,
)
from backend.errors import InvalidParameterError
from backend.platforms import PlatformRegistry

router = APIRouter(prefix="/platforms", tags=["platforms"])


@router.get("", response_model=PlatformListResponse)
async def list_platforms(
    category: Optional[str] = None,
    registry: PlatformRegistry = Depends(get_platform_registry),
):
    """All platform specs, optionally filtered by category."""
    if category is not None:
        if category not in registry.categories:
            raise InvalidParameterError(f"Unknown category: {category}")
        scenes = registry.by_category(category)
    else:
        scenes = registry.all_scenes()

    return PlatformListResponse(
        platforms=[registry.require(scene).to_dict() for scene in scenes],
        categories=registry.categories,
    )


@router.get("/{scene}", response_model=PlatformSpecResponse)
async def get_platform(scene: str, registry: PlatformRegistry = Depends(get_platform_registry)):
    """Spec for one scene."""
    return registry.require(scene).to_dict()


@router.post("/{scene}/validate", response_model=SizeValidationResponse)
async def validate_platform_size(
    scene: str,
    request: SizeValidationRequest,
    registry: PlatformRegistry = Depends(get_platform_registry),
):
    """Check an output size against a scene's ratio and size bounds."""
    registry.require(scene)
    result = registry.validate_output_size((request.width, request.height), scene)
    return SizeValidationResponse(
        scene=scene,
        width=request.width,
        height=request.height,
        valid=result.valid,
        error=result.error,
        is_recommended_size=result.is_recommended_size,
        recommendation=result.recommendation,
    )
