"""Health check endpoint."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.config import get_settings, Settings
from api.dependencies import get_redis_connector
from api.models.responses import HealthResponse
from backend.utils import RedisConnector, validate_api_key

router = APIRouter(prefix="/health", tags=["health"])

_START_TIME = time.monotonic()


@router.get("", response_model=HealthResponse)
def health_check(
    settings: Settings = Depends(get_settings),
    redis_connector: RedisConnector = Depends(get_redis_connector),
):
    """Check API health plus Redis and vision model configuration."""
    redis_connected = redis_connector.get_client() is not None
    redis_expected = settings.cache_enabled or settings.rate_limit_use_redis

    return HealthResponse(
        status="degraded" if redis_expected and not redis_connected else "healthy",
        service=settings.api_title,
        version=settings.api_version,
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - _START_TIME, 3),
        redis_connected=redis_connected,
        vision_configured=validate_api_key(settings.openai_api_key),
        vision_model=settings.vision_model,
    )
