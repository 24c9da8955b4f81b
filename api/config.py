"""API configuration from environment."""

from functools import lru_cache
from typing import List, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from config.constants import (
    ALLOWED_IMAGE_TYPES,
    API_PREFIX,
    CACHE_ENABLED,
    CACHE_TTL_SECONDS,
    CORS_ORIGINS,
    CROP_SERVICE_TIMEOUT_SECONDS,
    DAILY_RESET_HOUR,
    DAILY_USAGE_LIMIT,
    DAILY_WARNING_THRESHOLD,
    DEDUP_CACHE_ENABLED,
    DEFAULT_VISION_MODEL,
    ENABLE_LOGGING,
    MAX_BATCH_IMAGES,
    MAX_IMAGE_SIZE,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENAI_TIMEOUT_SECONDS,
    OUTPUT_DIR,
    RATE_LIMIT_MAX,
    RATE_LIMIT_USE_REDIS,
    RATE_LIMIT_WINDOW_SECONDS,
    REDIS_URL,
    SERVICE_NAME,
    SERVICE_VERSION,
    TEMP_DIR,
    VISION_DAILY_BUDGET,
)


class Settings(BaseSettings):
    """API settings from environment variables."""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_title: str = SERVICE_NAME
    api_version: str = SERVICE_VERSION
    api_prefix: str = API_PREFIX

    # Vision model
    openai_api_key: str = OPENAI_API_KEY
    openai_base_url: str = OPENAI_BASE_URL
    vision_model: str = DEFAULT_VISION_MODEL
    openai_timeout: float = OPENAI_TIMEOUT_SECONDS
    vision_daily_budget: Optional[float] = VISION_DAILY_BUDGET
    crop_service_timeout: float = CROP_SERVICE_TIMEOUT_SECONDS

    # Uploads
    max_image_size: int = MAX_IMAGE_SIZE
    max_batch_images: int = MAX_BATCH_IMAGES
    allowed_image_types: str = ",".join(ALLOWED_IMAGE_TYPES)

    # Storage
    output_dir: str = OUTPUT_DIR
    temp_dir: str = TEMP_DIR

    # Cache
    redis_url: str = REDIS_URL
    cache_enabled: bool = CACHE_ENABLED
    cache_ttl: int = CACHE_TTL_SECONDS
    dedup_cache_enabled: bool = DEDUP_CACHE_ENABLED

    # Rate limiting
    rate_limit_window_seconds: int = RATE_LIMIT_WINDOW_SECONDS
    rate_limit_max: int = RATE_LIMIT_MAX
    rate_limit_use_redis: bool = RATE_LIMIT_USE_REDIS

    # Daily usage
    daily_usage_limit: int = DAILY_USAGE_LIMIT
    daily_warning_threshold: int = DAILY_WARNING_THRESHOLD
    daily_reset_hour: int = DAILY_RESET_HOUR

    # Security
    cors_origins: str = ",".join(CORS_ORIGINS)
    enable_security_logging: bool = ENABLE_LOGGING

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def allowed_image_type_list(self) -> List[str]:
        return [t.strip() for t in self.allowed_image_types.split(",") if t.strip()]

    @property
    def rate_limit_window_minutes(self) -> int:
        return max(1, self.rate_limit_window_seconds // 60)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
