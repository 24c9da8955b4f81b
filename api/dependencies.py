"""Dependency injection for FastAPI."""

from typing import Optional

from fastapi import Request, UploadFile

from api.config import get_settings
from api.services.analyze_service import AnalyzeService
from api.services.crop_service import CropService, Upload
from backend.errors import BadImageFormatError
from backend.imaging import ImageProcessor
from backend.limits import DailyUsageLimiter, RateLimiter
from backend.platforms import PlatformRegistry
from backend.prompts import PromptManager
from backend.utils import OutputStorage, RedisConnector
from backend.vision import CostTracker, CropAdvisor, ResultCache

# Singleton instances
_redis_connector: Optional[RedisConnector] = None
_prompt_manager: Optional[PromptManager] = None
_platform_registry: Optional[PlatformRegistry] = None
_crop_advisor: Optional[CropAdvisor] = None
_result_cache: Optional[ResultCache] = None
_rate_limiter: Optional[RateLimiter] = None
_daily_limiter: Optional[DailyUsageLimiter] = None
_output_storage: Optional[OutputStorage] = None
_crop_service: Optional[CropService] = None
_analyze_service: Optional[AnalyzeService] = None


def get_client_ip(request: Request) -> str:
    """Client IP from X-Forwarded-For, X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_redis_connector() -> RedisConnector:
    """Get or create the shared Redis connector."""
    global _redis_connector
    if _redis_connector is None:
        settings = get_settings()
        _redis_connector = RedisConnector(
            url=settings.redis_url,
            enabled=settings.cache_enabled or settings.rate_limit_use_redis,
        )
    return _redis_connector


def get_prompt_manager() -> PromptManager:
    """Get or create PromptManager singleton."""
    global _prompt_manager
    if _prompt_manager is None:
        _prompt_manager = PromptManager()
    return _prompt_manager


def get_platform_registry() -> PlatformRegistry:
    """Get or create PlatformRegistry singleton."""
    global _platform_registry
    if _platform_registry is None:
        _platform_registry = PlatformRegistry()
    return _platform_registry


def get_image_processor() -> ImageProcessor:
    """Create image processor with upload limits from settings."""
    settings = get_settings()
    return ImageProcessor(
        max_size=settings.max_image_size,
        allowed_types=settings.allowed_image_type_list,
    )


def get_crop_advisor() -> CropAdvisor:
    """Get or create CropAdvisor singleton."""
    global _crop_advisor
    if _crop_advisor is None:
        settings = get_settings()
        _crop_advisor = CropAdvisor(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.vision_model,
            timeout=settings.openai_timeout,
            prompt_manager=get_prompt_manager(),
            cost_tracker=CostTracker(daily_budget=settings.vision_daily_budget),
        )
    return _crop_advisor


def get_result_cache() -> ResultCache:
    """Get or create ResultCache singleton."""
    global _result_cache
    if _result_cache is None:
        settings = get_settings()
        _result_cache = ResultCache(
            ttl=settings.cache_ttl,
            redis_connector=get_redis_connector() if settings.cache_enabled else None,
        )
    return _result_cache


def get_rate_limiter() -> RateLimiter:
    """Get or create RateLimiter singleton."""
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            redis_connector=get_redis_connector() if settings.rate_limit_use_redis else None,
        )
    return _rate_limiter


def get_daily_limiter() -> DailyUsageLimiter:
    """Get or create DailyUsageLimiter singleton."""
    global _daily_limiter
    if _daily_limiter is None:
        settings = get_settings()
        _daily_limiter = DailyUsageLimiter(
            limit=settings.daily_usage_limit,
            warning_threshold=settings.daily_warning_threshold,
            reset_hour=settings.daily_reset_hour,
            redis_connector=get_redis_connector() if settings.cache_enabled else None,
        )
    return _daily_limiter


def get_output_storage() -> OutputStorage:
    """Get or create OutputStorage singleton."""
    global _output_storage
    if _output_storage is None:
        settings = get_settings()
        _output_storage = OutputStorage(
            base_dir=settings.output_dir,
            download_prefix=f"{settings.api_prefix}/download",
        )
    return _output_storage


def get_crop_service() -> CropService:
    """Get or create CropService singleton."""
    global _crop_service
    if _crop_service is None:
        settings = get_settings()
        _crop_service = CropService(
            settings=settings,
            image_processor=get_image_processor(),
            crop_advisor=get_crop_advisor(),
            output_storage=get_output_storage(),
            result_cache=get_result_cache(),
            rate_limiter=get_rate_limiter(),
            daily_limiter=get_daily_limiter(),
        )
    return _crop_service


def get_analyze_service() -> AnalyzeService:
    """Get or create AnalyzeService singleton."""
    global _analyze_service
    if _analyze_service is None:
        settings = get_settings()
        _analyze_service = AnalyzeService(
            settings=settings,
            image_processor=get_image_processor(),
            crop_advisor=get_crop_advisor(),
            result_cache=get_result_cache(),
            rate_limiter=get_rate_limiter(),
            platform_registry=get_platform_registry(),
        )
    return _analyze_service


async def read_upload(image: Optional[UploadFile]) -> Upload:
    """Read a multipart upload into (filename, content_type, data)."""
    if image is None:
        raise BadImageFormatError("No image file provided")
    data = await image.read()
    return image.filename, image.content_type, data
