import random
from unittest.mock import MagicMock

import pytest

from api.config import Settings
from api.services import AnalyzeService, CropService
from backend.imaging import ImageProcessor
from backend.limits import DailyUsageLimiter, RateLimiter
from backend.platforms import PlatformRegistry
from backend.prompts import PromptManager
from backend.utils import OutputStorage
from backend.vision import CropAdvisor, ResultCache


@pytest.fixture
def prompt_manager():
    return PromptManager()


@pytest.fixture
def openai_client():
    return MagicMock()


@pytest.fixture
def advisor(openai_client, prompt_manager):
    return CropAdvisor(
        api_key="sk-unit-test",
        prompt_manager=prompt_manager,
        model="gpt-4o",
        client=openai_client,
        rng=random.Random(7),
        sleep=lambda seconds: None,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        openai_api_key="sk-abcdefghijklmnopqrstuvwxyz012345",
        output_dir=str(tmp_path / "output"),
        temp_dir=str(tmp_path / "temp"),
        cors_origins="http://localhost:3000",
        cache_enabled=False,
        dedup_cache_enabled=True,
        rate_limit_use_redis=False,
        rate_limit_max=100,
        rate_limit_window_seconds=900,
        daily_usage_limit=3,
        daily_warning_threshold=1,
        vision_model="gpt-4o",
    )


@pytest.fixture
def image_processor(settings):
    return ImageProcessor(
        max_size=settings.max_image_size,
        allowed_types=settings.allowed_image_type_list,
    )


@pytest.fixture
def output_storage(settings):
    return OutputStorage(settings.output_dir)


@pytest.fixture
def daily_limiter(settings):
    return DailyUsageLimiter(
        limit=settings.daily_usage_limit,
        warning_threshold=settings.daily_warning_threshold,
    )


@pytest.fixture
def crop_service(settings, image_processor, advisor, output_storage, daily_limiter):
    return CropService(
        settings=settings,
        image_processor=image_processor,
        crop_advisor=advisor,
        output_storage=output_storage,
        result_cache=ResultCache(),
        rate_limiter=RateLimiter(),
        daily_limiter=daily_limiter,
    )


@pytest.fixture
def analyze_service(settings, image_processor, advisor):
    return AnalyzeService(
        settings=settings,
        image_processor=image_processor,
        crop_advisor=advisor,
        result_cache=ResultCache(),
        rate_limiter=RateLimiter(),
        platform_registry=PlatformRegistry(),
    )
