"""Crop service - orchestrates aesthetic crops and the public crop flow."""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from api.config import Settings
from backend.errors import (
    CropServiceError,
    InvalidParameterError,
    QuotaExceededError,
    RateLimitExceededError,
    UnauthorizedOriginError,
)
from backend.imaging import ImageProcessor
from backend.imaging.formats import file_extension
from backend.limits import DailyUsageLimiter, DailyUsageResult, RateLimiter
from backend.utils import OutputStorage, is_valid_origin, log_security_event
from backend.vision import CropAdvisor, ResultCache
from config.constants import (
    DEFAULT_CROP_MODE,
    MSG_DAILY_LIMIT_EN,
    MSG_DAILY_LIMIT_ZH,
    SUPPORTED_LANGUAGES,
)

logger = logging.getLogger(__name__)

# (original filename, content type, raw bytes)
Upload = Tuple[Optional[str], Optional[str], bytes]


class CropService:
    """Service for aesthetic crops and the rate-limited public endpoint."""

    def __init__(
        self,
        settings: Settings,
        image_processor: ImageProcessor,
        crop_advisor: CropAdvisor,
        output_storage: OutputStorage,
        result_cache: ResultCache,
        rate_limiter: RateLimiter,
        daily_limiter: DailyUsageLimiter,
    ):
        self.settings = settings
        self.image_processor = image_processor
        self.crop_advisor = crop_advisor
        self.output_storage = output_storage
        self.result_cache = result_cache
        self.rate_limiter = rate_limiter
        self.daily_limiter = daily_limiter

    def crop_aesthetic(
        self,
        upload: Upload,
        language: str = "zh",
        request_id: Optional[str] = None,
        output_prefix: str = "aesthetic",
    ) -> Dict[str, Any]:
        """
        Suggest, perform and store an aesthetic crop for one image.

        Args:
            upload: (filename, content_type, data)
            language: Prompt language code
            request_id: Id used in the output file name (generated if None)
            output_prefix: Output file name prefix

        Returns:
            Response dict with analysis, crop_params, metadata and output

        Raises:
            CropServiceError: On invalid input or crop failure
        """
        filename, content_type, data = upload
        self._validate_language(language)
        self.image_processor.validate_upload(filename, content_type, len(data))

        request_id = request_id or str(uuid.uuid4())
        logger.info(f"[{request_id}] Aesthetic crop started: {filename!r}")

        width, height = self.image_processor.read_dimensions(data)
        image_b64, analysis_mime = self.image_processor.analysis_payload(data, content_type)

        suggestion = self.crop_advisor.suggest_crop(
            image_b64,
            width,
            height,
            mode=DEFAULT_CROP_MODE,
            language=language,
            mime_type=analysis_mime,
        )
        output = self.image_processor.perform_smart_crop(
            data, suggestion.crop_params, filename, content_type
        )

        output_name = f"{output_prefix}_{request_id}.{output.extension}"
        self.output_storage.save(output_name, output.data)

        logger.info(
            f"[{request_id}] Aesthetic crop done: {output.format}, "
            f"fallback={suggestion.fallback_used}"
        )
        return {
            "success": True,
            "request_id": request_id,
            "original_filename": filename,
            "analysis": suggestion.analysis,
            "crop_params": suggestion.crop_params.to_dict(),
            "validation_info": suggestion.to_dict()["validation_info"],
            "metadata": output.metadata,
            "output": {
                "filename": output_name,
                "download_url": self.output_storage.download_url(output_name),
                "format": output.format,
                "extension": output.extension,
                "mime_type": output.mime_type,
                "quality": output.quality,
            },
        }

    def crop_batch(self, uploads: List[Upload], language: str = "zh") -> Dict[str, Any]:
        """
        Run the aesthetic crop for each upload; a failing file does not abort the batch.

        Raises:
            InvalidParameterError: If there are no uploads or too many
        """
        if not uploads:
            raise InvalidParameterError("Please upload at least one image")
        if len(uploads) > self.settings.max_batch_images:
            raise InvalidParameterError(
                f"Too many images: {len(uploads)} (max {self.settings.max_batch_images})"
            )
        self._validate_language(language)

        batch_id = str(uuid.uuid4())
        logger.info(f"[{batch_id}] Batch aesthetic crop: {len(uploads)} images")

        results = []
        for index, upload in enumerate(uploads, start=1):
            filename = upload[0]
            try:
                result = self.crop_aesthetic(
                    upload,
                    language=language,
                    request_id=f"{batch_id}_{index}",
                    output_prefix="batch_aesthetic",
                )
                results.append(result)
            except CropServiceError as e:
                logger.warning(f"[{batch_id}] Failed to crop {filename!r}: {e}")
                results.append(
                    {"success": False, "original_filename": filename, "error": e.to_dict()}
                )

        success_count = sum(1 for r in results if r["success"])
        logger.info(f"[{batch_id}] Batch done: {success_count}/{len(uploads)} succeeded")

        return {
            "success": True,
            "batch_id": batch_id,
            "total": len(uploads),
            "success_count": success_count,
            "results": results,
        }

    def public_crop(
        self,
        upload: Upload,
        client_ip: str,
        origin: Optional[str] = None,
        language: str = "zh",
    ) -> Dict[str, Any]:
        """
        Rate-limited, quota-checked aesthetic crop for anonymous clients.

        Order: daily usage peek, rate limit, origin allow-list, upload
        validation, dedup cache (hits do not consume), daily usage consume,
        crop, cache store.

        Raises:
            QuotaExceededError: If the daily free quota is used up
            RateLimitExceededError: If the request window is exhausted
            UnauthorizedOriginError: If Origin is not allowed
            CropServiceError: On invalid input or crop failure
        """
        start_time = time.time()
        filename, content_type, data = upload

        daily = self.daily_limiter.status(client_ip)
        if not daily.allowed:
            raise self._quota_error(daily)

        limit_check = self.rate_limiter.consume(
            f"crop:{client_ip}",
            self.settings.rate_limit_max,
            self.settings.rate_limit_window_seconds,
        )
        if not limit_check.allowed:
            raise RateLimitExceededError(
                f"Maximum {self.settings.rate_limit_max} requests per "
                f"{self.settings.rate_limit_window_minutes} minutes",
                details={"reset_at": limit_check.reset_at},
            )

        if origin and not is_valid_origin(origin, self.settings.cors_origin_list):
            log_security_event(
                "cors_violation",
                {"origin": origin, "client_ip": client_ip},
                "warn",
                enabled=self.settings.enable_security_logging,
            )
            raise UnauthorizedOriginError("CORS policy violation")

        self.image_processor.validate_upload(filename, content_type, len(data))
        # Undecodable uploads must not cost a daily unit
        self.image_processor.read_dimensions(data)

        cache_key = None
        if self.settings.dedup_cache_enabled:
            cache_key = ResultCache.upload_key(data, filename, content_type)
            cached = self.result_cache.get(cache_key)
            if cached:
                log_security_event(
                    "cache_hit",
                    {"cache_key": cache_key, "client_ip": client_ip},
                    enabled=self.settings.enable_security_logging,
                )
                current = self.daily_limiter.status(client_ip)
                return {
                    **cached,
                    "cached": True,
                    "processing_time": _elapsed_ms(start_time),
                    "daily_usage": current.to_dict(),
                }

        daily = self.daily_limiter.check(client_ip, increment=True)
        if not daily.allowed:
            raise self._quota_error(daily)

        result = self.crop_aesthetic(upload, language=language)
        enhanced = {
            **result,
            "original_format": {
                "name": filename,
                "type": content_type,
                "extension": file_extension(filename) or "unknown",
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if cache_key:
            self.result_cache.set(cache_key, enhanced)
            log_security_event(
                "cache_store",
                {"cache_key": cache_key, "client_ip": client_ip},
                enabled=self.settings.enable_security_logging,
            )

        processing_time = _elapsed_ms(start_time)
        logger.info(
            f"Public crop for {client_ip}: {len(data)} bytes {content_type} in {processing_time}ms"
        )
        return {
            **enhanced,
            "cached": False,
            "processing_time": processing_time,
            "daily_usage": daily.to_dict(),
        }

    def service_info(self) -> Dict[str, Any]:
        """Service description for GET /crop."""
        return {
            "service": "AI Crop API",
            "version": self.settings.api_version,
            "status": "active",
            "features": {
                "rate_limit": (
                    f"{self.settings.rate_limit_max} requests per "
                    f"{self.settings.rate_limit_window_minutes} minutes"
                ),
                "daily_limit": self.settings.daily_usage_limit,
                "image_validation": True,
                "deduplication": self.settings.dedup_cache_enabled,
                "monitoring": self.settings.enable_security_logging,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def _quota_error(self, daily: DailyUsageResult) -> QuotaExceededError:
        return QuotaExceededError(
            MSG_DAILY_LIMIT_ZH.format(limit=daily.limit),
            details={
                "message_en": MSG_DAILY_LIMIT_EN.format(limit=daily.limit),
                "daily_usage": daily.to_dict(),
            },
        )

    @staticmethod
    def _validate_language(language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise InvalidParameterError(
                f"Invalid language: {language}. Must be one of {', '.join(SUPPORTED_LANGUAGES)}"
            )


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)
