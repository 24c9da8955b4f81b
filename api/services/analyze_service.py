"""Analyze service - scene-aware crop solutions (contract v1)."""

import logging
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from api.config import Settings
from backend.errors import (
    AIParseError,
    AITimeoutError,
    BadImageFormatError,
    QuotaExceededError,
    RateLimitExceededError,
)
from backend.imaging import (
    CropBox,
    ImageProcessor,
    center_crop_for_ratio,
    output_size_for,
    parse_ratio,
)
from backend.limits import RateLimiter
from backend.platforms import PlatformRegistry
from backend.utils import log_security_event
from backend.vision import CropAdvisor, ResultCache
from config.constants import (
    ANALYZE_PROMPT_VERSION,
    CROP_API_CONTRACT_VERSION,
    DEFAULT_RATIO,
    DEFAULT_SCENE,
)

logger = logging.getLogger(__name__)

FALLBACK_REASON = "系统自动分析：基于图片比例进行居中裁剪"
FALLBACK_DETAILS = "当AI服务不可用时，采用基于短边的等比居中裁剪策略确保内容完整性"


class AnalyzeService:
    """Builds CropSolution responses from the model, the cache or a centered fallback."""

    def __init__(
        self,
        settings: Settings,
        image_processor: ImageProcessor,
        crop_advisor: CropAdvisor,
        result_cache: ResultCache,
        rate_limiter: RateLimiter,
        platform_registry: PlatformRegistry,
    ):
        self.settings = settings
        self.image_processor = image_processor
        self.crop_advisor = crop_advisor
        self.result_cache = result_cache
        self.rate_limiter = rate_limiter
        self.platform_registry = platform_registry

    def default_ratio(self, scene: str) -> str:
        spec = self.platform_registry.get(scene)
        return spec.ratio if spec else DEFAULT_RATIO

    def analyze(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
        client_ip: str,
        scene: str = DEFAULT_SCENE,
        ratio: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Produce a CropSolution for an uploaded image.

        Args:
            filename: Original file name
            content_type: Upload MIME type
            data: Image bytes
            client_ip: Caller IP used for rate limiting
            scene: Target scene (platform key)
            ratio: Target aspect ratio "W:H" (default: the scene's ratio)
            request_id: Request id echoed in metadata

        Returns:
            CropSolution dict

        Raises:
            RateLimitExceededError: If the analyze window is exhausted
            BadImageFormatError: If the upload is invalid
            InvalidParameterError: If the ratio is malformed
        """
        start_time = time.time()
        request_id = request_id or str(uuid.uuid4())
        scene = scene or DEFAULT_SCENE
        ratio = ratio or self.default_ratio(scene)

        limit_check = self.rate_limiter.consume(
            f"crop:analyze:{client_ip}",
            self.settings.rate_limit_max,
            self.settings.rate_limit_window_seconds,
        )
        if not limit_check.allowed:
            raise RateLimitExceededError(
                f"Rate limit exceeded. Maximum {self.settings.rate_limit_max} requests per "
                f"{self.settings.rate_limit_window_minutes} minutes",
                details={"reset_at": limit_check.reset_at},
            )

        self.image_processor.validate_upload(filename, content_type, len(data))
        target_ratio = parse_ratio(ratio)

        try:
            width, height = self.image_processor.read_dimensions(data)
        except BadImageFormatError:
            log_security_event(
                "image_dimension_unavailable",
                {"client_ip": client_ip, "request_id": request_id, "file_type": content_type},
                "error",
                enabled=self.settings.enable_security_logging,
            )
            raise

        cache_key = None
        if self.settings.dedup_cache_enabled:
            cache_key = ResultCache.analysis_key(
                data, scene, ratio, self.crop_advisor.model, ANALYZE_PROMPT_VERSION
            )
            cached = self.result_cache.get(cache_key)
            if cached:
                log_security_event(
                    "cache_hit",
                    {"cache_key": cache_key, "client_ip": client_ip, "request_id": request_id},
                    enabled=self.settings.enable_security_logging,
                )
                cached["metadata"] = {**cached["metadata"], "source": "cache", "request_id": request_id}
                return cached

        scene_label = self._scene_label(scene)
        try:
            image_b64, analysis_mime = self.image_processor.analysis_payload(data, content_type)
            answer = self.crop_advisor.analyze_strict(
                image_b64, width, height, scene_label, ratio, mime_type=analysis_mime
            )
            solution = self._solution(
                reason=answer["reason"],
                details=answer["details"],
                box=answer["crop_box"],
                original_size=(width, height),
                ratio=ratio,
                target_ratio=target_ratio,
                scene=scene,
                model=answer["model"],
                source="model",
                request_id=request_id,
            )
            if cache_key:
                self.result_cache.set(cache_key, solution)
        except (AIParseError, AITimeoutError, QuotaExceededError) as e:
            logger.warning(f"[{request_id}] AI analysis failed, using fallback: {e}")
            solution = self.fallback_solution(width, height, ratio, scene, request_id)

        logger.info(
            f"[{request_id}] Analyze done: scene={scene}, ratio={ratio}, "
            f"source={solution['metadata']['source']}, {int((time.time() - start_time) * 1000)}ms"
        )
        return solution

    def fallback_solution(
        self,
        original_width: int,
        original_height: int,
        ratio: str,
        scene: str,
        request_id: str,
    ) -> Dict[str, Any]:
        """Largest centered crop with the target ratio."""
        target_ratio = parse_ratio(ratio)
        box = center_crop_for_ratio(original_width, original_height, target_ratio)
        return self._solution(
            reason=FALLBACK_REASON,
            details=FALLBACK_DETAILS,
            box=box,
            original_size=(original_width, original_height),
            ratio=ratio,
            target_ratio=target_ratio,
            scene=scene,
            model="fallback",
            source="fallback",
            request_id=request_id,
        )

    def contract_info(self) -> Dict[str, Any]:
        return {
            "service": "AI Crop Analyze API",
            "version": "1.0.0",
            "status": "active",
            "contract": f"v{CROP_API_CONTRACT_VERSION}",
            "prompt_version": ANALYZE_PROMPT_VERSION,
        }

    def _scene_label(self, scene: str) -> str:
        spec = self.platform_registry.get(scene)
        return spec.name if spec else scene

    def _solution(
        self,
        reason: str,
        details: str,
        box: CropBox,
        original_size: Tuple[int, int],
        ratio: str,
        target_ratio: float,
        scene: str,
        model: str,
        source: str,
        request_id: str,
    ) -> Dict[str, Any]:
        output_width, output_height = output_size_for(box, target_ratio)
        return {
            "version": CROP_API_CONTRACT_VERSION,
            "reason": reason,
            "details": details,
            "crop_params": {
                "original_size": list(original_size),
                "crop_box": box.to_dict(),
                "output_size": [output_width, output_height],
                "crop_ratio": ratio,
            },
            "metadata": {
                "scene": scene,
                "model": model,
                "prompt_version": ANALYZE_PROMPT_VERSION,
                "source": source,
                "request_id": request_id,
            },
        }
