"""
Crop advisor backed by an OpenAI-compatible vision model.

Asks the model for a crop rectangle, repairs what it returns, retries
once when the first answer needed repairs, and falls back to a preset
crop when the model never gives a usable answer.
"""

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional

import openai
from openai import OpenAI

from backend.errors import (
    AIParseError,
    AITimeoutError,
    CropServiceError,
    QuotaExceededError,
)
from backend.imaging.crop_box import CropBox, validate_and_fix_crop_params
from backend.prompts import PromptManager
from backend.vision.cost_tracker import CostTracker, estimate_cost
from backend.vision.fallback import fallback_suggestion
from backend.vision.response_parser import (
    categorize_error,
    extract_fenced_json,
    extract_json_object,
    require_fields,
)
from backend.vision.suggestion import CropSuggestion
from config.constants import (
    ANALYZE_MAX_TOKENS,
    ANALYZE_PROMPT_VERSION,
    ANALYZE_TEMPERATURE,
    ANALYZE_TIMEOUT_SECONDS,
    DEBUG_MAX_TOKENS,
    DEBUG_TEMPERATURE,
    DEFAULT_VISION_MODEL,
    MIN_CROP_SIZE,
    OPENAI_TIMEOUT_SECONDS,
    VISION_BACKOFF_DELAYS,
    VISION_MAX_ATTEMPTS,
    VISION_MAX_TOKENS,
    VISION_TEMPERATURE,
)

logger = logging.getLogger(__name__)


class CropAdvisor:
    """Suggest crops for images using a vision chat-completions model."""

    def __init__(
        self,
        api_key: str,
        prompt_manager: PromptManager,
        base_url: Optional[str] = None,
        model: str = DEFAULT_VISION_MODEL,
        timeout: float = OPENAI_TIMEOUT_SECONDS,
        max_tokens: int = VISION_MAX_TOKENS,
        temperature: float = VISION_TEMPERATURE,
        max_attempts: int = VISION_MAX_ATTEMPTS,
        backoff_delays: Optional[List[float]] = None,
        cost_tracker: Optional[CostTracker] = None,
        client: Optional[OpenAI] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize crop advisor.

        Args:
            api_key: API key for the vision endpoint
            prompt_manager: Source of versioned crop prompts
            base_url: OpenAI-compatible base URL (None = SDK default)
            model: Vision model name
            timeout: Per-request timeout in seconds
            max_tokens: Max tokens in the model reply
            temperature: Sampling temperature (low = more consistent boxes)
            max_attempts: Model calls before falling back to a preset crop
            backoff_delays: Delay between failed attempts in seconds
            cost_tracker: Optional spend tracker with daily budget
            client: Pre-built OpenAI client (tests inject a mock here)
            rng: Random source for fallback preset selection
            sleep: Sleep function used between retries
        """
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)
        self.prompt_manager = prompt_manager
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_attempts = max(1, max_attempts)
        self.backoff_delays = backoff_delays if backoff_delays is not None else VISION_BACKOFF_DELAYS
        self.cost_tracker = cost_tracker or CostTracker()
        self._rng = rng or random.Random()
        self._sleep = sleep

        logger.info(
            f"CropAdvisor initialized: model={model}, base_url={base_url or 'default'}, "
            f"timeout={timeout}s, max_attempts={self.max_attempts}"
        )

    def suggest_crop(
        self,
        image_b64: str,
        original_width: int,
        original_height: int,
        mode: str = "aesthetic",
        language: str = "zh",
        mime_type: str = "image/jpeg",
    ) -> CropSuggestion:
        """
        Suggest an aesthetic crop for an image.

        Args:
            image_b64: Base64 image data in a format the model accepts
            original_width: Source width in pixels
            original_height: Source height in pixels
            mode: Crop mode used to pick the prompt
            language: Language code used to pick the prompt
            mime_type: MIME type of image_b64

        Returns:
            CropSuggestion. Never raises for model failures; fallback_used
            is set when a preset crop was returned instead.
        """
        template = self.prompt_manager.load_prompt(mode, language)
        system_prompt = template.render(
            originalWidth=original_width, originalHeight=original_height
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": _data_url(image_b64, mime_type)}}
                ],
            },
        ]

        for attempt in range(1, self.max_attempts + 1):
            try:
                content = self._call_model(
                    messages, self.model, self.max_tokens, self.temperature, self.timeout
                )
                parsed = extract_json_object(content)
                require_fields(parsed, ("analysis", "crop_params"))
                box, crop_errors = validate_and_fix_crop_params(
                    parsed["crop_params"], original_width, original_height
                )
            except QuotaExceededError as e:
                logger.error(f"Skipping vision call: {e}")
                break
            except (CropServiceError, openai.OpenAIError) as e:
                self._log_failure(e, attempt)
                if attempt < self.max_attempts:
                    self._sleep(self._delay(attempt))
                continue

            if crop_errors and attempt < self.max_attempts:
                logger.warning(
                    f"Crop suggestion needed repairs (attempt {attempt}/{self.max_attempts}), "
                    f"asking again: {crop_errors}"
                )
                continue

            analysis = parsed["analysis"] if isinstance(parsed["analysis"], dict) else {
                "title": "",
                "effection": str(parsed["analysis"]),
            }
            logger.info(
                f"Crop suggestion for {original_width}x{original_height}: {box.to_dict()} "
                f"(attempt {attempt}, prompt {template.version}, {len(crop_errors)} repairs)"
            )
            return CropSuggestion(
                analysis=analysis,
                crop_params=box,
                crop_errors=crop_errors,
                attempt_count=attempt,
                fallback_used=False,
                model=self.model,
                prompt_version=template.version,
            )

        logger.warning(
            f"No usable crop from {self.model} after {self.max_attempts} attempts, using fallback"
        )
        return fallback_suggestion(original_width, original_height, language, rng=self._rng)

    def analyze_strict(
        self,
        image_b64: str,
        original_width: int,
        original_height: int,
        scene_label: str,
        ratio: str,
        mime_type: str = "image/jpeg",
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Ask for a scene-aware crop and reject anything that needs repair.

        Returns:
            Dict with reason, details, crop_box (CropBox), model and prompt_version

        Raises:
            AITimeoutError: If the model does not answer in time
            AIParseError: If the reply is unusable or the box is out of bounds
            QuotaExceededError: If the daily vision budget is spent
        """
        model = model or self.model
        template = self.prompt_manager.get_template(f"analyze-{ANALYZE_PROMPT_VERSION}")
        if template is None:
            raise AIParseError(f"Analyze prompt analyze-{ANALYZE_PROMPT_VERSION} is not configured")

        prompt = template.render(
            sceneLabel=scene_label,
            originalWidth=original_width,
            originalHeight=original_height,
            ratio=ratio,
        )
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": _data_url(image_b64, mime_type), "detail": "high"},
                    },
                ],
            }
        ]

        try:
            content = self._call_model(
                messages, model, ANALYZE_MAX_TOKENS, ANALYZE_TEMPERATURE, ANALYZE_TIMEOUT_SECONDS
            )
        except openai.OpenAIError as e:
            raise AIParseError(f"Vision model request failed: {e}") from e

        parsed = extract_json_object(content)
        require_fields(parsed, ("reason", "details", "crop_params"))
        box = _strict_box(parsed["crop_params"], original_width, original_height)

        return {
            "reason": str(parsed["reason"]),
            "details": str(parsed["details"]),
            "crop_box": box,
            "model": model,
            "prompt_version": ANALYZE_PROMPT_VERSION,
        }

    def analyze_debug(
        self,
        image_b64: str,
        prompt: str,
        model: str,
        original_width: int,
        original_height: int,
        mime_type: str = "image/jpeg",
    ) -> Dict[str, Any]:
        """
        Run a caller-supplied prompt against a chosen model.

        The prompt's ${originalWidth}/${originalHeight} placeholders are
        substituted. The reply must hold analysis and in-bounds crop_params.

        Raises:
            CropServiceError: The last failure once all attempts are spent
        """
        text = prompt.replace("${originalWidth}", str(original_width)).replace(
            "${originalHeight}", str(original_height)
        )
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": text},
                    {"type": "image_url", "image_url": {"url": _data_url(image_b64, mime_type)}},
                ],
            }
        ]

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                content = self._call_model(
                    messages, model, DEBUG_MAX_TOKENS, DEBUG_TEMPERATURE, self.timeout
                )
                parsed = extract_fenced_json(content)
                require_fields(parsed, ("analysis", "crop_params"))
                box = _strict_box(parsed["crop_params"], original_width, original_height)
            except QuotaExceededError:
                raise
            except (CropServiceError, openai.OpenAIError) as e:
                last_error = e
                self._log_failure(e, attempt)
                continue

            parsed["crop_params"] = box.to_dict()
            return parsed

        if isinstance(last_error, CropServiceError):
            raise last_error
        raise AIParseError(f"Debug analysis failed after {self.max_attempts} attempts: {last_error}")

    def get_cost_stats(self) -> Dict[str, object]:
        """Get cost tracking statistics."""
        return self.cost_tracker.get_stats()

    def _call_model(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        """
        Call the chat-completions endpoint and return the reply text.

        Raises:
            QuotaExceededError: If the daily budget is spent
            AITimeoutError: If the request times out
            AIParseError: If the reply has no content
        """
        if self.cost_tracker.is_over_budget():
            raise QuotaExceededError("Daily vision budget exceeded")

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise AITimeoutError(f"Vision model timed out after {timeout}s") from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            self.cost_tracker.add_cost(
                estimate_cost(model, usage.prompt_tokens or 0, usage.completion_tokens or 0)
            )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIParseError("Vision model returned empty content")
        return content.strip()

    def _delay(self, attempt: int) -> float:
        if not self.backoff_delays:
            return 0.0
        return self.backoff_delays[min(attempt - 1, len(self.backoff_delays) - 1)]

    def _log_failure(self, error: Exception, attempt: int) -> None:
        error_type = type(error).__name__
        error_code = categorize_error(error)
        if attempt < self.max_attempts:
            logger.warning(
                f"Vision API error (attempt {attempt}/{self.max_attempts}): {error_type} - {error}",
                extra={
                    "error_type": error_type,
                    "error_code": error_code,
                    "model": self.model,
                    "retry_delay": self._delay(attempt),
                },
            )
        else:
            logger.error(
                f"All {self.max_attempts} attempts failed: {error_type} - {error}",
                extra={"error_type": error_type, "error_code": error_code, "model": self.model},
            )


def _data_url(image_b64: str, mime_type: str) -> str:
    return f"data:{mime_type};base64,{image_b64}"


def _strict_box(params: Dict[str, Any], original_width: int, original_height: int) -> CropBox:
    """Exact crop box from model output; anything needing repair is an error."""
    box, crop_errors = validate_and_fix_crop_params(params, original_width, original_height)
    if crop_errors:
        raise AIParseError("Crop parameters out of bounds or too small", details=crop_errors)
    if box.width < MIN_CROP_SIZE or box.height < MIN_CROP_SIZE:
        raise AIParseError(f"Crop smaller than {MIN_CROP_SIZE}px")
    return box
