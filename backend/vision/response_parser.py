"""Pull crop JSON out of free-form vision model replies."""

import json
import re
from typing import Any, Dict, Iterable

from backend.errors import AIParseError, AITimeoutError

_OBJECT = re.compile(r"\{[\s\S]*\}")
_FENCED = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")


def _loads_object(text: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise AIParseError("Model reply contains invalid JSON", details=str(e)) from e
    if not isinstance(parsed, dict):
        raise AIParseError("Model reply JSON is not an object")
    return parsed


def extract_json_object(content: str) -> Dict[str, Any]:
    """Parse the span from the first "{" to the last "}" of the reply."""
    match = _OBJECT.search(content or "")
    if not match:
        raise AIParseError("No JSON object found in model reply")
    return _loads_object(match.group(0))


def extract_fenced_json(content: str) -> Dict[str, Any]:
    """Parse a ```json fenced block, or the whole reply when there is none."""
    match = _FENCED.search(content or "")
    if match:
        return _loads_object(match.group(1))
    return _loads_object((content or "").strip())


def require_fields(parsed: Dict[str, Any], fields: Iterable[str]) -> None:
    """Raise AIParseError unless every field is present and non-empty."""
    missing = [name for name in fields if not parsed.get(name)]
    if missing:
        raise AIParseError(f"Model reply is missing required fields: {', '.join(missing)}")
    crop_params = parsed.get("crop_params")
    if crop_params is not None and not isinstance(crop_params, dict):
        raise AIParseError("crop_params must be an object")


def categorize_error(error: Exception) -> str:
    """Short code for logging a failed model call."""
    if isinstance(error, AITimeoutError):
        return "TIMEOUT"
    if isinstance(error, AIParseError):
        return "PARSE_ERROR"

    error_str = str(error).lower()
    if "rate_limit" in error_str or "rate limit" in error_str:
        return "RATE_LIMIT"
    if "timeout" in error_str or "timed out" in error_str:
        return "TIMEOUT"
    if "invalid" in error_str:
        return "INVALID_IMAGE"
    return "UNKNOWN"
