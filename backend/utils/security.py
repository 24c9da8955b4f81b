"""Security helpers: environment checks, input sanitizing and masked event logs."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List

from config.constants import PLACEHOLDER_API_KEYS

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("apikey", "secret", "password", "token", "key")
MASKED = "***MASKED***"
HIGH_RATE_LIMIT = 1000

_LONG_TOKEN = re.compile(r"[a-zA-Z0-9]{20,}")
_UNSAFE_CHARS = re.compile(r"[<>\"'&]")


@dataclass
class EnvironmentReport:
    """Outcome of validate_environment."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_environment(settings: Any) -> EnvironmentReport:
    """
    Check runtime settings for missing secrets and weak configuration.

    Args:
        settings: Object with openai_api_key, rate_limit_max, cache_enabled
            and dedup_cache_enabled attributes

    Returns:
        EnvironmentReport with errors and warnings
    """
    report = EnvironmentReport()

    api_key = getattr(settings, "openai_api_key", "") or ""
    if not api_key or api_key in PLACEHOLDER_API_KEYS:
        report.errors.append("OPENAI_API_KEY is not properly configured")

    if getattr(settings, "rate_limit_max", 0) > HIGH_RATE_LIMIT:
        report.warnings.append("Rate limit is very high - consider lowering for better security")

    if getattr(settings, "dedup_cache_enabled", False) and not getattr(settings, "cache_enabled", False):
        report.warnings.append("Deduplication cache enabled but Redis cache disabled")

    return report


def validate_api_key(api_key: str) -> bool:
    """Reject missing, short, test/demo and placeholder keys."""
    if not api_key or len(api_key) < 20:
        return False
    if "test" in api_key or "demo" in api_key:
        return False
    return api_key not in PLACEHOLDER_API_KEYS


def sanitize_input(text: str) -> str:
    """Strip characters that could break out of HTML or attribute context."""
    return _UNSAFE_CHARS.sub("", text)


def is_valid_origin(origin: str, allowed_origins: Iterable[str]) -> bool:
    return origin in set(allowed_origins)


def _mask_value(value: str) -> str:
    return value[:4] + "*" * (len(value) - 8) + value[-4:]


def mask_sensitive_data(data: Any) -> Any:
    """
    Mask secrets before they reach a log line.

    Strings have every alphanumeric run of 20+ characters masked. In
    mappings, values under keys that look sensitive are masked (first and
    last four characters kept) and other values are masked recursively.
    """
    if isinstance(data, str):
        return _LONG_TOKEN.sub(lambda match: _mask_value(match.group(0)), data)

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if any(sensitive in str(key).lower() for sensitive in SENSITIVE_KEYS):
                if isinstance(value, str) and len(value) > 8:
                    masked[key] = _mask_value(value)
                else:
                    masked[key] = MASKED
            elif isinstance(value, (dict, list)):
                masked[key] = mask_sensitive_data(value)
            else:
                masked[key] = value
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]

    return data


def log_security_event(event: str, details: Any, level: str = "info", enabled: bool = True) -> None:
    """Log a security event as one JSON line with masked details."""
    if not enabled:
        return

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "level": level,
        "details": mask_sensitive_data(details),
    }
    log_level = {"warn": logging.WARNING, "warning": logging.WARNING, "error": logging.ERROR}.get(
        level, logging.INFO
    )
    logger.log(log_level, json.dumps(entry, ensure_ascii=False, default=str))
