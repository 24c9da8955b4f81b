from .output_storage import OutputStorage, StoredOutput
from .redis_client import RedisConnector
from .security import (
    EnvironmentReport,
    is_valid_origin,
    log_security_event,
    mask_sensitive_data,
    sanitize_input,
    validate_api_key,
    validate_environment,
)

__all__ = [
    "OutputStorage",
    "StoredOutput",
    "RedisConnector",
    "EnvironmentReport",
    "validate_environment",
    "validate_api_key",
    "sanitize_input",
    "mask_sensitive_data",
    "is_valid_origin",
    "log_security_event",
]
