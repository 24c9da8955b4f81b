"""Logging configuration for the crop service."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Set once the root logger has handlers
_logging_configured = False

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "PIL")


def resolve_level(level_name: Optional[str]) -> int:
    """Map a LOG_LEVEL name ("debug", "info", ...) to a logging level."""
    if not level_name:
        return logging.INFO
    return getattr(logging, level_name.upper(), logging.INFO)


def setup_logging(
    module_name: str = "api",
    log_dir: str = "logs",
    log_file: str = "crop_service.log",
    level: Optional[int] = None,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure rotating file and console logging for the service.

    Args:
        module_name: Subdirectory for logs (e.g., "api", "worker")
        log_dir: Base logs directory
        log_file: Log file name
        level: Logging level (defaults to LOG_LEVEL env, then INFO)
        max_bytes: Max file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured root logger
    """
    global _logging_configured

    root_logger = logging.getLogger()

    if _logging_configured:
        return root_logger

    if level is None:
        level = resolve_level(os.getenv("LOG_LEVEL"))

    log_path = Path(log_dir) / module_name
    log_path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    file_handler = RotatingFileHandler(
        log_path / log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # HTTP client internals log every request at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _logging_configured = True
    return root_logger
