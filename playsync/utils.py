"""
Utility functions for playsync.

Includes logging setup, retries for transient store failures, and
message sanitising.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from rich.logging import RichHandler

from playsync.errors import TransientError


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "pretty",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Set up the playsync logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (rich console)
        log_file: Also write records to this file

    Returns:
        Configured logger
    """
    logger = logging.getLogger("playsync")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_format == "pretty":
        console_handler: logging.Handler = RichHandler(rich_tracebacks=True, show_time=False)
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "play"):
            log_data["play"] = record.play
        if hasattr(record, "operation"):
            log_data["operation"] = record.operation

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def retry_with_backoff(
    func: Callable[[], Any],
    max_attempts: int = 3,
    backoff_seconds: float = 0.5,
    backoff_multiplier: float = 2.0,
    logger: Optional[logging.Logger] = None,
) -> Any:
    """
    Retry a function with exponential backoff on TransientError.

    Any other exception is raised immediately.

    Args:
        func: Function to retry
        max_attempts: Maximum number of attempts
        backoff_seconds: Initial backoff time in seconds
        backoff_multiplier: Multiplier for each retry
        logger: Logger for retry messages

    Returns:
        Result of successful function call

    Raises:
        TransientError: If all retries exhausted
    """
    attempt = 1
    wait_time = backoff_seconds

    while True:
        try:
            return func()
        except TransientError as e:
            if attempt >= max_attempts:
                if logger:
                    logger.error(f"All {max_attempts} attempts failed: {e}")
                raise

            if logger:
                logger.warning(
                    f"Attempt {attempt} failed: {e}. Retrying in {wait_time}s..."
                )

            time.sleep(wait_time)
            wait_time *= backoff_multiplier
            attempt += 1


_SECRET_PATTERNS = (
    (re.compile(r"(Authorization:\s*)(Splunk|Bearer|Basic)\s+\S+", re.IGNORECASE), r"\1\2 [REDACTED]"),
    (re.compile(r"((?:password|token|session_key)=)[^&\s]+", re.IGNORECASE), r"\1[REDACTED]"),
)


def sanitize_error_message(error: Any, max_length: int = 500) -> str:
    """
    Sanitize an error message before logging it.

    Args:
        error: Exception or message to sanitize
        max_length: Maximum message length

    Returns:
        Sanitized error message
    """
    message = str(error)

    if len(message) > max_length:
        message = message[:max_length] + "..."

    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)

    return message
