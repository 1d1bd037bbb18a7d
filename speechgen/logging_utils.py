"""Centralised logging configuration for the speechgen CLI."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

__all__ = ["redact_secrets", "setup_logging"]

_SENSITIVE_KEY_MARKERS = ("TOKEN", "SECRET", "KEY", "PASSWORD")
_MIN_SECRET_LENGTH = 6
_REDACTED_PLACEHOLDER = "***REDACTED***"
_LOGGER_NAME = "speechgen"


def _collect_secret_values() -> set[str]:
    """Return likely secret values sourced from environment variables."""

    secrets: set[str] = set()
    for key, value in os.environ.items():
        if not value or len(value) < _MIN_SECRET_LENGTH:
            continue
        upper_key = key.upper()
        if any(marker in upper_key for marker in _SENSITIVE_KEY_MARKERS):
            secrets.add(value)
    return secrets


def redact_secrets(value: str) -> str:
    """Replace occurrences of environment secrets within a string with a placeholder."""

    redacted = value
    for secret in _collect_secret_values():
        if secret in redacted:
            redacted = redacted.replace(secret, _REDACTED_PLACEHOLDER)
    return redacted


class _SecretFilter(logging.Filter):
    """Logging filter that redacts sensitive tokens from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted_message = redact_secrets(message)
        if redacted_message != message:
            record.msg = redacted_message
            record.args = ()
        return True


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Initialise console (and optional file) handlers for the package logger."""

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))
    logger.propagate = False

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        console_handler.addFilter(_SecretFilter())
        logger.addHandler(console_handler)

    if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s - %(message)s",
                "%Y-%m-%d %I:%M:%S %p",
            )
        )
        file_handler.addFilter(_SecretFilter())
        logger.addHandler(file_handler)

    return logger
