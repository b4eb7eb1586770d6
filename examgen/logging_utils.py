"""Logging setup and redaction of sensitive values from runtime logs."""
from __future__ import annotations

import logging
import re
from typing import Any

from examgen.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_OPENAI_KEY_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-]{16,}")
_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)


def _redact_text(value: str) -> str:
    redacted = value

    for secret in (settings.OPENAI_API_KEY, settings.ANTHROPIC_API_KEY, settings.AI_INTERNAL_TOKEN):
        if secret:
            redacted = redacted.replace(secret, "[REDACTED]")

    redacted = _OPENAI_KEY_PATTERN.sub("sk-[REDACTED]", redacted)
    return _BEARER_PATTERN.sub(r"\1[REDACTED]", redacted)


def _redact_object(value: Any) -> Any:
    if isinstance(value, str):
        return _redact_text(value)
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_object(item) for item in value)
    if isinstance(value, dict):
        return {key: _redact_object(item) for key, item in value.items()}
    return value


class SecretRedactionFilter(logging.Filter):
    """Redacts sensitive data from log messages and args."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if isinstance(record.msg, str):
            record.msg = _redact_text(record.msg)
        record.args = _redact_object(record.args)
        return True


def configure_sensitive_data_redaction() -> None:
    """Attach redaction filter to application and uvicorn loggers."""
    redaction_filter = SecretRedactionFilter()

    for logger_name in ("", "uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        if not any(isinstance(f, SecretRedactionFilter) for f in logger.filters):
            logger.addFilter(redaction_filter)


def configure_logging(level: str | None = None) -> None:
    """Set the root level and format, then install secret redaction."""
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel((level or settings.LOG_LEVEL).upper())
    configure_sensitive_data_redaction()
