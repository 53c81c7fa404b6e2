from __future__ import annotations

import json
import logging
import re
import sys
from typing import IO, Any

from opshub.context import get_correlation_id
from opshub.core.config import get_settings
from opshub.core.time import utcnow

LOGGER_NAME = "opshub"

_KNOWN_FIELDS = {
    "customer_id",
    "user_id",
    "actor_user_id",
    "allocation_id",
    "action",
    "resource",
    "scope_level",
    "scope_id",
    "reason",
    "error",
}
_MAX_FIELD_LENGTH = 500
# Plaintext PII must never reach a log line.
_EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[A-Za-z]{2,}")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s-]{8,}\d")


def mask_pii(value: str) -> str:
    value = _EMAIL_PATTERN.sub("[email]", value)
    return _PHONE_PATTERN.sub("[phone]", value)


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; only whitelisted ``extra`` keys are emitted."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {}
        for key in _KNOWN_FIELDS:
            if not hasattr(record, key):
                continue
            value = getattr(record, key)
            if isinstance(value, str):
                value = mask_pii(value)[:_MAX_FIELD_LENGTH]
            fields[key] = value

        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload: dict[str, Any] = {
            "ts": utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
            "fields": dict(sorted(fields.items())),
        }
        return json.dumps(payload, default=str)


def configure_logging(stream: IO[str] | None = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_opshub_configured", False):
        return logger

    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(CorrelationIdFilter())

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    logger._opshub_configured = True  # type: ignore[attr-defined]
    return logger
