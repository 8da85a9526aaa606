"""Logging helpers with redaction."""

from __future__ import annotations

import logging
import re
from typing import Any


_SENSITIVE_KEYS = re.compile(r"(token|secret|api[_-]?key|password|authorization)", re.IGNORECASE)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_payload(payload: Any) -> Any:
    """Mask sensitive keys anywhere inside a decoded body or header map."""
    if isinstance(payload, dict):
        redacted = {}
        for key, value in payload.items():
            if isinstance(key, str) and _SENSITIVE_KEYS.search(key):
                redacted[key] = "***REDACTED***"
            else:
                redacted[key] = redact_payload(value)
        return redacted
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    return payload
