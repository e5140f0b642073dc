"""Centralized logging configuration.

Provider credentials travel in request URLs (Gemini ``?key=``) and headers
(``Authorization: Bearer``), and provider error bodies sometimes echo them
back. Every record passes through ``CredentialRedactingFilter`` before it is
formatted, whichever formatter is active.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone

from reflectai.core.config import settings

REDACTED = "***"

_SECRET_PATTERNS = (
    re.compile(r"([?&]key=)[^&\s\"']+"),
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+"),
    re.compile(r"(x-goog-api-key[\"']?\s*[:=]\s*[\"']?)[^\s\"',}]+", re.IGNORECASE),
)


def redact(text: str) -> str:
    """Mask provider credentials inside ``text``."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(rf"\g<1>{REDACTED}", text)
    return text


class CredentialRedactingFilter(logging.Filter):
    """Rewrites the rendered message with credentials masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Set by the gateway on its per-request summary line
        request_kind = getattr(record, "request_kind", None)
        if request_kind:
            log_data["request_kind"] = request_kind
        if record.exc_info and record.exc_info[1]:
            log_data["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the entire application."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CredentialRedactingFilter())
    handler.setFormatter(
        JSONFormatter()
        if settings.log_json
        else logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    root.addHandler(handler)

    # httpx logs every request URL at INFO, key included
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("reflectai.gateway").setLevel(logging.DEBUG if settings.app_debug else level)
