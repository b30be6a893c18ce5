"""
Logging utilities for the FastAPI application and helper scripts.

Provides a consistent logging format and keeps OAuth secrets out of log output.
"""

import logging
import re
import sys

_SECRET_PATTERNS = (
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE), r"\1[redacted]"),
    (
        re.compile(r"(\b(?:access_token|refresh_token|client_secret|code)\b[=:]\s*)[^\s&,\"']+"),
        r"\1[redacted]",
    ),
)


def redact(message: str) -> str:
    """Mask bearer tokens and OAuth parameters in a log line."""
    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class RedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
    # httpx logs every request URL at INFO, which would include search queries.
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["RedactingFilter", "configure_logging", "redact"]
