"""
Logging setup with redaction of identifying values outside debug mode
"""
import logging
import re

from config import settings

SENSITIVE_KEYS = ("user_id", "lesson_id", "course_id", "email", "token", "password", "secret")

_SENSITIVE_PATTERN = re.compile(
    r"\b(" + "|".join(SENSITIVE_KEYS) + r")=([^\s,;)}\]]+)",
    re.IGNORECASE
)


def redact(message: str) -> str:
    """Mask ``key=value`` pairs whose key is identifying"""
    return _SENSITIVE_PATTERN.sub(lambda m: f"{m.group(1)}=[REDACTED]", message)


class RedactingFilter(logging.Filter):
    """Rewrite log records so ids and credentials never reach the handlers"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(debug: bool = None, level: str = None) -> None:
    """Configure root logging once at startup"""
    debug = settings.DEBUG if debug is None else debug
    level = level or settings.LOG_LEVEL

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
    root = logging.getLogger()
    for handler in root.handlers:
        already = any(isinstance(f, RedactingFilter) for f in handler.filters)
        if debug and already:
            handler.filters = [f for f in handler.filters if not isinstance(f, RedactingFilter)]
        elif not debug and not already:
            handler.addFilter(RedactingFilter())
