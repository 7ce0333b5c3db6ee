"""Structured logging configuration."""
import logging
import sys

import structlog

from aidemo import config

_configured = False


def configure_logging(level: str = None) -> None:
    """Configure structlog to emit JSON lines through the stdlib logger.

    Safe to call more than once; only the first call has an effect.

    Args:
        level: Log level name (defaults to config.LOG_LEVEL)
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=(level or config.LOG_LEVEL).upper(),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
    _configured = True


def truncate_for_log(text: str, limit: int = None) -> str:
    """Shorten user or model text for log previews."""
    if not text or not text.strip():
        return ""
    limit = limit or config.LOG_PREVIEW_CHARS
    if len(text) <= limit:
        return text
    return text[:limit] + "...(truncated)"
