"""Structured logging for Apply Desk, built on structlog with rich console output."""

import logging
from typing import Any, Dict, Optional

import structlog
from rich.logging import RichHandler

from apply_desk.config import settings

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "asyncio", "websockets")


def configure_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        log_level: Level name; defaults to ``settings.log_level``
        json_logs: Render JSON lines; defaults to ``not settings.debug``
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = not settings.debug

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[RichHandler(rich_tracebacks=True, markup=False, show_path=False)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_error_context(error: BaseException, **kwargs: Any) -> Dict[str, Any]:
    """Keys logged for a contained error."""
    return {
        "error": str(error),
        "error_type": type(error).__name__,
        **kwargs,
    }


def log_session_transition(
    session_id: str,
    from_status: Optional[str],
    to_status: str,
) -> Dict[str, Any]:
    """Create a log context for a lifecycle transition."""
    return {
        "session_id": session_id,
        "transition": {
            "from": from_status,
            "to": to_status,
        },
    }
