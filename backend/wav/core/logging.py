"""
Structured logging setup.

Service code logs snake_case events with ids as keyword fields, e.g.
``logger.info("trade_accepted", trade_id=7, sender_id=1)``. Request-scoped
fields (request id, path) are merged in from contextvars.
"""
import logging
import sys

import structlog

from wav.core.config import settings

# Chatty library loggers held at WARNING regardless of our level
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def _resolve_level() -> int:
    if settings.log_level:
        return logging.getLevelName(settings.log_level.upper())
    return logging.DEBUG if settings.api_debug else logging.INFO


def setup_logging() -> None:
    """
    Configure structlog and route stdlib logging to stdout.

    JSON lines outside debug; a coloured console renderer in debug unless
    LOG_JSON forces one or the other.
    """
    level = _resolve_level()
    as_json = settings.log_json if settings.log_json is not None else not settings.api_debug
    renderer = structlog.processors.JSONRenderer() if as_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
