"""Structured logging for rollbook using structlog.

JSON lines in production, coloured console output during development. Both
go to stderr; stdout belongs to the CLI scripts' JSON and table output.
Modules log through get_logger() with snake_case event names, never print().
"""

import logging
import sys

import structlog

from src.rollbook.config import get_config


def setup_logging(json_output: bool | None = None, log_level: str | None = None) -> None:
    """Configure structlog processors, renderer and level.

    Args:
        json_output: JSON renderer if True, console renderer if False.
            Defaults to the LOG_JSON setting.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to
            the LOG_LEVEL setting.
    """
    config = get_config()
    if json_output is None:
        json_output = config.log_json
    level = getattr(logging, (log_level or config.log_level).upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(level)
    # urllib3 logs every Gemini connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def get_logger(name: str, **context) -> structlog.BoundLogger:
    """Logger for module `name`, optionally pre-bound with `context`.

    Example:
        log = get_logger(__name__, session_id="ses_42")
        log.info("attendance_loaded", records=30)
    """
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger
