"""Structured logging configuration.

Log output goes to stderr so it never mixes with CLI output on stdout.
"""

import logging
import sys

import structlog
from pythonjsonlogger.json import JsonFormatter

from pos_inventory.infrastructure.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure stdlib logging and structlog from settings."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stderr)
    if settings.log_format == "json":
        handler.setFormatter(
            JsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level", "asctime": "timestamp"},
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Loggers must pick up a re-pointed stderr between CLI invocations.
        cache_logger_on_first_use=False,
    )
