"""
structlog configuration.
Call configure_logging() once per process before the first log line.
"""

import logging
import sys
from typing import Optional

import structlog

from config.settings import settings, Settings


def configure_logging(config: Optional[Settings] = None) -> None:
    """
    Configure structlog and stdlib logging from settings.

    Args:
        config: Settings to read log_level/log_format from. Defaults to global settings.
    """
    config = config or settings
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
