"""Structured logging setup."""

import logging
import sys
from typing import Optional

import structlog

from ..config.config import get_settings


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Route structlog through the standard library logger.

    Args:
        level: Log level name; defaults to the ``WORLDGEN_LOG_LEVEL`` setting
        fmt: ``"json"`` or ``"console"``; defaults to ``WORLDGEN_LOG_FORMAT``
    """
    if level is None or fmt is None:
        settings = get_settings()
        level = level or settings.log_level
        fmt = fmt or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper(), force=True)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
