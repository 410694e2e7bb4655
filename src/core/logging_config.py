"""Structured logging configuration.

This module initializes structlog with a stable JSON format.
Rendered events are handed to stdlib logging so handlers stay pluggable.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(name)


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a stderr handler for process entry points.

    Args:
        level: Minimum stdlib level for emitted events.
    """
    logging.basicConfig(level=level, stream=sys.stderr, format="%(message)s")
