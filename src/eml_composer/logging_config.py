"""
Structured logging configuration using structlog.

This module sets up structlog for JSON-based structured logging with context binding.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import Settings, resolve_settings


def setup_logging(config: Optional[Settings] = None) -> None:
    """
    Configure structlog for structured JSON logging.

    Sets up processors for:
    - Context variable merging
    - Log level addition
    - Exception info rendering
    - Timestamp addition
    - JSON or console rendering based on settings

    Output goes to stderr so it never mixes with messages printed to stdout.

    Args:
        config: Settings to read the level and renderer from
    """
    config = resolve_settings(config)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.processors.JSONRenderer()
                if config.log_json
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
