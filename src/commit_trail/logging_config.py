"""Structured logging for commit-trail using structlog."""

import logging
import os

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(level: str | None = None) -> None:
    """Route stdlib logging through structlog.

    LOG_FORMAT selects ``pretty`` or ``json`` rendering, LOG_COLORS toggles
    colours and LOG_LEVEL (or ``level``) sets the root level.
    """
    log_format = os.getenv("LOG_FORMAT", "pretty").lower()
    log_colors = os.getenv("LOG_COLORS", "true").lower() in ("true", "1", "yes", "on")
    level_name = (level or os.getenv("LOG_LEVEL", "WARNING")).upper()

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=log_colors)

    logging.root.handlers = []
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level_name, logging.WARNING))

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)
