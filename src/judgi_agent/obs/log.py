"""structlog setup shared by the API and scripts."""

from __future__ import annotations

import logging
import os

import structlog


def configure_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    """Configure structlog once per process.

    `JUDGI_LOG_LEVEL` and `JUDGI_LOG_JSON` are read when arguments are omitted.
    """
    level_name = (level or os.getenv("JUDGI_LOG_LEVEL", "INFO")).upper()
    if json_output is None:
        json_output = os.getenv("JUDGI_LOG_JSON", "").lower() in {"1", "true", "yes"}

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level_name)
        ),
        cache_logger_on_first_use=False,
    )
