"""structlog setup for the ledger core."""

import logging

import structlog

from .config import LedgerSettings, settings as default_settings


def configure_logging(settings: LedgerSettings = default_settings) -> None:
    """Configure structlog from settings.

    Args:
        settings: LedgerSettings providing LOG_LEVEL and LOG_JSON
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.LOG_LEVEL}")

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_JSON
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
