"""Logging setup."""

import logging

import structlog

from src.config.settings import Settings

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def build_json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Render stdlib records as one JSON object per line.

    Fields passed through ``extra`` (security events carry several) land at
    the top level of the object.
    """
    pre_chain = [
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.format_exc_info,
        structlog.processors.EventRenamer("message"),
    ]
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=pre_chain,
    )


def configure_logging(app_settings: Settings) -> None:
    """Install a single root handler using the configured level and format."""
    handler = logging.StreamHandler()
    if app_settings.log_format == "json":
        handler.setFormatter(build_json_formatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(app_settings.log_level.upper())

    # Engine logging is controlled by DATABASE_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
