"""
Logging Configuration for the OpenElevate gamification engine

Sets up centralized logging for the whole application. Call setup_logging()
early in the application lifecycle, before modules start emitting records.
"""

import logging
import sys
from typing import Literal

from openelevate.config import settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(log_level: str | None = None) -> None:
    """
    Configure logging for the entire application.

    Args:
        log_level: Optional override for log level. If not provided, uses
            settings.LOG_LEVEL

    """
    level = log_level or settings.LOG_LEVEL
    level_upper = level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)

    root_logger = logging.getLogger()

    # setup_logging() may be called more than once
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    root_logger.info(
        "Logging configured: level=%s, handler=console",
        level_upper,
    )

    _configure_third_party_loggers(numeric_level)


def _configure_third_party_loggers(app_level: int) -> None:
    """
    Keep uvicorn, sqlalchemy and redis quieter than the application itself.

    Args:
        app_level: The application's log level (used as reference)

    """
    logging.getLogger("uvicorn").setLevel(max(app_level, logging.INFO))
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)

    # engine echo is controlled by DB_ECHO (see config.py)
    if settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine.Engine").setLevel(logging.WARNING)

    logging.getLogger("sqlalchemy.pool").setLevel(
        logging.INFO if app_level == logging.DEBUG else logging.WARNING
    )
    logging.getLogger("sqlalchemy.orm").setLevel(logging.WARNING)

    logging.getLogger("redis").setLevel(
        logging.INFO if app_level == logging.DEBUG else logging.WARNING
    )
    logging.getLogger("redis.asyncio").setLevel(logging.WARNING)

    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("starlette").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)



def update_log_level(log_level: LogLevel | str) -> None:
    """
    Dynamically update the logging level at runtime.

    Args:
        log_level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers:
        handler.setLevel(numeric_level)

    root_logger.info("Log level updated to: %s", level_upper)
