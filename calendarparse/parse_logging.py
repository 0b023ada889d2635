"""
Central logging configuration for calendarparse.

Sets up a colorized console handler and keeps third-party loggers quiet while
leaving the calendarparse loggers at the requested verbosity.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party loggers and the level they are capped at
THIRD_PARTY_LEVELS = {
    "icalendar": logging.WARNING,
}

PACKAGE_LOGGER = "calendarparse"


def _env_debug() -> bool:
    return os.getenv("CALENDARPARSE_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging for calendarparse.

    Adds a colorized stderr handler to the root logger if it has none yet,
    sets the root and package levels, and caps noisy third-party loggers.

    Args:
        debug_mode: Whether to enable debug logging for calendarparse modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDARPARSE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARPARSE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    if force_debug is not None:
        final_debug = force_debug
    elif _env_debug():
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    env_log_level = os.getenv("CALENDARPARSE_LOG_LEVEL", "").strip().upper()
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist to avoid duplicate output
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(
            ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS)
        )
        root_logger.addHandler(handler)

    for logger_name, level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if final_debug else logging.INFO)

    logging.getLogger(__name__).debug(
        "Logging configured at level %s", logging.getLevelName(root_level)
    )


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in (PACKAGE_LOGGER, *THIRD_PARTY_LEVELS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
