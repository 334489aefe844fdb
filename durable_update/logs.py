"""Logging setup with the verbosity levels of the command line."""

import logging

from rich.console import Console
from rich.logging import RichHandler

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "verbose": VERBOSE,
    "debug": logging.DEBUG,
}

DEFAULT_LOG_LEVEL = "info"


def validate_log_level(name: str | None) -> str:
    """Return ``name`` if it is a known level, otherwise the default."""
    if name and name.lower() in LOG_LEVELS:
        return name.lower()
    return DEFAULT_LOG_LEVEL


def configure_logging(level: str = DEFAULT_LOG_LEVEL, console: Console | None = None) -> logging.Logger:
    """Route package logs through a rich handler at the requested level.

    Args:
        level: One of error, warn, info, verbose, debug
        console: Console to render to (defaults to stderr)

    Returns:
        The package logger
    """
    logger = logging.getLogger("durable_update")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(LOG_LEVELS[validate_log_level(level)])
    return logger
