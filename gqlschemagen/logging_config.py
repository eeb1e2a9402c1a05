"""
Logging setup for gqlschemagen.

Every module obtains its logger through ``get_logger(__name__)``; the CLI
calls ``setup_logging`` once to attach a rich console handler.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "gqlschemagen"

_configured = False


def setup_logging(
    level: int = logging.WARNING, console: Optional[Console] = None
) -> logging.Logger:
    """
    Configure the package logger with a RichHandler.

    Args:
        level: Logging level for the package logger
        console: Console to log to (defaults to stderr)

    Returns:
        The configured package logger
    """
    global _configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if not _configured:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True
    else:
        for handler in logger.handlers:
            handler.setLevel(level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the package logger."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
