"""
Logging setup for the alignment engine CLI.

Library modules only call ``logging.getLogger(__name__)`` and stay silent
(NullHandler) until an application calls ``setup_logging``. Console records go
to stderr through rich; a plain-text file and Logfire are optional sinks.
"""

import logging
from typing import Optional

import logfire
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from .config import LoggingConfig


LOGGER_NAMES = ("alignment_engine", "requirements_graph")

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_stderr = Console(
    theme=Theme({
        "logging.level.debug": "dim cyan",
        "logging.level.info": "green",
        "logging.level.warning": "yellow",
        "logging.level.error": "bold red",
        "log.path": "dim",
    }),
    stderr=True,
)


def _handlers(level: int, settings: LoggingConfig, show_path: bool) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [
        RichHandler(
            console=_stderr,
            level=level,
            show_path=show_path,
            rich_tracebacks=True,
            # Requirement text may contain [brackets]
            markup=False,
        )
    ]

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    if settings.logfire:
        handlers.append(logfire.LogfireLoggingHandler(fallback=logging.NullHandler()))

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(settings: Optional[LoggingConfig] = None, verbose: bool = False) -> None:
    """
    Install handlers on the ``alignment_engine`` and ``requirements_graph`` loggers.

    Calling it again replaces the handlers from the previous call.

    Args:
        settings: Logging section of the engine config (defaults when omitted)
        verbose: Force DEBUG and show source paths on the console
    """
    settings = settings or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, settings.level.upper())

    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if not isinstance(handler, logging.NullHandler):
                logger.removeHandler(handler)
                handler.close()
        for handler in _handlers(level, settings, show_path=verbose):
            logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False


for _name in LOGGER_NAMES:
    logging.getLogger(_name).addHandler(logging.NullHandler())
