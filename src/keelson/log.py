"""Logging setup for applications and the command line.

Framework modules log through ``logging.getLogger(__name__)``. Failures
handled by the ``ExceptionsHandler`` plugin go to the dedicated
``keelson.errors`` logger, which :func:`configure_logging` sends to
``<project>/Log/error.log``::

    04/12/2026 09:14:03  |  ValueError: invalid literal for int() with base 10: 'x'

Console logging goes through :class:`rich.logging.RichHandler` on stderr.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

ERROR_LOGGER = "keelson.errors"
LOG_DIRNAME = "Log"
ERROR_LOG_FILENAME = "error.log"
LOG_FORMAT = "%(asctime)s  |  %(message)s"
DATE_FORMAT = "%m/%d/%Y %H:%M:%S"

_HANDLER_MARKER = "_keelson_handler"


def error_log_path(root_path: Union[str, Path]) -> Path:
    """Return the error log file of the project at *root_path*."""
    return Path(root_path) / LOG_DIRNAME / ERROR_LOG_FILENAME


def configure_logging(
    root_path: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    no_color: bool = False,
) -> None:
    """Install the keelson log handlers, replacing any installed earlier.

    Args:
        root_path: Project directory. When given, ``keelson.errors`` records
            are appended to ``<root_path>/Log/error.log``.
        verbose: Show ``DEBUG`` records on the console instead of
            ``WARNING`` and above.
        no_color: Disable colour in console records.
    """
    remove_handlers()
    package_logger = logging.getLogger("keelson")
    error_logger = logging.getLogger(ERROR_LOGGER)

    console = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        rich_tracebacks=True,
    )
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    setattr(console, _HANDLER_MARKER, True)
    package_logger.addHandler(console)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if root_path is not None:
        path = error_log_path(root_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        file_handler.setLevel(logging.ERROR)
        setattr(file_handler, _HANDLER_MARKER, True)
        error_logger.addHandler(file_handler)


def remove_handlers() -> None:
    """Remove and close the handlers installed by :func:`configure_logging`."""
    for name in ("keelson", ERROR_LOGGER):
        target = logging.getLogger(name)
        for handler in list(target.handlers):
            if getattr(handler, _HANDLER_MARKER, False):
                target.removeHandler(handler)
                handler.close()
