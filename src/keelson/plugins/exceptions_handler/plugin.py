"""ExceptionsHandler -- turn request failures into HTTP responses.

The front controller hands every failure of the request to this plugin
(through :attr:`ExceptionsHandler.exception`) and notifies its ``execute``
step. Two kinds of failure are distinguished:

* :class:`~keelson.exceptions.HttpStatusSignal` -- the status and message
  carried by the signal become the response.
* Anything else -- the response is a bare ``500``, or the debug page when
  the ``debug`` key is true.

Failures are written to the ``keelson.errors`` logger when ``log`` is true
(the default); status signals only when ``logHttpStatusCode`` is true.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Optional

from keelson.exceptions import HttpStatusSignal
from keelson.plugins.base import Plugin
from keelson.plugins.hooks import EXECUTE, step
from keelson.renderer import ViewRenderer
from keelson.view import View

error_logger = logging.getLogger("keelson.errors")

DEBUG_VIEW_PATH = "plugins/exceptions_handler/views/Debug"


def describe_exception(exception: BaseException) -> dict[str, Any]:
    """Return the data rendered by the debug view for *exception*."""
    frames = traceback.extract_tb(exception.__traceback__)
    location = f"{frames[-1].filename}({frames[-1].lineno})" if frames else ""
    trace = traceback.format_exception(type(exception), exception, exception.__traceback__)
    return {
        "exception": exception,
        "type": f"{type(exception).__module__}.{type(exception).__qualname__}",
        "message": str(exception),
        "location": location,
        "trace": "".join(trace),
    }


class ExceptionsHandler(Plugin):
    """Answers the request when its dispatch failed.

    Attributes:
        exception: The failure to handle, set by the front controller before
            the ``execute`` step.
    """

    def init(self) -> None:
        self.exception: Optional[BaseException] = None
        self.debug = bool(self.config.get_value_or("debug", False))
        self.log = bool(self.config.get_value_or("log", True))
        self.log_http_status_code = bool(self.config.get_value_or("logHttpStatusCode", False))

    @step(EXECUTE)
    def execute(self) -> None:
        """Answer with the status of the recorded failure."""
        exception = self.exception
        if exception is None:
            return

        if isinstance(exception, HttpStatusSignal):
            if self.log_http_status_code:
                error_logger.error("%s", exception.status_line)
            self.response.apply_status(exception)
            return

        if self.log:
            error_logger.error("%s: %s", type(exception).__name__, exception, exc_info=exception)
        self.response.set_status(500)
        self.response.content = ""
        if self.debug:
            self._render_debug(exception)

    def _render_debug(self, exception: BaseException) -> None:
        view = View(DEBUG_VIEW_PATH, describe_exception(exception))
        renderer = ViewRenderer(view, self.config, self.plugins, self.plugins.data_sources)
        self.response.content = renderer.render()
