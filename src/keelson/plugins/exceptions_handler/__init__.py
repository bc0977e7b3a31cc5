"""Exceptions handler system plugin.

List ``ExceptionsHandler`` in ``systemPlugins`` to answer failed requests
with an HTTP status instead of letting the failure escape the front
controller. It is always notified last.
"""

from keelson.plugins.exceptions_handler.plugin import (
    DEBUG_VIEW_PATH,
    ExceptionsHandler,
    describe_exception,
)

__all__ = ["ExceptionsHandler", "DEBUG_VIEW_PATH", "describe_exception"]
