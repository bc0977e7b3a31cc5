"""Front controller -- runs one top-level request from environ to response.

:meth:`FrontController.execute` is the single recovery boundary of a
request. Inside it, the request is routed, the plugins are loaded, the data
sources are built, and the dispatch runs between the ``preDispatch`` and
``postDispatch`` notifications. Any failure raised along the way is handed
to the ``ExceptionsHandler`` plugin when it is registered. Without it, an
:class:`~keelson.exceptions.HttpStatusSignal` still becomes the response and
every other failure propagates to the caller.

Example::

    config = load_configuration("site")
    controller = FrontController(config, environ)
    controller.execute()
    controller.send_response(buffer)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, TextIO

from keelson.config import Configuration
from keelson.datasources import DataSourceProxy, build_data_sources
from keelson.dispatcher import Dispatcher
from keelson.exceptions import HttpStatusSignal, RoutingError
from keelson.http import DEFAULT_PROTOCOL, Request, Response
from keelson.plugins.hooks import EXECUTE
from keelson.plugins.registry import EXCEPTIONS_HANDLER, PluginRegistry
from keelson.routing import Router

logger = logging.getLogger(__name__)


class FrontController:
    """Orchestrates the lifecycle of one top-level request.

    Args:
        config: The project configuration.
        environ: The WSGI environ of the request.
    """

    def __init__(self, config: Configuration, environ: Mapping[str, Any]) -> None:
        self.config = config
        self.environ = dict(environ)
        self.request: Optional[Request] = None
        self.response = Response(str(self.environ.get("SERVER_PROTOCOL") or DEFAULT_PROTOCOL))
        self.plugins: Optional[PluginRegistry] = None
        self.data_sources: Optional[DataSourceProxy] = None

    def execute(self) -> Response:
        """Run the request and return its response.

        Raises:
            KeelsonError: Any failure, when no ``ExceptionsHandler`` is
                registered to answer it.
        """
        try:
            self._run()
        except Exception as exc:
            if not self._recover(exc):
                raise
        return self.response

    def _run(self) -> None:
        router = Router.from_environ(self.environ, self.config)
        self.request = Request.from_environ(self.environ, router)
        self.plugins = PluginRegistry(self.request, self.response, self.config)
        self.plugins.load_plugins()

        if not self.request.module_name:
            raise RoutingError("The request names no module and no default module is configured")

        self.data_sources = build_data_sources(
            self.config.project,
            self.config.get_array_or("sources"),
            self.config.get_array_or("dsns"),
        )
        self.plugins.data_sources = self.data_sources

        logger.debug("Dispatching %s", self.request.get_request() or self.request.module_name)
        self.plugins.pre_dispatch()
        Dispatcher(
            self.request, self.response, self.config, self.plugins, self.data_sources
        ).dispatch()
        self.plugins.post_dispatch()

    def _recover(self, exc: Exception) -> bool:
        if self.plugins is not None and self.plugins.has(EXCEPTIONS_HANDLER):
            handler = self.plugins.get(EXCEPTIONS_HANDLER)
            handler.exception = exc  # type: ignore[attr-defined]
            self.plugins.notify(EXECUTE, [EXCEPTIONS_HANDLER])
            return True
        if isinstance(exc, HttpStatusSignal):
            self.response.apply_status(exc)
            return True
        return False

    def send_response(self, stream: Optional[TextIO] = None) -> None:
        """Write the response content to *stream* (standard output by default)."""
        self.response.send(stream)
