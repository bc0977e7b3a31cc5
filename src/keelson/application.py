"""WSGI application wrapping the front controller.

An :class:`Application` serves one project directory::

    site/
        config/default.yaml      # settings; config/<host>.yaml wins for that host
        site/                    # the importable project package ("project": "site")
            modules/home/__init__.py
        Modules/Home/Views/Default.html
        Views/Layouts/Index.html

Each request selects its configuration from the ``Host`` header (see
:func:`~keelson.config.resolve_config_path`), runs a fresh
:class:`~keelson.front_controller.FrontController` and returns the response
body. Failures that no ``ExceptionsHandler`` answers propagate to the WSGI
server.

Example::

    from keelson.application import Application

    application = Application("/srv/site")
"""

from __future__ import annotations

import io
import logging
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import urlencode
from wsgiref.util import setup_testing_defaults

from keelson.config import Configuration, load_configuration
from keelson.front_controller import FrontController
from keelson.http import Response
from keelson.routing import QUERY_KEY

logger = logging.getLogger(__name__)

StartResponse = Callable[..., Any]


def ensure_importable(root_path: Union[str, Path]) -> None:
    """Put the project directory on ``sys.path`` so its package can be imported."""
    path = str(Path(root_path).resolve())
    if path not in sys.path:
        sys.path.insert(0, path)


def make_environ(
    path: str = "",
    post: Optional[Mapping[str, Any]] = None,
    host: Optional[str] = None,
    cookies: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Build a WSGI environ for a request to *path* (``module/action/key/value``).

    Form fields in *post* make it a urlencoded ``POST`` request.
    """
    environ: dict[str, Any] = {"QUERY_STRING": urlencode({QUERY_KEY: path}) if path else ""}
    if host:
        environ["HTTP_HOST"] = host
    if cookies:
        environ["HTTP_COOKIE"] = "; ".join(f"{key}={value}" for key, value in cookies.items())
    if post:
        body = urlencode(post, doseq=True).encode("utf-8")
        environ.update(
            REQUEST_METHOD="POST",
            CONTENT_TYPE="application/x-www-form-urlencoded",
            CONTENT_LENGTH=str(len(body)),
        )
        environ["wsgi.input"] = io.BytesIO(body)
    setup_testing_defaults(environ)
    return environ


class Application:
    """WSGI callable serving the project at *root_path*.

    Args:
        root_path: The project directory.
        config: A fixed configuration. When omitted, the configuration is
            selected per request from the request's host.
    """

    def __init__(
        self, root_path: Union[str, Path], config: Optional[Configuration] = None
    ) -> None:
        self.root_path = Path(root_path)
        self.config = config
        ensure_importable(self.root_path)

    def configuration_for(self, environ: Mapping[str, Any]) -> Configuration:
        """Return the configuration used for the request described by *environ*."""
        if self.config is not None:
            return self.config
        host = environ.get("HTTP_HOST") or environ.get("SERVER_NAME")
        return load_configuration(self.root_path, host)

    def handle(self, environ: Mapping[str, Any]) -> tuple[Response, str]:
        """Run one request and return its response and rendered body."""
        controller = FrontController(self.configuration_for(environ), environ)
        controller.execute()
        buffer = io.StringIO()
        controller.send_response(buffer)
        return controller.response, buffer.getvalue()

    def __call__(
        self, environ: dict[str, Any], start_response: StartResponse
    ) -> Iterable[bytes]:
        response, body = self.handle(environ)
        payload = body.encode("utf-8")
        headers = list(response.headers.items())
        headers.append(("Content-Length", str(len(payload))))
        target = environ.get("QUERY_STRING") or environ.get("PATH_INFO", "/")
        logger.info("%s %s", response.status, target)
        start_response(response.status, headers)
        return [payload]
