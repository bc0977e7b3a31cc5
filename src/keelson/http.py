"""Request and response objects handed to plugins and modules.

:class:`Request` is immutable for the duration of a dispatch: it carries the
routed module and action names plus the five request-shaped parameter sets
(query parameters, form fields, cookies, uploaded files and server/CGI
variables). Parameters are read through typed accessors that sanitize the
raw value for the requested type and fall back to a default.

:class:`Response` carries the composed ``content`` plus an HTTP status. A
handler or plugin answers with a bare status by calling
:meth:`Response.set_http_status_code`, which raises
:class:`~keelson.exceptions.HttpStatusSignal`; the front controller applies
the signal with :meth:`Response.apply_status`.
"""

from __future__ import annotations

import re
import sys
from collections.abc import Mapping
from http import HTTPStatus
from types import MappingProxyType
from typing import Any, Optional, TextIO
from urllib.parse import parse_qs

from keelson.exceptions import HttpStatusSignal, RequestError
from keelson.routing import Router

DEFAULT_PROTOCOL = "HTTP/1.1"

_UPLOAD_ERRORS = {
    1: "The uploaded file exceeds the maximum upload size",
    2: "The uploaded file exceeds the maximum size specified in the form",
    3: "The uploaded file was only partially uploaded",
    4: "No file was uploaded",
    6: "A temporary folder is missing",
    7: "Failed to write file to disk",
    8: "File upload stopped by extension",
}

_SPACES = re.compile(r"  +")
_NOT_INT = re.compile(r"[^0-9+-]")
_NOT_FLOAT = re.compile(r"[^0-9+\-.eE]")
_NOT_MAIL = re.compile(r"[^A-Za-z0-9!#$%&'*+\-=?^_`{|}~@.\[\]]")
_TAGS = re.compile(r"<[^>]*>")
_TRUE = {"1", "true", "on", "yes"}
_FALSE = {"0", "false", "off", "no", ""}


def sanitize(value: Any, type: str = "undefined", default: Any = None) -> Any:
    """Sanitize *value* for the given parameter *type*.

    Supported types are ``int``, ``uint``, ``float``, ``string``, ``date``,
    ``mail``, ``boolean``, ``array`` and ``undefined`` (case-insensitive).
    Scalars are stripped and runs of spaces collapsed. When the value can't
    be represented in the requested type, *default* is returned.
    """
    kind = type.lower()
    if kind == "array":
        return list(value) if isinstance(value, (list, tuple)) else default
    if isinstance(value, (list, tuple)):
        if not value:
            return default
        value = value[-1]
    if value is None or value is False:
        return default

    text = _SPACES.sub(" ", str(value).strip())
    if kind in ("int", "uint"):
        digits = _NOT_INT.sub("", text)
        try:
            number = int(digits)
        except ValueError:
            return default
        return abs(number) if kind == "uint" else number
    if kind == "float":
        try:
            return float(_NOT_FLOAT.sub("", text))
        except ValueError:
            return default
    if kind == "boolean":
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        return default
    if kind == "mail":
        return _NOT_MAIL.sub("", text)
    if kind in ("string", "date"):
        return _SPACES.sub(" ", _TAGS.sub("", text).strip())
    if kind == "undefined":
        return text
    raise ValueError(f"Unknown parameter type: {type}")


class Request:
    """An incoming (or synthetic) request routed to a module and action.

    Args:
        module_name: The routed module name.
        action_name: The routed action name (may be empty).
        params: Routed query parameters.
        post: Form fields.
        cookie: Cookies.
        files: Uploaded files, each a mapping with ``name`` and ``error``.
        server: Server/CGI variables (a WSGI environ is suitable).
    """

    def __init__(
        self,
        module_name: str = "",
        action_name: str = "",
        params: Optional[Mapping[str, Any]] = None,
        post: Optional[Mapping[str, Any]] = None,
        cookie: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        server: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._module_name = module_name
        self._action_name = action_name
        self._params = MappingProxyType(dict(params or {}))
        self._post = MappingProxyType(dict(post or {}))
        self._cookie = MappingProxyType(dict(cookie or {}))
        self._files = MappingProxyType(dict(files or {}))
        self._server = MappingProxyType(dict(server or {}))

    @classmethod
    def from_router(
        cls,
        router: Router,
        post: Optional[Mapping[str, Any]] = None,
        cookie: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        server: Optional[Mapping[str, Any]] = None,
    ) -> "Request":
        """Build a request from a router's three routed values."""
        return cls(
            router.module_name,
            router.action_name,
            router.parameters,
            post,
            cookie,
            files,
            server,
        )

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any], router: Router) -> "Request":
        """Build a request from a WSGI environ already routed by *router*.

        Form fields are read from ``application/x-www-form-urlencoded``
        bodies; cookies from ``HTTP_COOKIE``.
        """
        post: dict[str, Any] = {}
        content_type = environ.get("CONTENT_TYPE", "")
        if environ.get("REQUEST_METHOD", "GET").upper() == "POST" and content_type.startswith(
            "application/x-www-form-urlencoded"
        ):
            try:
                length = int(environ.get("CONTENT_LENGTH") or 0)
            except ValueError:
                length = 0
            stream = environ.get("wsgi.input")
            if stream is not None and length > 0:
                body = stream.read(length).decode("utf-8", errors="replace")
                post = _flatten(parse_qs(body, keep_blank_values=True))

        cookie: dict[str, str] = {}
        for chunk in environ.get("HTTP_COOKIE", "").split(";"):
            if "=" in chunk:
                key, _, value = chunk.strip().partition("=")
                cookie[key] = value

        return cls.from_router(router, post=post, cookie=cookie, server=environ)

    @property
    def module_name(self) -> str:
        return self._module_name

    @property
    def action_name(self) -> str:
        return self._action_name

    @property
    def params(self) -> Mapping[str, Any]:
        return self._params

    @property
    def protocol(self) -> str:
        """The server protocol, ``HTTP/1.1`` when unknown."""
        return str(self._server.get("SERVER_PROTOCOL") or DEFAULT_PROTOCOL)

    def get(self, key: str, type: str = "undefined", default: Any = None) -> Any:
        """Return the sanitized query parameter *key*, or *default*."""
        return self._read(self._params, key, type, default)

    def post(self, key: str, type: str = "undefined", default: Any = None) -> Any:
        """Return the sanitized form field *key*, or *default*."""
        return self._read(self._post, key, type, default)

    def cookie(self, key: str, type: str = "undefined", default: Any = None) -> Any:
        """Return the sanitized cookie *key*, or *default*."""
        return self._read(self._cookie, key, type, default)

    def server(self, key: str, type: str = "undefined", default: Any = None) -> Any:
        """Return the sanitized server variable *key*, or *default*."""
        return self._read(self._server, key, type, default)

    def files(self, key: str, ext: str = "", default: Any = None) -> Any:
        """Return the uploaded file record *key*, or *default* when absent.

        Raises:
            RequestError: If the upload failed, or the file name doesn't end
                with *ext* (compared with the final ``.suffix``).
        """
        if key not in self._files:
            return default
        upload = self._files[key]
        error = int(upload.get("error", 0) or 0)
        if error:
            raise RequestError(_UPLOAD_ERRORS.get(error, "Unknown upload error"))
        name = str(upload.get("name", ""))
        suffix = name[name.rfind(".") :] if "." in name else ""
        if suffix != ext:
            raise RequestError("The uploaded file hasn't the desired extension")
        return upload

    def get_request(self) -> str:
        """Return the request in router path form (``module/action/key/value/``)."""
        return Router.uri(self._module_name, self._action_name, self._params)

    def as_inputs(self) -> dict[str, dict[str, Any]]:
        """Return copies of the five parameter sets, keyed by set name."""
        return {
            "get": dict(self._params),
            "post": dict(self._post),
            "cookie": dict(self._cookie),
            "files": dict(self._files),
            "server": dict(self._server),
        }

    @staticmethod
    def _read(source: Mapping[str, Any], key: str, type: str, default: Any) -> Any:
        if key not in source:
            return default
        return sanitize(source[key], type, default)

    def __repr__(self) -> str:
        return f"Request(module={self._module_name!r}, action={self._action_name!r})"


class Response:
    """The response being composed for a request.

    Args:
        protocol: Server protocol used in status lines.
    """

    def __init__(self, protocol: str = DEFAULT_PROTOCOL) -> None:
        self.content: str = ""
        self.protocol = protocol
        self.status_code: int = 200
        self.reason: str = "OK"
        self.headers: dict[str, str] = {"Content-Type": "text/html; charset=utf-8"}

    @property
    def status(self) -> str:
        """The WSGI status string (``"404 Not found"``)."""
        return f"{self.status_code} {self.reason}".rstrip()

    @property
    def status_line(self) -> str:
        """The ``<protocol> <code> <reason>`` status line."""
        return f"{self.protocol} {self.status}"

    def set_status(self, code: int, reason: str = "") -> None:
        """Set the status without interrupting the request.

        An empty *reason* is replaced by the standard phrase for *code*.
        """
        if not reason:
            try:
                reason = HTTPStatus(code).phrase
            except ValueError:
                reason = ""
        self.status_code = code
        self.reason = reason

    def set_http_status_code(self, code: int, message: str = "") -> None:
        """Abort the request with an HTTP status.

        Raises:
            HttpStatusSignal: Always. The front controller applies it with
                :meth:`apply_status`, making *message* the whole body.
        """
        raise HttpStatusSignal(code, message, self.protocol)

    def apply_status(self, signal: HttpStatusSignal) -> None:
        """Answer with the status carried by *signal* and its message as body."""
        self.set_status(signal.code, signal.message)
        self.content = signal.message

    def send(self, stream: Optional[TextIO] = None) -> None:
        """Write the content to *stream* (standard output by default)."""
        (stream or sys.stdout).write(self.content)

    def __repr__(self) -> str:
        return f"Response(status={self.status!r}, length={len(self.content)})"


def _flatten(values: Mapping[str, list[str]]) -> dict[str, Any]:
    return {key: items[0] if len(items) == 1 else items for key, items in values.items()}
