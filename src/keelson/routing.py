"""Path routing: module name, action name and parameters from a request path.

Paths have the form ``module/action/key1/value1/key2/value2/``. The path is
read from the ``q`` query parameter when present (``index.py?q=blog/list``),
otherwise from the WSGI ``PATH_INFO``. Remaining query parameters are merged
into the routed parameters, path pairs taking precedence.

When the path names no module, the ``module`` configuration key supplies
the default one; when that key is absent as well the module name is empty
and the front controller rejects the request with a
:class:`~keelson.exceptions.RoutingError`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import parse_qs, unquote

if TYPE_CHECKING:
    from keelson.config import Configuration

QUERY_KEY = "q"


class Router:
    """Splits a request path into module name, action name and parameters.

    Args:
        query: Query parameters; the ``q`` entry, when present, is the path.
        config: Configuration supplying the default ``module``.
        path: Path used when *query* has no ``q`` entry.
    """

    def __init__(
        self,
        query: Optional[Mapping[str, Any]] = None,
        config: Optional["Configuration"] = None,
        path: str = "",
    ) -> None:
        query = dict(query or {})
        raw_path = str(query.pop(QUERY_KEY, "") or path)
        segments = [unquote(part) for part in raw_path.split("/") if part]

        default_module = ""
        if config is not None:
            default_module = str(config.get_value_or("module", "") or "")

        self.module_name: str = segments[0] if segments else default_module
        self.action_name: str = segments[1] if len(segments) > 1 else ""

        parameters: dict[str, Any] = dict(query)
        pairs = segments[2:]
        for index in range(0, len(pairs), 2):
            key = pairs[index]
            parameters[key] = pairs[index + 1] if index + 1 < len(pairs) else ""
        self.parameters: dict[str, Any] = parameters

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, Any], config: Optional["Configuration"] = None
    ) -> "Router":
        """Route a WSGI environ (``QUERY_STRING`` and ``PATH_INFO``)."""
        parsed = parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True)
        query = {key: values[-1] for key, values in parsed.items()}
        return cls(query, config, path=environ.get("PATH_INFO", ""))

    @staticmethod
    def uri(
        module_name: str = "", action_name: str = "", get: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Build the path form of a request.

        Parameters are only emitted after an action name, and the action
        only after a module name.

        Example::

            >>> Router.uri("Blog", "show", {"id": 3})
            'Blog/show/id/3/'

        Raises:
            TypeError: If *get* is not a mapping.
        """
        uri = ""
        if module_name:
            uri += f"{module_name}/"
            if action_name:
                uri += f"{action_name}/"
                if get is not None and not isinstance(get, Mapping):
                    raise TypeError("'get' parameters must be given as a mapping")
                for key, value in (get or {}).items():
                    uri += f"{key}/{value}/"
        return uri

    def __repr__(self) -> str:
        return (
            f"Router(module={self.module_name!r}, action={self.action_name!r}, "
            f"parameters={self.parameters!r})"
        )


def build_url(base_url: str, path: str = "") -> str:
    """Join *path* to the site's *base_url* (``baseUrl`` in the configuration).

    Example::

        >>> build_url("https://example.org/site/", "assets/app.css")
        'https://example.org/site/assets/app.css'
        >>> build_url("", "assets/app.css")
        '/assets/app.css'
    """
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
