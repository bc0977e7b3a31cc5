"""View rendering with partial and nested action views.

A :class:`ViewRenderer` renders one :class:`~keelson.view.View` at a time:
the view name is a template path relative to the project root, without its
``.html`` suffix (``Modules/Home/Views/Default``). Templates are Jinja2
templates and receive:

* ``view`` -- the view being rendered; its data is also spread into the
  template context, so ``{{ message }}`` and ``{{ view.message }}`` are
  equivalent.
* ``partial(name, view_name, data)`` -- render another template in place
  with its own view.
* ``action(name, module, action, get=..., post=...)`` -- dispatch a nested
  request and splice its content in place.
* ``uri(module, action, get)`` and ``url(path)`` -- link builders.

A composed page is therefore a tree: the action view, the partial and action
views it includes (recursively) and, when
:class:`~keelson.plugins.layout_renderer.LayoutRenderer` is enabled, the
layout that wraps the result.

Modules customise the views they include through per-name override records:
``partial_data(name)`` for partials and ``action_data(name)`` for nested
actions. Override values win over the defaults given in the template.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup

from keelson.exceptions import ViewNotFoundError
from keelson.http import Request, Response
from keelson.routing import QUERY_KEY, Router, build_url
from keelson.view import View

if TYPE_CHECKING:
    from keelson.config import Configuration
    from keelson.datasources import DataSourceProxy
    from keelson.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"

PACKAGE_DIR = Path(__file__).parent
"""Fallback template root holding the framework's own views."""


@lru_cache(maxsize=None)
def get_environment(root_path: str) -> Environment:
    """Return the Jinja2 environment for templates under *root_path*.

    The framework package is searched after *root_path*, so the system
    plugins' views can be overridden by a project.
    """
    return Environment(
        loader=FileSystemLoader([root_path, str(PACKAGE_DIR)]),
        autoescape=select_autoescape(["html", "xml"]),
        keep_trailing_newline=True,
    )


@dataclass
class ActionData:
    """Overrides merged into the inputs of a nested action view."""

    get: dict[str, Any] = field(default_factory=dict)
    post: dict[str, Any] = field(default_factory=dict)
    cookie: dict[str, Any] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)
    server: dict[str, Any] = field(default_factory=dict)


class ViewRenderer:
    """Renders a view, and the partial and action views it includes.

    Args:
        view: The view to render.
        config: The project configuration (template root, nested dispatch).
        plugins: The request's plugin registry, shared by nested dispatches.
        data_sources: The request's data sources, shared by nested dispatches.
    """

    def __init__(
        self,
        view: View,
        config: "Configuration",
        plugins: "PluginRegistry",
        data_sources: Optional["DataSourceProxy"] = None,
    ) -> None:
        self.config = config
        self.plugins = plugins
        self.data_sources = data_sources
        self._view = view
        self._actions: dict[str, ActionData] = {}
        self._partials: dict[str, View] = {}

    @property
    def view(self) -> View:
        """The view rendered by :meth:`render`."""
        return self._view

    # ------------------------------------------------------------------
    # Override records
    # ------------------------------------------------------------------

    def get_action_data_instance(self, name: str) -> ActionData:
        """Return the override record of the action view *name*, creating it if needed."""
        if name not in self._actions:
            self._actions[name] = ActionData()
        return self._actions[name]

    def get_partial_data_instance(self, name: str) -> View:
        """Return the override data bag of the partial view *name*, creating it if needed."""
        if name not in self._partials:
            self._partials[name] = View()
        return self._partials[name]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> str:
        """Render the current view.

        Returns:
            The rendered text.

        Raises:
            ViewNotFoundError: If no template exists for the view name.
        """
        name = self._view.get_name()
        if not name:
            raise ViewNotFoundError("The view has no name and can't be rendered")

        environment = get_environment(str(self.config.root_path))
        try:
            template = environment.get_template(f"{name}{TEMPLATE_SUFFIX}")
        except TemplateNotFound:
            raise ViewNotFoundError(f"The view file called '{name}' doesn't exist") from None

        logger.debug("Rendering view '%s'", name)
        return template.render(self._context())

    def render_partial_view(
        self, name: str, view_name: str, data: Optional[dict[str, Any]] = None
    ) -> str:
        """Render *view_name* as the partial view *name*.

        The partial gets its own view, seeded with *data* and then with the
        overrides recorded under *name*. The current view is restored once
        the partial is rendered, including when rendering fails.
        """
        partial = View(view_name, data)
        if name in self._partials:
            partial.merge_data(self._partials[name].get_data())

        current = self._view
        self._view = partial
        try:
            return self.render()
        finally:
            self._view = current

    def render_action_view(
        self,
        name: str,
        module_name: str,
        action_name: str = "",
        get: Optional[dict[str, Any]] = None,
        post: Optional[dict[str, Any]] = None,
        cookie: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        server: Optional[dict[str, Any]] = None,
    ) -> str:
        """Dispatch *module_name*/*action_name* as the action view *name*.

        The nested request shares the configuration, the plugin registry and
        the data sources of the current one. Plugins are not notified of
        ``preDispatch`` or ``postDispatch`` for it.

        Returns:
            The content produced by the nested dispatch.
        """
        from keelson.dispatcher import Dispatcher

        get = dict(get or {})
        post = dict(post or {})
        cookie = dict(cookie or {})
        files = dict(files or {})
        server = dict(server or {})

        overrides = self._actions.get(name)
        if overrides is not None:
            get.update(overrides.get)
            post.update(overrides.post)
            cookie.update(overrides.cookie)
            files.update(overrides.files)
            server.update(overrides.server)

        router = Router({QUERY_KEY: Router.uri(module_name, action_name, get)}, self.config)
        request = Request.from_router(router, post, cookie, files, server)
        response = Response(request.protocol)

        logger.debug("Dispatching action view '%s' (%s)", name, request.get_request())
        Dispatcher(request, response, self.config, self.plugins, self.data_sources).dispatch()
        return response.content

    # ------------------------------------------------------------------
    # Template context
    # ------------------------------------------------------------------

    def _context(self) -> dict[str, Any]:
        context: dict[str, Any] = dict(self._view.get_data())
        context.update(
            view=self._view,
            partial=self._partial,
            action=self._action,
            uri=Router.uri,
            url=self._url,
        )
        return context

    def _partial(self, name: str, view_name: str, data: Optional[dict[str, Any]] = None) -> Markup:
        return Markup(self.render_partial_view(name, view_name, data))

    def _action(self, name: str, module_name: str, action_name: str = "", **inputs: Any) -> Markup:
        return Markup(self.render_action_view(name, module_name, action_name, **inputs))

    def _url(self, path: str = "") -> str:
        return build_url(str(self.config.get_value_or("baseUrl", "") or ""), path)
