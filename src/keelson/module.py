"""Modules -- request handlers with a four-phase lifecycle.

A module groups related *actions*. The dispatcher resolves the module named
by the request, picks one of its actions and drives it through four phases::

    pre_execute()  ->  execute(action)  ->  post_execute()  ->  finalize()

Actions are methods declared with the :func:`action` decorator. The action
name used in URLs is mapped to a declared action by
:func:`format_action_name`, so the URL action ``list`` runs the method
declared as ``@action("list")`` (registered as ``ListAction``). Requests
naming an undeclared action fall back to the ``default`` action, which
answers 404 unless a module overrides it.

Each action renders the view ``Modules/<ModuleClass>/Views/<Action>`` into
the response unless it disables rendering or names another view.

Example::

    class Blog(Module):
        @action
        def default(self) -> None:
            self.view.posts = self.helper("posts").latest()

        @action("show")
        def show_post(self) -> None:
            post_id = self.request.get("id", "uint")
            if post_id is None:
                self.response.set_http_status_code(404, "Not found")
            self.view.post_id = post_id
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional, TypeVar, Union

from keelson.exceptions import HelperResolutionError, ModuleResolutionError
from keelson.factory import ComponentFactory, capitalize
from keelson.plugins.hooks import DISABLE
from keelson.plugins.registry import LAYOUT_RENDERER
from keelson.renderer import ActionData, ViewRenderer
from keelson.view import View

if TYPE_CHECKING:
    from keelson.config import Configuration
    from keelson.datasources import DataSourceProxy
    from keelson.http import Request, Response
    from keelson.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

DEFAULT_ACTION_NAME = "default"
ACTION_SUFFIX = "Action"
ACTION_ATTRIBUTE = "__keelson_action__"
VIEWS_PATH = "Modules/{module}/Views/{view}"

F = TypeVar("F", bound=Callable[..., Any])


def format_action_name(name: str) -> str:
    """Return the registered name of the action *name* (``"list"`` -> ``"ListAction"``)."""
    return capitalize(name) + ACTION_SUFFIX


def action(name: Union[str, Callable[..., Any], None] = None) -> Any:
    """Declare the decorated method as a module action.

    Used bare, the action is named after the method with any ``_action``
    suffix removed (``list_action`` declares ``list``); otherwise *name* is
    the action name used in URLs.
    """

    def decorate(func: F, action_name: Optional[str] = None) -> F:
        if action_name is None:
            action_name = func.__name__.removesuffix("_action")
        setattr(func, ACTION_ATTRIBUTE, action_name)
        return func

    if callable(name):
        return decorate(name)
    return lambda func: decorate(func, name)


def collect_actions(cls: type) -> dict[str, str]:
    """Return the ``{registered action name: method name}`` declarations of *cls*."""
    actions: dict[str, str] = {}
    for klass in reversed(cls.__mro__):
        for attr, value in vars(klass).items():
            action_name = getattr(value, ACTION_ATTRIBUTE, None)
            if isinstance(action_name, str):
                actions[format_action_name(action_name)] = attr
    return actions


class Helper:
    """Base class for module helpers.

    Helpers are plain objects shared by the actions of one module instance,
    resolved by :meth:`Module.helper` from the ``helpers`` package next to
    the module.
    """


helper_factory: ComponentFactory[Helper] = ComponentFactory(
    Helper, HelperResolutionError, "helper"
)


class Module:
    """Base class for request handlers.

    Args:
        request: The request being handled.
        response: The response being composed.
        config: The project configuration.
        plugins: The request's plugin registry.
        data_sources: The request's data sources.
    """

    actions: ClassVar[Mapping[str, str]] = MappingProxyType({})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.actions = MappingProxyType(collect_actions(cls))

    def __init__(
        self,
        request: "Request",
        response: "Response",
        config: "Configuration",
        plugins: "PluginRegistry",
        data_sources: Optional["DataSourceProxy"] = None,
    ) -> None:
        self.request = request
        self.response = response
        self.config = config
        self.plugins = plugins
        self.data_sources = data_sources
        self.view = View()
        self.layout: Optional[View] = None
        if plugins.has(LAYOUT_RENDERER):
            self.layout = plugins.get(LAYOUT_RENDERER).data  # type: ignore[attr-defined]
        self._helpers: dict[str, Helper] = {}
        self._must_render = True
        self._renderer = ViewRenderer(self.view, config, plugins, data_sources)
        self.init()

    @classmethod
    def has_action(cls, action_name: str) -> bool:
        """Whether the URL action *action_name* is declared by this module."""
        return format_action_name(action_name) in cls.actions

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> None:
        """Initialize the module. Called at the end of the constructor."""

    def pre_execute(self) -> None:
        """Run before the action."""

    def post_execute(self) -> None:
        """Run after the action."""

    def execute(self, action_name: str) -> None:
        """Run the action declared as *action_name*.

        The current view is named after the action unless a name was set
        already.

        Raises:
            ModuleResolutionError: If the module doesn't declare the action.
        """
        method = self.actions.get(format_action_name(action_name))
        if method is None:
            raise ModuleResolutionError(
                f"The action '{action_name}' isn't declared by {type(self).__name__}"
            )
        if not self.view.has_name():
            self.set_view_name(action_name)
        logger.debug("Executing %s.%s", type(self).__name__, method)
        getattr(self, method)()

    def finalize(self) -> None:
        """Render the current view into the response content, unless disabled."""
        if self._must_render:
            self.response.content = self._renderer.render()

    @action(DEFAULT_ACTION_NAME)
    def default_action(self) -> None:
        """Answer 404 -- the fallback for requests naming an undeclared action."""
        self.response.set_http_status_code(404, "Not found")

    # ------------------------------------------------------------------
    # Rendering controls
    # ------------------------------------------------------------------

    def disable_action_rendering(self) -> None:
        self._must_render = False

    def disable_layout_rendering(self) -> None:
        self.notify(DISABLE, [LAYOUT_RENDERER])

    def set_layout_name(self, name: str) -> None:
        """Use the layout *name* (under ``Views/Layouts/``) for this request."""
        if self.plugins.has(LAYOUT_RENDERER):
            self.plugins.get(LAYOUT_RENDERER).layout_name = name  # type: ignore[attr-defined]

    def set_view_name(self, name: str) -> None:
        """Render the view of the action *name* of this module instead."""
        self.view.set_name(VIEWS_PATH.format(module=type(self).__name__, view=capitalize(name)))

    def action_data(self, name: str) -> ActionData:
        """Override record for the action view *name* included by the current view."""
        return self._renderer.get_action_data_instance(name)

    def partial_data(self, name: str) -> View:
        """Override data bag for the partial view *name* included by the current view."""
        return self._renderer.get_partial_data_instance(name)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def helper(self, name: str) -> Helper:
        """Return the helper *name* of this module, created on first use.

        Raises:
            HelperResolutionError: If the helper can't be resolved.
        """
        key = capitalize(name)
        if key not in self._helpers:
            self._helpers[key] = helper_factory.get(self._helpers_root(), name)
        return self._helpers[key]

    def notify(self, step: str, names: Iterable[str] = ()) -> None:
        """Broadcast *step* to the request's plugins."""
        self.plugins.notify(step, names)

    @classmethod
    def _helpers_root(cls) -> str:
        module = sys.modules.get(cls.__module__)
        package = getattr(module, "__package__", None) or cls.__module__.rpartition(".")[0]
        return f"{package}.helpers" if package else "helpers"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(request={self.request!r})"
