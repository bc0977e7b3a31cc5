"""Abstract base class for keelson plugins.

Plugins are observers of the request lifecycle. Each configured plugin is
instantiated once per request by
:class:`~keelson.plugins.registry.PluginRegistry` with handles to the shared
request, response, configuration and registry, and is then notified of named
*steps* (see :mod:`keelson.plugins.hooks`).

The plugin lifecycle is:

1. Instantiation -- the registry resolves the plugin type by name and calls
   the constructor.
2. :meth:`Plugin.init` -- called at the end of the constructor; the place to
   read configuration defaults.
3. Steps -- :meth:`Plugin.update` runs the method declared for a step,
   zero or more times during the request, including during nested
   dispatches spawned by action views.

A plugin lives for the whole top-level request and is shared by every
nested dispatch, so state it keeps in instance attributes (the layout
flag of :class:`~keelson.plugins.layout_renderer.LayoutRenderer`, the
captured failure of
:class:`~keelson.plugins.exceptions_handler.ExceptionsHandler`) is visible to
the outer and the nested cycles alike.

Example:
    Minimal plugin implementation::

        class Timing(Plugin):
            @step(POST_DISPATCH)
            def add_header(self) -> None:
                self.response.headers["X-Rendered-By"] = "keelson"
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from keelson.plugins.hooks import collect_steps

if TYPE_CHECKING:
    from keelson.config import Configuration
    from keelson.http import Request, Response
    from keelson.plugins.registry import PluginRegistry


class Plugin(ABC):
    """Base class for all keelson plugins.

    Subclasses declare the steps they handle with
    :func:`~keelson.plugins.hooks.step`; the declarations of a class are
    available as :attr:`steps`.

    Args:
        request: The top-level request.
        response: The top-level response.
        config: The project configuration.
        plugins: The registry that owns this plugin.
    """

    steps: ClassVar[Mapping[str, str]] = MappingProxyType({})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.steps = MappingProxyType(collect_steps(cls))

    def __init__(
        self,
        request: "Request",
        response: "Response",
        config: "Configuration",
        plugins: "PluginRegistry",
    ) -> None:
        self.request = request
        self.response = response
        self.config = config
        self.plugins = plugins
        self.init()

    @property
    def name(self) -> str:
        """The plugin's type name."""
        return type(self).__name__

    def init(self) -> None:  # noqa: B027
        """Initialize the plugin. Called at the end of the constructor."""

    def implements(self, step: str) -> bool:
        """Whether this plugin declares a handler for *step*."""
        return step in self.steps

    def update(self, step: str) -> bool:
        """Run the handler declared for *step*, if any.

        Returns:
            ``True`` if a handler ran, ``False`` if the plugin ignores *step*.
        """
        method = self.steps.get(step)
        if method is None:
            return False
        getattr(self, method)()
        return True

    def notify(self, step: str, names: Iterable[str] = ()) -> None:
        """Broadcast *step* through the owning registry."""
        self.plugins.notify(step, names)
