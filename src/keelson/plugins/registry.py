"""Plugin registry -- loading, ordering and step notification.

The :class:`PluginRegistry` is built once per top-level request by the
:class:`~keelson.front_controller.FrontController`. It reads two
configuration keys:

* ``plugins`` -- project plugins, resolved under ``<project>.plugins``.
* ``systemPlugins`` -- framework plugins, resolved under
  :data:`SYSTEM_ROOT` (``keelson.plugins``).

Both keys are optional and may hold a list or a mapping (whose values are
used). Plugins are notified in a fixed order: project plugins in declared
order, then system plugins in declared order, except that
``ExceptionsHandler`` is always the last system plugin. It is also the
first one constructed, so that it is available to the recovery path even
when a later plugin fails to load.

Example::

    registry = PluginRegistry(request, response, config)
    registry.load_plugins()
    registry.pre_dispatch()
    ...
    registry.post_dispatch()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any, Optional

from keelson.exceptions import ConfigurationKeyError, PluginResolutionError
from keelson.factory import ComponentFactory
from keelson.plugins.base import Plugin
from keelson.plugins.hooks import POST_DISPATCH, PRE_DISPATCH

if TYPE_CHECKING:
    from keelson.config import Configuration
    from keelson.datasources import DataSourceProxy
    from keelson.http import Request, Response

logger = logging.getLogger(__name__)

SYSTEM_ROOT = "keelson.plugins"
"""Import package holding the framework's own plugins."""

EXCEPTIONS_HANDLER = "ExceptionsHandler"
LAYOUT_RENDERER = "LayoutRenderer"

ENTRY_POINT_GROUP = "keelson.plugins"

plugin_factory: ComponentFactory[Plugin] = ComponentFactory(
    Plugin, PluginResolutionError, "plugin", entry_point_group=ENTRY_POINT_GROUP
)
"""Resolves plugin names to :class:`~keelson.plugins.base.Plugin` subclasses."""


def _names(value: Any) -> list[str]:
    """Plugin names of one configuration list, repeats collapsed onto the first."""
    if isinstance(value, dict):
        value = value.values()
    return list(dict.fromkeys(str(name) for name in value))


class PluginRegistry:
    """Ordered collection of the plugins active for one request.

    Args:
        request: The top-level request, handed to every plugin.
        response: The top-level response, handed to every plugin.
        config: The project configuration.
    """

    def __init__(
        self,
        request: "Request",
        response: "Response",
        config: "Configuration",
    ) -> None:
        self.request = request
        self.response = response
        self.config = config
        self.data_sources: Optional["DataSourceProxy"] = None
        self._plugins: dict[str, Plugin] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plugins(self) -> None:
        """Instantiate the configured project and system plugins.

        Name collisions are detected before anything is constructed, so a
        colliding configuration leaves the registry empty.

        Raises:
            ConfigurationKeyError: If a plugin name appears in both lists.
            ConfigurationTypeError: If either key holds a scalar.
            PluginResolutionError: If a plugin type can't be resolved.
        """
        project_names = _names(self.config.get_array_or("plugins"))
        system_names = _names(self.config.get_array_or("systemPlugins"))

        for name in project_names:
            if name in system_names:
                raise ConfigurationKeyError(
                    f"The plugin '{name}' is declared both as a project and a system plugin"
                )

        project_root = f"{self.config.project}.plugins"
        system: dict[str, Plugin] = {}
        project: dict[str, Plugin] = {}

        # The exceptions handler is built first and notified last.
        handler: Optional[Plugin] = None
        if EXCEPTIONS_HANDLER in system_names:
            handler = self._build(SYSTEM_ROOT, EXCEPTIONS_HANDLER)
            self._plugins = {EXCEPTIONS_HANDLER: handler}

        try:
            for name in system_names:
                if name != EXCEPTIONS_HANDLER:
                    system[name] = self._build(SYSTEM_ROOT, name)
            for name in project_names:
                project[name] = self._build(project_root, name)
        finally:
            ordered = {**project, **system}
            if handler is not None:
                ordered[EXCEPTIONS_HANDLER] = handler
            self._plugins = ordered

    def _build(self, root: str, name: str) -> Plugin:
        plugin = plugin_factory.get(root, name, self.request, self.response, self.config, self)
        logger.debug("Loaded plugin '%s' from %s", name, root)
        return plugin

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def has(self, name: str) -> bool:
        """Return True if a plugin named *name* is registered."""
        return name in self._plugins

    def get(self, name: str) -> Plugin:
        """Return the plugin registered as *name*.

        Raises:
            PluginResolutionError: If no such plugin is registered.
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginResolutionError(f"The plugin '{name}' isn't registered") from None

    @property
    def names(self) -> list[str]:
        """Registered plugin names in notification order."""
        return list(self._plugins)

    def __iter__(self) -> Iterator[Plugin]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def notify(self, step: str, names: Iterable[str] = ()) -> None:
        """Notify plugins of *step* in registry order.

        Args:
            step: The step name.
            names: When non-empty, only plugins whose name is listed are
                notified; unknown names are ignored. Order still follows the
                registry, not *names*.

        Plugins that don't declare *step* are skipped. Exceptions raised by
        a plugin propagate unchanged.
        """
        wanted = set(names)
        for name, plugin in list(self._plugins.items()):
            if wanted and name not in wanted:
                continue
            if plugin.update(step):
                logger.debug("Plugin '%s' handled step '%s'", name, step)

    def pre_dispatch(self) -> None:
        """Notify every plugin of the ``preDispatch`` step."""
        self.notify(PRE_DISPATCH)

    def post_dispatch(self) -> None:
        """Notify every plugin of the ``postDispatch`` step."""
        self.notify(POST_DISPATCH)

    def __repr__(self) -> str:
        return f"PluginRegistry({self.names!r})"
