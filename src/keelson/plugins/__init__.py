"""Plugin system for keelson -- loading, ordering and lifecycle steps.

Plugins observe the request lifecycle. The framework ships two system
plugins, resolved from this package by name:

* :class:`~keelson.plugins.exceptions_handler.ExceptionsHandler` -- turns
  failures into HTTP responses (and a debug page when ``debug`` is on).
* :class:`~keelson.plugins.layout_renderer.LayoutRenderer` -- wraps the
  rendered action content in a layout template.

Project plugins live in ``<project>.plugins`` or are published by installed
distributions through the ``keelson.plugins`` entry-point group.

Key names:

* :class:`Plugin` -- Base class that all plugins extend.
* :func:`step` -- Declares the lifecycle steps a plugin method handles.
* :class:`PluginRegistry` -- Loads the configured plugins and notifies them.
"""

from keelson.plugins.base import Plugin
from keelson.plugins.hooks import DISABLE, ENABLE, EXECUTE, POST_DISPATCH, PRE_DISPATCH, step
from keelson.plugins.registry import PluginRegistry, plugin_factory

__all__ = [
    "Plugin",
    "PluginRegistry",
    "plugin_factory",
    "step",
    "PRE_DISPATCH",
    "POST_DISPATCH",
    "EXECUTE",
    "ENABLE",
    "DISABLE",
]
