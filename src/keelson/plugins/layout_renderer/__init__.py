"""Layout renderer system plugin.

Enable it by listing ``LayoutRenderer`` in ``systemPlugins`` and naming a
layout with the ``layout`` key.
"""

from keelson.plugins.layout_renderer.plugin import LAYOUTS_PATH, LayoutRenderer

__all__ = ["LayoutRenderer", "LAYOUTS_PATH"]
