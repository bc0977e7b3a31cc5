"""LayoutRenderer -- wrap the rendered action in a layout template.

Reads the ``layout`` configuration key (a name under ``Views/Layouts/``) and,
on ``postDispatch``, renders that layout with the response content available
as ``content``. Modules fill the layout's data through ``self.layout`` and
can switch layouts with ``set_layout_name`` or turn the layout off with
``disable_layout_rendering``.
"""

from __future__ import annotations

from markupsafe import Markup

from keelson.plugins.base import Plugin
from keelson.plugins.hooks import DISABLE, ENABLE, POST_DISPATCH, step
from keelson.renderer import ViewRenderer
from keelson.view import View

LAYOUTS_PATH = "Views/Layouts/"


class LayoutRenderer(Plugin):
    """Renders ``Views/Layouts/<layout>`` around the response content.

    Attributes:
        data: The layout's data bag, shared with every module of the request.
        layout_name: The layout to render.
        enabled: Whether the layout is rendered on ``postDispatch``.
    """

    def init(self) -> None:
        self.data = View()
        self.layout_name = str(self.config.get_value("layout"))
        self.enabled = True

    @step(ENABLE)
    def enable(self) -> None:
        self.enabled = True

    @step(DISABLE)
    def disable(self) -> None:
        self.enabled = False

    @step(POST_DISPATCH)
    def render_layout(self) -> None:
        """Replace the response content with the rendered layout."""
        if not self.enabled:
            return
        layout = View(LAYOUTS_PATH + self.layout_name, self.data.get_data())
        layout.content = Markup(self.response.content)
        renderer = ViewRenderer(layout, self.config, self.plugins, self.plugins.data_sources)
        self.response.content = renderer.render()
