"""Dispatcher -- resolves the request's module and drives its lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from keelson.exceptions import ModuleResolutionError
from keelson.factory import ComponentFactory
from keelson.module import DEFAULT_ACTION_NAME, Module

if TYPE_CHECKING:
    from keelson.config import Configuration
    from keelson.datasources import DataSourceProxy
    from keelson.http import Request, Response
    from keelson.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

module_factory: ComponentFactory[Module] = ComponentFactory(
    Module, ModuleResolutionError, "module"
)
"""Resolves module names to :class:`~keelson.module.Module` subclasses."""


class Dispatcher:
    """Runs one request (top-level or nested) through its module.

    Args:
        request: The request to dispatch.
        response: The response the module writes to.
        config: The project configuration.
        plugins: The request's plugin registry.
        data_sources: The request's data sources.
    """

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

    def dispatch(self) -> None:
        """Resolve the module and run ``pre_execute``, ``execute``, ``post_execute``, ``finalize``.

        An action the module doesn't declare is replaced by the ``default``
        action.

        Raises:
            HttpStatusSignal: 404 when the module can't be resolved, or any
                status raised by the module itself.
        """
        root = f"{self.config.project}.modules"
        try:
            module_type = module_factory.resolve(root, self.request.module_name)
        except ModuleResolutionError as exc:
            logger.debug("Module resolution failed: %s", exc)
            self.response.set_http_status_code(404, "Not found")
            return

        action_name = self.request.action_name
        if not module_type.has_action(action_name):
            action_name = DEFAULT_ACTION_NAME

        module = module_type(
            self.request, self.response, self.config, self.plugins, self.data_sources
        )
        module.pre_execute()
        module.execute(action_name)
        module.post_execute()
        module.finalize()
