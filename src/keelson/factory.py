"""Name-based component resolution for modules, plugins, helpers and data sources.

Every pluggable component is located from a *root* (an import package such
as ``keelson.plugins`` or ``site.modules``) and a *name* taken from the
configuration or the request (``LayoutRenderer``, ``home``). The naming
convention is::

    <root>.<snake_case(name)>  exposes  <Capitalize(name)>

so the module named ``home`` is the class ``Home`` of ``site.modules.home``
and the plugin ``LayoutRenderer`` is the class ``LayoutRenderer`` of
``keelson.plugins.layout_renderer``.

:class:`ComponentFactory` resolves a name in three steps: explicit
registrations made with :meth:`ComponentFactory.register`, then the import
convention, then (when the factory declares one) an entry-point group, which
lets installed distributions publish components::

    [project.entry-points."keelson.plugins"]
    Analytics = "my_package.analytics:Analytics"

A resolved type must be a class, must extend the factory's base class and
must be concrete. Any other outcome raises the factory's error class, a
subclass of :class:`~keelson.exceptions.ResolutionError`.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import inspect
import logging
import re
from typing import Any, Generic, Optional, TypeVar

from keelson.exceptions import ResolutionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def capitalize(name: str) -> str:
    """Upper-case the first character only (``"listAll"`` -> ``"ListAll"``)."""
    return name[:1].upper() + name[1:]


def to_snake(name: str) -> str:
    """Convert a component name to its module name (``"LayoutRenderer"`` -> ``"layout_renderer"``)."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def component_path(root: str, name: str) -> str:
    """Return the dotted ``<module>:<Class>`` location of a component."""
    return f"{root}.{to_snake(name)}:{capitalize(name)}"


class ComponentFactory(Generic[T]):
    """Resolves and instantiates components of one kind by name.

    Args:
        base: The class every resolved component must extend.
        error: The :class:`~keelson.exceptions.ResolutionError` subclass
            raised on failure.
        kind: Human-readable component kind used in error messages.
        entry_point_group: Optional entry-point group consulted when the
            import convention finds nothing.
    """

    def __init__(
        self,
        base: type[T],
        error: type[ResolutionError],
        kind: str,
        entry_point_group: Optional[str] = None,
    ) -> None:
        self._base = base
        self._error = error
        self._kind = kind
        self._entry_point_group = entry_point_group
        self._registered: dict[tuple[str, str], type[T]] = {}
        self._resolved: dict[tuple[str, str], type[T]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, root: str, name: str, component: type[T]) -> None:
        """Register *component* under *root* and *name*, bypassing imports.

        The type is validated immediately.

        Raises:
            ResolutionError: If *component* is not a concrete subclass of the
                factory's base class.
        """
        key = (root, capitalize(name))
        self._registered[key] = self._validate(component, f"{root}.{capitalize(name)}")
        self._resolved.pop(key, None)

    def unregister(self, root: str, name: str) -> None:
        key = (root, capitalize(name))
        self._registered.pop(key, None)
        self._resolved.pop(key, None)

    def clear(self) -> None:
        """Forget every registration and every cached resolution."""
        self._registered.clear()
        self._resolved.clear()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, root: str, name: str) -> type[T]:
        """Return the component type for *name* under *root*.

        Raises:
            ResolutionError: (the factory's subclass) if the type doesn't
                exist, doesn't extend the base class, or isn't instantiable.
        """
        if not name:
            raise self._error(f"An empty {self._kind} name can't be resolved under {root}")

        key = (root, capitalize(name))
        if key in self._registered:
            return self._registered[key]
        if key in self._resolved:
            return self._resolved[key]

        location = component_path(root, name)
        candidate = self._import(root, name)
        if candidate is None:
            candidate = self._from_entry_point(name)
        if candidate is None:
            raise self._error(f"{self._kind.capitalize()} '{location}' doesn't exist")

        component = self._validate(candidate, location)
        self._resolved[key] = component
        logger.debug("Resolved %s '%s' to %s", self._kind, name, component)
        return component

    def get(self, root: str, name: str, *args: Any, **kwargs: Any) -> T:
        """Resolve *name* under *root* and instantiate it with the given arguments."""
        component = self.resolve(root, name)
        return component(*args, **kwargs)

    def _import(self, root: str, name: str) -> Optional[Any]:
        module_name = f"{root}.{to_snake(name)}"
        try:
            module = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            # Only a missing target (or missing parent package) means "not found";
            # a missing dependency inside the component module is a real error.
            if exc.name and (module_name == exc.name or module_name.startswith(exc.name + ".")):
                return None
            raise
        return getattr(module, capitalize(name), None)

    def _from_entry_point(self, name: str) -> Optional[Any]:
        if not self._entry_point_group:
            return None
        for ep in importlib.metadata.entry_points(group=self._entry_point_group):
            if ep.name in (name, capitalize(name)):
                return ep.load()
        return None

    def _validate(self, candidate: Any, location: str) -> type[T]:
        if not inspect.isclass(candidate):
            raise self._error(f"{self._kind.capitalize()} '{location}' isn't a class")
        if not issubclass(candidate, self._base):
            raise self._error(
                f"{self._kind.capitalize()} '{location}' doesn't extend "
                f"{self._base.__module__}.{self._base.__qualname__}"
            )
        if inspect.isabstract(candidate):
            raise self._error(f"{self._kind.capitalize()} '{location}' isn't instantiable")
        return candidate
