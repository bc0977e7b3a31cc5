"""Data sources and the per-request data-source proxy.

A project declares its data sources with two parallel configuration keys::

    sources:
      Default: Sqlite          # alias -> data-source type name
    dsns:
      Default: "dbms:sqlite+host:localhost+dbname:app.db+username:app+password:secret"

Each type name is resolved under ``<project>.data_sources`` (``Sqlite`` is
the class ``Sqlite`` of ``<project>.data_sources.sqlite``), must extend
:class:`DataSource`, and is constructed with the DSN of the same alias.

The :class:`DataSourceProxy` is built once per top-level request by the
front controller and handed down to the dispatcher, the modules and their
view renderers, so nested action views see the same sources.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from keelson.exceptions import DataSourceError, DataSourceResolutionError
from keelson.factory import ComponentFactory

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = "Default"
DSN_REQUIRED_KEYS = ("dbms", "host", "dbname", "username", "password")


def parse_dsn(dsn: str) -> dict[str, str]:
    """Split a ``key:value+key:value`` connection string into a mapping.

    Example::

        >>> parse_dsn("dbms:mysql+host:db+dbname:app+username:u+password:p")["host"]
        'db'

    Raises:
        DataSourceError: If a part has no ``:`` separator or one of
            ``dbms``, ``host``, ``dbname``, ``username``, ``password`` is missing.
    """
    parsed: dict[str, str] = {}
    for part in dsn.split("+"):
        key, separator, value = part.partition(":")
        if not separator:
            raise DataSourceError("The DSN isn't correctly defined")
        parsed[key] = value

    missing = [key for key in DSN_REQUIRED_KEYS if key not in parsed]
    if missing:
        raise DataSourceError(f"The DSN isn't correctly defined: missing {', '.join(missing)}")
    return parsed


class DataSource(ABC):
    """A storage backend that persists one model at a time.

    Args:
        dsn: The connection string declared for the source's alias.
    """

    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    @abstractmethod
    def insert_one(self, model: Any) -> Any:
        """Store a new *model*."""

    @abstractmethod
    def select_one(self, model: Any) -> Any:
        """Load *model* from its identifying fields."""

    @abstractmethod
    def update_one(self, model: Any) -> Any:
        """Save the changes made to *model*."""

    @abstractmethod
    def delete_one(self, model: Any) -> Any:
        """Remove *model*."""


data_source_factory: ComponentFactory[DataSource] = ComponentFactory(
    DataSource, DataSourceResolutionError, "data source"
)


def _aliased(value: Union[dict[str, Any], list[Any]]) -> dict[str, Any]:
    if isinstance(value, dict):
        return dict(value)
    return {str(index): item for index, item in enumerate(value)}


class DataSourceProxy:
    """Data sources of one request, looked up by alias.

    Args:
        project: Import package whose ``data_sources`` subpackage holds the
            data-source types.
    """

    def __init__(self, project: str = "project") -> None:
        self.project = project
        self._sources: dict[str, DataSource] = {}

    def init(
        self,
        sources: Union[dict[str, Any], list[Any]],
        dsns: Union[dict[str, Any], list[Any]],
    ) -> None:
        """Build and register the declared data sources.

        Raises:
            DataSourceError: If the two declarations don't have the same
                number of entries, or an alias has no DSN.
            DataSourceResolutionError: If a data-source type can't be resolved.
        """
        if len(sources) != len(dsns):
            raise DataSourceError(
                f"The number of sources '{len(sources)}' and the number of DSNs "
                f"'{len(dsns)}' don't match"
            )

        root = f"{self.project}.data_sources"
        connections = _aliased(dsns)
        for alias, type_name in _aliased(sources).items():
            if alias not in connections:
                raise DataSourceError(f"The data source '{alias}' has no DSN")
            source = data_source_factory.get(root, str(type_name), connections[alias])
            self.add(alias, source)

    def add(self, name: str, source: DataSource) -> None:
        """Register *source* under the alias *name*, replacing any previous one."""
        self._sources[name] = source
        logger.debug("Registered data source '%s' (%s)", name, type(source).__name__)

    def get(self, name: str = "") -> DataSource:
        """Return the source registered as *name* (``Default`` when empty).

        Raises:
            DataSourceError: If no source is registered under that alias.
        """
        name = name or DEFAULT_SOURCE_NAME
        try:
            return self._sources[name]
        except KeyError:
            raise DataSourceError(f"No data source is registered as '{name}'") from None

    def has(self, name: str = "") -> bool:
        return (name or DEFAULT_SOURCE_NAME) in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:
        return f"DataSourceProxy({list(self._sources)!r})"


def build_data_sources(
    project: str,
    sources: Optional[Union[dict[str, Any], list[Any]]] = None,
    dsns: Optional[Union[dict[str, Any], list[Any]]] = None,
) -> DataSourceProxy:
    """Return a :class:`DataSourceProxy` initialized from the two declarations."""
    proxy = DataSourceProxy(project)
    proxy.init(sources or {}, dsns or {})
    return proxy
