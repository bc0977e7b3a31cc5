"""Project configuration: file selection, loading, and typed key access.

This module handles every configuration read made by the framework:

* **File selection** -- :func:`resolve_config_path` picks the settings file
  for a request: the ``KEELSON_CONFIG`` environment variable first, then a
  host-specific file ``<root>/config/<host>.<ext>``, then
  ``<root>/config/default.<ext>``.
* **Loading** -- :meth:`Configuration.from_file` parses JSON or YAML
  documents into a flat mapping.
* **Key access** -- :meth:`Configuration.get_value`,
  :meth:`Configuration.get_array` and :meth:`Configuration.get_array_value`
  raise :class:`~keelson.exceptions.ConfigurationKeyError` for missing keys
  and :class:`~keelson.exceptions.ConfigurationTypeError` when a scalar is
  read as an array (or the reverse). The ``*_or`` variants are the optional
  reads: a missing key yields the default instead of an error.
* **Typed settings** -- :attr:`Configuration.settings` validates the keys the
  framework knows about against :class:`~keelson.models.FrameworkSettings`.

The XDG data directory helpers are used by the command line for crash logs.
"""

from __future__ import annotations

import json
import os
import platform
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from keelson.exceptions import (
    ConfigurationError,
    ConfigurationKeyError,
    ConfigurationTypeError,
)
from keelson.models import FrameworkSettings

_APP_NAME = "keelson"
_CONFIG_DIRNAME = "config"
_DEFAULT_CONFIG_NAME = "default"
_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

CONFIG_ENV_VAR = "KEELSON_CONFIG"
"""Environment variable overriding the per-host configuration file lookup."""

_MISSING = object()


class Configuration:
    """Read-only access to a project's flat settings mapping.

    Args:
        data: The parsed settings mapping.
        root_path: The project directory. Templates, layouts and logs are
            located relative to it.
    """

    def __init__(
        self, data: Optional[Mapping[str, Any]] = None, root_path: Union[str, Path] = "."
    ) -> None:
        self._data: dict[str, Any] = dict(data or {})
        self.root_path = Path(root_path)
        self._settings: Optional[FrameworkSettings] = None

    @classmethod
    def from_file(
        cls, path: Union[str, Path], root_path: Union[str, Path, None] = None
    ) -> "Configuration":
        """Load a configuration from a JSON or YAML file.

        Args:
            path: The settings file. The format is chosen from its suffix;
                anything other than ``.yaml``/``.yml`` is parsed as JSON.
            root_path: The project directory. Defaults to the parent of the
                ``config/`` directory holding *path*.

        Returns:
            The loaded :class:`Configuration`.

        Raises:
            ConfigurationError: If the file cannot be read, cannot be parsed,
                or does not contain a mapping at the top level.
        """
        path = Path(path)
        if root_path is None:
            root_path = path.parent.parent if path.parent.name == _CONFIG_DIRNAME else path.parent
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(
                f"Configuration file '{path}' can't be opened or doesn't exist"
            ) from exc

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Invalid configuration at {path}: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration at {path}: top-level value must be a mapping"
            )
        return cls(data, root_path)

    # ------------------------------------------------------------------
    # Required reads
    # ------------------------------------------------------------------

    def has(self, name: str) -> bool:
        """Return True if *name* is present in the configuration."""
        return name in self._data

    def get_value(self, name: str) -> Any:
        """Return the scalar value stored under *name*.

        Raises:
            ConfigurationKeyError: If the key doesn't exist.
            ConfigurationTypeError: If the value is an array.
        """
        value = self._lookup(name)
        if isinstance(value, (list, dict)):
            raise ConfigurationTypeError(
                f"The value of '{name}' is an array: use get_array or get_array_value"
            )
        return value

    def get_array(self, name: str) -> Union[list[Any], dict[str, Any]]:
        """Return a copy of the array (list or mapping) stored under *name*.

        Raises:
            ConfigurationKeyError: If the key doesn't exist.
            ConfigurationTypeError: If the value isn't an array.
        """
        value = self._lookup(name)
        if not isinstance(value, (list, dict)):
            raise ConfigurationTypeError(
                f"The value of '{name}' isn't an array: use get_value"
            )
        return value.copy()

    def get_array_value(self, name: str, key: Union[str, int]) -> Any:
        """Return one entry of the array stored under *name*.

        Raises:
            ConfigurationKeyError: If the array or the entry doesn't exist.
            ConfigurationTypeError: If the value isn't an array.
        """
        array = self.get_array(name)
        try:
            return array[key]  # type: ignore[index]
        except (KeyError, IndexError, TypeError):
            raise ConfigurationKeyError(
                f"The key '{key}' doesn't exist in the '{name}' array"
            ) from None

    # ------------------------------------------------------------------
    # Optional reads
    # ------------------------------------------------------------------

    def get_value_or(self, name: str, default: Any = None) -> Any:
        """Return the scalar under *name*, or *default* when the key is absent."""
        if name not in self._data:
            return default
        return self.get_value(name)

    def get_array_or(self, name: str) -> Union[list[Any], dict[str, Any]]:
        """Return the array under *name*, or an empty list when the key is absent."""
        if name not in self._data:
            return []
        return self.get_array(name)

    # ------------------------------------------------------------------
    # Typed settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> FrameworkSettings:
        """The framework keys validated as :class:`FrameworkSettings`.

        Raises:
            ConfigurationTypeError: If a framework key has an invalid value.
        """
        if self._settings is None:
            try:
                self._settings = FrameworkSettings.model_validate(self._data)
            except ValidationError as exc:
                raise ConfigurationTypeError(f"Invalid configuration: {exc}") from exc
        return self._settings

    @property
    def project(self) -> str:
        """The import package holding the project's components."""
        return self.settings.project

    def as_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the raw settings mapping."""
        return dict(self._data)

    def _lookup(self, name: str) -> Any:
        value = self._data.get(name, _MISSING)
        if value is _MISSING:
            raise ConfigurationKeyError(
                f"The key '{name}' doesn't exist in the configuration"
            )
        return value


# --- Configuration file selection ---


def _find_config_file(config_dir: Path, stem: str) -> Optional[Path]:
    for suffix in _CONFIG_SUFFIXES:
        candidate = config_dir / f"{stem}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def resolve_config_path(root_path: Union[str, Path], host: Optional[str] = None) -> Path:
    """Select the configuration file for a request.

    Precedence (highest first):

    1. The ``KEELSON_CONFIG`` environment variable.
    2. ``<root>/config/<host>.json`` (or ``.yaml``/``.yml``) when *host* is given.
    3. ``<root>/config/default.json`` (or ``.yaml``/``.yml``).

    Args:
        root_path: The project directory.
        host: The request's host name, with or without a port.

    Returns:
        The path of the configuration file to load.

    Raises:
        ConfigurationError: If no candidate file exists.
    """
    override = os.environ.get(CONFIG_ENV_VAR, "")
    if override:
        return Path(override)

    config_dir = Path(root_path) / _CONFIG_DIRNAME
    if host:
        found = _find_config_file(config_dir, host)
        if found is None and ":" in host:
            found = _find_config_file(config_dir, host.split(":", 1)[0])
        if found is not None:
            return found

    found = _find_config_file(config_dir, _DEFAULT_CONFIG_NAME)
    if found is None:
        raise ConfigurationError(
            f"No configuration file found in {config_dir} "
            f"(expected {_DEFAULT_CONFIG_NAME}.json or {_DEFAULT_CONFIG_NAME}.yaml)"
        )
    return found


def load_configuration(root_path: Union[str, Path], host: Optional[str] = None) -> Configuration:
    """Select and load the configuration of the project at *root_path*."""
    path = resolve_config_path(root_path, host)
    return Configuration.from_file(path, root_path)


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Whether data files follow the XDG base directory layout here."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory, creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/keelson/`` (default ``~/.local/share/keelson/``).
    On macOS/Windows: ``~/.keelson/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path
