"""Pydantic models for the settings keelson reads from a project configuration.

A project configuration is a flat JSON or YAML document. The framework only
interprets the keys declared on :class:`FrameworkSettings`; every other key
is kept as-is in ``model_extra`` and remains readable through
:class:`~keelson.config.Configuration` so that application code can store its
own settings next to the framework's.

The camel-cased names used in configuration files (``systemPlugins``,
``logHttpStatusCode``) are declared as aliases, so both spellings are
accepted.

Example::

    {
        "module": "Home",
        "project": "site",
        "systemPlugins": ["ExceptionsHandler", "LayoutRenderer"],
        "plugins": ["Analytics"],
        "layout": "Index",
        "debug": true
    }
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


SourceMap = Union[dict[str, str], list[str]]
"""Data-source declarations: an alias mapping, or a list indexed by position."""


class FrameworkSettings(BaseModel):
    """Typed view of the configuration keys consumed by the framework.

    Built by :attr:`keelson.config.Configuration.settings`. Validation
    failures are reported as
    :class:`~keelson.exceptions.ConfigurationTypeError`.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    module: str = Field(
        default="", description="Module used when the request path names none"
    )
    project: str = Field(
        default="project",
        description="Import package holding the project's modules, plugins and data sources",
    )
    system_plugins: list[str] = Field(
        default_factory=list,
        alias="systemPlugins",
        description="Framework plugins, loaded after the project plugins",
    )
    plugins: list[str] = Field(
        default_factory=list, description="Project plugins, notified first"
    )
    sources: SourceMap = Field(
        default_factory=dict, description="Data-source alias to data-source type name"
    )
    dsns: SourceMap = Field(
        default_factory=dict, description="Data-source alias to connection string"
    )
    layout: Optional[str] = Field(
        default=None, description="Layout template under Views/Layouts/"
    )
    debug: bool = Field(
        default=False, description="Render the debug view for unhandled errors"
    )
    log: bool = Field(default=True, description="Log unhandled errors")
    log_http_status_code: bool = Field(
        default=False,
        alias="logHttpStatusCode",
        description="Also log HTTP status signals",
    )
    base_url: str = Field(
        default="",
        alias="baseUrl",
        description="Prefix of the links built by the url() template helper",
    )
