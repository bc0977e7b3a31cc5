"""Exception hierarchy for keelson.

All framework errors inherit from :class:`KeelsonError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`keelson.exit_codes`.
Errors raised anywhere in the dispatch pipeline propagate unchanged to the
recovery boundary in :class:`~keelson.front_controller.FrontController`;
the command line entry point maps them to process exit codes.

:class:`HttpStatusSignal` is deliberately *not* a ``KeelsonError``: it is a
control-flow signal raised by
:meth:`~keelson.http.Response.set_http_status_code` to abandon the current
handler and answer with a bare HTTP status.

Subclass hierarchy::

    KeelsonError (exit 1)
    +-- RoutingError                (exit 4)
    +-- ResolutionError             (exit 7)
    |   +-- PluginResolutionError   (exit 10)
    |   +-- ModuleResolutionError   (exit 7)
    |   +-- HelperResolutionError   (exit 7)
    |   +-- DataSourceResolutionError (exit 8)
    +-- ViewNotFoundError           (exit 6)
    +-- ConfigurationError          (exit 3)
    |   +-- ConfigurationKeyError   (exit 3)
    |   +-- ConfigurationTypeError  (exit 3)
    +-- DataSourceError             (exit 8)
    +-- RequestError                (exit 2)
    HttpStatusSignal
"""

from __future__ import annotations

from keelson.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_DATA_SOURCE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PLUGIN_ERROR,
    EXIT_RESOLUTION_ERROR,
    EXIT_SERVER_ERROR,
    EXIT_VIEW_ERROR,
)


class KeelsonError(Exception):
    """Base exception for all keelson errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`keelson.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class RoutingError(KeelsonError):
    """Raised when no module name can be resolved for the request."""

    exit_code = EXIT_NOT_FOUND


class ResolutionError(KeelsonError):
    """Raised when a component type cannot be resolved from its name.

    The three failure reasons are a missing type, a type that does not
    extend the expected base class, and an abstract type.
    """

    exit_code = EXIT_RESOLUTION_ERROR


class PluginResolutionError(ResolutionError):
    """Raised when a configured plugin cannot be resolved or instantiated."""

    exit_code = EXIT_PLUGIN_ERROR


class ModuleResolutionError(ResolutionError):
    """Raised when the request's module cannot be resolved."""


class HelperResolutionError(ResolutionError):
    """Raised when a module helper cannot be resolved."""


class DataSourceResolutionError(ResolutionError):
    """Raised when a configured data source type cannot be resolved."""

    exit_code = EXIT_DATA_SOURCE_ERROR


class ViewNotFoundError(KeelsonError):
    """Raised when no template exists for a view name."""

    exit_code = EXIT_VIEW_ERROR


class ConfigurationError(KeelsonError):
    """Raised for configuration problems (unreadable or malformed file)."""

    exit_code = EXIT_CONFIG_ERROR


class ConfigurationKeyError(ConfigurationError):
    """Raised when a configuration key is missing or declared twice."""


class ConfigurationTypeError(ConfigurationError):
    """Raised when a configuration value has the wrong shape (scalar vs. array)."""


class DataSourceError(KeelsonError):
    """Raised for data-source setup problems (count mismatch, bad DSN, unknown alias)."""

    exit_code = EXIT_DATA_SOURCE_ERROR


class RequestError(KeelsonError):
    """Raised when request input is unusable (failed upload, wrong file extension)."""

    exit_code = EXIT_INVALID_USAGE


class HttpStatusSignal(Exception):
    """Abort the current request with an HTTP status.

    Raised by :meth:`keelson.http.Response.set_http_status_code` and caught
    at the :class:`~keelson.front_controller.FrontController` boundary,
    where the status line is applied to the response and :attr:`message`
    becomes the whole response body.

    Args:
        code: The numeric HTTP status code.
        message: The reason phrase, also used as the response body.
        protocol: The server protocol used to build :attr:`status_line`.
    """

    def __init__(self, code: int, message: str = "", protocol: str = "HTTP/1.1"):
        self.code = code
        self.message = message
        self.protocol = protocol
        super().__init__(self.status_line)

    @property
    def status_line(self) -> str:
        """The ``<protocol> <code> <message>`` status line."""
        return f"{self.protocol} {self.code} {self.message}".rstrip()

    @property
    def exit_code(self) -> int:
        """Exit code used when the signal ends a command line request."""
        if self.code >= 500:
            return EXIT_SERVER_ERROR
        if self.code >= 400:
            return EXIT_NOT_FOUND
        return EXIT_GENERIC_FAILURE
