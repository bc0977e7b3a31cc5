"""Numeric process exit codes for the ``keelson`` command line.

Each constant maps to a failure category and is referenced by the
corresponding :class:`~keelson.exceptions.KeelsonError` subclass, so that
shell wrappers and CI scripts can tell a routing problem from a broken
configuration without parsing stderr.

Example::

    $ keelson request ./site blog/missing
    $ echo $?
    4   # EXIT_NOT_FOUND -- the request ended with an HTTP 4xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""The configuration file is missing, malformed, or lacks a required key."""

EXIT_NOT_FOUND = 4
"""The request ended with an HTTP 4xx status (or no route could be resolved)."""

EXIT_SERVER_ERROR = 5
"""The request ended with an HTTP 5xx status."""

EXIT_VIEW_ERROR = 6
"""A template could not be found or failed to render."""

EXIT_RESOLUTION_ERROR = 7
"""A module, helper, or data source type could not be resolved."""

EXIT_DATA_SOURCE_ERROR = 8
"""The data-source layer could not be initialised."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to resolve or load."""
