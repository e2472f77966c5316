"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~loginflow.exceptions.LoginflowError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from an
unreachable server without parsing stderr.

Example::

    $ loginflow login alice --password wrong
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the login exchange was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or in the wrong login mode."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or a call was rejected as unauthorized."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_MODE_RESOLUTION_ERROR = 7
"""The login mode could not be resolved from the server."""

EXIT_PREFERENCES_ERROR = 8
"""User preferences could not be loaded or stored."""

EXIT_CREDENTIAL_FALLBACK_ERROR = 9
"""The local credentials artifact could not be read."""
