"""Exception hierarchy for loginflow.

All exceptions inherit from :class:`LoginflowError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`loginflow.exit_codes`.
The top-level error handler in :func:`loginflow.app.main` catches
``LoginflowError`` and exits with the appropriate code.

Several kinds never leave the component that raises them:
:class:`ModeResolutionError` is absorbed by the login-mode resolver,
:class:`PreferencesLoadError` by the session bootstrapper and
:class:`CredentialFallbackError` by the credential bootstrapper.

Subclass hierarchy::

    LoginflowError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- AuthError                (exit 3)
    |   +-- LoginExchangeError
    |   +-- UnauthorizedError
    +-- NotFoundError            (exit 4)
    +-- ServerError              (exit 5)
    +-- ConnectionError_         (exit 6)
    +-- ModeResolutionError      (exit 7)
    +-- PreferencesLoadError     (exit 8)
    +-- CredentialFallbackError  (exit 9)
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

from typing import Optional

from loginflow.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_CREDENTIAL_FALLBACK_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MODE_RESOLUTION_ERROR,
    EXIT_NOT_FOUND,
    EXIT_PREFERENCES_ERROR,
    EXIT_SERVER_ERROR,
)


class LoginflowError(Exception):
    """Base exception for all loginflow errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(LoginflowError):
    """Raised for invalid arguments, or a login strategy unavailable in the current mode."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(LoginflowError):
    """Raised when authentication or authorisation fails."""

    exit_code = EXIT_AUTH_FAILURE


class LoginExchangeError(AuthError):
    """Raised when a password or simple login exchange fails.

    Surfaced to the user as a login-failed state. Never retried.
    """


class UnauthorizedError(AuthError):
    """Raised when an authenticated call answers HTTP 401 or 403.

    Args:
        message: Error description.
        status_code: The HTTP status that triggered the error.
    """

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(LoginflowError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(LoginflowError):
    """Raised when the API returns any other HTTP error status.

    Args:
        message: Error description.
        status_code: The HTTP status, when there was one.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConnectionError_(LoginflowError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ModeResolutionError(LoginflowError):
    """Raised when the supported login modes cannot be read from the server."""

    exit_code = EXIT_MODE_RESOLUTION_ERROR


class PreferencesLoadError(LoginflowError):
    """Raised when user preferences cannot be loaded or stored."""

    exit_code = EXIT_PREFERENCES_ERROR


class CredentialFallbackError(LoginflowError):
    """Raised when the local credentials artifact is missing or unreadable."""

    exit_code = EXIT_CREDENTIAL_FALLBACK_ERROR


class ConfigError(LoginflowError):
    """Raised for configuration problems (invalid JSON, failed validation, unknown keys)."""

    exit_code = EXIT_GENERIC_FAILURE
