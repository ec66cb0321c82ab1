"""Exception hierarchy for edpear.

All exceptions inherit from :class:`EdpearError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`edpear.exit_codes`.
Command handlers catch ``EdpearError``, print the message and exit with the
matching code, while unexpected exceptions produce a crash log and exit with
:data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    EdpearError (exit 1)
    +-- ConfigError             (exit 1)
    +-- NotAuthenticatedError   (exit 3)
    +-- ApiError
    |   +-- UnauthorizedError   (exit 3)
    |   +-- ServerError         (exit 5)
    |   +-- ConnectionError_    (exit 6)
    +-- LoginError
        +-- InitiationError     (exit of the underlying ApiError)
        +-- LoginExpiredError   (exit 7)
        +-- LoginTimeoutError   (exit 8)
"""

from edpear.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_LOGIN_EXPIRED,
    EXIT_LOGIN_TIMEOUT,
    EXIT_SERVER_ERROR,
)

UNAUTHORIZED_MESSAGE = 'Authentication required. Please run "edpear login" first.'
NOT_LOGGED_IN_MESSAGE = "Please login first: edpear login"
EXPIRED_MESSAGE = "Authentication request expired. Please try again."


class EdpearError(Exception):
    """Base exception for all edpear errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`edpear.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(EdpearError):
    """Raised for invalid configuration values (e.g. a non-numeric poll interval)."""

    exit_code = EXIT_GENERIC_FAILURE


class NotAuthenticatedError(EdpearError):
    """Raised when a command needs a session but no token is stored."""

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str = NOT_LOGGED_IN_MESSAGE):
        super().__init__(message)


class ApiError(EdpearError):
    """Base class for failures reported by :class:`~edpear.client.ApiClient`."""


class UnauthorizedError(ApiError):
    """Raised when the API answers HTTP 401 to an authenticated call."""

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE):
        super().__init__(message)


class ServerError(ApiError):
    """Raised when the API answers with an HTTP error other than 401, or with an unreadable body."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(ApiError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class LoginError(EdpearError):
    """Base class for the terminal failure states of a login handshake."""


class InitiationError(LoginError):
    """Raised when the approval request could not be registered with the service.

    Takes the exit code of the underlying :class:`ApiError` so that network
    problems and server rejections stay distinguishable.
    """

    def __init__(self, cause: EdpearError):
        super().__init__(
            f"Could not start login: {cause}. "
            "Check your network connection and EDPEAR_API_URL.",
            exit_code=cause.exit_code,
        )
        self.cause = cause


class LoginExpiredError(LoginError):
    """Raised when the service reports the approval request as expired."""

    exit_code = EXIT_LOGIN_EXPIRED

    def __init__(self, message: str = EXPIRED_MESSAGE):
        super().__init__(message)


class LoginTimeoutError(LoginError):
    """Raised when the polling budget runs out before the request is approved."""

    exit_code = EXIT_LOGIN_TIMEOUT

    def __init__(self, attempts: int):
        super().__init__(
            f"Authentication timed out after {attempts} attempts. Please try again."
        )
        self.attempts = attempts
