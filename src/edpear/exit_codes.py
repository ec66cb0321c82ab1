"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~edpear.exceptions.EdpearError` subclass.
Shell wrappers can inspect the exit code to tell an expired login request
apart from a client-side timeout without parsing stderr.

Example::

    $ edpear login
    $ echo $?
    7   # EXIT_LOGIN_EXPIRED -- the approval request expired server-side
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""No session is stored, or the stored session was rejected (HTTP 401)."""

EXIT_SERVER_ERROR = 5
"""The remote API answered with an HTTP error other than 401."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_LOGIN_EXPIRED = 7
"""The server reported that the approval request expired."""

EXIT_LOGIN_TIMEOUT = 8
"""The client used up its polling budget before the request was approved."""

EXIT_CANCELLED = 130
"""The user interrupted the command (Ctrl-C)."""
