"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~retently_cli.exceptions.RetentlyError` subclass.
Shell wrappers and schedulers can inspect the exit code to tell a rate-limit
rejection (worth retrying later) from a bad API key without parsing stderr.

Example::

    $ retently-cli list-feedback --since 2024-01-01
    $ echo $?
    8   # EXIT_RATE_LIMITED -- try again after the Retry-After delay
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or malformed input data."""

EXIT_AUTH_FAILURE = 3
"""The API key was rejected (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_REMOTE_ERROR = 5
"""The remote API answered with any other non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (request timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 8
"""The remote API rejected the request with HTTP 429."""
