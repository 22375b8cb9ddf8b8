"""Exception hierarchy for retently-cli.

All exceptions inherit from :class:`RetentlyError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`retently_cli.exit_codes`.  The top-level error handler in
:func:`retently_cli.app.main` catches ``RetentlyError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

The HTTP executor (:class:`~retently_cli.client.http.HttpExecutor`) is the
only place that classifies transport and status failures; the cache layer
never catches them.

Subclass hierarchy::

    RetentlyError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- RemoteError              (exit 5)
    |   +-- AuthError            (exit 3)
    |   +-- NotFoundError        (exit 4)
    +-- RateLimitedError         (exit 8)
    +-- ConnectionError_         (exit 6)
    |   +-- RequestTimeoutError  (exit 6)
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

from typing import Optional

from retently_cli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_RATE_LIMITED,
    EXIT_REMOTE_ERROR,
)


class RetentlyError(Exception):
    """Base exception for all retently-cli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`retently_cli.exit_codes`.  The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RetentlyError):
    """Raised for malformed CLI input (e.g. ``--data`` that is not a JSON array)."""

    exit_code = EXIT_INVALID_USAGE


class RemoteError(RetentlyError):
    """Raised when the API answers with a non-2xx status other than 429.

    Args:
        status_code: The HTTP status code of the response.
        body: The raw response body text.
    """

    exit_code = EXIT_REMOTE_ERROR

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Retently API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class AuthError(RemoteError):
    """Raised on HTTP 401 / 403 -- the API key is missing, wrong or revoked."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(RemoteError):
    """Raised on HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class RateLimitedError(RetentlyError):
    """Raised on HTTP 429.

    The request is not retried; the ``retry_after`` hint and the last known
    quota are carried so that a caller (or an outer scheduler) can decide
    when to try again.

    Args:
        retry_after: Value of the ``Retry-After`` header (``"60"`` when the
            header is absent).
        remaining: Last known ``X-RateLimit-Remaining`` value.
        limit: Last known ``X-RateLimit-Limit`` value.
    """

    exit_code = EXIT_RATE_LIMITED

    def __init__(
        self,
        retry_after: str,
        remaining: Optional[int] = None,
        limit: Optional[int] = None,
    ):
        super().__init__(
            f"Rate limit exceeded. Retry after {retry_after} seconds. "
            f"Remaining: {remaining}/{limit}"
        )
        self.retry_after = retry_after
        self.remaining = remaining
        self.limit = limit


class ConnectionError_(RetentlyError):
    """Raised on network-level failures (DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RequestTimeoutError(ConnectionError_):
    """Raised when a request does not complete within its deadline.

    Args:
        endpoint: The API path that was being requested.
        timeout_ms: The configured deadline in milliseconds.
    """

    def __init__(self, endpoint: str, timeout_ms: int):
        super().__init__(f"Request timeout after {timeout_ms}ms: {endpoint}")
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms


class ConfigError(RetentlyError):
    """Raised for configuration problems (missing API key, invalid config JSON)."""

    exit_code = EXIT_GENERIC_FAILURE
