"""HTTP executor for the Retently REST API.

:class:`HttpExecutor` issues exactly one request per call through
:class:`httpx.AsyncClient` and is the single place where transport and
status failures are classified:

- the whole request runs under a deadline; when it expires the in-flight
  request is cancelled and :class:`~retently_cli.exceptions.RequestTimeoutError`
  is raised,
- ``X-RateLimit-*`` headers are parsed after every response, successful or
  not,
- HTTP 429 raises :class:`~retently_cli.exceptions.RateLimitedError`,
- any other non-2xx raises :class:`~retently_cli.exceptions.RemoteError`
  (or its :class:`AuthError` / :class:`NotFoundError` subclasses),
- any other httpx failure (refused connection, undecodable body, redirect
  loop) raises :class:`~retently_cli.exceptions.ConnectionError_`.

Nothing is retried here.  Backoff after a 429 is left to whoever runs the
CLI.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import httpx

from retently_cli.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    RateLimitedError,
    RemoteError,
    RequestTimeoutError,
)
from retently_cli.models import DEFAULT_BASE_URL, RateLimitInfo
from retently_cli.output import debug

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_RETRY_AFTER = "60"


class HttpExecutor:
    """Authenticated JSON request executor with rate-limit tracking.

    Must be used as an async context manager so that the underlying
    connection pool is opened and closed.

    Args:
        api_key: Value sent in the ``X-Api-Key`` header.
        base_url: API root; endpoint paths are appended to it.
        timeout_ms: Default total deadline per request, in milliseconds.
        verify_ssl: Verify TLS certificates.
        transport: Optional :class:`httpx.AsyncBaseTransport` replacing the
            network (e.g. :class:`httpx.MockTransport`).

    Example::

        async with HttpExecutor(api_key) as executor:
            score = await executor.request("/nps/score")
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_ms = timeout_ms
        self._verify_ssl = verify_ssl
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._rate_limit = RateLimitInfo()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpExecutor:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "X-Api-Key": self._api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            # The deadline is enforced around the whole request in request().
            timeout=None,
            verify=self._verify_ssl,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def rate_limit(self) -> RateLimitInfo:
        """Copy of the rate-limit snapshot from the most recent response."""
        return self._rate_limit.model_copy()

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
        timeout_ms: Optional[int] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Args:
            endpoint: Path below the base URL, e.g. ``"/feedback"``.
            method: HTTP method.
            params: Query parameters; ``None`` values are omitted and the
                rest are sent as strings.
            json_body: JSON body, sent for non-GET methods only.
            timeout_ms: Deadline override for this call.

        Returns:
            The decoded JSON payload, or ``None`` for an empty body.

        Raises:
            RequestTimeoutError: The deadline expired.
            ConnectionError_: The connection could not be established, or
                the response could not be read (bad encoding, redirect loop).
            RateLimitedError: HTTP 429.
            AuthError: HTTP 401 / 403.
            NotFoundError: HTTP 404.
            RemoteError: Any other non-2xx status, or a 2xx body that is
                not JSON.
        """
        assert self._client is not None, "Executor not initialised -- use as async context manager"

        deadline_ms = timeout_ms if timeout_ms is not None else self._timeout_ms
        method = method.upper()

        kwargs: dict[str, Any] = {"params": encode_params(params)}
        if json_body is not None and method != "GET":
            kwargs["json"] = json_body

        debug(f"{method} {endpoint} (timeout {deadline_ms}ms)")
        try:
            response = await asyncio.wait_for(
                self._client.request(method, endpoint, **kwargs),
                timeout=deadline_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RequestTimeoutError(endpoint, deadline_ms) from exc
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection failed for {endpoint}: {exc}") from exc
        except httpx.RequestError as exc:
            # Undecodable body, redirect loop.
            raise ConnectionError_(f"Request failed for {endpoint}: {exc}") from exc

        self._rate_limit = parse_rate_limit(response.headers)
        debug(
            f"HTTP {response.status_code} {endpoint} -- rate limit "
            f"{self._rate_limit.remaining}/{self._rate_limit.limit}"
        )

        if response.status_code == 429:
            raise RateLimitedError(
                response.headers.get("Retry-After") or DEFAULT_RETRY_AFTER,
                remaining=self._rate_limit.remaining,
                limit=self._rate_limit.limit,
            )
        if not response.is_success:
            _raise_for_status(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise RemoteError(response.status_code, response.text[:200]) from None


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def encode_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Drop ``None`` values and stringify the rest (booleans as ``true``/``false``)."""
    encoded: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def _header_int(headers: httpx.Headers, name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def parse_rate_limit(headers: httpx.Headers) -> RateLimitInfo:
    """Build a :class:`RateLimitInfo` from response headers.

    A missing or non-integer header yields ``None`` for that field.
    """
    return RateLimitInfo(
        remaining=_header_int(headers, "X-RateLimit-Remaining"),
        limit=_header_int(headers, "X-RateLimit-Limit"),
        reset=_header_int(headers, "X-RateLimit-Reset"),
    )


def _raise_for_status(response: httpx.Response) -> None:
    """Raise the typed error for a non-2xx, non-429 response."""
    status = response.status_code
    body = response.text
    if status in (401, 403):
        raise AuthError(status, body)
    if status == 404:
        raise NotFoundError(status, body)
    raise RemoteError(status, body)
