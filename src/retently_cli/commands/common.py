"""Shared plumbing for API-backed commands.

Every command that talks to Retently funnels through :func:`run_operation`,
which resolves settings and the API key, opens a
:class:`~retently_cli.client.RetentlyClient` for the duration of one
coroutine, renders the result and turns
:class:`~retently_cli.exceptions.RetentlyError` into a clean exit code.

The root callback stores shared state in ``ctx.obj``:

* ``no_cache`` -- bypass the response cache for this invocation.
* ``transport`` -- optional :class:`httpx.AsyncBaseTransport` used instead
  of the network (embedding callers and tests).
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import typer
from pydantic import BaseModel

from retently_cli.client import RetentlyClient
from retently_cli.exceptions import ConfigError, RetentlyError
from retently_cli.models import Settings
from retently_cli.output import debug, error, format_response, suggest


def _obj(ctx: typer.Context) -> dict[str, Any]:
    ctx.ensure_object(dict)
    return ctx.obj


def get_settings(ctx: typer.Context) -> Settings:
    """Return settings for this invocation, resolving them once per context."""
    from retently_cli.config import resolve_settings

    obj = _obj(ctx)
    if obj.get("settings") is None:
        obj["settings"] = resolve_settings()
    return obj["settings"]


def create_client(ctx: typer.Context) -> RetentlyClient:
    """Build a client from the invocation's settings and flags.

    Raises:
        ConfigError: If no API key is configured.
    """
    from retently_cli.config import resolve_api_key

    settings = get_settings(ctx)
    obj = _obj(ctx)
    client = RetentlyClient.from_settings(
        settings,
        resolve_api_key(settings),
        transport=obj.get("transport"),
    )
    if obj.get("no_cache"):
        client.disable_cache()
    return client


def to_payload(result: Any) -> Any:
    """Convert models to JSON-ready dicts; pass decoded JSON through unchanged."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", exclude_none=True)
    return result


def run_operation(
    ctx: typer.Context,
    operation: Callable[[RetentlyClient], Awaitable[Any]],
) -> None:
    """Run *operation* against a fresh client and print its result.

    Args:
        ctx: Typer context of the invoked command.
        operation: Coroutine function receiving the open client.

    Raises:
        typer.Exit: With the error's ``exit_code`` when a
            :class:`~retently_cli.exceptions.RetentlyError` is raised.
    """

    async def _run() -> Any:
        async with create_client(ctx) as client:
            result = await operation(client)
            debug(f"Cache stats: {client.get_cache_stats().model_dump()}")
            return result

    try:
        result = asyncio.run(_run())
    except RetentlyError as exc:
        error(str(exc))
        if isinstance(exc, ConfigError):
            suggest("export RETENTLY_API_KEY=<key>  or  retently-cli config set api_key <key>")
        raise typer.Exit(code=exc.exit_code) from None

    format_response(to_payload(result))
