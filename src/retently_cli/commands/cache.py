"""Cache commands -- inspect and drop cached responses.

The response cache lives in memory for the lifetime of one client, so in a
one-shot CLI invocation these commands act on a cache that starts empty.
They exist for parity with embedding callers and never need an API key.
"""

from __future__ import annotations

import re
from typing import Optional

import typer

from retently_cli.cache import TTLCache
from retently_cli.commands.common import get_settings
from retently_cli.exceptions import InvalidUsageError
from retently_cli.output import error, format_response


def _session_cache(ctx: typer.Context) -> TTLCache:
    settings = get_settings(ctx)
    obj = ctx.obj or {}
    return TTLCache(enabled=settings.cache.enabled and not obj.get("no_cache"))


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a ``--pattern`` value.

    Raises:
        InvalidUsageError: If *pattern* is not a valid regular expression.
    """
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidUsageError(f"Invalid pattern '{pattern}': {exc}") from None


def cache_stats(ctx: typer.Context) -> None:
    """Show cache hit/miss counters and size.

    The cache lives for one invocation, so a standalone run always reports
    an empty cache with zero hits and misses.
    """
    format_response(_session_cache(ctx).get_stats().model_dump())


def cache_clear(ctx: typer.Context) -> None:
    """Drop every cached response.

    The cache lives for one invocation, so a standalone run always clears
    zero entries.
    """
    cleared = _session_cache(ctx).clear()
    format_response({"cleared": cleared})


def cache_invalidate(
    ctx: typer.Context,
    key: Optional[str] = typer.Argument(None, help="Exact cache key to drop."),
    pattern: Optional[str] = typer.Option(
        None, "--pattern", help="Regular expression matched against cache keys."
    ),
) -> None:
    """Drop one cache key, or every key matching ``--pattern``.

    The cache lives for one invocation, so a standalone run always reports
    zero invalidated entries.

    Example::

        retently-cli cache-invalidate --pattern '^customer'
    """
    try:
        if (key is None) == (pattern is None):
            raise InvalidUsageError("Give exactly one of KEY or --pattern")
        cache = _session_cache(ctx)
        if pattern is not None:
            removed = cache.invalidate_pattern(compile_pattern(pattern))
            format_response({"pattern": pattern, "invalidated": removed})
        else:
            format_response({"key": key, "invalidated": int(cache.invalidate(key))})
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
