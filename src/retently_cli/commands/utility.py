"""Utility commands -- API status and the tool catalogue."""

from __future__ import annotations

from typing import Any

import typer

from retently_cli.client import RetentlyClient
from retently_cli.client.retently import READ_OPERATIONS, WRITE_OPERATIONS
from retently_cli.commands.common import run_operation
from retently_cli.output import format_response

MAX_REQUESTS_PER_MINUTE = 150


def api_status(ctx: typer.Context) -> None:
    """Check API status and rate limits.

    Issues one lightweight request (``/campaigns`` with ``per_page=1``) so
    that the rate-limit headers reflect the current quota.
    """

    async def _status(client: RetentlyClient) -> dict[str, Any]:
        await client.list_campaigns(limit=1)
        return {
            "rate_limit": client.get_rate_limit_info().model_dump(),
            "api_base": client.base_url,
            "max_requests_per_minute": MAX_REQUESTS_PER_MINUTE,
        }

    run_operation(ctx, _status)


def list_tools() -> None:
    """List all available commands."""
    format_response(
        {
            "tools": RetentlyClient.list_tools(),
            "read_operations": READ_OPERATIONS,
            "write_operations": WRITE_OPERATIONS,
        }
    )
