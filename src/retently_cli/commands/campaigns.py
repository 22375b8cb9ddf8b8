"""Campaign and company commands."""

from __future__ import annotations

from typing import Optional

import typer

from retently_cli.commands.common import run_operation


def list_campaigns(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, max=100, help="Maximum campaigns to return."
    ),
) -> None:
    """List survey campaigns."""
    run_operation(ctx, lambda client: client.list_campaigns(limit=limit))


def list_companies(
    ctx: typer.Context,
    page: Optional[int] = typer.Option(None, "--page", min=1, help="Page number."),
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, max=100, help="Results per page."
    ),
) -> None:
    """List companies with aggregated scores."""
    run_operation(ctx, lambda client: client.list_companies(page=page, per_page=limit))
