"""Feedback commands -- survey responses, scores and tagging."""

from __future__ import annotations

import json
from enum import Enum
from typing import Optional

import typer

from retently_cli.commands.common import run_operation
from retently_cli.exceptions import InvalidUsageError
from retently_cli.output import error


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def list_feedback(
    ctx: typer.Context,
    page: Optional[int] = typer.Option(None, "--page", min=1, help="Page number."),
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, max=100, help="Results per page."
    ),
    campaign_id: Optional[str] = typer.Option(None, "--campaign-id", help="Campaign ID."),
    since: Optional[str] = typer.Option(
        None, "--since", help="Start date (ISO 8601). Always bypasses the cache."
    ),
    until: Optional[str] = typer.Option(None, "--until", help="End date (ISO 8601)."),
    sort: Optional[SortOrder] = typer.Option(None, "--sort", help="Sort order."),
) -> None:
    """List survey responses."""
    run_operation(
        ctx,
        lambda client: client.list_feedback(
            page=page,
            per_page=limit,
            campaign_id=campaign_id,
            since=since,
            until=until,
            sort=sort.value if sort else None,
        ),
    )


def get_feedback(
    ctx: typer.Context,
    feedback_id: str = typer.Option(..., "--id", help="Feedback ID."),
) -> None:
    """Get feedback by ID."""
    run_operation(ctx, lambda client: client.get_feedback(feedback_id))


def get_nps_score(ctx: typer.Context) -> None:
    """Get current NPS score."""
    run_operation(ctx, lambda client: client.get_nps_score())


def get_csat_score(ctx: typer.Context) -> None:
    """Get current CSAT score."""
    run_operation(ctx, lambda client: client.get_csat_score())


def get_ces_score(ctx: typer.Context) -> None:
    """Get current CES score."""
    run_operation(ctx, lambda client: client.get_ces_score())


def parse_tags(raw: str) -> list[str]:
    """Accept a JSON array of strings or a comma-separated list.

    Raises:
        InvalidUsageError: If no non-blank tag remains.
    """
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        tags = None
    if not isinstance(tags, list):
        tags = raw.split(",")
    cleaned = [str(t).strip() for t in tags if str(t).strip()]
    if not cleaned:
        raise InvalidUsageError("No tags given")
    return cleaned


def add_tags(
    ctx: typer.Context,
    feedback_id: str = typer.Option(..., "--feedback-id", help="Feedback ID."),
    tags: str = typer.Option(..., "--tags", help="JSON array or comma-separated tags."),
) -> None:
    """Add tags to feedback.

    Example::

        retently-cli add-tags --feedback-id fb_1 --tags "billing, churn-risk"
    """
    try:
        parsed = parse_tags(tags)
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    run_operation(ctx, lambda client: client.add_feedback_tags(feedback_id, parsed))
