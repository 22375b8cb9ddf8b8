"""Survey commands -- queue transactional surveys."""

from __future__ import annotations

from typing import Optional

import typer

from retently_cli.commands.common import run_operation


def send_survey(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", help="Recipient email."),
    campaign_id: str = typer.Option(..., "--campaign-id", help="Campaign ID."),
    delay_days: Optional[int] = typer.Option(
        None, "--delay-days", min=0, help="Days to wait before sending."
    ),
) -> None:
    """Send a survey to a customer.

    Example::

        retently-cli send-survey --email ada@example.com --campaign-id c_42 --delay-days 2
    """
    run_operation(
        ctx,
        lambda client: client.send_survey(email, campaign_id, delay_days=delay_days),
    )
