"""Customer commands -- list, fetch, bulk-create and delete customers.

``create-customers`` and ``delete-customer`` mutate remote state; their
output carries ``"write_operation": true``.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from retently_cli.commands.common import run_operation
from retently_cli.exceptions import InvalidUsageError
from retently_cli.output import error


def list_customers(
    ctx: typer.Context,
    page: Optional[int] = typer.Option(None, "--page", min=1, help="Page number."),
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, max=100, help="Results per page."
    ),
    email: Optional[str] = typer.Option(None, "--email", help="Filter by email."),
) -> None:
    """List customers."""
    run_operation(
        ctx, lambda client: client.list_customers(page=page, per_page=limit, email=email)
    )


def get_customer(
    ctx: typer.Context,
    customer_id: str = typer.Option(..., "--id", help="Customer ID."),
) -> None:
    """Get customer by ID."""
    run_operation(ctx, lambda client: client.get_customer(customer_id))


def parse_customers(data: str) -> list[dict[str, Any]]:
    """Parse the ``--data`` value into a list of customer objects.

    Raises:
        InvalidUsageError: If *data* is not a JSON array of objects.
    """
    try:
        customers = json.loads(data)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"Invalid JSON data: {exc}") from None
    if not isinstance(customers, list):
        raise InvalidUsageError("Invalid JSON data: Data must be a JSON array")
    if not all(isinstance(c, dict) for c in customers):
        raise InvalidUsageError("Invalid JSON data: every customer must be a JSON object")
    return customers


def create_customers(
    ctx: typer.Context,
    data: str = typer.Option(..., "--data", help="JSON array of customer objects."),
) -> None:
    """Bulk create/update customers.

    Customers are de-duplicated by email and sent in batches of 1000.  A
    failed batch is reported per customer and does not abort the others.

    Example::

        retently-cli create-customers --data '[{"email": "ada@example.com"}]'
    """
    try:
        customers = parse_customers(data)
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    run_operation(ctx, lambda client: client.create_customers(customers))


def delete_customer(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", help="Customer email."),
) -> None:
    """Delete customer by email."""
    run_operation(ctx, lambda client: client.delete_customer(email))
