"""Typer application and CLI entry point for retently-cli.

Every API operation is a flat, hyphenated command on the root application
(``list-feedback``, ``add-tags``, ...); configuration lives under the
``config`` group.  The root callback builds the global
:class:`~retently_cli.output.OutputManager` and stores shared flags in
``ctx.obj``.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler, runs the app, turns a
stray :class:`~retently_cli.exceptions.RetentlyError` into its exit code and
writes a crash log for anything else.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from retently_cli import __version__
from retently_cli.commands import cache, campaigns, customers, feedback, surveys, utility
from retently_cli.commands.config import config_app
from retently_cli.exit_codes import EXIT_GENERIC_FAILURE
from retently_cli.output import OutputFormat


app = typer.Typer(
    name="retently-cli",
    help="Retently NPS/CSAT/CES feedback management.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"retently-cli {__version__}")
        raise typer.Exit()


def _configured_format() -> OutputFormat:
    """Format from ``output.format`` in the settings file, ``AUTO`` if unusable.

    An invalid settings file is reported later by the command that loads it.
    """
    from retently_cli.config import load_settings
    from retently_cli.exceptions import ConfigError

    try:
        return OutputFormat(load_settings().output.format)
    except (ConfigError, ValueError):
        return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Bypass the response cache."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output file path."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global output manager from the flags and stores
    ``no_cache`` and ``verbose`` in ``ctx.obj``.  Entries already present in
    ``ctx.obj`` (such as a ``transport`` supplied by an embedding caller)
    are kept.
    """
    from retently_cli.output import OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = _configured_format()

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["no_cache"] = no_cache
    ctx.obj["verbose"] = verbose


# Customers
app.command("list-customers")(customers.list_customers)
app.command("get-customer")(customers.get_customer)
app.command("create-customers")(customers.create_customers)
app.command("delete-customer")(customers.delete_customer)

# Feedback and scores
app.command("list-feedback")(feedback.list_feedback)
app.command("get-feedback")(feedback.get_feedback)
app.command("get-nps-score")(feedback.get_nps_score)
app.command("get-csat-score")(feedback.get_csat_score)
app.command("get-ces-score")(feedback.get_ces_score)
app.command("add-tags")(feedback.add_tags)

# Campaigns, companies and surveys
app.command("list-campaigns")(campaigns.list_campaigns)
app.command("list-companies")(campaigns.list_companies)
app.command("send-survey")(surveys.send_survey)

# Utility
app.command("api-status")(utility.api_status)
app.command("list-tools")(utility.list_tools)
app.command("cache-stats")(cache.cache_stats)
app.command("cache-clear")(cache.cache_clear)
app.command("cache-invalidate")(cache.cache_invalidate)

app.add_typer(config_app, name="config", help="Configuration management.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from retently_cli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``retently-cli`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from retently_cli.exceptions import RetentlyError
        from retently_cli.output import error

        if isinstance(exc, RetentlyError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
