"""Config commands -- view and modify the settings file.

Provides the ``retently-cli config`` sub-command group.  Settings are
persisted as JSON in the config directory (see
:func:`~retently_cli.config.settings_path`) and hold the API key (or a
pointer to it), the base URL, the request deadline and cache defaults.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from retently_cli.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration with the API key masked.

    Example::

        retently-cli config show
        retently-cli --json config show
    """
    from retently_cli.config import get_config_dir, mask_secret, resolve_settings

    settings = resolve_settings()
    data = settings.model_dump(mode="json")
    data["api_key"] = mask_secret(data.get("api_key"))
    info(f"Config directory: {get_config_dir()}")
    format_response(data)


def _coerce(key: str, current: Any, value: str) -> Any:
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'request.timeout_ms')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Nested keys use dot notation.  The value is coerced to the type of the
    existing field (bool, int or str) and the result is validated before
    it is saved.

    Raises:
        typer.Exit: With code 2 if the key is unknown, the value cannot be
            coerced, or validation fails.

    Example::

        retently-cli config set api_key_source env:RETENTLY_TOKEN
        retently-cli config set request.timeout_ms 10000
        retently-cli config set cache.enabled false
    """
    from retently_cli.config import load_settings, mask_secret, save_settings
    from retently_cli.models import Settings

    data = load_settings().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    coerced = _coerce(key, target[final_key], value)
    target[final_key] = coerced

    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(settings)
    shown = mask_secret(str(coerced)) if key == "api_key" else coerced
    success(f"Set {key} = {shown}")


@config_app.command("path")
def config_path() -> None:
    """Print the settings file path."""
    from retently_cli.config import settings_path

    format_response({"path": str(settings_path())})
