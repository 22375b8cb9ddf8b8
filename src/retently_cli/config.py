"""Settings management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for retently-cli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.retently-cli/`` on macOS and Windows.  See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Settings file** -- a single :class:`~retently_cli.models.Settings`
  JSON file (``config.json``) holding the API key (or a pointer to it),
  the base URL, the request deadline and cache defaults.
* **Precedence resolution** -- :func:`resolve_settings` layers environment
  variables over the settings file, and :func:`resolve_api_key` picks the
  credential from ``RETENTLY_API_KEY``, ``api_key_source`` or ``api_key``.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars or files.

The response cache is in-memory only, so nothing here touches a cache
directory.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from retently_cli.exceptions import ConfigError
from retently_cli.models import Settings

_APP_NAME = "retently-cli"
_CONFIG_FILENAME = "config.json"

ENV_API_KEY = "RETENTLY_API_KEY"
ENV_BASE_URL = "RETENTLY_BASE_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/retently-cli/`` (default
    ``~/.config/retently-cli/``).  On macOS/Windows: ``~/.retently-cli/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/retently-cli/`` (default
    ``~/.local/share/retently-cli/``).  On macOS/Windows:
    ``~/.retently-cli/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is removed and the original file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings file ---


def load_settings() -> Settings:
    """Load settings from the XDG config directory.

    Returns:
        The deserialised :class:`~retently_cli.models.Settings`.  If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist *settings* atomically to the settings file."""
    data = settings.model_dump(mode="json", exclude_none=True)
    _atomic_write(settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings() -> Settings:
    """Load settings and apply environment overrides.

    Precedence (high to low):
        1. Environment variables (``RETENTLY_BASE_URL``)
        2. Settings file (``~/.config/retently-cli/config.json``)
        3. Defaults

    The API key is resolved separately by :func:`resolve_api_key` so that
    commands which never hit the network (``config show``, ``list-tools``)
    work without one.
    """
    settings = load_settings()
    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        settings.base_url = env_base_url
    return settings


def resolve_api_key(settings: Settings) -> str:
    """Return the API key, or raise :class:`ConfigError` if none is configured.

    Precedence (high to low):
        1. ``RETENTLY_API_KEY`` environment variable
        2. ``api_key_source`` in the settings file (``env:VAR`` / ``file:/path``)
        3. ``api_key`` in the settings file

    Raises:
        ConfigError: If no source yields a non-empty key.
    """
    env_value = os.environ.get(ENV_API_KEY)
    if env_value:
        return env_value
    if settings.api_key_source:
        value = resolve_credential(settings.api_key_source)
        if value:
            return value
    if settings.api_key:
        return settings.api_key
    raise ConfigError(
        f"Missing required config: api_key. Set {ENV_API_KEY} or run "
        f"'retently-cli config set api_key <KEY>'"
    )


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")


def mask_secret(value: Optional[str]) -> Optional[str]:
    """Mask all but the last four characters of *value* for display."""
    if not value:
        return value
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]
