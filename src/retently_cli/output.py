"""Output for retently-cli: API payloads on stdout, diagnostics on stderr.

* **stdout** -- decoded API responses, write envelopes and cache statistics,
  rendered as JSON, tab-separated plain text or highlighted JSON (rich).
  ``-o FILE`` sends the payload to a file as JSON instead.
* **stderr** -- every diagnostic: errors, warnings, status lines and, with
  ``--verbose``, the request/cache debug trace.  ``--quiet`` silences the
  non-essential ones; errors and warnings always get through.

Colour follows ``--no-color``, ``NO_COLOR`` and ``TERM=dumb``.

:class:`OutputManager` holds the per-invocation preferences.  The root
callback installs one with :func:`set_output`; the rest of the package calls
the module-level helpers (:func:`format_response`, :func:`error`,
:func:`debug`, ...) which delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """Payload rendering on stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Per-invocation output preferences and the stderr console.

    Args:
        format: Payload format; ``AUTO`` is resolved at construction.
        no_color: Disable colour and markup.
        quiet: Drop info, success and suggestion lines.
        verbose: Emit debug lines.
        output_file: Write payloads to this path instead of stdout.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def format_response(self, data: Any) -> None:
        """Render one payload (dict, list, scalar or ``None``)."""
        if self._output_file:
            with open(self._output_file, "w", encoding="utf-8") as f:
                f.write(_to_json(data) + "\n")
        elif self._format == OutputFormat.JSON:
            _write_line(_to_json(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                _write_line(line)
        elif data is not None:
            console = Console(file=sys.stdout, no_color=self._no_color, force_terminal=True)
            if isinstance(data, (dict, list)):
                console.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
            else:
                console.print(str(data))

    # --- stderr ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, "", "")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, "", "green")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._emit(f"→ {message}", "", "dim")

    def warning(self, message: str) -> None:
        self._emit(message, "Warning: ", "yellow")

    def error(self, message: str) -> None:
        self._emit(message, "Error: ", "bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(message, "[debug] ", "dim")

    def _emit(self, message: str, label: str, style: str) -> None:
        if self._no_color:
            print(f"{label}{message}", file=sys.stderr, flush=True)
            return
        text = escape(f"{label}{message}")
        self._stderr.print(f"[{style}]{text}[/{style}]" if style else text)


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _write_line(text: str) -> None:
    print(text, file=sys.stdout, flush=True)


def _plain_lines(data: Any) -> list[str]:
    """Tab-separated lines for *data*.

    A Retently list envelope (``{"data": [...], "meta": ...}``) is unwrapped
    so each record lands on its own line; a dict becomes ``key<TAB>value``
    lines with nested values as compact JSON.
    """
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        data = data["data"]
    if data is None:
        return []
    if isinstance(data, dict):
        lines = []
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, ensure_ascii=False, default=str)
            lines.append(f"{key}\t{value}")
        return lines
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# --- Global instance (installed by the root callback) ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager so the next call builds a fresh one (tests)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
