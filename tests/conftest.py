"""Shared test fixtures for retently-cli.

Provides isolated config environments, a mock transport factory for the
Retently API, output state management and a CLI runner.  These fixtures are
discovered by pytest and available to every test module.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from retently_cli.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stderr at creation time.
    When Typer's CliRunner redirects the streams during a test the cached
    references go stale, so a fresh manager is created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Isolated config environment
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect config/data directories to a temp dir and clear RETENTLY_* vars.

    Returns the temporary root so tests can inspect written files.
    """
    monkeypatch.setattr("retently_cli.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("RETENTLY_API_KEY", raising=False)
    monkeypatch.delenv("RETENTLY_BASE_URL", raising=False)
    return tmp_path


@pytest.fixture
def json_output() -> OutputManager:
    """Install a quiet JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True, quiet=True)
    set_output(output)
    return output


# ---------------------------------------------------------------------------
# Mock Retently API
# ---------------------------------------------------------------------------


class RecordingHandler:
    """MockTransport handler that records requests and replies from a route table.

    Routes map ``"METHOD /path"`` to either an :class:`httpx.Response` or a
    callable taking the request and returning one.  Unrouted requests get a
    404.
    """

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(f"{request.method} {request.url.path}")
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return route(request)
        return route

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def mock_api() -> Callable[[dict[str, Any]], tuple[RecordingHandler, httpx.MockTransport]]:
    """Factory building a recording handler and a MockTransport around it."""

    def _factory(routes: dict[str, Any]) -> tuple[RecordingHandler, httpx.MockTransport]:
        handler = RecordingHandler(routes)
        return handler, httpx.MockTransport(handler)

    return _factory


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
