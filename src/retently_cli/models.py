"""Canonical Pydantic models shared across retently-cli modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, :class:`OutputConfig` and
    the top-level :class:`Settings`.

**Result models** -- produced by the request layer and rendered by the CLI:
    :class:`RateLimitInfo`, :class:`CacheStats`, :class:`BulkEntryResult`,
    :class:`BulkResult` and :class:`WriteResult`.

Successful API responses themselves are passed through as decoded JSON and
are not modelled here.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "https://app.retently.com/api/v2"


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP request settings applied to every API call."""

    timeout_ms: int = Field(
        default=30_000, gt=0, description="Total request deadline in milliseconds"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class CacheConfig(BaseModel):
    """In-memory response cache settings."""

    enabled: bool = Field(default=True, description="Enable response caching")


class OutputConfig(BaseModel):
    """Default output format preference."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class Settings(BaseModel):
    """User-wide configuration persisted at ``~/.config/retently-cli/config.json``.

    Loaded by :func:`~retently_cli.config.load_settings` and layered with
    environment overrides by :func:`~retently_cli.config.resolve_settings`.

    Example::

        Settings(api_key_source="env:RETENTLY_TOKEN")
    """

    api_key: Optional[str] = Field(
        default=None, description="Retently API key (plain value)"
    )
    api_key_source: Optional[str] = Field(
        default=None,
        description="Credential source for the API key: env:VAR or file:/path",
    )
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Results ---


class RateLimitInfo(BaseModel):
    """Rate-limit snapshot parsed from the most recent response headers.

    Each field is ``None`` until a response has been received, and whenever
    the corresponding header is missing from the latest response.
    """

    remaining: Optional[int] = None
    limit: Optional[int] = None
    reset: Optional[int] = None


class CacheStats(BaseModel):
    """Process-lifetime cache counters returned by :meth:`TTLCache.get_stats`."""

    hits: int = 0
    misses: int = 0
    size: int = 0
    enabled: bool = True


class BulkEntryResult(BaseModel):
    """Outcome for one customer of a bulk create."""

    email: str
    success: bool
    error: Optional[str] = None


class WriteResult(BaseModel):
    """Envelope returned by every write operation.

    ``write_operation`` is always ``True`` so that a caller reading the JSON
    output can tell that remote state was mutated.  Operation-specific fields
    (``deleted``, ``queued``, ``added``) are carried as extras.
    """

    model_config = ConfigDict(extra="allow")

    write_operation: Literal[True] = True
    action: str


class BulkResult(WriteResult):
    """Result of a chunked bulk create.

    A failed chunk does not raise; its entries are reported here with
    ``success=False`` and the error message instead.
    """

    success_count: int = 0
    error_count: int = 0
    results: list[BulkEntryResult] = Field(default_factory=list)
